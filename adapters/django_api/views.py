"""
POS Django Adapter Views
========================
HTTP endpoints for order/invoice persistence, the payment-success
webhook and the tax-code lookup proxy.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.csrf import csrf_exempt

from adapters.django_api.responses import (
    error_response,
    integration_error_response,
    status_for_integration_error,
    success_response,
)
from adapters.django_api.wiring import build_dependencies
from core.primitives import to_money
from core.sales_store.records import InvoiceData, OrderData, SaleLineData
from integration.adapters import IntegrationError

logger = logging.getLogger("pos.api")


def _json_error(code: str, message: str, status: int = 400) -> JsonResponse:
    return JsonResponse(
        error_response(code=code, message=message, details={}),
        status=status,
    )


def _method_not_allowed() -> JsonResponse:
    return _json_error(
        "METHOD_NOT_ALLOWED",
        "Method not allowed for this endpoint.",
        status=405,
    )


def _parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        parsed = json.loads(request.body.decode("utf-8"))
    except Exception as exc:
        raise ValueError("Request body must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object.")
    return parsed


def _optional_money(body: dict[str, Any], key: str):
    value = body.get(key)
    if value is None or value == "":
        return None
    return to_money(value, key)


def _optional_int(body: dict[str, Any], key: str) -> int | None:
    value = body.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer.") from exc


def _parse_datetime(value: Any, field_name: str) -> datetime:
    if value is None or value == "":
        return timezone.now()
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"{field_name} must be an ISO-8601 datetime.")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _parse_lines(body: dict[str, Any]) -> tuple[SaleLineData, ...]:
    items = body.get("items")
    if not isinstance(items, list) or not items:
        raise ValueError("items must be a non-empty list.")
    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"items[{index}] must be an object.")
        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"items[{index}].quantity must be an integer.")
        unit_price = to_money(item["unitPrice"], f"items[{index}].unitPrice")
        lines.append(
            SaleLineData(
                product_ref=str(item["productRef"]),
                product_name=item["productName"],
                sku=item.get("sku") or "",
                unit_price=unit_price,
                quantity=quantity,
                tax_rate=to_money(item.get("taxRate", 0), f"items[{index}].taxRate"),
                total=to_money(item.get("total", unit_price * quantity), f"items[{index}].total"),
            )
        )
    return tuple(lines)


def _order_from_body(body: dict[str, Any]) -> OrderData:
    return OrderData(
        order_number=body["orderNumber"],
        status=body.get("status", "pending"),
        payment_method=body["paymentMethod"],
        einvoice_status=int(body.get("einvoiceStatus", 0)),
        subtotal=to_money(body["subtotal"], "subtotal"),
        tax=to_money(body.get("tax", 0), "tax"),
        total=to_money(body["total"], "total"),
        customer_name=body.get("customerName") or "",
        amount_received=_optional_money(body, "amountReceived"),
        change=_optional_money(body, "change"),
        table_id=_optional_int(body, "tableId"),
    )


def _invoice_from_body(body: dict[str, Any]) -> InvoiceData:
    return InvoiceData(
        trade_number=body["tradeNumber"],
        status=body.get("status", "draft"),
        einvoice_status=int(body.get("einvoiceStatus", 0)),
        customer_name=body.get("customerName") or "",
        customer_tax_code=body.get("customerTaxCode") or "",
        customer_address=body.get("customerAddress") or "",
        customer_phone=body.get("customerPhone") or "",
        customer_email=body.get("customerEmail") or "",
        subtotal=to_money(body["subtotal"], "subtotal"),
        tax=to_money(body.get("tax", 0), "tax"),
        total=to_money(body["total"], "total"),
        payment_method=body.get("paymentMethod") or "cash",
        invoice_date=_parse_datetime(body.get("invoiceDate"), "invoiceDate"),
        invoice_number=body.get("invoiceNumber") or None,
        template_number=body.get("templateNumber") or "",
        symbol=body.get("symbol") or None,
        notes=body.get("notes") or "",
    )


@csrf_exempt
def orders_create_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    try:
        body = _parse_json_body(request)
        order = _order_from_body(body)
        lines = _parse_lines(body)
    except (ValueError, KeyError, TypeError) as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)

    record = build_dependencies().sales_repository(request).save_order(order, lines)
    logger.info(f"Order stored id={record.id} number={record.order_number}")
    return JsonResponse(success_response(record.to_dict()), status=201)


@csrf_exempt
def invoices_create_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    try:
        body = _parse_json_body(request)
        invoice = _invoice_from_body(body)
        lines = _parse_lines(body)
    except (ValueError, KeyError, TypeError) as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)

    record = build_dependencies().sales_repository(request).save_invoice(invoice, lines)
    logger.info(f"Invoice stored id={record.id} trade={record.trade_number}")
    return JsonResponse(success_response(record.to_dict()), status=201)


@csrf_exempt
def payment_webhook_view(request: HttpRequest) -> JsonResponse:
    """Gateway-facing: answers {success, message} rather than the API envelope."""
    if request.method != "POST":
        return JsonResponse({"success": False, "message": "Method not allowed."}, status=405)
    try:
        body = _parse_json_body(request)
    except ValueError as exc:
        return JsonResponse({"success": False, "message": str(exc)}, status=400)

    result = build_dependencies().webhook_processor.process(
        body,
        timezone.now(),
        raw_body=request.body,
        signature=request.headers.get("X-Signature", ""),
    )
    if not result.success:
        status = 401 if result.error_code == "INVALID_SIGNATURE" else 400
        return JsonResponse(
            {"success": False, "message": result.error_message, "code": result.error_code},
            status=status,
        )
    return JsonResponse({
        "success": True,
        "message": "Payment notification received.",
        "transactionUuid": result.transaction_uuid,
        "delivered": result.delivered,
    })


@csrf_exempt
def tax_code_lookup_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    try:
        body = _parse_json_body(request)
    except ValueError as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)

    try:
        result = build_dependencies().tax_registry.lookup_tax_code(str(body.get("taxCode") or ""))
    except IntegrationError as exc:
        return JsonResponse(integration_error_response(exc), status=status_for_integration_error(exc))
    return JsonResponse(success_response(result.to_dict()))
