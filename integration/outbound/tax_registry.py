"""
POS Integration — Tax Registry Lookup
=======================================
Resolves a customer tax code to company name, address and status.

Request:  {"taxCodes": ["<code>"]}
Response: [{"tenCty", "diaChi", "tthai", "trangThaiHoatDong"}, ...]

Status "00" means the taxpayer is active. Any other status still
returns the company data, flagged as not usable for invoicing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from integration.adapters import GatewayRejectedError, NetworkError, ValidationError
from integration.outbound import JsonHttpClient

logger = logging.getLogger("pos.integration.tax")

SYSTEM_ID = "tax_registry"
ACTIVE_STATUS = "00"


@dataclass(frozen=True)
class TaxCodeLookupResult:
    tax_code: str
    found: bool
    company_name: str = ""
    address: str = ""
    status_code: str = ""
    status_text: str = ""

    @property
    def usable(self) -> bool:
        return self.found and self.status_code == ACTIVE_STATUS

    def to_dict(self) -> dict:
        return {
            "tax_code": self.tax_code,
            "found": self.found,
            "usable": self.usable,
            "company_name": self.company_name,
            "address": self.address,
            "status_code": self.status_code,
            "status_text": self.status_text,
        }


class TaxRegistryClient:
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def lookup_tax_code(self, tax_code: str) -> TaxCodeLookupResult:
        code = (tax_code or "").strip()
        if not code:
            raise ValidationError("Tax code is required.", field="tax_code", system_id=SYSTEM_ID)

        payload = {"taxCodes": [code]}
        result = self._http.post_json(payload, operation="lookup_tax_code", correlation_id=code)

        if not result.ok:
            raise self._http.fail(
                GatewayRejectedError(
                    result.error_message(f"Tax registry answered HTTP {result.status_code}."),
                    system_id=SYSTEM_ID,
                    status_code=result.status_code,
                ),
                "lookup_tax_code", payload, correlation_id=code,
            )
        if not isinstance(result.body, list):
            raise self._http.fail(
                NetworkError("Tax registry returned an unexpected response.", system_id=SYSTEM_ID),
                "lookup_tax_code", payload, correlation_id=code,
            )

        self._http.record_outcome("lookup_tax_code", payload, correlation_id=code)
        if not result.body or not isinstance(result.body[0], dict):
            logger.info(f"Tax code {code} not found")
            return TaxCodeLookupResult(tax_code=code, found=False)

        entry = result.body[0]
        status_code = str(entry.get("tthai") or "").strip()
        status_text = str(entry.get("trangThaiHoatDong") or status_code)
        lookup = TaxCodeLookupResult(
            tax_code=code,
            found=True,
            company_name=str(entry.get("tenCty") or ""),
            address=str(entry.get("diaChi") or ""),
            status_code=status_code,
            status_text=status_text,
        )
        if not lookup.usable:
            logger.info(f"Tax code {code} found with inactive status {status_code!r}")
        return lookup


__all__ = [
    "ACTIVE_STATUS",
    "SYSTEM_ID",
    "TaxCodeLookupResult",
    "TaxRegistryClient",
]
