"""
POS Sales Store
================
Durable order and invoice records, and e-invoice connection settings.
Plain create only: records written here are never updated or deleted
by the checkout flow.
"""
