# Services package initialization
# This file makes the services directory a Python package
# and allows importing service modules

from . import (
    aggregate_service,
    appointment_service,
    audit_service,
    billing_service,
    commission_service,
    order_service,
    resource_ledger,
    review_service,
)

__all__ = [
    "aggregate_service",
    "appointment_service",
    "audit_service",
    "billing_service",
    "commission_service",
    "order_service",
    "resource_ledger",
    "review_service",
]
