"""
Schemas package - request DTOs and their validation.
"""

from .dtos import (
    AddReviewRequest,
    AddTreatmentRequest,
    BookAppointmentRequest,
    CommissionRequest,
    PlaceOrderRequest,
    ProductUpdateRequest,
    RecordPaymentRequest,
)

__all__ = [
    # Marketplace
    "PlaceOrderRequest",
    "AddReviewRequest",
    "ProductUpdateRequest",
    "RecordPaymentRequest",
    "CommissionRequest",
    # Clinic
    "BookAppointmentRequest",
    "AddTreatmentRequest",
]
