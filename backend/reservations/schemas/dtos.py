"""
Data Transfer Objects (DTOs) and validation schemas.

Each request DTO validates one operation's input before any unit of work is
opened, so malformed input never reaches the database. ``validate()`` raises
``InvalidRequestError`` (a ``ValueError``) describing the first problem found.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from reservations.core import config
from reservations.core.exceptions import InvalidRequestError
from reservations.domain.entities import PaymentMethod, PaymentStatus
from reservations.utils.money import month_bounds


def _require_id(value: Any, field_name: str) -> None:
    # bool is an int subclass; True must not pass as id 1
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequestError(
            f"{field_name} must be a positive integer",
            context={"field": field_name, "value": repr(value)},
        )


def _require_amount(value: Any, field_name: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidRequestError(
            f"{field_name} must be a number", context={"field": field_name}
        )
    if not amount.is_finite() or amount < 0:
        raise InvalidRequestError(
            f"{field_name} cannot be negative", context={"field": field_name}
        )
    return amount


@dataclass
class PlaceOrderRequest:
    """DTO for order placement requests."""

    customer_id: int
    product_id: int
    quantity: int

    def validate(self) -> None:
        """Validate the request data."""
        _require_id(self.customer_id, "customer_id")
        _require_id(self.product_id, "product_id")
        if (
            isinstance(self.quantity, bool)
            or not isinstance(self.quantity, int)
            or self.quantity < 1
        ):
            raise InvalidRequestError(
                "Quantity must be at least 1", context={"quantity": repr(self.quantity)}
            )


@dataclass
class AddReviewRequest:
    """DTO for review submissions."""

    customer_id: int
    product_id: int
    rating: int
    comment: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        _require_id(self.customer_id, "customer_id")
        _require_id(self.product_id, "product_id")
        if (
            isinstance(self.rating, bool)
            or not isinstance(self.rating, int)
            or not 1 <= self.rating <= 5
        ):
            raise InvalidRequestError(
                "Rating must be between 1 and 5", context={"rating": repr(self.rating)}
            )


@dataclass
class BookAppointmentRequest:
    """DTO for appointment booking requests."""

    patient_id: int
    doctor_id: int
    slot_time: datetime

    def validate(self) -> None:
        """Validate the request data."""
        _require_id(self.patient_id, "patient_id")
        _require_id(self.doctor_id, "doctor_id")
        if not isinstance(self.slot_time, datetime):
            raise InvalidRequestError(
                "slot_time must be a datetime", context={"slot_time": repr(self.slot_time)}
            )


@dataclass
class AddTreatmentRequest:
    treatment_type_id: int
    cost: Optional[Decimal] = None
    notes: Optional[str] = None

    def validate(self) -> None:
        _require_id(self.treatment_type_id, "treatment_type_id")
        if self.cost is not None:
            self.cost = _require_amount(self.cost, "cost")


@dataclass
class ProductUpdateRequest:
    """DTO for owner edits to a product. Fields left as None are unchanged."""

    name: Optional[str] = None
    price: Optional[Decimal] = None
    stock_qty: Optional[int] = None
    category: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        if self.name is not None and not self.name.strip():
            raise InvalidRequestError("Product name cannot be empty")
        if self.price is not None:
            self.price = _require_amount(self.price, "price")
        if self.stock_qty is not None and (
            isinstance(self.stock_qty, bool)
            or not isinstance(self.stock_qty, int)
            or self.stock_qty < 0
        ):
            raise InvalidRequestError(
                "Stock quantity cannot be negative",
                context={"stock_qty": repr(self.stock_qty)},
            )

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.name, self.price, self.stock_qty, self.category)
        )


@dataclass
class RecordPaymentRequest:
    """DTO for payments against an order."""

    order_id: int
    amount: Decimal
    method: str
    status: str = PaymentStatus.PENDING.value

    def validate(self) -> None:
        """Validate the request data."""
        _require_id(self.order_id, "order_id")
        self.amount = _require_amount(self.amount, "amount")
        try:
            PaymentMethod(self.method)
        except ValueError:
            raise InvalidRequestError(
                f"Unknown payment method '{self.method}'",
                context={"allowed": [m.value for m in PaymentMethod]},
            )
        try:
            PaymentStatus(self.status)
        except ValueError:
            raise InvalidRequestError(
                f"Unknown payment status '{self.status}'",
                context={"allowed": [s.value for s in PaymentStatus]},
            )


@dataclass
class CommissionRequest:
    vendor_id: int
    month: str

    def validate(self) -> None:
        _require_id(self.vendor_id, "vendor_id")
        if not isinstance(self.month, str):
            raise InvalidRequestError("Month must be formatted as YYYY-MM")
        try:
            month_bounds(self.month, config.APP_TZ)
        except ValueError as e:
            raise InvalidRequestError(
                "Month must be formatted as YYYY-MM", context={"month": self.month}
            ) from e
