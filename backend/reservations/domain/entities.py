"""
Domain entities - Pure business logic, no framework dependencies.

These dataclasses are what repositories hand to services; they never expose
SQLAlchemy rows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class UserRole(str, Enum):
    ADMIN = "Admin"
    VENDOR = "Vendor"
    CUSTOMER = "Customer"


class OrderStatus(str, Enum):
    PLACED = "Placed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    CARD = "Card"
    UPI = "UPI"
    COD = "COD"
    WALLET = "Wallet"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class BillPaymentStatus(str, Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"
    PENDING = "Pending"


class ActorKind(str, Enum):
    USER = "user"
    PATIENT = "patient"


ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

APPOINTMENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


@dataclass
class User:
    """Marketplace account."""

    id: Optional[int] = None
    name: str = ""
    email: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER

    def __post_init__(self):
        if not self.name:
            raise ValueError("Name is required")
        if self.email and "@" not in self.email:
            raise ValueError("Invalid email format")
        self.role = UserRole(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class Vendor:
    id: Optional[int] = None
    user_id: int = 0
    company_name: str = ""
    rating: Optional[Decimal] = None

    def __post_init__(self):
        if self.user_id <= 0:
            raise ValueError("Valid user_id is required")
        if not self.company_name:
            raise ValueError("Company name is required")


@dataclass
class Product:
    """A reservable quantity of stock owned by a vendor."""

    id: Optional[int] = None
    vendor_id: int = 0
    name: str = ""
    price: Decimal = Decimal("0.00")
    stock_qty: int = 0
    category: Optional[str] = None
    avg_rating: Optional[Decimal] = None

    def __post_init__(self):
        if self.vendor_id <= 0:
            raise ValueError("Valid vendor_id is required")
        if not self.name:
            raise ValueError("Product name is required")
        if self.price < 0:
            raise ValueError("Price cannot be negative")
        if self.stock_qty < 0:
            raise ValueError("Stock quantity cannot be negative")


@dataclass
class OrderItem:
    product_id: int
    quantity: int
    item_price: Decimal
    id: Optional[int] = None
    order_id: Optional[int] = None

    @property
    def line_total(self) -> Decimal:
        return self.item_price * self.quantity


@dataclass
class Order:
    customer_id: int
    id: Optional[int] = None
    order_date: Optional[datetime] = None
    status: OrderStatus = OrderStatus.PLACED
    items: List[OrderItem] = field(default_factory=list)

    def __post_init__(self):
        self.status = OrderStatus(self.status)

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))

    def can_transition_to(self, target: OrderStatus) -> bool:
        return OrderStatus(target) in ORDER_TRANSITIONS[self.status]


@dataclass
class Payment:
    order_id: int
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.method = PaymentMethod(self.method)
        self.status = PaymentStatus(self.status)
        if self.amount < 0:
            raise ValueError("Payment amount cannot be negative")


@dataclass
class Review:
    product_id: int
    customer_id: int
    rating: int
    comment: Optional[str] = None
    id: Optional[int] = None
    review_date: Optional[datetime] = None

    def __post_init__(self):
        if not 1 <= self.rating <= 5:
            raise ValueError("Rating must be between 1 and 5")


@dataclass
class CommissionRecord:
    """Commission owed by a vendor for one calendar month (YYYY-MM)."""

    vendor_id: int
    month: str
    total_sales: Decimal
    commission_amount: Decimal
    id: Optional[int] = None
    calculated_at: Optional[datetime] = None


@dataclass
class AuditEntry:
    actor_kind: ActorKind
    actor_id: int
    action: str
    table_affected: str
    entity_id: Optional[int] = None
    id: Optional[int] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        self.actor_kind = ActorKind(self.actor_kind)


@dataclass
class Patient:
    id: Optional[int] = None
    name: str = ""
    dob: Optional[date] = None
    gender: Optional[str] = None
    contact_info: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Name is required")


@dataclass
class Doctor:
    id: Optional[int] = None
    name: str = ""
    specialty: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Name is required")


@dataclass
class DoctorSlot:
    """An exclusive, bookable time of a doctor."""

    doctor_id: int
    slot_time: datetime
    is_booked: bool = False
    id: Optional[int] = None


@dataclass
class Appointment:
    patient_id: int
    doctor_id: int
    appointment_date: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    slot_id: Optional[int] = None
    id: Optional[int] = None

    def __post_init__(self):
        self.status = AppointmentStatus(self.status)

    def can_transition_to(self, target: AppointmentStatus) -> bool:
        return AppointmentStatus(target) in APPOINTMENT_TRANSITIONS[self.status]


@dataclass
class TreatmentType:
    name: str
    standard_cost: Decimal
    id: Optional[int] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Treatment name is required")
        if self.standard_cost < 0:
            raise ValueError("Standard cost cannot be negative")


@dataclass
class Treatment:
    appointment_id: int
    treatment_type_id: int
    cost: Decimal
    notes: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.cost < 0:
            raise ValueError("Treatment cost cannot be negative")


@dataclass
class Bill:
    patient_id: int
    total_amount: Decimal
    payment_status: BillPaymentStatus = BillPaymentStatus.PENDING
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.payment_status = BillPaymentStatus(self.payment_status)
