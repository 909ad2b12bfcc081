"""
Abstract interfaces for repositories.

These interfaces define contracts without implementation details, so
services can be unit tested against ``Mock(spec=...)`` repositories.
Implementations never commit: the unit of work that owns the session does.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .entities import (
    ActorKind,
    Appointment,
    AppointmentStatus,
    AuditEntry,
    Bill,
    CommissionRecord,
    Doctor,
    DoctorSlot,
    Order,
    OrderStatus,
    Patient,
    Payment,
    Product,
    Review,
    Treatment,
    TreatmentType,
    User,
    Vendor,
)


class IUserRepository(ABC):
    """Users and the vendor profiles attached to them."""

    @abstractmethod
    def add(self, user: User) -> User:
        pass

    @abstractmethod
    def add_vendor(self, vendor: Vendor) -> Vendor:
        pass

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def exists(self, user_id: int) -> bool:
        pass

    @abstractmethod
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        pass

    @abstractmethod
    def list_vendor_ids(self) -> List[int]:
        pass


class IProductRepository(ABC):
    @abstractmethod
    def add(self, product: Product) -> Product:
        pass

    @abstractmethod
    def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    def get_for_update(self, product_id: int) -> Optional[Product]:
        """Read the product while holding its row lock until the transaction ends."""
        pass

    @abstractmethod
    def change_stock(self, product_id: int, delta: int) -> Product:
        pass

    @abstractmethod
    def update(self, product: Product) -> Product:
        """Persist owner-editable fields (name, price, stock, category)."""
        pass

    @abstractmethod
    def set_avg_rating(self, product_id: int, avg_rating: Optional[Decimal]) -> None:
        pass


class IOrderRepository(ABC):
    @abstractmethod
    def create(self, order: Order) -> Order:
        """Insert the order and its items."""
        pass

    @abstractmethod
    def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    def get_for_update(self, order_id: int) -> Optional[Order]:
        """Fetch the order with its row locked until the transaction ends."""
        pass

    @abstractmethod
    def set_status(self, order_id: int, status: OrderStatus) -> Order:
        pass

    @abstractmethod
    def count_purchases(self, customer_id: int, product_id: int) -> int:
        """Count non-cancelled order lines linking the customer to the product."""
        pass

    @abstractmethod
    def vendor_sales_total(
        self, vendor_id: int, start: datetime, end: datetime
    ) -> Decimal:
        """Sum of quantity * item_price for the vendor's items ordered in [start, end)."""
        pass

    @abstractmethod
    def add_payment(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    def list_payments(self, order_id: int) -> List[Payment]:
        pass


class IReviewRepository(ABC):
    @abstractmethod
    def add(self, review: Review) -> Review:
        pass

    @abstractmethod
    def list_ratings(self, product_id: int) -> List[int]:
        pass

    @abstractmethod
    def list_for_product(self, product_id: int) -> List[Review]:
        pass


class ICommissionRepository(ABC):
    @abstractmethod
    def add(self, record: CommissionRecord) -> CommissionRecord:
        pass

    @abstractmethod
    def get_latest(self, vendor_id: int, month: str) -> Optional[CommissionRecord]:
        pass

    @abstractmethod
    def update(self, record: CommissionRecord) -> CommissionRecord:
        pass

    @abstractmethod
    def list_for_vendor(
        self, vendor_id: int, month: Optional[str] = None
    ) -> List[CommissionRecord]:
        pass


class IAuditRepository(ABC):
    """Append-only: there is deliberately no update or delete."""

    @abstractmethod
    def append(self, entry: AuditEntry) -> AuditEntry:
        pass

    @abstractmethod
    def list_entries(
        self,
        actor_kind: Optional[ActorKind] = None,
        actor_id: Optional[int] = None,
    ) -> List[AuditEntry]:
        pass


class IPatientRepository(ABC):
    """Patients, doctors and the treatment catalogue."""

    @abstractmethod
    def add_patient(self, patient: Patient) -> Patient:
        pass

    @abstractmethod
    def add_doctor(self, doctor: Doctor) -> Doctor:
        pass

    @abstractmethod
    def add_treatment_type(self, treatment_type: TreatmentType) -> TreatmentType:
        pass

    @abstractmethod
    def patient_exists(self, patient_id: int) -> bool:
        pass

    @abstractmethod
    def doctor_exists(self, doctor_id: int) -> bool:
        pass

    @abstractmethod
    def get_treatment_type(self, treatment_type_id: int) -> Optional[TreatmentType]:
        pass


class IAppointmentRepository(ABC):
    """Doctor slots and the appointments booked against them."""

    @abstractmethod
    def add_slot(self, slot: DoctorSlot) -> DoctorSlot:
        pass

    @abstractmethod
    def find_open_slot(
        self, doctor_id: int, slot_time: datetime
    ) -> Optional[DoctorSlot]:
        """Find the doctor's unbooked slot at exactly ``slot_time``, row-locked."""
        pass

    @abstractmethod
    def get_slot(self, slot_id: int) -> Optional[DoctorSlot]:
        pass

    @abstractmethod
    def set_slot_booked(self, slot_id: int, is_booked: bool) -> DoctorSlot:
        pass

    @abstractmethod
    def create(self, appointment: Appointment) -> Appointment:
        pass

    @abstractmethod
    def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        pass

    @abstractmethod
    def get_for_update(self, appointment_id: int) -> Optional[Appointment]:
        """Fetch the appointment with its row locked until the transaction ends."""
        pass

    @abstractmethod
    def set_status(
        self, appointment_id: int, status: AppointmentStatus
    ) -> Appointment:
        pass


class ITreatmentRepository(ABC):
    @abstractmethod
    def add(self, treatment: Treatment) -> Treatment:
        pass

    @abstractmethod
    def list_for_appointment(self, appointment_id: int) -> List[Treatment]:
        pass

    @abstractmethod
    def total_cost_for_patient(self, patient_id: int) -> Decimal:
        pass


class IBillingRepository(ABC):
    @abstractmethod
    def add_bill(self, bill: Bill) -> Bill:
        pass

    @abstractmethod
    def list_for_patient(self, patient_id: int) -> List[Bill]:
        pass

    @abstractmethod
    def get_balance(self, patient_id: int) -> Optional[Decimal]:
        pass

    @abstractmethod
    def set_balance(self, patient_id: int, billing_total: Decimal) -> None:
        pass
