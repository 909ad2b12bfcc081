"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain entities, status enums and lifecycle transitions
- interfaces.py: Repository contracts
"""

from .entities import (
    ActorKind,
    Appointment,
    AppointmentStatus,
    AuditEntry,
    Bill,
    BillPaymentStatus,
    CommissionRecord,
    Doctor,
    DoctorSlot,
    Order,
    OrderItem,
    OrderStatus,
    Patient,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    Review,
    Treatment,
    TreatmentType,
    User,
    UserRole,
    Vendor,
)
from .interfaces import (
    IAppointmentRepository,
    IAuditRepository,
    IBillingRepository,
    ICommissionRepository,
    IOrderRepository,
    IPatientRepository,
    IProductRepository,
    IReviewRepository,
    ITreatmentRepository,
    IUserRepository,
)

__all__ = [
    # Domain entities
    "ActorKind",
    "Appointment",
    "AppointmentStatus",
    "AuditEntry",
    "Bill",
    "BillPaymentStatus",
    "CommissionRecord",
    "Doctor",
    "DoctorSlot",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Patient",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "Review",
    "Treatment",
    "TreatmentType",
    "User",
    "UserRole",
    "Vendor",
    # Repository interfaces
    "IAppointmentRepository",
    "IAuditRepository",
    "IBillingRepository",
    "ICommissionRepository",
    "IOrderRepository",
    "IPatientRepository",
    "IProductRepository",
    "IReviewRepository",
    "ITreatmentRepository",
    "IUserRepository",
]
