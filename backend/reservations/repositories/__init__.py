from .appointment_repo import AppointmentRepository
from .audit_repository import AuditRepository
from .billing_repository import BillingRepository
from .commission_repository import CommissionRepository
from .order_repository import OrderRepository
from .patient_repo import PatientRepository
from .product_repository import ProductRepository
from .review_repository import ReviewRepository
from .treatment_repository import TreatmentRepository
from .user_repo import UserRepository

__all__ = [
    "AppointmentRepository",
    "AuditRepository",
    "BillingRepository",
    "CommissionRepository",
    "OrderRepository",
    "PatientRepository",
    "ProductRepository",
    "ReviewRepository",
    "TreatmentRepository",
    "UserRepository",
]
