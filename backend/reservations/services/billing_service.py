"""
Billing service - patient bills from the treatment ledger.
"""

import logging
from decimal import Decimal
from typing import Callable, List, Optional

from reservations.core.exceptions import NotFoundError
from reservations.db.unit_of_work import UnitOfWork
from reservations.domain.entities import Bill, BillPaymentStatus

from .aggregate_service import AggregateMaintainer
from .appointment_service import billing_key
from .resource_ledger import ResourceLedger

logger = logging.getLogger(__name__)


class BillingService:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        ledger: Optional[ResourceLedger] = None,
        aggregates: Optional[AggregateMaintainer] = None,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or ResourceLedger()
        self.aggregates = aggregates or AggregateMaintainer()

    def generate_bill(self, patient_id: int) -> int:
        """Insert a Pending bill for the sum of the patient's treatment costs.

        Each call inserts a new bill; with no new treatments in between,
        consecutive bills carry the same total. A patient without
        treatments gets a zero bill.

        Raises:
            NotFoundError: unknown patient
        """
        with self.uow_factory() as uow:
            self.ledger.lock(uow, billing_key(patient_id))
            if not uow.patients.patient_exists(patient_id):
                raise NotFoundError("Patient not found", context={"patient_id": patient_id})
            total = self.aggregates.recompute_billing_total(uow, patient_id)
            bill = uow.billing.add_bill(
                Bill(
                    patient_id=patient_id,
                    total_amount=total,
                    payment_status=BillPaymentStatus.PENDING,
                )
            )
            uow.commit()

        logger.info(
            f"Bill generated with total amount: {total}",
            extra={
                "context": {
                    "bill_id": bill.id,
                    "patient_id": patient_id,
                    "total_amount": str(total),
                }
            },
        )
        return bill.id

    def get_billing_total(self, patient_id: int) -> Decimal:
        """Current BillingTotal of a patient (zero before any treatment)."""
        with self.uow_factory() as uow:
            balance = uow.billing.get_balance(patient_id)
        return balance if balance is not None else Decimal("0.00")

    def list_bills(self, patient_id: int) -> List[Bill]:
        with self.uow_factory() as uow:
            return uow.billing.list_for_patient(patient_id)
