from decimal import Decimal
from typing import List, Optional

from reservations.db.base import Bill as DbBill
from reservations.db.base import PatientBalance
from reservations.domain.entities import Bill
from reservations.domain.interfaces import IBillingRepository
from reservations.utils.money import to_decimal


class BillingRepository(IBillingRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add_bill(self, bill: Bill) -> Bill:
        db_bill = DbBill(
            patient_id=bill.patient_id,
            total_amount=bill.total_amount,
            payment_status=bill.payment_status.value,
        )
        self.db.add(db_bill)
        self.db.flush()
        return self._to_domain(db_bill)

    def list_for_patient(self, patient_id: int) -> List[Bill]:
        rows = (
            self.db.query(DbBill)
            .filter(DbBill.patient_id == patient_id)
            .order_by(DbBill.id.asc())
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def get_balance(self, patient_id: int) -> Optional[Decimal]:
        balance = self.db.get(PatientBalance, patient_id)
        return to_decimal(balance.billing_total) if balance else None

    def set_balance(self, patient_id: int, billing_total: Decimal) -> None:
        balance = self.db.get(PatientBalance, patient_id)
        if balance is None:
            balance = PatientBalance(patient_id=patient_id, billing_total=billing_total)
            self.db.add(balance)
        else:
            balance.billing_total = billing_total
        self.db.flush()

    def _to_domain(self, db_bill: DbBill) -> Bill:
        return Bill(
            id=db_bill.id,
            patient_id=db_bill.patient_id,
            total_amount=to_decimal(db_bill.total_amount),
            payment_status=db_bill.payment_status,
            created_at=db_bill.created_at,
        )
