from typing import List, Optional

from reservations.db.base import Commission as DbCommission
from reservations.domain.entities import CommissionRecord
from reservations.domain.interfaces import ICommissionRepository
from reservations.utils.money import to_decimal


class CommissionRepository(ICommissionRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add(self, record: CommissionRecord) -> CommissionRecord:
        db_record = DbCommission(
            vendor_id=record.vendor_id,
            month=record.month,
            total_sales=record.total_sales,
            commission_amount=record.commission_amount,
        )
        self.db.add(db_record)
        self.db.flush()
        return self._to_domain(db_record)

    def get_latest(self, vendor_id: int, month: str) -> Optional[CommissionRecord]:
        db_record = (
            self.db.query(DbCommission)
            .filter(DbCommission.vendor_id == vendor_id, DbCommission.month == month)
            .order_by(DbCommission.id.desc())
            .first()
        )
        return self._to_domain(db_record) if db_record else None

    def update(self, record: CommissionRecord) -> CommissionRecord:
        db_record = self.db.get(DbCommission, record.id) if record.id else None
        if not db_record:
            raise ValueError("Commission record not found")
        db_record.total_sales = record.total_sales
        db_record.commission_amount = record.commission_amount
        if record.calculated_at is not None:
            db_record.calculated_at = record.calculated_at
        self.db.flush()
        return self._to_domain(db_record)

    def list_for_vendor(
        self, vendor_id: int, month: Optional[str] = None
    ) -> List[CommissionRecord]:
        query = self.db.query(DbCommission).filter(DbCommission.vendor_id == vendor_id)
        if month is not None:
            query = query.filter(DbCommission.month == month)
        return [self._to_domain(row) for row in query.order_by(DbCommission.id.asc())]

    def _to_domain(self, db_record: DbCommission) -> CommissionRecord:
        return CommissionRecord(
            id=db_record.id,
            vendor_id=db_record.vendor_id,
            month=db_record.month,
            total_sales=to_decimal(db_record.total_sales),
            commission_amount=to_decimal(db_record.commission_amount),
            calculated_at=db_record.calculated_at,
        )
