"""
Commission service - monthly vendor commission on demand.

Repeated calculations for one vendor and month are stored according to
``COMMISSION_POLICY``: ``upsert`` keeps a single row holding the latest
value, ``append`` adds a row per calculation.
"""

import logging
import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from reservations.core import config
from reservations.core.exceptions import NotFoundError
from reservations.core.logging_config import log_performance
from reservations.db.unit_of_work import UnitOfWork
from reservations.domain.entities import CommissionRecord
from reservations.schemas.dtos import CommissionRequest

from .aggregate_service import AggregateMaintainer
from .resource_ledger import ResourceLedger

logger = logging.getLogger(__name__)


def commission_key(vendor_id: int, month: str) -> tuple:
    return ("commission", vendor_id, month)


class CommissionService:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        ledger: Optional[ResourceLedger] = None,
        aggregates: Optional[AggregateMaintainer] = None,
        policy: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or ResourceLedger()
        self.aggregates = aggregates or AggregateMaintainer()
        self._policy = policy
        self.clock = clock or (lambda: datetime.now(config.APP_TZ))

    @property
    def policy(self) -> str:
        return self._policy or config.get_commission_policy()

    def calculate_commission(self, vendor_id: int, month: str) -> CommissionRecord:
        """Compute and store the commission owed by a vendor for ``month``.

        Args:
            vendor_id: Vendor the sales belong to
            month: Calendar month as ``YYYY-MM`` in the application timezone

        Returns:
            The stored record. A month without sales yields zero totals.

        Raises:
            InvalidRequestError: malformed month
            NotFoundError: unknown vendor
        """
        CommissionRequest(vendor_id, month).validate()

        with self.uow_factory() as uow:
            self.ledger.lock(uow, commission_key(vendor_id, month))
            if uow.users.get_vendor(vendor_id) is None:
                raise NotFoundError("Vendor not found", context={"vendor_id": vendor_id})

            total_sales, amount = self.aggregates.compute_commission(
                uow, vendor_id, month
            )
            existing = (
                uow.commissions.get_latest(vendor_id, month)
                if self.policy == config.COMMISSION_POLICY_UPSERT
                else None
            )
            if existing is not None:
                record = uow.commissions.update(
                    replace(
                        existing,
                        total_sales=total_sales,
                        commission_amount=amount,
                        calculated_at=self.clock(),
                    )
                )
            else:
                record = uow.commissions.add(
                    CommissionRecord(
                        vendor_id=vendor_id,
                        month=month,
                        total_sales=total_sales,
                        commission_amount=amount,
                    )
                )
            uow.commit()

        logger.info(
            "Commission calculated",
            extra={
                "context": {
                    "vendor_id": vendor_id,
                    "month": month,
                    "total_sales": str(total_sales),
                    "commission_amount": str(amount),
                    "policy": self.policy,
                }
            },
        )
        return record

    def calculate_all(self, month: str) -> List[CommissionRecord]:
        """Calculate ``month`` for every vendor, each in its own transaction."""
        start = time.perf_counter()
        with self.uow_factory() as uow:
            vendor_ids = uow.users.list_vendor_ids()

        records = [self.calculate_commission(vendor_id, month) for vendor_id in vendor_ids]
        logger.info(
            f"Calculated commissions for {len(records)} vendors",
            extra={"context": {"month": month, "vendors": len(records)}},
        )
        log_performance(
            "calculate_all",
            (time.perf_counter() - start) * 1000,
            month=month,
            vendor_count=len(records),
        )
        return records

    def list_commissions(
        self, vendor_id: int, month: Optional[str] = None
    ) -> List[CommissionRecord]:
        with self.uow_factory() as uow:
            return uow.commissions.list_for_vendor(vendor_id, month)
