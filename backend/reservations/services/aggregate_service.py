"""
Aggregate maintainer - derived values recomputed from their source rows.

Each aggregate is rebuilt from the full contributing set instead of being
adjusted incrementally, so it cannot drift when historical rows change.
Callers run these inside the unit of work that wrote the contributing row.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from reservations.core import config
from reservations.utils.money import TENTH, month_bounds, to_decimal

logger = logging.getLogger(__name__)


def average_rating(ratings) -> Optional[Decimal]:
    """Mean of ``ratings`` rounded half-up to one decimal; None when empty."""
    ratings = list(ratings)
    if not ratings:
        return None
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return mean.quantize(TENTH, rounding=ROUND_HALF_UP)


class AggregateMaintainer:
    def __init__(self, commission_rate: Optional[Decimal] = None):
        self._commission_rate = commission_rate

    @property
    def commission_rate(self) -> Decimal:
        if self._commission_rate is not None:
            return self._commission_rate
        return config.get_commission_rate()

    def recompute_avg_rating(self, uow, product_id: int) -> Optional[Decimal]:
        avg = average_rating(uow.reviews.list_ratings(product_id))
        uow.products.set_avg_rating(product_id, avg)
        logger.debug(
            "Average rating recomputed",
            extra={"context": {"product_id": product_id, "avg_rating": str(avg)}},
        )
        return avg

    def compute_commission(
        self, uow, vendor_id: int, month: str
    ) -> Tuple[Decimal, Decimal]:
        """Return ``(total_sales, commission_amount)`` for a vendor's month.

        A month without sales yields zeros.
        """
        start, end = month_bounds(month, config.APP_TZ)
        total_sales = uow.orders.vendor_sales_total(vendor_id, start, end)
        commission = to_decimal(total_sales * self.commission_rate)
        return total_sales, commission

    def recompute_billing_total(self, uow, patient_id: int) -> Decimal:
        total = uow.treatments.total_cost_for_patient(patient_id)
        uow.billing.set_balance(patient_id, total)
        logger.debug(
            "Billing total recomputed",
            extra={"context": {"patient_id": patient_id, "billing_total": str(total)}},
        )
        return total
