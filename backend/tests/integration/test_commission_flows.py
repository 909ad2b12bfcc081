"""
Integration tests for monthly vendor commissions.
"""

import logging
from datetime import datetime
from decimal import Decimal

import pytest

from reservations.core import config
from reservations.core.exceptions import InvalidRequestError, NotFoundError
from reservations.services.commission_service import CommissionService

pytestmark = pytest.mark.marketplace


@pytest.fixture
def append_commission_service(uow_factory, ledger, aggregates, clock):
    return CommissionService(
        uow_factory,
        ledger=ledger,
        aggregates=aggregates,
        policy=config.COMMISSION_POLICY_APPEND,
        clock=clock,
    )


def test_commission_is_ten_percent_of_monthly_sales(
    order_service, commission_service, marketplace
):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 4)

    record = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")

    assert record.total_sales == Decimal("1000.00")
    assert record.commission_amount == Decimal("100.00")
    assert record.month == "2024-05"


def test_vendor_without_sales_gets_zero_record(commission_service, marketplace):
    record = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")

    assert record.id is not None
    assert record.total_sales == Decimal("0.00")
    assert record.commission_amount == Decimal("0.00")


def test_only_the_vendors_own_products_count(
    order_service, commission_service, marketplace
):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    order_service.place_order(marketplace.customer_id, marketplace.other_product_id, 2)

    record = commission_service.calculate_commission(
        marketplace.other_vendor_id, "2024-05"
    )

    assert record.total_sales == Decimal("300.00")
    assert record.commission_amount == Decimal("30.00")


def test_cancelled_orders_are_excluded(order_service, commission_service, marketplace):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 2)
    cancelled = order_service.place_order(
        marketplace.customer_id, marketplace.product_id, 3
    )
    order_service.cancel_order(cancelled)

    record = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")

    assert record.total_sales == Decimal("500.00")


def test_month_boundaries_follow_order_dates(
    order_service, commission_service, marketplace, clock
):
    clock.now = datetime(2024, 5, 31, 23, 59, 59, tzinfo=config.APP_TZ)
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    clock.now = datetime(2024, 6, 1, 0, 0, tzinfo=config.APP_TZ)
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 2)

    may = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")
    june = commission_service.calculate_commission(marketplace.vendor_id, "2024-06")

    assert may.total_sales == Decimal("250.00")
    assert june.total_sales == Decimal("500.00")


def test_upsert_keeps_one_row_with_latest_value(
    order_service, commission_service, marketplace
):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    first = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    second = commission_service.calculate_commission(marketplace.vendor_id, "2024-05")

    records = commission_service.list_commissions(marketplace.vendor_id, "2024-05")
    assert second.id == first.id
    assert len(records) == 1
    assert records[0].commission_amount == Decimal("50.00")


def test_append_keeps_history(order_service, append_commission_service, marketplace):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    append_commission_service.calculate_commission(marketplace.vendor_id, "2024-05")
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 1)
    append_commission_service.calculate_commission(marketplace.vendor_id, "2024-05")

    records = append_commission_service.list_commissions(marketplace.vendor_id)
    assert [r.commission_amount for r in records] == [
        Decimal("25.00"),
        Decimal("50.00"),
    ]


def test_calculate_all_covers_every_vendor(
    order_service, commission_service, marketplace
):
    order_service.place_order(marketplace.customer_id, marketplace.product_id, 2)

    records = commission_service.calculate_all("2024-05")

    by_vendor = {r.vendor_id: r.commission_amount for r in records}
    assert by_vendor == {
        marketplace.vendor_id: Decimal("50.00"),
        marketplace.other_vendor_id: Decimal("0.00"),
    }


def test_calculate_all_logs_batch_duration(commission_service, marketplace, caplog):
    with caplog.at_level(logging.INFO, logger="reservations.performance"):
        commission_service.calculate_all("2024-05")

    (record,) = [r for r in caplog.records if r.name == "reservations.performance"]
    assert record.context["function"] == "calculate_all"
    assert record.context["month"] == "2024-05"
    assert record.context["vendor_count"] == 2
    assert record.context["duration_ms"] >= 0


def test_unknown_vendor(commission_service, marketplace):
    with pytest.raises(NotFoundError):
        commission_service.calculate_commission(9999, "2024-05")


@pytest.mark.parametrize("month", ["2024-5", "2024-00", "05-2024", "+024-05"])
def test_malformed_month(commission_service, marketplace, month):
    with pytest.raises(InvalidRequestError):
        commission_service.calculate_commission(marketplace.vendor_id, month)
