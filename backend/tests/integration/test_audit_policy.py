import logging

import pytest

from reservations.core import config
from reservations.core.exceptions import AuditError
from reservations.services.audit_service import AuditLogger
from reservations.services.order_service import OrderService

pytestmark = pytest.mark.audit


def _stock(uow_factory, product_id):
    with uow_factory() as uow:
        return uow.products.get_by_id(product_id).stock_qty


def test_strict_policy_aborts_the_order(order_service, marketplace, uow_factory):
    with pytest.raises(AuditError):
        order_service.place_order(9999, marketplace.product_id, 2)

    assert _stock(uow_factory, marketplace.product_id) == 10
    with uow_factory() as uow:
        assert uow.audit.list_entries() == []


def test_best_effort_policy_keeps_the_order(
    uow_factory, ledger, clock, marketplace, caplog
):
    service = OrderService(
        uow_factory,
        ledger=ledger,
        audit=AuditLogger(config.AUDIT_POLICY_BEST_EFFORT),
        clock=clock,
    )

    with caplog.at_level(logging.WARNING):
        order_id = service.place_order(9999, marketplace.product_id, 2)

    assert service.get_order(order_id) is not None
    assert _stock(uow_factory, marketplace.product_id) == 8
    with uow_factory() as uow:
        assert uow.audit.list_entries() == []
    assert "Audit entry skipped" in caplog.text


def test_audit_rows_are_written_with_the_change(
    order_service, marketplace, uow_factory
):
    order_id = order_service.place_order(
        marketplace.customer_id, marketplace.product_id, 1
    )

    with uow_factory() as uow:
        (entry,) = uow.audit.list_entries()
    assert entry.actor_id == marketplace.customer_id
    assert entry.table_affected == "orders"
    assert entry.entity_id == order_id
    assert entry.timestamp is not None
