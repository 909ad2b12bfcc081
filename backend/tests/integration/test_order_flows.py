"""
Integration tests for marketplace order flows against a real database.
"""

from decimal import Decimal

import pytest

from reservations.core.exceptions import (
    InsufficientStockError,
    InvalidRequestError,
    InvalidTransitionError,
    NotEligibleError,
    NotFoundError,
)
from reservations.domain.entities import OrderStatus, PaymentStatus

pytestmark = pytest.mark.marketplace


def _stock(uow_factory, product_id):
    with uow_factory() as uow:
        return uow.products.get_by_id(product_id).stock_qty


def _audit_actions(uow_factory, actor_id):
    with uow_factory() as uow:
        return [entry.action for entry in uow.audit.list_entries(actor_id=actor_id)]


class TestPlaceOrder:
    def test_order_decrements_stock_and_is_audited(
        self, order_service, marketplace, uow_factory
    ):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 3
        )

        assert _stock(uow_factory, marketplace.product_id) == 7
        order = order_service.get_order(order_id)
        assert order.status is OrderStatus.PLACED
        assert order.items[0].quantity == 3
        assert order.total == Decimal("750.00")
        assert _audit_actions(uow_factory, marketplace.customer_id) == ["PlaceOrder"]

    def test_whole_stock_can_be_ordered(self, order_service, marketplace, uow_factory):
        order_service.place_order(marketplace.customer_id, marketplace.product_id, 10)
        assert _stock(uow_factory, marketplace.product_id) == 0

    def test_insufficient_stock_leaves_no_trace(
        self, order_service, marketplace, uow_factory
    ):
        with pytest.raises(InsufficientStockError):
            order_service.place_order(marketplace.customer_id, marketplace.product_id, 11)

        assert _stock(uow_factory, marketplace.product_id) == 10
        assert _audit_actions(uow_factory, marketplace.customer_id) == []

    def test_unknown_product(self, order_service, marketplace):
        with pytest.raises(NotFoundError):
            order_service.place_order(marketplace.customer_id, 9999, 1)

    def test_sequential_orders_never_oversell(
        self, order_service, marketplace, uow_factory
    ):
        placed = 0
        for _ in range(4):
            try:
                order_service.place_order(
                    marketplace.customer_id, marketplace.product_id, 3
                )
                placed += 1
            except InsufficientStockError:
                pass

        assert placed == 3
        assert _stock(uow_factory, marketplace.product_id) == 1

    def test_item_price_is_a_snapshot(self, order_service, marketplace):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 1
        )

        order_service.update_product(
            marketplace.vendor_user_id, marketplace.product_id, price="300.00"
        )

        assert order_service.get_order(order_id).items[0].item_price == Decimal("250.00")


class TestOrderLifecycle:
    def test_cancel_restores_stock(self, order_service, marketplace, uow_factory):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 4
        )

        cancelled = order_service.cancel_order(order_id)

        assert cancelled.status is OrderStatus.CANCELLED
        assert _stock(uow_factory, marketplace.product_id) == 10
        assert _audit_actions(uow_factory, marketplace.customer_id) == [
            "PlaceOrder",
            "CancelOrder",
        ]

    def test_ship_then_deliver(self, order_service, marketplace):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 1
        )

        order_service.ship_order(order_id)
        delivered = order_service.deliver_order(order_id)

        assert delivered.status is OrderStatus.DELIVERED
        with pytest.raises(InvalidTransitionError):
            order_service.cancel_order(order_id)

    def test_cancelled_order_cannot_be_cancelled_twice(
        self, order_service, marketplace, uow_factory
    ):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 2
        )
        order_service.cancel_order(order_id)

        with pytest.raises(InvalidTransitionError):
            order_service.cancel_order(order_id)
        assert _stock(uow_factory, marketplace.product_id) == 10


class TestPayments:
    def test_record_payment(self, order_service, marketplace, uow_factory):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 2
        )

        payment_id = order_service.record_payment(order_id, "500.00", "UPI", "Completed")

        with uow_factory() as uow:
            payments = uow.orders.list_payments(order_id)
        assert [p.id for p in payments] == [payment_id]
        assert payments[0].amount == Decimal("500.00")
        assert payments[0].status is PaymentStatus.COMPLETED
        assert _audit_actions(uow_factory, marketplace.customer_id)[-1] == "RecordPayment"

    def test_payment_for_cancelled_order_rejected(self, order_service, marketplace):
        order_id = order_service.place_order(
            marketplace.customer_id, marketplace.product_id, 1
        )
        order_service.cancel_order(order_id)

        with pytest.raises(InvalidRequestError):
            order_service.record_payment(order_id, "250.00", "Card")


class TestProductManagement:
    def test_vendor_adds_product(self, order_service, marketplace, uow_factory):
        product_id = order_service.add_product(
            marketplace.vendor_user_id,
            marketplace.vendor_id,
            "Keyboard",
            "899.00",
            15,
            "Electronics",
        )

        with uow_factory() as uow:
            product = uow.products.get_by_id(product_id)
        assert product.price == Decimal("899.00")
        assert product.stock_qty == 15
        assert product.avg_rating is None
        assert _audit_actions(uow_factory, marketplace.vendor_user_id) == ["Add Product"]

    def test_product_with_negative_price_rejected(self, order_service, marketplace):
        with pytest.raises(InvalidRequestError):
            order_service.add_product(
                marketplace.vendor_user_id, marketplace.vendor_id, "Bad", "-1", 1
            )

    def test_owner_restocks(self, order_service, marketplace, uow_factory):
        updated = order_service.update_product(
            marketplace.vendor_user_id, marketplace.product_id, stock_qty=25
        )

        assert updated.stock_qty == 25
        assert _stock(uow_factory, marketplace.product_id) == 25
        assert _audit_actions(uow_factory, marketplace.vendor_user_id) == [
            "Update Product"
        ]

    def test_other_vendor_cannot_edit(self, order_service, marketplace, uow_factory):
        with pytest.raises(NotEligibleError):
            order_service.update_product(
                marketplace.other_vendor_user_id, marketplace.product_id, stock_qty=0
            )

        assert _stock(uow_factory, marketplace.product_id) == 10

    def test_admin_can_edit_any_product(self, order_service, marketplace):
        updated = order_service.update_product(
            marketplace.admin_id, marketplace.product_id, name="Silent Mouse"
        )
        assert updated.name == "Silent Mouse"
