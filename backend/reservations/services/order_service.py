"""
Order service - marketplace orchestration of stock reservations.

Every public method runs in its own unit of work: either all of its steps
commit or none do.
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from reservations.core import config
from reservations.core.exceptions import (
    InsufficientStockError,
    InvalidRequestError,
    InvalidTransitionError,
    NotEligibleError,
    NotFoundError,
)
from reservations.db.unit_of_work import UnitOfWork
from reservations.domain.entities import (
    ActorKind,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    Product,
)
from reservations.schemas.dtos import (
    PlaceOrderRequest,
    ProductUpdateRequest,
    RecordPaymentRequest,
)

from .audit_service import AuditLogger
from .resource_ledger import ReserveOutcome, ResourceLedger

logger = logging.getLogger(__name__)


def order_key(order_id: int) -> tuple:
    return ("order", order_id)


def _default_clock() -> datetime:
    return datetime.now(config.APP_TZ)


class OrderService:
    """Application service for orders, products and payments."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        ledger: Optional[ResourceLedger] = None,
        audit: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = _default_clock,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or ResourceLedger()
        self.audit = audit or AuditLogger()
        self.clock = clock

    def place_order(self, customer_id: int, product_id: int, quantity: int) -> int:
        """Reserve stock and create an order for it.

        Steps, all in one transaction:
        - reserve ``quantity`` units through the ledger
        - create the order and its line with the product's current price
        - append the ``PlaceOrder`` audit entry

        Returns:
            The new order id.

        Raises:
            InsufficientStockError: fewer than ``quantity`` units are available.
            NotFoundError: the product does not exist.
            AuditError: the customer is unknown (strict audit policy).
        """
        PlaceOrderRequest(customer_id, product_id, quantity).validate()

        with self.uow_factory() as uow:
            outcome = self.ledger.try_reserve_stock(uow, product_id, quantity)
            if outcome is ReserveOutcome.INSUFFICIENT:
                raise InsufficientStockError(
                    "Insufficient stock",
                    context={"product_id": product_id, "quantity": quantity},
                )

            product = uow.products.get_by_id(product_id)
            order = uow.orders.create(
                Order(
                    customer_id=customer_id,
                    order_date=self.clock(),
                    items=[
                        OrderItem(
                            product_id=product_id,
                            quantity=quantity,
                            item_price=product.price,
                        )
                    ],
                )
            )
            self.audit.record(
                uow, ActorKind.USER, customer_id, "PlaceOrder", "orders", order.id
            )
            uow.commit()

        logger.info(
            "Order placed",
            extra={
                "context": {
                    "order_id": order.id,
                    "customer_id": customer_id,
                    "product_id": product_id,
                    "quantity": quantity,
                }
            },
        )
        return order.id

    def add_product(
        self,
        actor_id: int,
        vendor_id: int,
        name: str,
        price: Decimal,
        stock_qty: int,
        category: Optional[str] = None,
    ) -> int:
        try:
            product = Product(
                vendor_id=vendor_id,
                name=name,
                price=Decimal(str(price)),
                stock_qty=stock_qty,
                category=category,
            )
        except (InvalidOperation, ValueError) as e:
            raise InvalidRequestError(str(e) or "Invalid price") from e

        with self.uow_factory() as uow:
            vendor = uow.users.get_vendor(vendor_id)
            if vendor is None:
                raise NotFoundError("Vendor not found", context={"vendor_id": vendor_id})
            self._require_owner_or_admin(uow, actor_id, vendor.user_id)
            created = uow.products.add(product)
            self.audit.record(
                uow, ActorKind.USER, actor_id, "Add Product", "products", created.id
            )
            uow.commit()

        logger.info(
            "Product added",
            extra={"context": {"product_id": created.id, "vendor_id": vendor_id}},
        )
        return created.id

    def update_product(
        self,
        actor_id: int,
        product_id: int,
        price: Optional[Decimal] = None,
        stock_qty: Optional[int] = None,
        name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Product:
        """Apply an owner edit to a product and audit it.

        Only the user behind the owning vendor, or an admin, may edit.
        """
        request = ProductUpdateRequest(
            name=name, price=price, stock_qty=stock_qty, category=category
        )
        request.validate()
        if request.is_empty():
            raise InvalidRequestError("No product fields to update")

        with self.uow_factory() as uow:
            # Stock edits serialize with reservations of the same product
            self.ledger.lock_product(uow, product_id)
            product = uow.products.get_for_update(product_id)
            if product is None:
                raise NotFoundError("Product not found", context={"product_id": product_id})
            vendor = uow.users.get_vendor(product.vendor_id)
            self._require_owner_or_admin(
                uow, actor_id, vendor.user_id if vendor else None
            )

            changes = {
                field: value
                for field, value in (
                    ("name", request.name),
                    ("price", request.price),
                    ("stock_qty", request.stock_qty),
                    ("category", request.category),
                )
                if value is not None
            }
            updated = uow.products.update(replace(product, **changes))
            self.audit.record(
                uow, ActorKind.USER, actor_id, "Update Product", "products", product_id
            )
            uow.commit()

        logger.info(
            "Product updated",
            extra={
                "context": {
                    "product_id": product_id,
                    "actor_id": actor_id,
                    "fields": sorted(changes),
                }
            },
        )
        return updated

    def ship_order(self, order_id: int) -> Order:
        return self._transition(order_id, OrderStatus.SHIPPED, "ShipOrder")

    def deliver_order(self, order_id: int) -> Order:
        return self._transition(order_id, OrderStatus.DELIVERED, "DeliverOrder")

    def cancel_order(self, order_id: int) -> Order:
        """Cancel an order and return its reserved stock."""
        return self._transition(order_id, OrderStatus.CANCELLED, "CancelOrder")

    def record_payment(
        self,
        order_id: int,
        amount: Decimal,
        method: str,
        status: str = "Pending",
    ) -> int:
        request = RecordPaymentRequest(order_id, amount, method, status)
        request.validate()

        with self.uow_factory() as uow:
            self.ledger.lock(uow, order_key(order_id))
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise NotFoundError("Order not found", context={"order_id": order_id})
            if order.status == OrderStatus.CANCELLED:
                raise InvalidRequestError(
                    "Cannot record a payment for a cancelled order",
                    context={"order_id": order_id},
                )
            payment = uow.orders.add_payment(
                Payment(
                    order_id=order_id,
                    amount=request.amount,
                    method=request.method,
                    status=request.status,
                )
            )
            self.audit.record(
                uow,
                ActorKind.USER,
                order.customer_id,
                "RecordPayment",
                "payments",
                payment.id,
            )
            uow.commit()

        logger.info(
            "Payment recorded",
            extra={
                "context": {
                    "order_id": order_id,
                    "payment_id": payment.id,
                    "amount": str(request.amount),
                    "method": request.method,
                }
            },
        )
        return payment.id

    def get_order(self, order_id: int) -> Optional[Order]:
        with self.uow_factory() as uow:
            return uow.orders.get_by_id(order_id)

    def _transition(self, order_id: int, target: OrderStatus, action: str) -> Order:
        """Move an order to ``target``, returning its stock when cancelled.

        Keyed locks come first (the order, then its products in id order),
        before the unit of work issues any statement. The status is only
        checked once the order row is locked.
        """
        product_ids = []
        if target == OrderStatus.CANCELLED:
            product_ids = self._order_product_ids(order_id)

        with self.uow_factory() as uow:
            self.ledger.lock(uow, order_key(order_id))
            for product_id in product_ids:
                self.ledger.lock_product(uow, product_id)
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise NotFoundError("Order not found", context={"order_id": order_id})
            if not order.can_transition_to(target):
                raise InvalidTransitionError(
                    f"Order cannot move from {order.status.value} to {target.value}",
                    context={"order_id": order_id, "status": order.status.value},
                )

            if target == OrderStatus.CANCELLED:
                for item in order.items:
                    self.ledger.release_stock(uow, item.product_id, item.quantity)

            updated = uow.orders.set_status(order_id, target)
            self.audit.record(
                uow, ActorKind.USER, order.customer_id, action, "orders", order_id
            )
            uow.commit()

        logger.info(
            "Order status changed",
            extra={
                "context": {
                    "order_id": order_id,
                    "from": order.status.value,
                    "to": target.value,
                }
            },
        )
        return updated

    def _order_product_ids(self, order_id: int) -> List[int]:
        # Order lines are immutable once placed
        with self.uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found", context={"order_id": order_id})
        return sorted({item.product_id for item in order.items})

    def _require_owner_or_admin(
        self, uow, actor_id: int, owner_user_id: Optional[int]
    ) -> None:
        actor = uow.users.get_by_id(actor_id)
        if actor is None:
            raise NotFoundError("User not found", context={"user_id": actor_id})
        if not actor.is_admin and actor.id != owner_user_id:
            raise NotEligibleError(
                "Only the owning vendor or an admin may change this product",
                context={"user_id": actor_id},
            )
