from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func

from reservations.db.base import Order as DbOrder
from reservations.db.base import OrderItem as DbOrderItem
from reservations.db.base import Payment as DbPayment
from reservations.db.base import Product as DbProduct
from reservations.domain.entities import (
    Order,
    OrderItem,
    OrderStatus,
    Payment,
)
from reservations.domain.interfaces import IOrderRepository
from reservations.utils.money import to_decimal


class OrderRepository(IOrderRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def create(self, order: Order) -> Order:
        db_order = DbOrder(
            customer_id=order.customer_id,
            status=order.status.value,
        )
        if order.order_date is not None:
            db_order.order_date = order.order_date
        db_order.items = [
            DbOrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                item_price=item.item_price,
            )
            for item in order.items
        ]
        self.db.add(db_order)
        self.db.flush()
        return self._to_domain(db_order)

    def get_by_id(self, order_id: int) -> Optional[Order]:
        db_order = self.db.get(DbOrder, order_id)
        return self._to_domain(db_order) if db_order else None

    def get_for_update(self, order_id: int) -> Optional[Order]:
        db_order = (
            self.db.query(DbOrder)
            .filter(DbOrder.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_domain(db_order) if db_order else None

    def set_status(self, order_id: int, status: OrderStatus) -> Order:
        db_order = self.db.get(DbOrder, order_id)
        if not db_order:
            raise ValueError("Order not found")
        db_order.status = OrderStatus(status).value
        self.db.flush()
        return self._to_domain(db_order)

    def count_purchases(self, customer_id: int, product_id: int) -> int:
        return (
            self.db.query(func.count(DbOrderItem.id))
            .join(DbOrder, DbOrder.id == DbOrderItem.order_id)
            .filter(
                DbOrder.customer_id == customer_id,
                DbOrderItem.product_id == product_id,
                DbOrder.status != OrderStatus.CANCELLED.value,
            )
            .scalar()
            or 0
        )

    def vendor_sales_total(
        self, vendor_id: int, start: datetime, end: datetime
    ) -> Decimal:
        total = (
            self.db.query(func.sum(DbOrderItem.quantity * DbOrderItem.item_price))
            .join(DbOrder, DbOrder.id == DbOrderItem.order_id)
            .join(DbProduct, DbProduct.id == DbOrderItem.product_id)
            .filter(
                DbProduct.vendor_id == vendor_id,
                DbOrder.order_date >= start,
                DbOrder.order_date < end,
                DbOrder.status != OrderStatus.CANCELLED.value,
            )
            .scalar()
        )
        return to_decimal(total)

    def add_payment(self, payment: Payment) -> Payment:
        db_payment = DbPayment(
            order_id=payment.order_id,
            amount=payment.amount,
            method=payment.method.value,
            status=payment.status.value,
        )
        self.db.add(db_payment)
        self.db.flush()
        return self._payment_to_domain(db_payment)

    def list_payments(self, order_id: int) -> List[Payment]:
        rows = (
            self.db.query(DbPayment)
            .filter(DbPayment.order_id == order_id)
            .order_by(DbPayment.id.asc())
            .all()
        )
        return [self._payment_to_domain(row) for row in rows]

    def _to_domain(self, db_order: DbOrder) -> Order:
        return Order(
            id=db_order.id,
            customer_id=db_order.customer_id,
            order_date=db_order.order_date,
            status=db_order.status,
            items=[
                OrderItem(
                    id=item.id,
                    order_id=item.order_id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    item_price=to_decimal(item.item_price),
                )
                for item in db_order.items
            ],
        )

    def _payment_to_domain(self, db_payment: DbPayment) -> Payment:
        return Payment(
            id=db_payment.id,
            order_id=db_payment.order_id,
            amount=to_decimal(db_payment.amount),
            method=db_payment.method,
            status=db_payment.status,
            created_at=db_payment.created_at,
        )
