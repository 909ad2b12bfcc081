"""
Resource ledger - atomic check-and-decrement of finite resources.

Two kinds of resource are tracked: product stock (a count) and doctor slots
(a booked flag). Every operation runs inside the caller's unit of work and
serializes on the resource key in two layers:

1. an in-process keyed lock with a bounded wait (``BusyError`` on timeout),
   acquired before the unit of work issues any statement;
2. ``SELECT ... FOR UPDATE`` on the resource row, which serializes callers
   in other processes on servers that support row locks.

Keyed locks are held until the unit of work ends, so a reservation and the
dependent record it guards commit (or roll back) together before the next
caller can observe the resource.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Hashable, Optional

from reservations.core import config
from reservations.core.exceptions import (
    BusyError,
    InvalidRequestError,
    NoSlotError,
    NotFoundError,
)
from reservations.core.locking import KeyedLockRegistry, default_registry
from reservations.domain.entities import DoctorSlot

logger = logging.getLogger(__name__)


class ReserveOutcome(str, Enum):
    RESERVED = "reserved"
    INSUFFICIENT = "insufficient"


def product_key(product_id: int) -> tuple:
    return ("product", product_id)


def slot_key(doctor_id: int, slot_time: datetime) -> tuple:
    return ("slot", doctor_id, slot_time)


class ResourceLedger:
    def __init__(
        self,
        registry: Optional[KeyedLockRegistry] = None,
        lock_timeout: Optional[float] = None,
    ):
        self._registry = registry if registry is not None else default_registry
        self._lock_timeout = lock_timeout

    @property
    def lock_timeout(self) -> float:
        if self._lock_timeout is not None:
            return self._lock_timeout
        return config.get_lock_timeout_seconds()

    def lock(self, uow, key: Hashable) -> None:
        """Hold ``key`` until ``uow`` ends. Re-entrant within one unit of work.

        Raises:
            BusyError: the lock was not acquired within the bounded wait.
        """
        if key in uow.held_locks:
            return
        timeout = self.lock_timeout
        if not self._registry.acquire(key, timeout):
            raise BusyError(
                "Resource is busy, retry later",
                context={"lock_key": repr(key), "timeout": timeout},
            )
        uow.held_locks.add(key)
        uow.on_close(lambda: self._registry.release(key))

    def lock_product(self, uow, product_id: int) -> None:
        self.lock(uow, product_key(product_id))

    # ------------------- STOCK -------------------

    def try_reserve_stock(self, uow, product_id: int, amount: int) -> ReserveOutcome:
        """Decrement ``amount`` units of stock if that many are available.

        Returns ``INSUFFICIENT`` without changing anything when the product
        holds fewer units than requested.

        Raises:
            InvalidRequestError: amount is not a positive integer.
            NotFoundError: the product does not exist.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise InvalidRequestError(
                "Quantity must be at least 1", context={"quantity": repr(amount)}
            )

        self.lock_product(uow, product_id)
        product = uow.products.get_for_update(product_id)
        if product is None:
            raise NotFoundError("Product not found", context={"product_id": product_id})

        if product.stock_qty < amount:
            logger.info(
                "Insufficient stock",
                extra={
                    "context": {
                        "product_id": product_id,
                        "requested": amount,
                        "available": product.stock_qty,
                    }
                },
            )
            return ReserveOutcome.INSUFFICIENT

        uow.products.change_stock(product_id, -amount)
        logger.debug(
            "Stock reserved",
            extra={
                "context": {
                    "product_id": product_id,
                    "quantity": amount,
                    "remaining": product.stock_qty - amount,
                }
            },
        )
        return ReserveOutcome.RESERVED

    def release_stock(self, uow, product_id: int, amount: int) -> None:
        """Return ``amount`` previously reserved units to the product."""
        if amount < 1:
            raise InvalidRequestError(
                "Quantity must be at least 1", context={"quantity": repr(amount)}
            )
        self.lock_product(uow, product_id)
        if uow.products.get_for_update(product_id) is None:
            raise NotFoundError("Product not found", context={"product_id": product_id})
        uow.products.change_stock(product_id, amount)

    # ------------------- SLOTS -------------------

    def reserve_slot(self, uow, doctor_id: int, slot_time: datetime) -> DoctorSlot:
        """Book the doctor's unbooked slot at exactly ``slot_time``.

        Raises:
            NoSlotError: no such slot exists or it is already booked.
        """
        self.lock(uow, slot_key(doctor_id, slot_time))
        slot = uow.appointments.find_open_slot(doctor_id, slot_time)
        if slot is None:
            raise NoSlotError(
                "No available slot for the doctor at the requested time",
                context={"doctor_id": doctor_id, "slot_time": slot_time.isoformat()},
            )
        return uow.appointments.set_slot_booked(slot.id, True)

    def release_slot(self, uow, slot_id: int) -> DoctorSlot:
        """Mark a booked slot free again.

        Callers take the slot key before their first statement; the lock
        here is then a re-entrant no-op.
        """
        slot = uow.appointments.get_slot(slot_id)
        if slot is None:
            raise NotFoundError("Slot not found", context={"slot_id": slot_id})
        self.lock(uow, slot_key(slot.doctor_id, slot.slot_time))
        return uow.appointments.set_slot_booked(slot_id, False)
