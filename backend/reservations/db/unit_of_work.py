"""
Unit of Work - the explicit transaction handle used by every service.

A ``UnitOfWork`` owns one SQLAlchemy session for the duration of a ``with``
block and exposes the repositories bound to it::

    with UnitOfWork() as uow:
        uow.products.change_stock(product_id, -2)
        uow.commit()

Leaving the block without calling ``commit()`` (early return or exception)
rolls the transaction back. Callbacks registered with ``on_close`` run after
the session is closed; the resource ledger uses them to release its keyed
locks only once the transaction has ended.

Raw SQLAlchemy errors never escape the block: they are translated into the
typed errors of ``reservations.core.exceptions``.
"""

import logging
from typing import Callable, Hashable, List, Optional, Set

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from reservations.core.exceptions import (
    BusyError,
    InvalidRequestError,
    ReservationError,
)
from reservations.repositories import (
    AppointmentRepository,
    AuditRepository,
    BillingRepository,
    CommissionRepository,
    OrderRepository,
    PatientRepository,
    ProductRepository,
    ReviewRepository,
    TreatmentRepository,
    UserRepository,
)

from .session import get_sessionmaker

logger = logging.getLogger(__name__)


def translate_db_error(exc: SQLAlchemyError) -> ReservationError:
    """Map a persistence-layer error onto the typed error a caller can act on."""
    if isinstance(exc, OperationalError):
        # Lock wait timeouts, "database is locked", serialization failures
        return BusyError(
            "Database is busy, retry later",
            context={"error": str(exc.orig) if exc.orig is not None else str(exc)},
        )
    if isinstance(exc, IntegrityError):
        return InvalidRequestError(
            "Request violates a data integrity constraint",
            context={"error": str(exc.orig) if exc.orig is not None else str(exc)},
        )
    return ReservationError("Unexpected database error", context={"error": str(exc)})


class UnitOfWork:
    def __init__(self, session_factory: Optional[Callable] = None):
        self._session_factory = session_factory
        self.session = None
        self.held_locks: Set[Hashable] = set()
        self._committed = False
        self._finalizers: List[Callable[[], None]] = []

    def __enter__(self) -> "UnitOfWork":
        factory = self._session_factory or get_sessionmaker()
        self.session = factory()
        self._committed = False

        self.users = UserRepository(self.session)
        self.products = ProductRepository(self.session)
        self.orders = OrderRepository(self.session)
        self.reviews = ReviewRepository(self.session)
        self.commissions = CommissionRepository(self.session)
        self.audit = AuditRepository(self.session)
        self.patients = PatientRepository(self.session)
        self.appointments = AppointmentRepository(self.session)
        self.treatments = TreatmentRepository(self.session)
        self.billing = BillingRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None or not self._committed:
                self._rollback(exc_type is not None)
        finally:
            try:
                self.session.close()
            finally:
                self._run_finalizers()

        if isinstance(exc, SQLAlchemyError):
            translated = translate_db_error(exc)
            logger.warning(
                f"Database error translated to {type(translated).__name__}",
                extra={"context": {"error_type": type(exc).__name__, **translated.context}},
            )
            raise translated from exc
        return False

    def commit(self) -> None:
        self.session.commit()
        self._committed = True

    def flush(self) -> None:
        self.session.flush()

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the transaction has ended, whatever its outcome."""
        self._finalizers.append(callback)

    def _rollback(self, failing: bool) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError:
            # Keep the original error when the block is already failing
            logger.exception("Rollback failed")
            if not failing:
                raise

    def _run_finalizers(self) -> None:
        finalizers, self._finalizers = self._finalizers, []
        for callback in reversed(finalizers):
            try:
                callback()
            except RuntimeError:
                logger.exception("Unit of work finalizer failed")
        self.held_locks.clear()
