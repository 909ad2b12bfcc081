"""
Review service - eligibility gate and review submission.
"""

import logging
from typing import Callable, List, Optional

from reservations.core.exceptions import NotEligibleError, NotFoundError
from reservations.db.unit_of_work import UnitOfWork
from reservations.domain.entities import ActorKind, Review
from reservations.schemas.dtos import AddReviewRequest

from .aggregate_service import AggregateMaintainer
from .audit_service import AuditLogger
from .resource_ledger import ResourceLedger

logger = logging.getLogger(__name__)


def rating_key(product_id: int) -> tuple:
    return ("avg_rating", product_id)


class ReviewService:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        ledger: Optional[ResourceLedger] = None,
        audit: Optional[AuditLogger] = None,
        aggregates: Optional[AggregateMaintainer] = None,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or ResourceLedger()
        self.audit = audit or AuditLogger()
        self.aggregates = aggregates or AggregateMaintainer()

    def can_review(self, customer_id: int, product_id: int, uow=None) -> bool:
        """True iff a non-cancelled order line links the customer to the product."""
        if uow is not None:
            return uow.orders.count_purchases(customer_id, product_id) > 0
        with self.uow_factory() as own_uow:
            return own_uow.orders.count_purchases(customer_id, product_id) > 0

    def add_review(
        self,
        customer_id: int,
        product_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> int:
        """Store a review and refresh the product's average rating.

        The eligibility check runs before any write, so a rejected review
        leaves nothing behind.

        Raises:
            InvalidRequestError: rating outside 1-5.
            NotFoundError: the product does not exist.
            NotEligibleError: the customer never purchased the product.
        """
        AddReviewRequest(customer_id, product_id, rating, comment).validate()

        with self.uow_factory() as uow:
            # Concurrent reviews of one product recompute the average in turn
            self.ledger.lock(uow, rating_key(product_id))
            if uow.products.get_by_id(product_id) is None:
                raise NotFoundError("Product not found", context={"product_id": product_id})
            if not self.can_review(customer_id, product_id, uow=uow):
                raise NotEligibleError(
                    "Customer has not purchased this product",
                    context={"customer_id": customer_id, "product_id": product_id},
                )

            review = uow.reviews.add(
                Review(
                    product_id=product_id,
                    customer_id=customer_id,
                    rating=rating,
                    comment=comment,
                )
            )
            avg = self.aggregates.recompute_avg_rating(uow, product_id)
            self.audit.record(
                uow, ActorKind.USER, customer_id, "AddReview", "reviews", review.id
            )
            uow.commit()

        logger.info(
            "Review added",
            extra={
                "context": {
                    "review_id": review.id,
                    "product_id": product_id,
                    "rating": rating,
                    "avg_rating": str(avg),
                }
            },
        )
        return review.id

    def list_reviews(self, product_id: int) -> List[Review]:
        with self.uow_factory() as uow:
            return uow.reviews.list_for_product(product_id)
