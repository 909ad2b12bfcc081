from typing import List

from reservations.db.base import Review as DbReview
from reservations.domain.entities import Review
from reservations.domain.interfaces import IReviewRepository


class ReviewRepository(IReviewRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add(self, review: Review) -> Review:
        db_review = DbReview(
            product_id=review.product_id,
            customer_id=review.customer_id,
            rating=review.rating,
            comment=review.comment,
        )
        self.db.add(db_review)
        self.db.flush()
        return self._to_domain(db_review)

    def list_ratings(self, product_id: int) -> List[int]:
        rows = (
            self.db.query(DbReview.rating)
            .filter(DbReview.product_id == product_id)
            .all()
        )
        return [row[0] for row in rows]

    def list_for_product(self, product_id: int) -> List[Review]:
        rows = (
            self.db.query(DbReview)
            .filter(DbReview.product_id == product_id)
            .order_by(DbReview.id.asc())
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def _to_domain(self, db_review: DbReview) -> Review:
        return Review(
            id=db_review.id,
            product_id=db_review.product_id,
            customer_id=db_review.customer_id,
            rating=db_review.rating,
            comment=db_review.comment,
            review_date=db_review.review_date,
        )
