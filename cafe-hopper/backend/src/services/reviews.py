from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from loguru import logger

from errors import CollaboratorError, ValidationError
from models import Cafe


MAX_UPDATE_ATTEMPTS = 3


class ReviewStore(Protocol):
    def get_cafe(self, cafe_id: str) -> Optional[Cafe]: ...

    def update_cafe(
        self,
        cafe_id: str,
        fields: Dict[str, Any],
        *,
        expected_num_reviews: Optional[int] = None,
    ) -> bool: ...


def rolling_average(current: float, count: int, new_value: float) -> float:
    return (current * count + new_value) / (count + 1)


def record_review(store: ReviewStore, cafe_id: str, rating: float) -> Cafe:
    """Fold one review rating into the cafe's count and average.

    The stored rating keeps full precision. Each write is conditioned on the
    review count that was read, and a lost race re-reads and tries again.
    """
    if not cafe_id:
        raise ValidationError("cafeId is required")
    if not 0 <= rating <= 5:
        raise ValidationError("rating must be between 0 and 5")

    for _ in range(MAX_UPDATE_ATTEMPTS):
        cafe = store.get_cafe(cafe_id)
        if cafe is None:
            raise ValidationError("cafe not found")

        expected = cafe.num_reviews
        cafe.rating = rolling_average(cafe.rating, expected, rating)
        cafe.num_reviews = expected + 1
        fields = {"rating": cafe.rating, "num_reviews": cafe.num_reviews}
        if store.update_cafe(cafe_id, fields, expected_num_reviews=expected):
            logger.info("review cafe={} rating={:.2f} num_reviews={}", cafe_id, cafe.rating, cafe.num_reviews)
            return cafe
        logger.warning("review count for cafe {} changed concurrently, retrying", cafe_id)

    raise CollaboratorError(f"could not record review for cafe {cafe_id}: too many concurrent updates")
