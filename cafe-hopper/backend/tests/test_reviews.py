from __future__ import annotations

import pytest

from errors import CollaboratorError, ValidationError
from models import Cafe
from services.reviews import record_review, rolling_average

from fakes import InMemoryCafeStore


def test_rolling_average() -> None:
    assert rolling_average(0.0, 0, 4.0) == 4.0
    assert rolling_average(4.0, 1, 2.0) == 3.0


def test_record_review_updates_count_and_rating() -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A", rating=4.0, num_reviews=3)])
    cafe = record_review(store, "a", 5.0)
    assert cafe.num_reviews == 4
    assert cafe.rating == 4.25
    assert store.rows["a"].num_reviews == 4
    assert store.rows["a"].rating == 4.25


def test_first_review_sets_rating() -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A")])
    assert record_review(store, "a", 3.0).rating == 3.0


@pytest.mark.parametrize("cafe_id,rating", [("a", 5.5), ("a", -1), ("", 3), ("missing", 3)])
def test_record_review_rejects_bad_input(cafe_id: str, rating: float) -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A")])
    with pytest.raises(ValidationError):
        record_review(store, cafe_id, rating)
    assert store.rows["a"].num_reviews == 0


def test_rating_keeps_full_precision_across_reviews() -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A")])
    for value in (5.0, 4.0, 4.0):
        record_review(store, "a", value)
    assert store.rows["a"].num_reviews == 3
    assert store.rows["a"].rating == pytest.approx(13.0 / 3.0, abs=1e-12)


def test_concurrent_review_is_not_lost() -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A", rating=4.0, num_reviews=1)])
    original_update = store.update_cafe
    raced = []

    def update_after_other_ping(cafe_id, fields, *, expected_num_reviews=None):
        if not raced:
            # another ping lands between our read and our write
            raced.append(True)
            original_update(cafe_id, {"rating": 3.0, "num_reviews": 2})
        return original_update(cafe_id, fields, expected_num_reviews=expected_num_reviews)

    store.update_cafe = update_after_other_ping  # type: ignore[method-assign]
    cafe = record_review(store, "a", 5.0)
    assert cafe.num_reviews == 3
    assert store.rows["a"].num_reviews == 3
    assert store.rows["a"].rating == pytest.approx(11.0 / 3.0)


def test_review_gives_up_after_repeated_races() -> None:
    store = InMemoryCafeStore([Cafe(id="a", name="A")])
    store.update_cafe = lambda cafe_id, fields, *, expected_num_reviews=None: False  # type: ignore[method-assign]
    with pytest.raises(CollaboratorError):
        record_review(store, "a", 4.0)
