"""Review submission: append a review and reward its author as one unit."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from .config import RATING_MIN, RATING_MAX, REVIEW_POINTS
from .database import now_iso
from .errors import NotFound, ValidationError
from .models import Review
from .reputation import award_points
from .stores import CatalogStore, ReviewStore, UserStore

logger = logging.getLogger(__name__)


@dataclass
class ReviewResult:
    review: Review
    points_earned: int

    def to_dict(self) -> dict[str, Any]:
        return {"review": self.review.to_dict(), "pointsEarned": self.points_earned}


def _new_review_id() -> str:
    return f"r{uuid.uuid4().hex[:12]}"


def validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"rating must be an integer, got {rating!r}")
    if not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationError(f"rating must be between {RATING_MIN} and {RATING_MAX}, got {rating}")
    return rating


def submit_review(
    catalog: CatalogStore,
    users: UserStore,
    reviews: ReviewStore,
    movie_id: int,
    user_id: str,
    text: str,
    rating: int,
) -> ReviewResult:
    """
    Post a review and award its author.

    Inside a single transaction: append the review (author name snapshotted
    now), award REVIEW_POINTS through the reputation engine and bump the
    author's reviews_count. Any failure rolls back all three.

    Raises:
        NotFound: unknown user or movie
        ValidationError: rating outside 1-5
    """
    validate_rating(rating)

    with users.db.transaction():
        user = users.get(user_id)
        if not catalog.exists(movie_id):
            raise NotFound(f"Movie {movie_id} not found")

        review = reviews.append(Review(
            id=_new_review_id(),
            movie_id=movie_id,
            user_id=user.id,
            user_name=user.name,
            rating=rating,
            text=text,
            likes=0,
            created_at=now_iso(),
        ))
        award_points(users, user.id, REVIEW_POINTS)
        users.increment_reviews_count(user.id)

    logger.info(f"{user.name} reviewed movie {movie_id} ({rating}/5), +{REVIEW_POINTS} points")
    return ReviewResult(review=review, points_earned=REVIEW_POINTS)


def list_reviews(reviews: ReviewStore, movie_id: int) -> list[Review]:
    """A movie's reviews, newest first."""
    return reviews.for_movie(movie_id)
