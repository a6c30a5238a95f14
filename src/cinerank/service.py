"""
In-process request/response surface over the engines.

Each method corresponds to one REST-style endpoint and returns JSON-ready
dicts using the wire field names. Errors propagate as CineRankError
subclasses for a transport layer to map onto status codes.
"""
from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Any

from .auth import CredentialVerifier, HashedCredentialStore, login, register
from .config import (
    DEFAULT_LEADERBOARD_LIMIT,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RECOMMENDATION_COUNT,
    SIMULATED_DELAY_MS,
)
from .database import Database
from .errors import Forbidden
from .query import MovieFilters, list_genres, query_movies
from .recommender import recommend
from .reputation import leaderboard, level_progress
from .reviews import list_reviews, submit_review
from .seed import seed_all
from .stores import CatalogStore, ReviewStore, UserStore

logger = logging.getLogger(__name__)


def simulated_latency(func):
    """Sleep for the configured delay before serving a request."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000)
        return func(self, *args, **kwargs)
    return wrapper


class CineRankService:
    """Owns one Database and the stores built on it."""

    def __init__(self, db: Database | None = None, credentials: CredentialVerifier | None = None,
                 delay_ms: float = SIMULATED_DELAY_MS):
        self.db = db or Database()
        self.catalog = CatalogStore(self.db)
        self.users = UserStore(self.db)
        self.reviews = ReviewStore(self.db)
        self.credentials = credentials or HashedCredentialStore(self.db)
        self.delay_ms = delay_ms

    def seed(self, count: int | None = None, show_progress: bool = False) -> dict[str, int]:
        kwargs = {"show_progress": show_progress}
        if count is not None:
            kwargs["count"] = count
        return seed_all(self.catalog, self.users, self.reviews, self.credentials, **kwargs)

    def _require_admin(self, actor_id: str) -> None:
        actor = self.users.get(actor_id)
        if not actor.is_admin:
            logger.warning(f"Rejected admin operation by {actor_id}")
            raise Forbidden(f"User {actor_id} is not an administrator")

    # GET movies
    @simulated_latency
    def list_movies(self, search: str | None = None, genre: str | None = None,
                    sort_by: str | None = None, limit: int = DEFAULT_PAGE_SIZE,
                    offset: int = 0) -> dict[str, Any]:
        filters = MovieFilters(search=search, genre=genre, sort_by=sort_by)
        return query_movies(self.catalog, filters, limit, offset).to_dict()

    @simulated_latency
    def get_movie(self, movie_id: int) -> dict[str, Any]:
        return self.catalog.get(movie_id).to_dict()

    @simulated_latency
    def list_genres(self) -> list[str]:
        return list_genres(self.catalog)

    # POST/PUT/DELETE movies (admin)
    @simulated_latency
    def create_movie(self, actor_id: str, data: dict[str, Any]) -> dict[str, Any]:
        self._require_admin(actor_id)
        movie = self.catalog.insert(data)
        logger.info(f"Admin {actor_id} added movie {movie.id} ({movie.name})")
        return movie.to_dict()

    @simulated_latency
    def update_movie(self, actor_id: str, movie_id: int, data: dict[str, Any]) -> dict[str, Any]:
        self._require_admin(actor_id)
        return self.catalog.update(movie_id, data).to_dict()

    @simulated_latency
    def delete_movie(self, actor_id: str, movie_id: int) -> None:
        self._require_admin(actor_id)
        self.catalog.delete(movie_id)
        logger.info(f"Admin {actor_id} deleted movie {movie_id}")

    # Auth
    @simulated_latency
    def login(self, email: str, password: str) -> dict[str, Any]:
        return login(self.users, self.credentials, email, password).to_dict()

    @simulated_latency
    def register(self, email: str, password: str, name: str | None = None) -> dict[str, Any]:
        return register(self.users, self.credentials, email, password, name).to_dict()

    @simulated_latency
    def get_user(self, user_id: str) -> dict[str, Any]:
        user = self.users.get(user_id)
        progress = level_progress(user.points)
        payload = user.to_dict()
        payload["next_level_points"] = progress.next_level_points
        payload["level_progress"] = progress.percent
        return payload

    # Reviews
    @simulated_latency
    def get_reviews(self, movie_id: int) -> list[dict[str, Any]]:
        return [r.to_dict() for r in list_reviews(self.reviews, movie_id)]

    @simulated_latency
    def post_review(self, movie_id: int, user_id: str, text: str, rating: int) -> dict[str, Any]:
        return submit_review(
            self.catalog, self.users, self.reviews, movie_id, user_id, text, rating
        ).to_dict()

    # Recommendations and leaderboard
    @simulated_latency
    def get_recommendations(self, movie_id: int,
                            count: int = DEFAULT_RECOMMENDATION_COUNT) -> list[dict[str, Any]]:
        return [m.to_dict() for m in recommend(self.catalog, movie_id, count)]

    @simulated_latency
    def get_leaderboard(self, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in leaderboard(self.users, limit)]

    def close(self) -> None:
        self.db.close()
