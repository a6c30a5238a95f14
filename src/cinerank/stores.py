"""
In-process stores for movies, users and reviews.

Each store wraps the shared Database handle; every read and write runs inside
Database.transaction(), so callers composing several store calls in an outer
transaction get them applied as one unit.
"""
from __future__ import annotations

import logging
from typing import Any

from .config import POPULARITY_MIN, POPULARITY_MAX
from .database import Database, now_iso, parse_timestamp_naive
from .errors import EmailTaken, NotFound, ValidationError
from .models import Movie, Review, User

logger = logging.getLogger(__name__)


def _validate_movie_fields(fields: dict[str, Any]) -> None:
    """Range and required-field checks shared by insert and update."""
    if "name" in fields:
        name = fields["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name is required")
    if "popularity_score" in fields:
        score = fields["popularity_score"]
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError(f"popularity_score must be an integer, got {score!r}")
        if not POPULARITY_MIN <= score <= POPULARITY_MAX:
            raise ValidationError(
                f"popularity_score must be between {POPULARITY_MIN} and {POPULARITY_MAX}, got {score}"
            )
    for key in ("details", "genre", "poster_url"):
        value = fields.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be a string, got {value!r}")


class CatalogStore:
    """Mutable movie collection. Store order is ascending id."""

    def __init__(self, db: Database):
        self.db = db

    def insert(self, data: dict[str, Any]) -> Movie:
        """
        Add a movie, assigning id = max(existing ids) + 1 (1 when empty).

        created_at is stamped with the current time unless the caller supplies
        one (imports and demo data); it never changes afterwards.
        """
        unknown = set(data) - set(Movie.MUTABLE_FIELDS) - {"created_at"}
        if unknown:
            raise ValidationError(f"Unknown movie fields: {', '.join(sorted(unknown))}")
        if not data.get("name"):
            raise ValidationError("Name is required")
        _validate_movie_fields(data)

        created_at = data.get("created_at")
        if created_at:
            try:
                parse_timestamp_naive(created_at)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Invalid created_at {created_at!r}: {e}") from e
        else:
            created_at = now_iso()

        with self.db.transaction() as conn:
            next_id = conn.execute("SELECT COALESCE(MAX(id), 0) + 1 FROM movies").fetchone()[0]
            movie = Movie(
                id=next_id,
                name=data["name"],
                popularity_score=data.get("popularity_score", 0),
                details=data.get("details"),
                genre=data.get("genre"),
                poster_url=data.get("poster_url"),
                created_at=created_at,
            )
            conn.execute("""
                INSERT INTO movies (id, name, details, genre, poster_url, popularity_score, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (movie.id, movie.name, movie.details, movie.genre, movie.poster_url,
                  movie.popularity_score, movie.created_at))

        logger.debug(f"Inserted movie {movie.id} ({movie.name})")
        return movie

    def get(self, movie_id: int) -> Movie:
        with self.db.transaction(read_only=True) as conn:
            row = conn.execute("SELECT * FROM movies WHERE id = ?", (movie_id,)).fetchone()
        if row is None:
            raise NotFound(f"Movie {movie_id} not found")
        return Movie.from_row(row)

    def exists(self, movie_id: int) -> bool:
        with self.db.transaction(read_only=True) as conn:
            return conn.execute("SELECT 1 FROM movies WHERE id = ?", (movie_id,)).fetchone() is not None

    def update(self, movie_id: int, partial: dict[str, Any]) -> Movie:
        """Shallow-merge partial into the stored movie. id/created_at are ignored."""
        changes = {k: v for k, v in partial.items() if k not in ("id", "created_at")}
        if len(changes) != len(partial):
            logger.debug(f"Ignoring immutable fields in update of movie {movie_id}")
        unknown = set(changes) - set(Movie.MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown movie fields: {', '.join(sorted(unknown))}")
        _validate_movie_fields(changes)

        with self.db.transaction() as conn:
            current = self.get(movie_id)
            if not changes:
                return current

            assignments = ", ".join(f"{column} = ?" for column in changes)
            conn.execute(
                f"UPDATE movies SET {assignments} WHERE id = ?",
                (*changes.values(), movie_id),
            )
            updated = self.get(movie_id)

        logger.debug(f"Updated movie {movie_id}: {sorted(changes)}")
        return updated

    def delete(self, movie_id: int) -> None:
        """Remove a movie. Reviews that reference it are left in place."""
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM movies WHERE id = ?", (movie_id,))
            if cursor.rowcount == 0:
                raise NotFound(f"Movie {movie_id} not found")
        logger.debug(f"Deleted movie {movie_id}")

    def all(self) -> list[Movie]:
        with self.db.transaction(read_only=True) as conn:
            rows = conn.execute("SELECT * FROM movies ORDER BY id").fetchall()
        return [Movie.from_row(row) for row in rows]

    def count(self) -> int:
        with self.db.transaction(read_only=True) as conn:
            return conn.execute("SELECT COUNT(*) FROM movies").fetchone()[0]


class UserStore:
    """User accounts in registration order."""

    def __init__(self, db: Database):
        self.db = db

    def insert(self, user: User) -> User:
        with self.db.transaction() as conn:
            if self.find_by_email(user.email) is not None:
                raise EmailTaken(f"Email {user.email} already registered")
            conn.execute("""
                INSERT INTO users (id, email, name, role, points, level_title, reviews_count, joined_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (user.id, user.email, user.name, user.role, user.points,
                  user.level_title, user.reviews_count, user.joined_at or now_iso()))
            return self.get(user.id)

    def get(self, user_id: str) -> User:
        with self.db.transaction(read_only=True) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFound(f"User {user_id} not found")
        return User.from_row(row)

    def find_by_email(self, email: str) -> User | None:
        with self.db.transaction(read_only=True) as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return User.from_row(row) if row else None

    def set_points(self, user_id: str, points: int, level_title: str) -> None:
        """Write points and the derived title together."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET points = ?, level_title = ? WHERE id = ?",
                (points, level_title, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"User {user_id} not found")

    def increment_reviews_count(self, user_id: str) -> None:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET reviews_count = reviews_count + 1 WHERE id = ?",
                (user_id,),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"User {user_id} not found")

    def all(self) -> list[User]:
        with self.db.transaction(read_only=True) as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY seq").fetchall()
        return [User.from_row(row) for row in rows]


class ReviewStore:
    """Append-only reviews."""

    def __init__(self, db: Database):
        self.db = db

    def append(self, review: Review) -> Review:
        try:
            parse_timestamp_naive(review.created_at)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid created_at {review.created_at!r}: {e}") from e
        with self.db.transaction() as conn:
            conn.execute("""
                INSERT INTO reviews (id, movie_id, user_id, user_name, rating, text, likes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (review.id, review.movie_id, review.user_id, review.user_name,
                  review.rating, review.text, review.likes, review.created_at))
        return review

    def for_movie(self, movie_id: int) -> list[Review]:
        """Reviews of a movie, newest first; equal timestamps list the later append first."""
        with self.db.transaction(read_only=True) as conn:
            rows = conn.execute(
                "SELECT * FROM reviews WHERE movie_id = ? ORDER BY seq",
                (movie_id,),
            ).fetchall()
        reviews = [Review.from_row(row) for row in rows]
        ordered = sorted(
            enumerate(reviews),
            key=lambda item: (parse_timestamp_naive(item[1].created_at), item[0]),
            reverse=True,
        )
        return [review for _, review in ordered]

    def count(self) -> int:
        with self.db.transaction(read_only=True) as conn:
            return conn.execute("SELECT COUNT(*) FROM reviews").fetchone()[0]
