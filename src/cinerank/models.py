from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class Movie:
    """A catalog entry."""
    id: int
    name: str
    popularity_score: int = 0
    details: str | None = None
    genre: str | None = None
    poster_url: str | None = None
    created_at: str | None = None

    # Fields an update may touch; id and created_at are fixed at insert
    MUTABLE_FIELDS = ("name", "details", "genre", "poster_url", "popularity_score")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> "Movie":
        return cls(
            id=row["id"],
            name=row["name"],
            popularity_score=row["popularity_score"],
            details=row["details"],
            genre=row["genre"],
            poster_url=row["poster_url"],
            created_at=row["created_at"],
        )


@dataclass
class User:
    """An account. level_title always mirrors points."""
    id: str
    email: str
    name: str
    role: str = "user"
    points: int = 0
    level_title: str = "Newbie"
    reviews_count: int = 0
    joined_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> "User":
        return cls(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            role=row["role"],
            points=row["points"],
            level_title=row["level_title"],
            reviews_count=row["reviews_count"],
            joined_at=row["joined_at"],
        )


@dataclass
class Review:
    # user_name is a snapshot taken at write time, not a live join
    id: str
    movie_id: int
    user_id: str
    user_name: str
    rating: int
    text: str
    likes: int = 0
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> "Review":
        return cls(
            id=row["id"],
            movie_id=row["movie_id"],
            user_id=row["user_id"],
            user_name=row["user_name"],
            rating=row["rating"],
            text=row["text"],
            likes=row["likes"],
            created_at=row["created_at"],
        )
