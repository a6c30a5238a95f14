"""Deterministic demo data: a catalog, an admin, two reviewers and starter reviews."""
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from tqdm import tqdm

from .auth import CredentialVerifier
from .config import SEED_MOVIE_COUNT, SEED_RANDOM_STATE
from .database import now_iso
from .models import Review, User
from .reputation import level_for
from .stores import CatalogStore, ReviewStore, UserStore

logger = logging.getLogger(__name__)

GENRES = ["Drama", "Thriller", "Comedy", "Action", "Romance", "Mystery", "Sci-Fi"]

MOVIE_TITLES = [
    "Kumbalangi Nights", "Premam", "Drishyam", "Bangalore Days", "Maheshinte Prathikaaram",
    "Angamaly Diaries", "Thondimuthalum Driksakshiyum", "Uyare", "Virus", "Joji",
    "The Great Indian Kitchen", "Minnal Murali", "Ayyappanum Koshiyum", "Trance", "Ee.Ma.Yau",
    "Churuli", "Nayattu", "Malik", "Kurup", "Bheeshma Parvam",
    "Jana Gana Mana", "Hridayam", "Thallumaala", "Nna Thaan Case Kodu", "Rorschach",
    "Mukundan Unni Associates", "Romancham", "2018", "Kaathal", "Nanpakal Nerathu Mayakkam",
    "Bramayugam", "Manjummel Boys", "Aavesham", "Premalu", "Kishkindha Kaandam",
    "Turbo", "Guruvayoor Ambalanadayil", "Varshangalkku Shesham", "Aadujeevitham", "Kannur Squad",
]

# (id, email, name, role, points, reviews_count, password)
DEMO_USERS = [
    ("u1", "admin@example.com", "Admin User", "admin", 0, 0, "admin"),
    ("u2", "superfan@kerala.com", "Cinema Bhranthan", "user", 1250, 45, "password"),
    ("u3", "newbie@test.com", "Movie Buff", "user", 40, 2, "password"),
]

# (id, movie_id, user_id, rating, text, likes)
DEMO_REVIEWS = [
    ("r1", 1, "u2", 5, "Absolute masterpiece!", 12),
    ("r2", 1, "u3", 4, "Great cinematography.", 2),
]


def movie_payload(index: int, rng: random.Random, today: datetime) -> dict:
    """Build the insert payload for the index-th demo movie."""
    cycle, position = divmod(index, len(MOVIE_TITLES))
    title = MOVIE_TITLES[position] + (f" {cycle + 1}" if cycle else "")
    genre = GENRES[index % len(GENRES)]
    return {
        "name": title,
        "details": (
            f"A compelling {genre.lower()} that explores the depths of human emotion "
            f"and storytelling. Released in {2010 + index % 14}."
        ),
        "genre": genre,
        "poster_url": f"https://picsum.photos/300/450?random={index + 1}",
        "popularity_score": rng.randint(50, 99),
        "created_at": (today - timedelta(days=index * 5)).isoformat(),
    }


def seed_catalog(catalog: CatalogStore, count: int = SEED_MOVIE_COUNT,
                 random_state: int = SEED_RANDOM_STATE, show_progress: bool = False) -> int:
    rng = random.Random(random_state)
    today = datetime.now()
    with catalog.db.transaction():
        for index in tqdm(range(count), desc="Seeding catalog", disable=not show_progress):
            catalog.insert(movie_payload(index, rng, today))
    return count


def seed_users(users: UserStore, credentials: CredentialVerifier) -> int:
    added = 0
    with users.db.transaction():
        for user_id, email, name, role, points, reviews_count, password in DEMO_USERS:
            if users.find_by_email(email) is not None:
                continue
            users.insert(User(
                id=user_id,
                email=email,
                name=name,
                role=role,
                points=points,
                level_title=level_for(points),
                reviews_count=reviews_count,
                joined_at=now_iso(),
            ))
            credentials.set_password(user_id, password)
            added += 1
    return added


def seed_reviews(reviews: ReviewStore) -> int:
    with reviews.db.transaction():
        for review_id, movie_id, user_id, rating, text, likes in DEMO_REVIEWS:
            name = next(u[2] for u in DEMO_USERS if u[0] == user_id)
            reviews.append(Review(
                id=review_id,
                movie_id=movie_id,
                user_id=user_id,
                user_name=name,
                rating=rating,
                text=text,
                likes=likes,
                created_at=now_iso(),
            ))
    return len(DEMO_REVIEWS)


def seed_all(catalog: CatalogStore, users: UserStore, reviews: ReviewStore,
             credentials: CredentialVerifier, count: int = SEED_MOVIE_COUNT,
             random_state: int = SEED_RANDOM_STATE, show_progress: bool = False) -> dict[str, int]:
    """Populate an empty database. Existing data is left alone."""
    summary = {"movies": 0, "users": 0, "reviews": 0}
    with catalog.db.transaction():
        if catalog.count() == 0:
            summary["movies"] = seed_catalog(catalog, count, random_state, show_progress)
        summary["users"] = seed_users(users, credentials)
        if reviews.count() == 0 and summary["movies"]:
            summary["reviews"] = seed_reviews(reviews)
    logger.info(
        f"Seeded {summary['movies']} movies, {summary['users']} users, {summary['reviews']} reviews"
    )
    return summary
