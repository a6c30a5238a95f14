import logging

from .config import DEFAULT_RECOMMENDATION_COUNT
from .models import Movie
from .stores import CatalogStore

logger = logging.getLogger(__name__)


def _by_popularity(movies: list[Movie]) -> list[Movie]:
    return sorted(movies, key=lambda m: m.popularity_score, reverse=True)


def recommend(catalog: CatalogStore, movie_id: int, count: int = DEFAULT_RECOMMENDATION_COUNT) -> list[Movie]:
    """
    Related movies for a reference movie, by genre match then popularity.

    This is a heuristic, not a learned model:
    1. Same-genre movies (excluding the reference), most popular first.
    2. If that yields fewer than `count`, fill with the most popular movies
       of any other genre.

    Returns an empty list when the reference movie does not exist. The result
    is shorter than `count` only when the catalog has fewer other movies.
    """
    if count <= 0:
        return []

    movies = catalog.all()
    reference = next((m for m in movies if m.id == movie_id), None)
    if reference is None:
        logger.debug(f"No recommendations: movie {movie_id} not in catalog")
        return []

    others = [m for m in movies if m.id != movie_id]
    same_genre = _by_popularity([m for m in others if m.genre == reference.genre])[:count]

    if len(same_genre) < count:
        fill = _by_popularity([m for m in others if m.genre != reference.genre])
        same_genre.extend(fill[:count - len(same_genre)])

    return same_genre
