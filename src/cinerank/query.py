"""
Catalog query engine: filter, sort and paginate the movie catalog.

The engine is stateless across calls and reads the store as it is at
invocation time. Determinism holds for a given (filters, catalog snapshot)
pair: the sort is stable over store order, so equal keys keep ascending-id
order. Nothing isolates successive page requests from inserts or deletes in
between; PageAccumulator is the caller-side helper that tolerates items
shifting position.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .config import ALL_GENRES, DEFAULT_PAGE_SIZE
from .database import parse_timestamp_naive
from .errors import ValidationError
from .models import Movie
from .stores import CatalogStore

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)


class SortOrder(str, Enum):
    POPULARITY_DESC = "popularity_desc"
    POPULARITY_ASC = "popularity_asc"
    NEWEST = "newest"


@dataclass(frozen=True)
class MovieFilters:
    search: str | None = None
    genre: str | None = None
    sort_by: SortOrder | str = SortOrder.POPULARITY_DESC

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "sort_by", SortOrder(self.sort_by or SortOrder.POPULARITY_DESC))
        except ValueError:
            raise ValidationError(
                f"Unsupported sort '{self.sort_by}' "
                f"(expected one of {', '.join(s.value for s in SortOrder)})"
            ) from None


@dataclass
class Page:
    results: list[Movie] = field(default_factory=list)
    next_offset: int = 0
    has_more: bool = False
    total_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [m.to_dict() for m in self.results],
            "next_offset": self.next_offset,
            "has_more": self.has_more,
            "total_count": self.total_count,
        }


def _created_at_key(movie: Movie) -> datetime:
    return parse_timestamp_naive(movie.created_at) if movie.created_at else EPOCH


def filter_and_sort(movies: list[Movie], filters: MovieFilters) -> list[Movie]:
    """Apply search/genre filters then the requested stable sort."""
    if filters.search:
        needle = filters.search.lower()
        movies = [m for m in movies if needle in m.name.lower()]

    if filters.genre and filters.genre != ALL_GENRES:
        movies = [m for m in movies if m.genre == filters.genre]

    if filters.sort_by is SortOrder.NEWEST:
        return sorted(movies, key=_created_at_key, reverse=True)
    if filters.sort_by is SortOrder.POPULARITY_ASC:
        return sorted(movies, key=lambda m: m.popularity_score)
    return sorted(movies, key=lambda m: m.popularity_score, reverse=True)


def query_movies(
    catalog: CatalogStore,
    filters: MovieFilters | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> Page:
    """
    Return one page of the filtered, sorted catalog.

    Args:
        catalog: Catalog store to read
        filters: Search/genre/sort request (defaults to everything, most popular first)
        limit: Page size, must be positive
        offset: Index of the first item in the filtered sequence

    Returns:
        Page with next_offset = offset + limit and has_more telling whether
        anything lies past it. total_count is the filtered count.
    """
    if limit <= 0:
        raise ValidationError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise ValidationError(f"offset must be non-negative, got {offset}")

    filters = filters or MovieFilters()
    ordered = filter_and_sort(catalog.all(), filters)

    next_offset = offset + limit
    page = Page(
        results=ordered[offset:next_offset],
        next_offset=next_offset,
        has_more=next_offset < len(ordered),
        total_count=len(ordered),
    )
    logger.debug(
        f"query_movies search={filters.search!r} genre={filters.genre!r} "
        f"sort={filters.sort_by.value} offset={offset} limit={limit}: "
        f"{len(page.results)}/{page.total_count}"
    )
    return page


def list_genres(catalog: CatalogStore) -> list[str]:
    """Distinct genres in the catalog, sorted, with the "All" sentinel first."""
    genres = {m.genre for m in catalog.all() if m.genre}
    return [ALL_GENRES] + sorted(genres)


class PageAccumulator:
    """
    Caller-side infinite-scroll state over query_movies.

    Keeps the accumulated movies, the next offset and has_more. Only one
    fetch may be in flight at a time; a concurrent request for the same
    cursor returns nothing instead of fetching a duplicate page. Items
    already accumulated are dropped from later pages by id, since inserts
    and deletes between calls can shift positions.
    """

    def __init__(self, catalog: CatalogStore, filters: MovieFilters | None = None,
                 page_size: int = DEFAULT_PAGE_SIZE):
        if page_size <= 0:
            raise ValidationError(f"page_size must be positive, got {page_size}")
        self.catalog = catalog
        self.page_size = page_size
        self._in_flight = threading.Lock()
        self.reset(filters)

    def reset(self, filters: MovieFilters | None = None) -> None:
        """Start over, optionally with new filters."""
        self.filters = filters or MovieFilters()
        self.movies: list[Movie] = []
        self._seen_ids: set[int] = set()
        self.offset = 0
        self.has_more = True
        self.total_count: int | None = None

    def set_filters(self, **changes) -> list[Movie]:
        """Replace some filter fields, reset and load the first page."""
        self.reset(replace(self.filters, **changes))
        return self.load_more()

    def _load_page(self) -> list[Movie]:
        page = query_movies(self.catalog, self.filters, self.page_size, self.offset)
        added = [m for m in page.results if m.id not in self._seen_ids]
        self.movies.extend(added)
        self._seen_ids.update(m.id for m in added)
        self.offset = page.next_offset
        self.has_more = page.has_more
        self.total_count = page.total_count
        return added

    def load_more(self) -> list[Movie]:
        """Fetch the next page and return the movies actually appended."""
        if not self.has_more:
            return []
        if not self._in_flight.acquire(blocking=False):
            logger.debug(f"Fetch already in flight at offset {self.offset}, skipping")
            return []
        try:
            return self._load_page()
        finally:
            self._in_flight.release()

    def load_all(self) -> list[Movie]:
        """Keep paging until the catalog reports no more results, waiting out other fetches."""
        while self.has_more:
            with self._in_flight:
                if self.has_more:
                    self._load_page()
        return self.movies
