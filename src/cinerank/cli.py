import argparse
import json
import logging

from .config import (
    ALL_GENRES,
    DB_PATH,
    DEFAULT_LEADERBOARD_LIMIT,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RECOMMENDATION_COUNT,
    SEED_MOVIE_COUNT,
)
from .database import Database
from .errors import CineRankError
from .query import SortOrder
from .service import CineRankService

logger = logging.getLogger(__name__)


def _open_service(args: argparse.Namespace, seed_demo: bool = True) -> CineRankService:
    """
    Open the database named by --db.

    An in-memory database lives only for this command, so it is seeded with
    demo data first to give the command something to work on.
    """
    db_path = getattr(args, "db", None) or DB_PATH
    service = CineRankService(Database(db_path))
    if seed_demo and db_path == ":memory:":
        service.seed()
    return service


def _movie_line(movie: dict) -> str:
    genre = movie.get("genre") or "-"
    return f"#{movie['id']:<4} {movie['name']} [{genre}] - Popularity: {movie['popularity_score']}"


def _movie_fields(args: argparse.Namespace) -> dict:
    """Collect movie fields given on the command line, skipping unset ones."""
    fields = {
        "name": args.name,
        "details": args.details,
        "genre": args.genre,
        "poster_url": args.poster_url,
        "popularity_score": args.popularity,
    }
    return {k: v for k, v in fields.items() if v is not None}


def _emit(payload, output_format: str) -> bool:
    """Log payload as JSON when requested. Returns True if handled."""
    if output_format == "json":
        logger.info(json.dumps(payload, indent=2))
        return True
    return False


def cmd_seed(args: argparse.Namespace) -> None:
    """Populate the database with demo data."""
    service = _open_service(args, seed_demo=False)
    try:
        summary = service.seed(count=args.count, show_progress=True)
        logger.info(f"Movies: {summary['movies']}, users: {summary['users']}, reviews: {summary['reviews']}")
    finally:
        service.close()


def cmd_movies(args: argparse.Namespace) -> None:
    """Browse the catalog one page at a time."""
    service = _open_service(args)
    try:
        page = service.list_movies(
            search=args.search, genre=args.genre, sort_by=args.sort,
            limit=args.limit, offset=args.offset,
        )
        if _emit(page, args.format):
            return

        shown_to = args.offset + len(page["results"])
        logger.info(f"\nMovies {args.offset + 1}-{shown_to} of {page['total_count']} ({args.sort}):")
        for movie in page["results"]:
            logger.info(f"  {_movie_line(movie)}")
        if page["has_more"]:
            logger.info(f"\nMore available: --offset {page['next_offset']}")
    finally:
        service.close()


def cmd_movie(args: argparse.Namespace) -> None:
    """Show one movie with its reviews and recommendations."""
    service = _open_service(args)
    try:
        movie = service.get_movie(args.movie_id)
        reviews = service.get_reviews(args.movie_id)
        recs = service.get_recommendations(args.movie_id)
        if _emit({"movie": movie, "reviews": reviews, "recommendations": recs}, args.format):
            return

        logger.info(f"\n{movie['name']} ({movie.get('genre') or 'Unknown genre'})")
        logger.info(f"  Popularity: {movie['popularity_score']}")
        if movie.get("details"):
            logger.info(f"  {movie['details']}")
        logger.info(f"\nReviews ({len(reviews)}):")
        for review in reviews:
            logger.info(f"  {review['user_name']}: {review['rating']}/5 - {review['text']}")
        logger.info("\nYou might also like:")
        for rec in recs:
            logger.info(f"  {_movie_line(rec)}")
    finally:
        service.close()


def cmd_genres(args: argparse.Namespace) -> None:
    """List the genres present in the catalog."""
    service = _open_service(args)
    try:
        for genre in service.list_genres():
            logger.info(f"  {genre}")
    finally:
        service.close()


def cmd_add_movie(args: argparse.Namespace) -> None:
    """Add a movie to the catalog (admin)."""
    service = _open_service(args)
    try:
        movie = service.create_movie(args.actor, _movie_fields(args))
        logger.info(f"Added {_movie_line(movie)}")
    finally:
        service.close()


def cmd_update_movie(args: argparse.Namespace) -> None:
    """Update fields of a movie (admin)."""
    service = _open_service(args)
    try:
        movie = service.update_movie(args.actor, args.movie_id, _movie_fields(args))
        logger.info(f"Updated {_movie_line(movie)}")
    finally:
        service.close()


def cmd_delete_movie(args: argparse.Namespace) -> None:
    """Delete a movie (admin)."""
    service = _open_service(args)
    try:
        service.delete_movie(args.actor, args.movie_id)
        logger.info(f"Deleted movie {args.movie_id}")
    finally:
        service.close()


def cmd_register(args: argparse.Namespace) -> None:
    service = _open_service(args)
    try:
        user = service.register(args.email, args.password, args.name)
        logger.info(f"Registered {user['name']} ({user['id']}) - {user['points']} points, {user['level_title']}")
    finally:
        service.close()


def cmd_login(args: argparse.Namespace) -> None:
    service = _open_service(args)
    try:
        user = service.login(args.email, args.password)
        logger.info(f"Welcome back, {user['name']}! ({user['id']}, {user['role']})")
    finally:
        service.close()


def cmd_user(args: argparse.Namespace) -> None:
    """Show a user's reputation profile."""
    service = _open_service(args)
    try:
        user = service.get_user(args.user_id)
        if _emit(user, args.format):
            return
        logger.info(f"\n{user['name']} - {user['level_title']}")
        logger.info(f"  Points: {user['points']:,} / {user['next_level_points']:,} ({user['level_progress']:.0f}%)")
        logger.info(f"  Reviews: {user['reviews_count']}")
        logger.info(f"  Joined: {user['joined_at']}")
    finally:
        service.close()


def cmd_review(args: argparse.Namespace) -> None:
    """Post a review and report the points earned."""
    service = _open_service(args)
    try:
        result = service.post_review(args.movie_id, args.user_id, args.text, args.rating)
        user = service.get_user(args.user_id)
        logger.info(
            f"Review {result['review']['id']} posted: +{result['pointsEarned']} points "
            f"(now {user['points']}, {user['level_title']})"
        )
    finally:
        service.close()


def cmd_recommend(args: argparse.Namespace) -> None:
    """Show movies related to a reference movie."""
    service = _open_service(args)
    try:
        recs = service.get_recommendations(args.movie_id, args.count)
        if _emit(recs, args.format):
            return
        logger.info(f"\nRecommendations for movie {args.movie_id}:")
        for i, movie in enumerate(recs, 1):
            logger.info(f"{i}. {_movie_line(movie)}")
    finally:
        service.close()


def cmd_leaderboard(args: argparse.Namespace) -> None:
    service = _open_service(args)
    try:
        entries = service.get_leaderboard(args.limit)
        if _emit(entries, args.format):
            return
        logger.info("\nLeaderboard:")
        for entry in entries:
            logger.info(f"  {entry['rank']:>2}. {entry['name']} - {entry['points']:,} pts ({entry['level_title']})")
    finally:
        service.close()


def cmd_stats(args: argparse.Namespace) -> None:
    """Show database statistics."""
    service = _open_service(args)
    try:
        counts = service.db.stats()
        logger.info("\nDatabase Statistics:")
        logger.info(f"  Movies: {counts['movies']}")
        logger.info(f"  Users: {counts['users']}")
        logger.info(f"  Reviews: {counts['reviews']}")
    finally:
        service.close()


def _add_movie_field_args(parser: argparse.ArgumentParser, require_name: bool) -> None:
    parser.add_argument("--actor", required=True, help="Id of the admin performing the change")
    parser.add_argument("--name", required=require_name, help="Movie title")
    parser.add_argument("--details", help="Synopsis")
    parser.add_argument("--genre", help="Genre")
    parser.add_argument("--poster-url", help="Poster image URL")
    parser.add_argument("--popularity", type=int, help="Popularity score (0-100)")


def main():
    parser = argparse.ArgumentParser(description="CineRank movie catalog and reviewer reputation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--db", default=DB_PATH,
                        help="SQLite database path (default: $CINERANK_DB or in-memory demo data)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed_parser = subparsers.add_parser("seed", help="Populate the database with demo data")
    seed_parser.add_argument("--count", type=int, default=SEED_MOVIE_COUNT, help="Number of movies to generate")
    seed_parser.set_defaults(func=cmd_seed)

    movies_parser = subparsers.add_parser("movies", help="Browse the catalog")
    movies_parser.add_argument("--search", help="Case-insensitive title search")
    movies_parser.add_argument("--genre", default=ALL_GENRES, help="Genre filter (default: All)")
    movies_parser.add_argument("--sort", choices=[s.value for s in SortOrder],
                               default=SortOrder.POPULARITY_DESC.value, help="Sort order")
    movies_parser.add_argument("--limit", type=int, default=DEFAULT_PAGE_SIZE, help="Page size")
    movies_parser.add_argument("--offset", type=int, default=0, help="Offset of the first result")
    movies_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    movies_parser.set_defaults(func=cmd_movies)

    movie_parser = subparsers.add_parser("movie", help="Show one movie with reviews and recommendations")
    movie_parser.add_argument("movie_id", type=int, help="Movie id")
    movie_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    movie_parser.set_defaults(func=cmd_movie)

    genres_parser = subparsers.add_parser("genres", help="List catalog genres")
    genres_parser.set_defaults(func=cmd_genres)

    add_parser = subparsers.add_parser("add-movie", help="Add a movie (admin)")
    _add_movie_field_args(add_parser, require_name=True)
    add_parser.set_defaults(func=cmd_add_movie)

    update_parser = subparsers.add_parser("update-movie", help="Update a movie (admin)")
    update_parser.add_argument("movie_id", type=int, help="Movie id")
    _add_movie_field_args(update_parser, require_name=False)
    update_parser.set_defaults(func=cmd_update_movie)

    delete_parser = subparsers.add_parser("delete-movie", help="Delete a movie (admin)")
    delete_parser.add_argument("movie_id", type=int, help="Movie id")
    delete_parser.add_argument("--actor", required=True, help="Id of the admin performing the change")
    delete_parser.set_defaults(func=cmd_delete_movie)

    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("email", help="Email address")
    register_parser.add_argument("password", help="Password")
    register_parser.add_argument("--name", help="Display name (default: email local part)")
    register_parser.set_defaults(func=cmd_register)

    login_parser = subparsers.add_parser("login", help="Check credentials")
    login_parser.add_argument("email", help="Email address")
    login_parser.add_argument("password", help="Password")
    login_parser.set_defaults(func=cmd_login)

    user_parser = subparsers.add_parser("user", help="Show a user's reputation")
    user_parser.add_argument("user_id", help="User id")
    user_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    user_parser.set_defaults(func=cmd_user)

    review_parser = subparsers.add_parser("review", help="Post a review")
    review_parser.add_argument("movie_id", type=int, help="Movie id")
    review_parser.add_argument("user_id", help="Author's user id")
    review_parser.add_argument("rating", type=int, help="Rating from 1 to 5")
    review_parser.add_argument("text", help="Review text")
    review_parser.set_defaults(func=cmd_review)

    rec_parser = subparsers.add_parser("recommend", help="Movies related to a movie")
    rec_parser.add_argument("movie_id", type=int, help="Reference movie id")
    rec_parser.add_argument("--count", type=int, default=DEFAULT_RECOMMENDATION_COUNT,
                            help="Number of recommendations")
    rec_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    rec_parser.set_defaults(func=cmd_recommend)

    board_parser = subparsers.add_parser("leaderboard", help="Top reviewers")
    board_parser.add_argument("--limit", type=int, default=DEFAULT_LEADERBOARD_LIMIT, help="Number of entries")
    board_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    board_parser.set_defaults(func=cmd_leaderboard)

    stats_parser = subparsers.add_parser("stats", help="Show database statistics")
    stats_parser.set_defaults(func=cmd_stats)

    args = parser.parse_args()

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        args.func(args)
    except CineRankError as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
