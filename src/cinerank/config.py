"""
Configuration constants for the cinerank catalog and reputation engines.

This module centralizes all magic numbers and configurable parameters.
Values can be overridden via environment variables.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Database Configuration
# ":memory:" keeps all state for the lifetime of the process only
DB_PATH = os.environ.get("CINERANK_DB", ":memory:")

# Catalog paging
DEFAULT_PAGE_SIZE = _get_int_env("CINERANK_PAGE_SIZE", 20, min_val=1)
ALL_GENRES = "All"  # Sentinel meaning "no genre filter"

# Input boundary conventions
POPULARITY_MIN = 0
POPULARITY_MAX = 100
RATING_MIN = 1
RATING_MAX = 5

# Reputation
REVIEW_POINTS = 10         # Fixed award per accepted review
SIGNUP_BONUS_POINTS = 20   # Profile completion bonus on registration
DEFAULT_LEADERBOARD_LIMIT = _get_int_env("CINERANK_LEADERBOARD_LIMIT", 10, min_val=1)

# Level bands, highest first: (minimum points, title)
LEVEL_THRESHOLDS = [
    (5000, "Master Reviewer"),
    (1500, "Expert Critic"),
    (500, "Critic"),
    (100, "Reviewer"),
    (0, "Newbie"),
]
# Progress target shown once the top band is reached
LEVEL_CAP_POINTS = 10000

# Recommendations
DEFAULT_RECOMMENDATION_COUNT = _get_int_env("CINERANK_RECOMMENDATION_COUNT", 4, min_val=1)

# Simulated request latency for the service facade (0 disables)
SIMULATED_DELAY_MS = _get_float_env("CINERANK_SIMULATED_DELAY_MS", 0.0, min_val=0.0)

# Demo data
SEED_MOVIE_COUNT = _get_int_env("CINERANK_SEED_MOVIES", 100, min_val=0)
SEED_RANDOM_STATE = _get_int_env("CINERANK_SEED", 42, min_val=0)
