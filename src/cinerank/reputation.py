"""
Reputation engine: point awards, level titles and the leaderboard.

A user's level title is a pure function of their points and is rewritten
together with the points on every award.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from .config import DEFAULT_LEADERBOARD_LIMIT, LEVEL_CAP_POINTS, LEVEL_THRESHOLDS
from .errors import ValidationError
from .models import User
from .stores import UserStore

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardEntry:
    user_id: str
    name: str
    points: int
    level_title: str
    rank: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LevelProgress:
    level_title: str
    points: int
    next_level_points: int
    percent: float


def level_for(points: int) -> str:
    """
    Map a point total to its level title.

    Bands have a closed lower bound; the highest band whose threshold is met
    wins. Anything under the lowest threshold (including negative totals)
    is a Newbie.
    """
    for threshold, title in LEVEL_THRESHOLDS:
        if points >= threshold:
            return title
    return LEVEL_THRESHOLDS[-1][1]


def level_progress(points: int) -> LevelProgress:
    """Progress toward the next band's threshold, capped at 100%."""
    above = [threshold for threshold, _ in LEVEL_THRESHOLDS if threshold > max(points, 0)]
    next_points = min(above) if above else LEVEL_CAP_POINTS
    percent = min(100.0, max(0.0, points / next_points * 100))
    return LevelProgress(
        level_title=level_for(points),
        points=points,
        next_level_points=next_points,
        percent=round(percent, 1),
    )


def award_points(users: UserStore, user_id: str, delta: int) -> User:
    """
    Add delta to a user's points and recompute their level title.

    Both fields are written in one statement inside one transaction.
    delta may be any integer; current callers only award positive amounts.
    """
    with users.db.transaction():
        user = users.get(user_id)
        old_title = user.level_title
        user.points += delta
        user.level_title = level_for(user.points)
        users.set_points(user.id, user.points, user.level_title)

    if user.level_title != old_title:
        logger.info(f"{user.name} ({user.id}) reached {user.level_title} with {user.points} points")
    else:
        logger.debug(f"Awarded {delta} points to {user.id} (now {user.points})")
    return user


def leaderboard(users: UserStore, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[LeaderboardEntry]:
    """
    Rank non-admin users by points, highest first.

    Equal point totals keep registration order (stable sort); rank is the
    1-based position in that order.
    """
    if limit <= 0:
        raise ValidationError(f"limit must be positive, got {limit}")
    ranked = sorted(
        (u for u in users.all() if not u.is_admin),
        key=lambda u: u.points,
        reverse=True,
    )[:limit]

    return [
        LeaderboardEntry(
            user_id=u.id,
            name=u.name,
            points=u.points,
            level_title=u.level_title,
            rank=index + 1,
        )
        for index, u in enumerate(ranked)
    ]
