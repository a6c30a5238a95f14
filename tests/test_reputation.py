import pytest

from cinerank.errors import NotFound, ValidationError
from cinerank.reputation import award_points, leaderboard, level_for, level_progress

LEVEL_ORDER = ["Newbie", "Reviewer", "Critic", "Expert Critic", "Master Reviewer"]


@pytest.mark.parametrize("points, title", [
    (0, "Newbie"),
    (99, "Newbie"),
    (100, "Reviewer"),
    (499, "Reviewer"),
    (500, "Critic"),
    (1499, "Critic"),
    (1500, "Expert Critic"),
    (4999, "Expert Critic"),
    (5000, "Master Reviewer"),
    (10**9, "Master Reviewer"),
])
def test_level_band_boundaries(points, title):
    assert level_for(points) == title


def test_levels_are_monotonic_without_gaps():
    previous = 0
    seen = set()
    for points in range(0, 6001):
        rank = LEVEL_ORDER.index(level_for(points))
        assert rank >= previous
        previous = rank
        seen.add(level_for(points))

    assert seen == set(LEVEL_ORDER)


def test_award_crossing_threshold_updates_title(stores, make_user):
    user = make_user(points=90)
    assert user.level_title == "Newbie"

    updated = award_points(stores.users, user.id, 10)

    assert updated.points == 100
    assert updated.level_title == "Reviewer"
    assert stores.users.get(user.id).level_title == "Reviewer"


def test_award_logs_level_up(stores, make_user, caplog):
    caplog.set_level("INFO", logger="cinerank.reputation")
    user = make_user(name="Ann", points=495)

    award_points(stores.users, user.id, 10)

    assert "reached Critic" in caplog.text


def test_award_accepts_negative_delta(stores, make_user):
    user = make_user(points=110)

    updated = award_points(stores.users, user.id, -20)

    assert updated.points == 90
    assert updated.level_title == "Newbie"


def test_award_unknown_user_raises(stores):
    with pytest.raises(NotFound):
        award_points(stores.users, "ghost", 10)


def test_leaderboard_excludes_admins_and_ranks_by_points(stores, make_user):
    make_user(name="Admin", points=9999, role="admin")
    make_user(name="Low", points=40)
    make_user(name="High", points=1250)
    make_user(name="Mid", points=300)

    board = leaderboard(stores.users)

    assert [e.name for e in board] == ["High", "Mid", "Low"]
    assert [e.rank for e in board] == [1, 2, 3]
    assert board[0].level_title == "Critic"


def test_leaderboard_ties_keep_registration_order(stores, make_user):
    make_user(name="First", points=100)
    make_user(name="Second", points=100)
    make_user(name="Top", points=200)

    board = leaderboard(stores.users)

    assert [(e.name, e.rank) for e in board] == [("Top", 1), ("First", 2), ("Second", 3)]


def test_leaderboard_truncates(stores, make_user):
    for i in range(12):
        make_user(name=f"User {i}", points=i * 10)

    assert len(leaderboard(stores.users)) == 10
    board = leaderboard(stores.users, limit=3)
    assert [e.points for e in board] == [110, 100, 90]
    assert set(board[0].to_dict()) == {"user_id", "name", "points", "level_title", "rank"}


@pytest.mark.parametrize("limit", [0, -1])
def test_leaderboard_rejects_non_positive_limit(stores, make_user, limit):
    for i in range(3):
        make_user(name=f"User {i}", points=i)

    with pytest.raises(ValidationError):
        leaderboard(stores.users, limit=limit)


@pytest.mark.parametrize("points, next_points, percent", [
    (0, 100, 0.0),
    (40, 100, 40.0),
    (100, 500, 20.0),
    (1250, 1500, 83.3),
    (4000, 5000, 80.0),
    (6000, 10000, 60.0),
    (20000, 10000, 100.0),
])
def test_level_progress(points, next_points, percent):
    progress = level_progress(points)

    assert progress.next_level_points == next_points
    assert progress.percent == percent
    assert progress.level_title == level_for(points)
