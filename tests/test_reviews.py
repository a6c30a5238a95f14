import pytest

from cinerank import reviews as reviews_module
from cinerank.errors import NotFound, ValidationError
from cinerank.reviews import list_reviews, submit_review


@pytest.fixture
def movie(stores):
    return stores.catalog.insert({"name": "Drishyam", "genre": "Thriller", "popularity_score": 90})


def _submit(stores, movie_id, user_id, text="Loved it", rating=5):
    return submit_review(stores.catalog, stores.users, stores.reviews, movie_id, user_id, text, rating)


def test_submit_awards_points_and_flips_level(stores, make_user, movie):
    user = make_user(name="Buff", points=90)

    result = _submit(stores, movie.id, user.id)

    assert result.points_earned == 10
    updated = stores.users.get(user.id)
    assert updated.points == 100
    assert updated.level_title == "Reviewer"
    assert updated.reviews_count == 1


def test_submit_records_review_snapshot(stores, make_user, movie):
    user = make_user(name="Cinema Bhranthan")

    result = _submit(stores, movie.id, user.id, text="Great cinematography.", rating=4)
    review = result.review

    assert review.id.startswith("r")
    assert review.movie_id == movie.id
    assert review.user_id == user.id
    assert review.user_name == "Cinema Bhranthan"
    assert review.rating == 4
    assert review.likes == 0
    assert review.created_at
    assert list_reviews(stores.reviews, movie.id) == [review]


def test_user_name_is_not_a_live_join(stores, make_user, movie):
    user = make_user(name="Old Name")
    _submit(stores, movie.id, user.id)

    with stores.db.transaction() as conn:
        conn.execute("UPDATE users SET name = 'New Name' WHERE id = ?", (user.id,))

    assert list_reviews(stores.reviews, movie.id)[0].user_name == "Old Name"


def test_unknown_user_raises_and_changes_nothing(stores, movie):
    with pytest.raises(NotFound):
        _submit(stores, movie.id, "ghost")

    assert stores.reviews.count() == 0


def test_unknown_movie_raises_and_changes_nothing(stores, make_user):
    user = make_user(points=0)

    with pytest.raises(NotFound):
        _submit(stores, 404, user.id)

    assert stores.reviews.count() == 0
    assert stores.users.get(user.id).points == 0


@pytest.mark.parametrize("rating", [0, 6, "5", 4.5, True])
def test_rating_out_of_range_rejected(stores, make_user, movie, rating):
    user = make_user()

    with pytest.raises(ValidationError):
        _submit(stores, movie.id, user.id, rating=rating)

    assert stores.reviews.count() == 0


def test_failure_mid_flow_rolls_back_everything(stores, make_user, movie, monkeypatch):
    user = make_user(points=90)

    def broken_increment(user_id):
        raise RuntimeError("counter write failed")

    monkeypatch.setattr(stores.users, "increment_reviews_count", broken_increment)

    with pytest.raises(RuntimeError):
        _submit(stores, movie.id, user.id)

    after = stores.users.get(user.id)
    assert after.points == 90
    assert after.level_title == "Newbie"
    assert after.reviews_count == 0
    assert stores.reviews.count() == 0


def test_reviews_listed_newest_first(stores, make_user, movie):
    user = make_user()
    first = _submit(stores, movie.id, user.id, text="first").review
    second = _submit(stores, movie.id, user.id, text="second").review

    assert [r.id for r in list_reviews(stores.reviews, movie.id)] == [second.id, first.id]
    assert stores.users.get(user.id).reviews_count == 2


def test_result_to_dict_shape(stores, make_user, movie):
    user = make_user()

    payload = _submit(stores, movie.id, user.id).to_dict()

    assert payload["pointsEarned"] == reviews_module.REVIEW_POINTS
    assert payload["review"]["movie_id"] == movie.id
