import pytest

from cinerank.errors import EmailTaken, NotFound, ValidationError
from cinerank.models import Review, User


def _movie(name="Premam", genre="Romance", score=80, **extra):
    return {"name": name, "genre": genre, "popularity_score": score, **extra}


def test_insert_assigns_sequential_ids(stores):
    first = stores.catalog.insert(_movie("A"))
    second = stores.catalog.insert(_movie("B"))

    assert (first.id, second.id) == (1, 2)


def test_insert_uses_max_id_plus_one_after_delete(stores):
    for name in ("A", "B", "C"):
        stores.catalog.insert(_movie(name))
    stores.catalog.delete(2)

    assert stores.catalog.insert(_movie("D")).id == 4

    stores.catalog.delete(4)
    stores.catalog.delete(3)
    assert stores.catalog.insert(_movie("E")).id == 2


def test_insert_round_trip_matches_input(stores):
    data = _movie(details="Love in three acts", poster_url="https://img.test/p.jpg")
    created = stores.catalog.insert(data)

    fetched = stores.catalog.get(created.id)

    assert fetched == created
    for key, value in data.items():
        assert getattr(fetched, key) == value
    assert fetched.created_at


def test_insert_requires_name(stores):
    with pytest.raises(ValidationError):
        stores.catalog.insert({"name": "", "popularity_score": 10})
    with pytest.raises(ValidationError):
        stores.catalog.insert({"popularity_score": 10})
    assert stores.catalog.count() == 0


@pytest.mark.parametrize("score", [-1, 101, "80", 7.5])
def test_insert_rejects_bad_popularity(stores, score):
    with pytest.raises(ValidationError):
        stores.catalog.insert(_movie(score=score))


def test_insert_rejects_unknown_fields(stores):
    with pytest.raises(ValidationError):
        stores.catalog.insert(_movie(director="Someone"))


def test_insert_keeps_supplied_created_at(stores):
    movie = stores.catalog.insert(_movie(created_at="2020-01-01T00:00:00"))
    assert movie.created_at == "2020-01-01T00:00:00"

    with pytest.raises(ValidationError):
        stores.catalog.insert(_movie(created_at="yesterday"))


def test_update_with_empty_partial_is_identity(stores):
    movie = stores.catalog.insert(_movie())

    assert stores.catalog.update(movie.id, {}) == movie


def test_update_merges_shallowly_and_ignores_fixed_fields(stores):
    movie = stores.catalog.insert(_movie())

    updated = stores.catalog.update(
        movie.id, {"popularity_score": 95, "id": 99, "created_at": "1999-01-01T00:00:00"}
    )

    assert updated.id == movie.id
    assert updated.created_at == movie.created_at
    assert updated.popularity_score == 95
    assert updated.name == movie.name
    assert updated.genre == movie.genre


def test_update_validates_fields(stores):
    movie = stores.catalog.insert(_movie())

    with pytest.raises(ValidationError):
        stores.catalog.update(movie.id, {"name": "   "})
    with pytest.raises(ValidationError):
        stores.catalog.update(movie.id, {"popularity_score": 500})
    assert stores.catalog.get(movie.id) == movie


def test_update_missing_movie_raises_not_found(stores):
    with pytest.raises(NotFound):
        stores.catalog.update(42, {"name": "Ghost"})


def test_delete_missing_movie_leaves_catalog_unchanged(stores):
    stores.catalog.insert(_movie("A"))
    stores.catalog.insert(_movie("B"))
    before = stores.catalog.all()

    with pytest.raises(NotFound):
        stores.catalog.delete(999)

    assert stores.catalog.all() == before


def test_delete_does_not_cascade_to_reviews(stores):
    movie = stores.catalog.insert(_movie())
    stores.reviews.append(Review(
        id="r1", movie_id=movie.id, user_id="u1", user_name="Ann",
        rating=5, text="Loved it", created_at="2024-01-01T00:00:00",
    ))

    stores.catalog.delete(movie.id)

    assert [r.id for r in stores.reviews.for_movie(movie.id)] == ["r1"]
    with pytest.raises(NotFound):
        stores.catalog.get(movie.id)


def test_user_store_rejects_duplicate_email(stores, make_user):
    make_user(email="dup@example.com")

    with pytest.raises(EmailTaken):
        stores.users.insert(User(id="other", email="dup@example.com", name="Other"))


def test_user_store_lookups(stores, make_user):
    user = make_user(name="Ann", points=120)

    assert stores.users.get(user.id) == user
    assert stores.users.find_by_email(user.email) == user
    assert stores.users.find_by_email("nobody@example.com") is None
    with pytest.raises(NotFound):
        stores.users.get("missing")


def test_user_store_keeps_registration_order(stores, make_user):
    names = ["Cara", "Abe", "Bea"]
    for name in names:
        make_user(name=name)

    assert [u.name for u in stores.users.all()] == names


def test_reviews_for_movie_newest_first(stores):
    stamps = ["2024-01-01T00:00:00", "2024-03-01T00:00:00", "2024-02-01T00:00:00"]
    for i, stamp in enumerate(stamps):
        stores.reviews.append(Review(
            id=f"r{i}", movie_id=1, user_id="u1", user_name="Ann",
            rating=4, text="ok", created_at=stamp,
        ))
    stores.reviews.append(Review(
        id="other", movie_id=2, user_id="u1", user_name="Ann",
        rating=4, text="ok", created_at="2025-01-01T00:00:00",
    ))

    assert [r.id for r in stores.reviews.for_movie(1)] == ["r1", "r2", "r0"]


def test_reviews_with_equal_timestamps_list_later_append_first(stores):
    for review_id in ("first", "second"):
        stores.reviews.append(Review(
            id=review_id, movie_id=1, user_id="u1", user_name="Ann",
            rating=3, text="same time", created_at="2024-01-01T00:00:00",
        ))

    assert [r.id for r in stores.reviews.for_movie(1)] == ["second", "first"]


@pytest.mark.parametrize("field, value", [("genre", 5), ("details", ["long"]), ("poster_url", 1.5)])
def test_insert_rejects_non_string_text_fields(stores, field, value):
    with pytest.raises(ValidationError):
        stores.catalog.insert(_movie(**{field: value}))
    assert stores.catalog.count() == 0


def test_update_rejects_non_string_genre_and_allows_clearing(stores):
    movie = stores.catalog.insert(_movie(details="Old"))

    with pytest.raises(ValidationError):
        stores.catalog.update(movie.id, {"genre": 7})

    cleared = stores.catalog.update(movie.id, {"details": None})
    assert cleared.details is None
    assert stores.catalog.get(movie.id).genre == "Romance"


@pytest.mark.parametrize("stamp", ["", "yesterday", None])
def test_review_append_rejects_bad_timestamp(stores, stamp):
    with pytest.raises(ValidationError):
        stores.reviews.append(Review(
            id="bad", movie_id=1, user_id="u1", user_name="Ann",
            rating=4, text="ok", created_at=stamp,
        ))

    assert stores.reviews.for_movie(1) == []
