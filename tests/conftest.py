import importlib
import sys
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """
    Reload config with a temporary database path to keep tests isolated.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("CINERANK_DB", str(db_path))
    import cinerank.config as config

    importlib.reload(config)
    yield config

    monkeypatch.delenv("CINERANK_DB")
    importlib.reload(config)


@pytest.fixture
def db():
    """A fresh in-memory database, closed after the test."""
    from cinerank.database import Database

    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def stores(db):
    """Catalog, user and review stores sharing one database."""
    from types import SimpleNamespace

    from cinerank.auth import HashedCredentialStore
    from cinerank.stores import CatalogStore, ReviewStore, UserStore

    return SimpleNamespace(
        db=db,
        catalog=CatalogStore(db),
        users=UserStore(db),
        reviews=ReviewStore(db),
        credentials=HashedCredentialStore(db),
    )


@pytest.fixture
def make_user(stores):
    """Insert a user directly with a given point total."""
    from cinerank.models import User
    from cinerank.reputation import level_for

    counter = {"n": 0}

    def _make(name="Reviewer", points=0, role="user", email=None):
        counter["n"] += 1
        user_id = f"u{counter['n']}"
        return stores.users.insert(User(
            id=user_id,
            email=email or f"{user_id}@example.com",
            name=name,
            role=role,
            points=points,
            level_title=level_for(points),
        ))

    return _make


@pytest.fixture
def service(db):
    from cinerank.auth import HashedCredentialStore
    from cinerank.service import CineRankService

    svc = CineRankService(db, credentials=HashedCredentialStore(db), delay_ms=0)
    return svc
