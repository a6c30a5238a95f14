"""
Registration and login.

Passwords never live on the User record: a CredentialVerifier owns them.
The bundled verifier keeps werkzeug password hashes in the credentials table.
It is a development-grade stand-in, not a hardened auth system.
"""
from __future__ import annotations

import logging
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

from .config import SIGNUP_BONUS_POINTS
from .database import Database, now_iso
from .errors import InvalidCredentials, ValidationError
from .models import User
from .reputation import level_for
from .stores import UserStore

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Interface: store and check a user's password."""

    def set_password(self, user_id: str, password: str) -> None:
        raise NotImplementedError

    def verify(self, user_id: str, password: str) -> bool:
        raise NotImplementedError


class HashedCredentialStore(CredentialVerifier):
    def __init__(self, db: Database):
        self.db = db

    def set_password(self, user_id: str, password: str) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO credentials (user_id, password_hash) VALUES (?, ?)",
                (user_id, generate_password_hash(password)),
            )

    def verify(self, user_id: str, password: str) -> bool:
        with self.db.transaction(read_only=True) as conn:
            row = conn.execute(
                "SELECT password_hash FROM credentials WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return False
        return check_password_hash(row["password_hash"], password)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def register(
    users: UserStore,
    credentials: CredentialVerifier,
    email: str,
    password: str,
    name: str | None = None,
    role: str = "user",
) -> User:
    """
    Create an account with the signup bonus already applied.

    Raises:
        ValidationError: missing email or password
        EmailTaken: the email is already registered
    """
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if not password:
        raise ValidationError("Password is required")
    if role not in ("admin", "user"):
        raise ValidationError(f"Unknown role '{role}'")

    points = SIGNUP_BONUS_POINTS if role == "user" else 0
    with users.db.transaction():
        user = users.insert(User(
            id=f"u{uuid.uuid4().hex[:12]}",
            email=email,
            name=(name or "").strip() or email.split("@")[0],
            role=role,
            points=points,
            level_title=level_for(points),
            reviews_count=0,
            joined_at=now_iso(),
        ))
        credentials.set_password(user.id, password)

    logger.info(f"Registered {user.email} as {user.id}")
    return user


def login(users: UserStore, credentials: CredentialVerifier, email: str, password: str) -> User:
    """Return the user whose email and password match, else InvalidCredentials."""
    user = users.find_by_email(normalize_email(email))
    if user is None or not credentials.verify(user.id, password or ""):
        logger.debug(f"Failed login for {email!r}")
        raise InvalidCredentials("Invalid email or password.")
    return user
