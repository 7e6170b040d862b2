"""
Authentication providers.

This module defines the AuthProvider contract used by the optional account
flow of the state container, plus a local implementation that keeps users in
a relational `users` table.

Failures are raised as AuthError with a structured AuthErrorCode; callers
branch on the code, never on the message text.

LocalAuthProvider:
- Emails are normalised to lower case and checked against a simple pattern
- Passwords are stored as salted PBKDF2-SHA256 hashes and compared in constant time
- The signed-in user is held by the provider instance (one per app composition)
"""

import hashlib
import hmac
import json
import logging
import re
import secrets
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import AuthError, AuthErrorCode, NotFoundError, StoreError
from .models import User

logger = logging.getLogger(__name__)

Base = declarative_base()

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 200_000
HASH_ALGORITHM = "pbkdf2_sha256"


class UserRow(Base):
    """Users table - one row per registered account."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), unique=True, index=True, nullable=False)
    password_hash = Column(String(300), nullable=False)
    saved_recipe_ids = Column(Text, nullable=True)  # JSON-encoded list
    search_history = Column(Text, nullable=True)  # JSON-encoded list
    registered_at = Column(DateTime(timezone=True), nullable=False)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def hash_password(password: str, salt: Optional[bytes] = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    """
    Hash a password for storage.

    Returns:
        "pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>"
    """
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.split("$")
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations))
    return hmac.compare_digest(digest.hex(), digest_hex)


def _row_to_user(row: UserRow) -> User:
    registered_at = row.registered_at
    if registered_at.tzinfo is None:
        # SQLite drops tzinfo on round-trip; stored values are UTC
        registered_at = registered_at.replace(tzinfo=timezone.utc)
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        saved_recipe_ids=json.loads(row.saved_recipe_ids or "[]"),
        search_history=json.loads(row.search_history or "[]"),
        registered_at=registered_at,
    )


class AuthProvider(ABC):
    """Abstract account backend."""

    @abstractmethod
    def register(self, email: str, password: str, name: str) -> User:
        """
        Create an account and sign it in.

        Raises:
            AuthError: MALFORMED_EMAIL, WEAK_PASSWORD, EMAIL_IN_USE or UNKNOWN
        """
        pass

    @abstractmethod
    def login(self, email: str, password: str) -> User:
        """
        Sign in an existing account.

        Raises:
            AuthError: MALFORMED_EMAIL, NOT_REGISTERED, WRONG_PASSWORD or UNKNOWN
        """
        pass

    @abstractmethod
    def current_user(self) -> Optional[User]:
        pass

    @abstractmethod
    def logout(self) -> None:
        pass

    def is_authenticated(self) -> bool:
        return self.current_user() is not None

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def save_user(self, user: User) -> User:
        """
        Persist profile changes (name, saved recipes, search history).

        Raises:
            NotFoundError: If the user does not exist
        """
        pass


class LocalAuthProvider(AuthProvider):
    """
    Account backend on a relational database.

    Args:
        database_url: SQLAlchemy URL; may point at the same database as the recipe store
    """

    def __init__(self, database_url: str = "sqlite:///recipebook.db"):
        engine_kwargs = {"pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        try:
            self.engine = create_engine(database_url, **engine_kwargs)
            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            logger.error("Failed to initialize users table: %s", exc)
            raise StoreError(f"Failed to initialize users table: {exc}") from exc
        self._current: Optional[User] = None

    def register(self, email: str, password: str, name: str) -> User:
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            raise AuthError(AuthErrorCode.MALFORMED_EMAIL)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(
                AuthErrorCode.WEAK_PASSWORD,
                f"at least {MIN_PASSWORD_LENGTH} characters required",
            )

        db = self.SessionLocal()
        try:
            if db.query(UserRow).filter(UserRow.email == email).first() is not None:
                raise AuthError(AuthErrorCode.EMAIL_IN_USE)
            row = UserRow(
                id=uuid.uuid4().hex,
                name=(name or "").strip() or email.split("@")[0],
                email=email,
                password_hash=hash_password(password),
                saved_recipe_ids="[]",
                search_history="[]",
                registered_at=datetime.now(timezone.utc),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            user = _row_to_user(row)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Error registering user %s: %s", email, exc)
            raise AuthError(AuthErrorCode.UNKNOWN, str(exc)) from exc
        finally:
            db.close()

        self._current = user
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str) -> User:
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            raise AuthError(AuthErrorCode.MALFORMED_EMAIL)

        db = self.SessionLocal()
        try:
            row = db.query(UserRow).filter(UserRow.email == email).first()
            if row is None:
                raise AuthError(AuthErrorCode.NOT_REGISTERED)
            if not verify_password(password or "", row.password_hash):
                raise AuthError(AuthErrorCode.WRONG_PASSWORD)
            user = _row_to_user(row)
        except SQLAlchemyError as exc:
            logger.error("Error signing in %s: %s", email, exc)
            raise AuthError(AuthErrorCode.UNKNOWN, str(exc)) from exc
        finally:
            db.close()

        self._current = user
        logger.info("User %s signed in", user.id)
        return user

    def current_user(self) -> Optional[User]:
        return self._current

    def logout(self) -> None:
        if self._current is not None:
            logger.info("User %s signed out", self._current.id)
        self._current = None

    def get_user(self, user_id: str) -> Optional[User]:
        db = self.SessionLocal()
        try:
            row = db.get(UserRow, user_id)
            return _row_to_user(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read user: {exc}") from exc
        finally:
            db.close()

    def save_user(self, user: User) -> User:
        db = self.SessionLocal()
        try:
            row = db.get(UserRow, user.id)
            if row is None:
                raise NotFoundError("User", user.id)
            row.name = user.name
            row.saved_recipe_ids = json.dumps(list(user.saved_recipe_ids))
            row.search_history = json.dumps(list(user.search_history))
            db.commit()
            db.refresh(row)
            saved = _row_to_user(row)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Error saving user %s: %s", user.id, exc)
            raise StoreError(f"Failed to save user: {exc}") from exc
        finally:
            db.close()

        if self._current is not None and self._current.id == saved.id:
            self._current = saved
        return saved

    def close(self) -> None:
        self._current = None
        self.engine.dispose()
