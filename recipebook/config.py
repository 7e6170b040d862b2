"""
Configuration management for recipebook.

This module centralizes environment variable loading from a .env file at the
project root. It is imported by recipebook.factory so .env is loaded before any
configuration value is read.

When .env does not exist, load_dotenv() is a no-op and the process environment
is used as-is. Existing environment variables always take precedence.

Environment Variables:
- RECIPEBOOK_BACKEND: Optional, "sql" (default) or "document"
- DATABASE_URL: Optional, SQLAlchemy URL for the sql backend and local accounts
  (defaults to "sqlite:///recipebook.db")
- RECIPEBOOK_SEED_ON_START: Optional, "true"/"false" (default "true")
- RECIPEBOOK_LIVE_LINGER_SECONDS: Optional, float seconds shared views keep their
  store listener after the last subscriber leaves (default 5)
- RECIPEBOOK_ACTION_WORKERS: Optional, worker threads for dispatched actions (default 4)
"""

import os
from pathlib import Path

from dotenv import load_dotenv

VALID_BACKENDS = {"sql", "document"}
DEFAULT_DATABASE_URL = "sqlite:///recipebook.db"
DEFAULT_LINGER_SECONDS = 5.0
DEFAULT_ACTION_WORKERS = 4

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_env_file() -> None:
    """
    Load environment variables from .env at the project root.

    recipebook/config.py -> recipebook/ -> project root. Safe to call more
    than once; override=False keeps variables that are already set.
    """
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env", override=False)


load_env_file()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false), got {raw!r}")


class StoreConfig:
    """Configuration for the recipe store backend."""

    @staticmethod
    def get_backend() -> str:
        """
        Get the store backend name.

        Returns:
            "sql" or "document" (default: "sql")
        """
        return (os.getenv("RECIPEBOOK_BACKEND") or "sql").strip().lower()

    @staticmethod
    def get_database_url() -> str:
        """
        Get the SQLAlchemy database URL.

        Returns:
            URL string (default: "sqlite:///recipebook.db")
        """
        return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

    @staticmethod
    def get_seed_on_start() -> bool:
        """Whether the example dataset is inserted into an empty store at startup (default: True)."""
        return _env_bool("RECIPEBOOK_SEED_ON_START", True)


class LiveConfig:
    """Configuration for live views and dispatched actions."""

    @staticmethod
    def get_linger_seconds() -> float:
        """
        Get the shared-view linger window.

        Returns:
            Seconds as float (default: 5.0)

        Raises:
            RuntimeError: If the value is not a non-negative number
        """
        raw = os.getenv("RECIPEBOOK_LIVE_LINGER_SECONDS")
        if raw is None or not raw.strip():
            return DEFAULT_LINGER_SECONDS
        try:
            value = float(raw)
        except ValueError:
            raise RuntimeError(f"RECIPEBOOK_LIVE_LINGER_SECONDS must be a number, got {raw!r}")
        if value < 0:
            raise RuntimeError("RECIPEBOOK_LIVE_LINGER_SECONDS cannot be negative")
        return value

    @staticmethod
    def get_action_workers() -> int:
        """Worker threads for RecipeStateContainer.dispatch (default: 4)."""
        raw = os.getenv("RECIPEBOOK_ACTION_WORKERS")
        if raw is None or not raw.strip():
            return DEFAULT_ACTION_WORKERS
        try:
            value = int(raw)
        except ValueError:
            raise RuntimeError(f"RECIPEBOOK_ACTION_WORKERS must be an integer, got {raw!r}")
        if value < 1:
            raise RuntimeError("RECIPEBOOK_ACTION_WORKERS must be at least 1")
        return value


def get_config_summary() -> dict:
    """
    Get the effective configuration (database password hidden).

    Returns:
        Dictionary with keys: backend, database_url, seed_on_start, linger_seconds, action_workers
    """
    url = StoreConfig.get_database_url()
    if "@" in url and "://" in url:
        scheme, rest = url.split("://", 1)
        credentials, host = rest.rsplit("@", 1)
        user = credentials.split(":", 1)[0]
        url = f"{scheme}://{user}:***@{host}"
    return {
        "backend": StoreConfig.get_backend(),
        "database_url": url,
        "seed_on_start": StoreConfig.get_seed_on_start(),
        "linger_seconds": LiveConfig.get_linger_seconds(),
        "action_workers": LiveConfig.get_action_workers(),
    }


def validate_config() -> None:
    """
    Validate every configuration value.

    Raises:
        RuntimeError: If any value is invalid, listing all problems
    """
    problems = []

    backend = StoreConfig.get_backend()
    if backend not in VALID_BACKENDS:
        problems.append(f"RECIPEBOOK_BACKEND must be one of {sorted(VALID_BACKENDS)}, got {backend!r}")

    for getter in (StoreConfig.get_seed_on_start, LiveConfig.get_linger_seconds, LiveConfig.get_action_workers):
        try:
            getter()
        except RuntimeError as exc:
            problems.append(str(exc))

    if problems:
        raise RuntimeError(
            "Invalid recipebook configuration:\n" +
            "\n".join(f"  - {p}" for p in problems)
        )
