"""
Composition root.

Builds the store, auth provider and state container from configuration and
wires them together explicitly. Nothing in the package keeps a module-level
store or user; every collaborator is created here and passed down.

Typical use:
    container = build_container()
    sub = container.filtered_recipes.subscribe(render)
    ...
    sub.unsubscribe()
    container.close()
"""

import logging
from typing import Optional

from . import config
from .auth import AuthProvider, LocalAuthProvider
from .state import RecipeStateContainer
from .stores.base import BaseRecipeStore
from .stores.document_store import DocumentRecipeStore
from .stores.sql_store import SqlRecipeStore

logger = logging.getLogger(__name__)


def build_store(backend: Optional[str] = None, database_url: Optional[str] = None) -> BaseRecipeStore:
    """
    Create a recipe store.

    Args:
        backend: "sql" or "document" (default: RECIPEBOOK_BACKEND)
        database_url: SQLAlchemy URL for the sql backend (default: DATABASE_URL)

    Raises:
        RuntimeError: If the backend name is unknown
    """
    backend = (backend or config.StoreConfig.get_backend()).lower()
    if backend == "sql":
        return SqlRecipeStore(database_url or config.StoreConfig.get_database_url())
    if backend == "document":
        return DocumentRecipeStore()
    raise RuntimeError(f"Unknown recipe store backend: {backend!r} (expected one of {sorted(config.VALID_BACKENDS)})")


def build_auth(database_url: Optional[str] = None) -> AuthProvider:
    return LocalAuthProvider(database_url or config.StoreConfig.get_database_url())


def build_container(
    store: Optional[BaseRecipeStore] = None,
    auth: Optional[AuthProvider] = None,
    seed: Optional[bool] = None,
) -> RecipeStateContainer:
    """
    Create a state container, building any collaborator not supplied.

    Args:
        store: Recipe store (default: build_store())
        auth: Auth provider (default: build_auth())
        seed: Seed an empty store on start (default: RECIPEBOOK_SEED_ON_START)

    Returns:
        Ready-to-use RecipeStateContainer
    """
    config.validate_config()
    logger.info("Building recipe container: %s", config.get_config_summary())

    store = store or build_store()
    auth = auth or build_auth()
    container = RecipeStateContainer(
        store,
        auth=auth,
        linger_seconds=config.LiveConfig.get_linger_seconds(),
        max_workers=config.LiveConfig.get_action_workers(),
    )

    if seed is None:
        seed = config.StoreConfig.get_seed_on_start()
    if seed:
        container.seed()
    return container
