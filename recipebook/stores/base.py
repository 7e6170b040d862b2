"""
Base recipe store abstract class.

This module defines the contract every recipe persistence backend must
implement. The state container is written against this interface only, so the
relational and document backends can be swapped at composition time.

All stores must:
- Provide live queries (live_all, live_by_category) that emit the full current
  list on subscribe and after every change, and release their listener on
  unsubscribe
- Provide point-in-time reads (list_all, get_by_id, search)
- Provide writes (insert, update, set_favorite, delete) that notify live queries
- Raise errors from recipebook.errors (ValidationError, NotFoundError, StoreError)

The listener bookkeeping shared by both backends lives here: a backend only
has to call _notify_listeners() after each successful write.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from recipebook.errors import RecipeBookError
from recipebook.live import LiveQuery
from recipebook.models import Recipe
from recipebook.seed import seed_recipes

logger = logging.getLogger(__name__)


class BaseRecipeStore(ABC):
    """
    Abstract base class for all recipe stores.

    Attributes:
        backend: String identifier for the backend (e.g., "sql", "document")
    """
    backend: str

    def __init__(self):
        self._listeners_lock = threading.Lock()
        # Held across snapshot and delivery so listeners see snapshots in write order
        self._notify_lock = threading.RLock()
        self._listeners: Dict[int, tuple] = {}
        self._next_listener_key = 0

    # ------------------------------------------------------------------
    # Live queries
    # ------------------------------------------------------------------

    def live_all(self) -> LiveQuery[List[Recipe]]:
        """
        Live list of every recipe in store order.

        Returns:
            LiveQuery emitting the full list on subscribe and after every change
        """
        return self._live(self.list_all, name=f"{self.backend}.live_all")

    def live_by_category(self, category: str) -> LiveQuery[List[Recipe]]:
        """
        Live list of recipes whose category equals `category` exactly.

        Args:
            category: Category to filter on (backend equality)

        Returns:
            LiveQuery with the same contract as live_all()
        """
        return self._live(
            lambda: self.list_by_category(category),
            name=f"{self.backend}.live_by_category({category!r})",
        )

    def _live(self, query: Callable[[], List[Recipe]], name: str) -> LiveQuery[List[Recipe]]:
        def producer(emit, fail):
            with self._notify_lock:
                with self._listeners_lock:
                    key = self._next_listener_key
                    self._next_listener_key += 1
                    self._listeners[key] = (query, emit, fail)
                logger.debug("Listener %d registered for %s", key, name)
                self._run_listener(query, emit, fail)

            def teardown():
                with self._listeners_lock:
                    self._listeners.pop(key, None)
                logger.debug("Listener %d removed for %s", key, name)

            return teardown

        return LiveQuery(producer, name=name)

    def _run_listener(self, query, emit, fail) -> None:
        try:
            result = query()
        except RecipeBookError as exc:
            logger.error("Live query failed on %s backend: %s", self.backend, exc)
            self._deliver(fail, exc)
            return
        self._deliver(emit, result)

    def _deliver(self, callback, value) -> None:
        # A failing subscriber must not fail the write or starve other listeners
        try:
            callback(value)
        except Exception:
            logger.exception("Live query subscriber raised on %s backend", self.backend)

    def _notify_listeners(self) -> None:
        """
        Re-run every registered live query and push the fresh results.

        Concurrent writers take turns: each one snapshots and delivers under
        the notify lock, so the last list a listener receives is never older
        than the last committed write.
        """
        with self._notify_lock:
            with self._listeners_lock:
                listeners = list(self._listeners.values())
            logger.debug("Notifying %d listener(s) on %s backend", len(listeners), self.backend)
            for query, emit, fail in listeners:
                self._run_listener(query, emit, fail)

    @property
    def listener_count(self) -> int:
        """Number of live listeners currently registered (useful for monitoring)."""
        return len(self._listeners)

    # ------------------------------------------------------------------
    # Point-in-time reads
    # ------------------------------------------------------------------

    @abstractmethod
    def list_all(self) -> List[Recipe]:
        """
        Return every recipe in store order.

        Raises:
            StoreError: If the backend is unavailable
        """
        pass

    @abstractmethod
    def list_by_category(self, category: str) -> List[Recipe]:
        """Return recipes whose category equals `category` exactly."""
        pass

    @abstractmethod
    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        """
        Look up one recipe.

        Returns:
            The recipe, or None if no recipe has this id
        """
        pass

    @abstractmethod
    def search(self, query: str) -> List[Recipe]:
        """
        Case-insensitive substring search over name, description and category.

        Raises:
            StoreError: If the backend is unavailable
        """
        pass

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def insert(self, recipe: Recipe) -> str:
        """
        Persist a new recipe. Any id on the input is ignored.

        Returns:
            The newly assigned id

        Raises:
            ValidationError: If name, description or category is blank
        """
        pass

    @abstractmethod
    def update(self, recipe: Recipe) -> None:
        """
        Replace every field of an existing recipe except its id.

        Raises:
            ValidationError: If recipe.id is None or required fields are blank
            NotFoundError: If no recipe has this id
        """
        pass

    @abstractmethod
    def set_favorite(self, recipe_id: str, is_favorite: bool) -> None:
        """
        Narrow update of is_favorite only.

        Raises:
            NotFoundError: If no recipe has this id
        """
        pass

    @abstractmethod
    def delete(self, recipe_id: str) -> None:
        """Delete a recipe. Deleting an unknown id is a no-op."""
        pass

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def seed_if_empty(self) -> int:
        """
        Insert the example dataset when the store holds no recipes.

        The emptiness check and the inserts are separate operations, so two
        callers racing on first launch may both seed.

        Returns:
            Number of recipes inserted (0 when the store already had data)
        """
        existing = self.list_all()
        if existing:
            logger.info("Store already holds %d recipes, skipping seed", len(existing))
            return 0

        recipes = seed_recipes()
        for recipe in recipes:
            self.insert(recipe)
        logger.info("Seeded %d example recipes into %s store", len(recipes), self.backend)
        return len(recipes)

    def close(self) -> None:
        """Drop every live listener. Backends extend this to release their own resources."""
        with self._listeners_lock:
            count = len(self._listeners)
            self._listeners.clear()
        if count:
            logger.info("Closed %s store with %d active listener(s)", self.backend, count)
