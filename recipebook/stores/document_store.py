"""
Document recipe store with snapshot listeners.

This backend models a remote document database: recipes live in a collection
of schemaless documents keyed by generated string ids, reads are equality
queries over document fields, and live queries behave like snapshot
listeners (full result set re-delivered after every change).

The collection is held in process. `set_available(False)` makes every call
fail with StoreError, which is how an unreachable remote backend surfaces to
the rest of the package.
"""

import copy
import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from recipebook.errors import NotFoundError, StoreError, ValidationError
from recipebook.models import Recipe, validate_for_insert
from recipebook.views import search_recipes

from .base import BaseRecipeStore

logger = logging.getLogger(__name__)

# Length of generated document ids
DOCUMENT_ID_LENGTH = 20


def new_document_id() -> str:
    """Generate an opaque document key (never reused)."""
    return uuid.uuid4().hex[:DOCUMENT_ID_LENGTH]


def _to_document(recipe: Recipe) -> Dict[str, Any]:
    return recipe.model_dump(exclude={"id"})


def _from_document(doc_id: str, data: Dict[str, Any]) -> Optional[Recipe]:
    """Map a stored document to a Recipe; malformed documents are skipped."""
    try:
        return Recipe(id=doc_id, **data)
    except (PydanticValidationError, TypeError) as exc:
        logger.error("Skipping malformed recipe document %s: %s", doc_id, exc)
        return None


class DocumentRecipeStore(BaseRecipeStore):
    """
    Recipe store over a document collection.

    Args:
        collection: Name of the recipe collection (used in log messages)
    """
    backend = "document"

    def __init__(self, collection: str = "recipes"):
        super().__init__()
        self.collection = collection
        self._lock = threading.RLock()
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._available = True
        logger.info("Document store ready (collection=%s)", collection)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def set_available(self, available: bool) -> None:
        """Mark the backend as reachable or unreachable."""
        self._available = bool(available)
        logger.info("Document store %s marked %s", self.collection, "available" if available else "unavailable")

    def _ensure_available(self, action: str) -> None:
        if not self._available:
            raise StoreError(f"Failed to {action}: document backend unavailable")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _snapshot(self, **equals) -> List[Recipe]:
        with self._lock:
            items = [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in self._documents.items()
                if all(data.get(field) == value for field, value in equals.items())
            ]
        recipes = (_from_document(doc_id, data) for doc_id, data in items)
        return [r for r in recipes if r is not None]

    def list_all(self) -> List[Recipe]:
        self._ensure_available("read recipes")
        return self._snapshot()

    def list_by_category(self, category: str) -> List[Recipe]:
        self._ensure_available("read recipes")
        return self._snapshot(category=category)

    def search(self, query: str) -> List[Recipe]:
        # Document queries have no substring operator: fetch and filter client-side
        self._ensure_available("search recipes")
        return search_recipes(self._snapshot(), query)

    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        self._ensure_available("read recipe")
        with self._lock:
            data = self._documents.get(recipe_id)
            data = copy.deepcopy(data) if data is not None else None
        if data is None:
            return None
        return _from_document(recipe_id, data)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, recipe: Recipe) -> str:
        self._ensure_available("insert recipe")
        validate_for_insert(recipe)
        with self._lock:
            doc_id = new_document_id()
            while doc_id in self._documents:
                doc_id = new_document_id()
            self._documents[doc_id] = _to_document(recipe)
        logger.info("Inserted recipe document %s (%s)", doc_id, recipe.name)
        self._notify_listeners()
        return doc_id

    def update(self, recipe: Recipe) -> None:
        self._ensure_available("update recipe")
        if recipe.id is None:
            raise ValidationError("Cannot update a recipe without an id")
        validate_for_insert(recipe)
        with self._lock:
            if recipe.id not in self._documents:
                raise NotFoundError("Recipe", recipe.id)
            self._documents[recipe.id] = _to_document(recipe)
        logger.info("Updated recipe document %s", recipe.id)
        self._notify_listeners()

    def set_favorite(self, recipe_id: str, is_favorite: bool) -> None:
        self._ensure_available("update favorite")
        with self._lock:
            document = self._documents.get(recipe_id)
            if document is None:
                raise NotFoundError("Recipe", recipe_id)
            document["is_favorite"] = bool(is_favorite)
        logger.debug("Recipe document %s favorite=%s", recipe_id, is_favorite)
        self._notify_listeners()

    def delete(self, recipe_id: str) -> None:
        self._ensure_available("delete recipe")
        with self._lock:
            removed = self._documents.pop(recipe_id, None)
        if removed is None:
            return
        logger.info("Deleted recipe document %s", recipe_id)
        self._notify_listeners()

    def put_raw_document(self, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Write a raw document without validation.

        Mirrors writes made by other clients of a shared remote collection,
        which may not follow this package's schema.
        """
        with self._lock:
            self._documents[doc_id] = copy.deepcopy(data)
        self._notify_listeners()
