"""
Reactive recipe state container.

RecipeStateContainer sits between a recipe store and the presentation layer.
It holds the user-settable inputs (search text, selected category), exposes
derived views that recompute whenever the live recipe list or an input
changes, and runs imperative actions (seed, add, update, delete, favorite
toggles, account actions) against the injected store and auth provider.

Derived views (shared, with linger; `.value` is readable at any time):
- recipes: the unfiltered live list
- filtered_recipes: recipes matching search text AND selected category
- unique_categories: distinct categories of the unfiltered list, first-seen order
- favorite_recipes: unfiltered recipes with is_favorite set
- saved_recipes: unfiltered recipes the signed-in user has saved to their profile

Action contract:
- is_loading is True while any action runs and reset in a finally block
- a failed action sets `error` to a readable message and returns False
- a successful action clears `error` and returns True
- no action raises; the presentation layer observes `error` instead
- list updates arrive only through the live subscription (no optimistic writes)
"""

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from .auth import AuthProvider
from .errors import RecipeBookError, ValidationError
from .live import DEFAULT_LINGER_SECONDS, LiveQuery, MutableState, combine
from .models import Ingredient, Recipe, User
from .stores.base import BaseRecipeStore
from .views import favorite_recipes, filter_recipes, saved_recipes, unique_categories

logger = logging.getLogger(__name__)

GUEST_NAME = "Guest"
IMAGE_URL_REQUIRED = "Image URL is required"


class RecipeStateContainer:
    """
    View-model style state holder for recipe screens.

    Args:
        store: Recipe store backend (relational or document)
        auth: Optional auth provider; account actions fail with an error message without one
        linger_seconds: How long shared views keep their store listener after the last subscriber leaves
        max_workers: Thread pool size for dispatch()
    """

    def __init__(
        self,
        store: BaseRecipeStore,
        auth: Optional[AuthProvider] = None,
        linger_seconds: float = DEFAULT_LINGER_SECONDS,
        max_workers: int = 4,
    ):
        self.store = store
        self.auth = auth

        # Inputs
        self.search_text: MutableState[str] = MutableState("", name="search_text")
        self.selected_category: MutableState[Optional[str]] = MutableState(None, name="selected_category")

        # Action outcome
        self.is_loading: MutableState[bool] = MutableState(False, name="is_loading")
        self.error: MutableState[Optional[str]] = MutableState(None, name="error")
        self._active_actions = 0
        # is_loading is set under this lock so it always matches the counter
        self._actions_lock = threading.RLock()

        # Account
        initial_user = auth.current_user() if auth is not None else None
        self.current_user: MutableState[Optional[User]] = MutableState(initial_user, name="current_user")
        self.is_authenticated: MutableState[bool] = MutableState(initial_user is not None, name="is_authenticated")
        self.is_guest: MutableState[bool] = MutableState(False, name="is_guest")

        # Derived views
        self.recipes = self._reporting_errors(store.live_all()).share(
            initial=[], linger_seconds=linger_seconds, name="recipes"
        )
        self.filtered_recipes = combine(
            self.recipes,
            self.search_text,
            self.selected_category,
            transform=filter_recipes,
            name="filtered_recipes",
        ).share(initial=[], linger_seconds=linger_seconds, name="filtered_recipes")
        self.unique_categories = self.recipes.map(unique_categories, name="unique_categories").share(
            initial=[], linger_seconds=linger_seconds, name="unique_categories"
        )
        self.favorite_recipes = self.recipes.map(favorite_recipes, name="favorite_recipes").share(
            initial=[], linger_seconds=linger_seconds, name="favorite_recipes"
        )
        self.saved_recipes = combine(
            self.recipes,
            self.current_user,
            transform=saved_recipes,
            name="saved_recipes",
        ).share(initial=[], linger_seconds=linger_seconds, name="saved_recipes")
        self._shared_views = [
            self.filtered_recipes,
            self.unique_categories,
            self.favorite_recipes,
            self.saved_recipes,
            self.recipes,
        ]

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="recipebook-action")

    def _reporting_errors(self, query: LiveQuery) -> LiveQuery:
        """Route live query failures into `error`; the last delivered list stays in place."""
        def producer(emit, fail):
            def on_error(exc: Exception):
                logger.warning("Live recipe query failed: %s", exc)
                self.error.set(f"Error loading recipes: {exc}")
            return query.subscribe(emit, on_error).unsubscribe

        return LiveQuery(producer, name=query.name)

    # ------------------------------------------------------------------
    # Action plumbing
    # ------------------------------------------------------------------

    def _run_action(self, description: str, action: Callable[[], Any]) -> bool:
        with self._actions_lock:
            self._active_actions += 1
            self.is_loading.set(True)
        try:
            action()
        except RecipeBookError as exc:
            logger.warning("Action failed (%s): %s", description, exc)
            self.error.set(f"Error {description}: {exc}")
            return False
        except Exception as exc:
            logger.exception("Unexpected error while %s", description)
            self.error.set(f"Error {description}: {exc}")
            return False
        finally:
            with self._actions_lock:
                self._active_actions -= 1
                if self._active_actions == 0:
                    self.is_loading.set(False)
        self.error.set(None)
        return True

    def _reject(self, message: str) -> bool:
        logger.info("Action rejected: %s", message)
        self.error.set(message)
        return False

    def dispatch(self, action: Callable[..., bool], *args, **kwargs) -> "Future[bool]":
        """
        Run an action on the container's worker pool.

        Actions are independent and nothing serialises them against each other.
        The store delivers the live lists their writes produce in write order.

        Example:
            >>> future = container.dispatch(container.delete_recipe, recipe)
        """
        return self._executor.submit(action, *args, **kwargs)

    def _current_recipes(self) -> List[Recipe]:
        return self.recipes.first(default=self.recipes.value)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def on_search_text_change(self, text: str) -> None:
        self.search_text.set(text or "")

    def on_category_selected(self, category: Optional[str]) -> None:
        self.selected_category.set(category)

    def search(self, query: str) -> None:
        """Same as on_search_text_change; kept for search-box submit handlers."""
        self.on_search_text_change(query)

    def clear_filters(self) -> None:
        self.search_text.set("")
        self.selected_category.set(None)

    def clear_error(self) -> None:
        self.error.set(None)

    # ------------------------------------------------------------------
    # Recipe actions
    # ------------------------------------------------------------------

    def seed(self) -> bool:
        """Insert the example dataset if the store is empty."""
        return self._run_action("loading initial data", self.store.seed_if_empty)

    def reload_data(self) -> bool:
        return self._run_action("reloading data", self.store.seed_if_empty)

    def toggle_favorite(self, recipe: Recipe) -> bool:
        """Flip is_favorite in the store; the live list delivers the new state."""
        def action():
            if recipe.id is None:
                raise ValidationError("Recipe has not been saved yet")
            self.store.set_favorite(recipe.id, not recipe.is_favorite)

        return self._run_action("updating favorite", action)

    def clear_all_favorites(self) -> bool:
        """Unset every favorite, one store call per recipe. Stops at the first failure."""
        def action():
            for recipe in self._current_recipes():
                if recipe.is_favorite:
                    self.store.set_favorite(recipe.id, False)

        return self._run_action("clearing favorites", action)

    def add_recipe(
        self,
        name: str,
        minutes: int,
        ingredients: List[Ingredient],
        steps: List[str],
        category: str,
        image_url: str,
        description: Optional[str] = None,
    ) -> bool:
        """
        Validate and insert a new recipe.

        The image URL is mandatory; blank values are rejected before the store
        is called. Name, category, a positive prep time, at least one
        ingredient and at least one step are also required.

        Args:
            name: Recipe name
            minutes: Preparation time in minutes (> 0)
            ingredients: Ingredient lines, in order
            steps: Instruction steps, in order
            category: Category name
            image_url: Image URL (trimmed before saving)
            description: Optional description; defaults to "Recipe created by <author>"

        Returns:
            True if the recipe was inserted, False if rejected or the store failed
        """
        if not (image_url or "").strip():
            return self._reject(IMAGE_URL_REQUIRED)
        if not (name or "").strip():
            return self._reject("Recipe name is required")
        if not (category or "").strip():
            return self._reject("Category is required")
        if minutes is None or minutes <= 0:
            return self._reject("Preparation time must be greater than zero")
        if not ingredients:
            return self._reject("At least one ingredient is required")
        if not [s for s in steps or [] if s and s.strip()]:
            return self._reject("At least one step is required")

        if not (description or "").strip():
            description = f"Recipe created by {self._author_name()}"

        def action():
            recipe = Recipe(
                name=name.strip(),
                description=description,
                prep_time_minutes=minutes,
                ingredients=list(ingredients),
                steps=[s.strip() for s in steps if s and s.strip()],
                category=category.strip(),
                image_url=image_url.strip(),
                is_favorite=False,
            )
            new_id = self.store.insert(recipe)
            logger.info("Recipe added: %s (id=%s)", recipe.name, new_id)

        return self._run_action("adding recipe", action)

    def update_recipe(self, recipe: Recipe) -> bool:
        """Replace a stored recipe wholesale."""
        return self._run_action("updating recipe", lambda: self.store.update(recipe))

    def delete_recipe(self, recipe: Recipe) -> bool:
        def action():
            if recipe.id is None:
                raise ValidationError("Recipe has not been saved yet")
            self.store.delete(recipe.id)

        return self._run_action("deleting recipe", action)

    def delete_all_recipes(self) -> bool:
        """
        Delete every recipe of the current unfiltered list, one by one.

        Not transactional: the first failure stops the loop and is reported
        once; recipes deleted before it stay deleted.
        """
        def action():
            recipes = self._current_recipes()
            logger.info("Deleting all %d recipes", len(recipes))
            for recipe in recipes:
                self.store.delete(recipe.id)

        return self._run_action("deleting all recipes", action)

    # ------------------------------------------------------------------
    # Queries over the current list
    # ------------------------------------------------------------------

    def get_recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        for recipe in self._current_recipes():
            if recipe.id == recipe_id:
                return recipe
        return None

    def recipes_in_category(self, category: str) -> List[Recipe]:
        return filter_recipes(self._current_recipes(), "", category)

    def live_recipes_by_category(self, category: str) -> LiveQuery[List[Recipe]]:
        """Live list filtered by the store itself (exact category match)."""
        return self._reporting_errors(self.store.live_by_category(category))

    def count_recipes(self) -> int:
        return len(self._current_recipes())

    def count_favorites(self) -> int:
        return len(favorite_recipes(self._current_recipes()))

    def has_recipes(self) -> bool:
        return self.count_recipes() > 0

    def has_favorites(self) -> bool:
        return self.count_favorites() > 0

    # ------------------------------------------------------------------
    # Account actions
    # ------------------------------------------------------------------

    def _author_name(self) -> str:
        user = self.current_user.value
        if user is None or self.is_guest.value:
            return GUEST_NAME
        return user.name

    def _set_user(self, user: Optional[User], guest: bool = False) -> None:
        self.current_user.set(user)
        self.is_guest.set(guest)
        self.is_authenticated.set(user is not None)

    def _require_auth(self) -> AuthProvider:
        if self.auth is None:
            raise ValidationError("Accounts are not available")
        return self.auth

    def register(self, name: str, email: str, password: str) -> bool:
        def action():
            user = self._require_auth().register(email, password, name)
            self._set_user(user)

        return self._run_action("registering user", action)

    def login(self, email: str, password: str) -> bool:
        def action():
            user = self._require_auth().login(email, password)
            self._set_user(user)

        return self._run_action("signing in", action)

    def continue_as_guest(self) -> None:
        """Use the app without an account; favorites still work on the shared recipe list."""
        guest = User(id=f"guest_{uuid.uuid4().hex[:12]}", name=GUEST_NAME, is_guest=True)
        self._set_user(guest, guest=True)
        self.error.set(None)
        logger.info("Continuing as guest (%s)", guest.id)

    def logout(self) -> bool:
        def action():
            if not self.is_guest.value and self.auth is not None:
                self.auth.logout()
            self._set_user(None)

        return self._run_action("signing out", action)

    def add_search_to_history(self, term: str) -> bool:
        """Append a search term to the signed-in user's history (no-op for guests and repeats)."""
        term = (term or "").strip()
        user = self.current_user.value
        if not term or user is None or self.is_guest.value or term in user.search_history:
            self.error.set(None)
            return True

        def action():
            self._save_profile(user.model_copy(update={"search_history": [*user.search_history, term]}))

        return self._run_action("saving search history", action)

    # ------------------------------------------------------------------
    # Saved recipes (per signed-in user)
    # ------------------------------------------------------------------

    def _signed_in_user(self) -> User:
        user = self.current_user.value
        if user is None or self.is_guest.value:
            raise ValidationError("Sign in to save recipes")
        return user

    def _save_profile(self, user: User) -> None:
        self.current_user.set(self._require_auth().save_user(user))

    def is_saved(self, recipe: Recipe) -> bool:
        user = self.current_user.value
        return user is not None and recipe.id in user.saved_recipe_ids

    def toggle_saved_recipe(self, recipe: Recipe) -> bool:
        """
        Add a recipe to the signed-in user's saved list, or remove it if already there.

        Saved recipes belong to the user profile; the shared is_favorite flag
        on the recipe is left alone (see toggle_favorite).
        """
        def action():
            if recipe.id is None:
                raise ValidationError("Recipe has not been saved yet")
            user = self._signed_in_user()
            if recipe.id in user.saved_recipe_ids:
                ids = [i for i in user.saved_recipe_ids if i != recipe.id]
            else:
                ids = [*user.saved_recipe_ids, recipe.id]
            self._save_profile(user.model_copy(update={"saved_recipe_ids": ids}))

        return self._run_action("updating saved recipes", action)

    def clear_saved_recipes(self) -> bool:
        def action():
            user = self._signed_in_user()
            if user.saved_recipe_ids:
                self._save_profile(user.model_copy(update={"saved_recipe_ids": []}))

        return self._run_action("clearing saved recipes", action)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release every store listener now and stop the worker pool."""
        for view in self._shared_views:
            view.close()
        self._executor.shutdown(wait=True)
        logger.info("Recipe state container closed")
