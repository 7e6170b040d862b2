"""
Pure derivations over recipe lists.

These functions back the state container's derived views. They never mutate
their input and always preserve the order of the underlying list.
"""

from typing import Iterable, List, Optional

from .models import Recipe, User


def matches_search(recipe: Recipe, search_text: str) -> bool:
    """
    Check whether a recipe matches free-text search.

    Empty search text matches everything. Otherwise the text must occur in the
    name or description, case-insensitive.
    """
    if not search_text:
        return True
    needle = search_text.casefold()
    return needle in (recipe.name or "").casefold() or needle in (recipe.description or "").casefold()


def matches_category(recipe: Recipe, category: Optional[str]) -> bool:
    """None matches everything; otherwise case-insensitive equality."""
    if category is None:
        return True
    return (recipe.category or "").casefold() == category.casefold()


def filter_recipes(recipes: Iterable[Recipe], search_text: str = "", category: Optional[str] = None) -> List[Recipe]:
    """
    Apply search text and category filters together.

    Args:
        recipes: Unfiltered recipe list
        search_text: Substring to look for in name/description ("" matches all)
        category: Category to keep (None matches all)

    Returns:
        Recipes satisfying both predicates, in input order

    Examples:
        >>> lunch = Recipe(name="Caesar Salad", category="Lunch")
        >>> dinner = Recipe(name="Roast Chicken", category="Dinner")
        >>> [r.name for r in filter_recipes([lunch, dinner], "", "lunch")]
        ['Caesar Salad']
    """
    return [
        r for r in recipes
        if matches_search(r, search_text) and matches_category(r, category)
    ]


def unique_categories(recipes: Iterable[Recipe]) -> List[str]:
    """Distinct categories in first-seen order."""
    seen = set()
    result: List[str] = []
    for recipe in recipes:
        if recipe.category not in seen:
            seen.add(recipe.category)
            result.append(recipe.category)
    return result


def favorite_recipes(recipes: Iterable[Recipe]) -> List[Recipe]:
    """Recipes flagged as favorite, in input order."""
    return [r for r in recipes if r.is_favorite]


def search_recipes(recipes: Iterable[Recipe], query: str) -> List[Recipe]:
    """
    Point-in-time search used by the stores.

    Case-insensitive substring match over name, description and category.
    Blank queries return every recipe.
    """
    needle = (query or "").strip().casefold()
    if not needle:
        return list(recipes)
    return [
        r for r in recipes
        if needle in r.name.casefold()
        or needle in r.description.casefold()
        or needle in r.category.casefold()
    ]


def saved_recipes(recipes: Iterable[Recipe], user: Optional[User]) -> List[Recipe]:
    """Recipes whose id is in the user's saved list, in recipe-list order. No user, no recipes."""
    if user is None:
        return []
    saved = set(user.saved_recipe_ids)
    return [r for r in recipes if r.id in saved]
