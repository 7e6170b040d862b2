"""
Recipe, ingredient and user models for the recipe core.

This module defines the canonical entity shapes used throughout the package.
Both store backends map their persisted rows/documents into these models, so
the state container and presentation layer only ever see one Recipe shape.

Canonical representation decisions:
- Recipe.id is an opaque string, None until the store assigns one.
  The relational store exposes its integer key as a decimal string.
- Recipe.image_url is Optional[str]; None means "no image". Blank strings are
  normalised to None and non-blank values are trimmed.
- Models are frozen: updates go through model_copy(update=...) so an emitted
  list can never be mutated under a subscriber.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError


class Ingredient(BaseModel):
    """A single ingredient line of a recipe."""
    name: str = Field(..., description="Ingredient name (e.g., 'flour')")
    quantity: str = Field(default="", description="Amount as entered (e.g., '200', '2')")
    unit: Optional[str] = Field(None, description="Unit for quantity (e.g., 'g', 'tbsp'), optional")

    model_config = ConfigDict(frozen=True)

    @field_validator("unit")
    @classmethod
    def _blank_unit_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def display(self) -> str:
        """
        Render the ingredient as a single line.

        Examples:
            >>> Ingredient(name="flour", quantity="200", unit="g").display()
            '200 g of flour'
            >>> Ingredient(name="eggs", quantity="2").display()
            '2 eggs'
        """
        if self.unit:
            return f"{self.quantity} {self.unit} of {self.name}".strip()
        return f"{self.quantity} {self.name}".strip()


class Recipe(BaseModel):
    """
    Canonical recipe entity.

    All fields except id are replaced wholesale on update. The only narrow
    mutation is the favorite toggle, which touches is_favorite alone.
    """
    id: Optional[str] = Field(None, description="Store-assigned identifier, None until persisted")
    name: str = Field(default="", description="Recipe name")
    description: str = Field(default="", description="Short description")
    category: str = Field(default="", description="Category (e.g., 'Dinner', 'Dessert')")
    prep_time_minutes: int = Field(default=0, ge=0, description="Preparation time in minutes")
    ingredients: List[Ingredient] = Field(default_factory=list, description="Ordered ingredient list")
    steps: List[str] = Field(default_factory=list, description="Ordered instruction steps")
    image_url: Optional[str] = Field(None, description="Image URL, None when the recipe has no image")
    is_favorite: bool = Field(default=False, description="Whether the recipe is marked as favorite")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "1",
                "name": "Caesar Salad",
                "description": "Fresh salad with grilled chicken and caesar dressing",
                "category": "Lunch",
                "prep_time_minutes": 20,
                "ingredients": [{"name": "romaine lettuce", "quantity": "1", "unit": "head"}],
                "steps": ["Wash the lettuce", "Grill the chicken", "Toss with dressing"],
                "image_url": None,
                "is_favorite": False,
            }
        },
    )

    @field_validator("image_url")
    @classmethod
    def _normalise_image_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        # Relational backend hands over integer keys
        if value is None:
            return None
        return str(value)

    def with_id(self, recipe_id: str) -> "Recipe":
        """Return a copy of this recipe carrying the given store id."""
        return self.model_copy(update={"id": str(recipe_id)})

    def with_favorite(self, is_favorite: bool) -> "Recipe":
        """Return a copy with only is_favorite changed."""
        return self.model_copy(update={"is_favorite": bool(is_favorite)})


# Fields every persisted recipe must carry
REQUIRED_TEXT_FIELDS = ("name", "description", "category")


def validate_for_insert(recipe: Recipe) -> None:
    """
    Check that a recipe can be persisted.

    Args:
        recipe: Recipe to check

    Raises:
        ValidationError: If name, description or category is blank
    """
    missing = [f for f in REQUIRED_TEXT_FIELDS if not (getattr(recipe, f) or "").strip()]
    if missing:
        raise ValidationError(f"Recipe is missing required fields: {', '.join(missing)}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    Public user profile.

    The password hash never leaves the auth backend, so it is not part of
    this model.
    """
    id: str = Field(..., description="User identifier")
    name: str = Field(..., description="Display name")
    email: str = Field(default="", description="Email address (empty for guests)")
    saved_recipe_ids: List[str] = Field(default_factory=list, description="Ids of recipes saved by the user")
    search_history: List[str] = Field(default_factory=list, description="Search terms, oldest first")
    registered_at: datetime = Field(default_factory=_utcnow, description="Registration timestamp (UTC)")
    is_guest: bool = Field(default=False, description="True for the local guest profile")

    model_config = ConfigDict(frozen=True)
