"""
Tests for recipe, ingredient and user models.

This module tests:
- Canonical image_url handling (None / trimmed)
- Id normalisation to strings
- Immutability of emitted models
- Insert-time validation of required text fields
- Ingredient display formatting
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from recipebook.errors import ValidationError
from recipebook.models import Ingredient, Recipe, User, validate_for_insert


class TestIngredient:
    """Test cases for Ingredient model."""

    def test_display_with_unit(self):
        """Test that an ingredient with a unit renders '<qty> <unit> of <name>'."""
        assert Ingredient(name="flour", quantity="200", unit="g").display() == "200 g of flour"

    def test_display_without_unit(self):
        """Test that an ingredient without a unit renders '<qty> <name>'."""
        assert Ingredient(name="eggs", quantity="2").display() == "2 eggs"

    def test_blank_unit_becomes_none(self):
        """Test that a blank unit is stored as None."""
        assert Ingredient(name="salt", quantity="1", unit="  ").unit is None


class TestRecipe:
    """Test cases for Recipe model."""

    def test_defaults(self):
        """Test default values of an unsaved recipe."""
        recipe = Recipe(name="Soup", description="Hot", category="Starter")
        assert recipe.id is None
        assert recipe.is_favorite is False
        assert recipe.ingredients == []
        assert recipe.steps == []
        assert recipe.image_url is None
        assert recipe.prep_time_minutes == 0

    def test_blank_image_url_is_none(self):
        """Test that an empty or whitespace image URL means 'no image'."""
        assert Recipe(name="a", image_url="").image_url is None
        assert Recipe(name="a", image_url="   ").image_url is None

    def test_image_url_is_trimmed(self):
        """Test that image URLs are stored without surrounding whitespace."""
        recipe = Recipe(name="a", image_url="  https://example.com/pie.jpg ")
        assert recipe.image_url == "https://example.com/pie.jpg"

    def test_integer_id_becomes_string(self):
        """Test that numeric ids from the relational store are exposed as strings."""
        assert Recipe(id=42, name="a").id == "42"

    def test_negative_prep_time_rejected(self):
        """Test that prep time cannot be negative."""
        with pytest.raises(PydanticValidationError):
            Recipe(name="a", prep_time_minutes=-1)

    def test_recipe_is_frozen(self):
        """Test that recipes cannot be mutated in place."""
        recipe = Recipe(name="a")
        with pytest.raises(PydanticValidationError):
            recipe.name = "b"

    def test_with_favorite_changes_only_flag(self):
        """Test that with_favorite copies every other field unchanged."""
        recipe = Recipe(id="1", name="Pie", description="Sweet", category="Dessert", steps=["Bake"])
        toggled = recipe.with_favorite(True)
        assert toggled.is_favorite is True
        assert toggled.model_dump(exclude={"is_favorite"}) == recipe.model_dump(exclude={"is_favorite"})

    def test_with_id(self):
        """Test that with_id returns a copy carrying the id."""
        recipe = Recipe(name="Pie")
        assert recipe.with_id("abc").id == "abc"
        assert recipe.id is None

    def test_step_order_preserved(self):
        """Test that steps keep their order."""
        steps = ["Mix", "Bake", "Serve"]
        assert Recipe(name="a", steps=steps).steps == steps


class TestValidateForInsert:
    """Test cases for insert-time validation."""

    def test_complete_recipe_passes(self):
        """Test that a recipe with name, description and category is accepted."""
        validate_for_insert(Recipe(name="Pie", description="Sweet", category="Dessert"))

    @pytest.mark.parametrize("field", ["name", "description", "category"])
    def test_blank_required_field_rejected(self, field):
        """Test that each required text field must be non-blank."""
        data = {"name": "Pie", "description": "Sweet", "category": "Dessert"}
        data[field] = "  "
        with pytest.raises(ValidationError) as exc_info:
            validate_for_insert(Recipe(**data))
        assert field in str(exc_info.value)


class TestUser:
    """Test cases for User model."""

    def test_user_defaults(self):
        """Test that a new user starts with empty lists and a UTC timestamp."""
        user = User(id="u1", name="Alex", email="alex@example.com")
        assert user.saved_recipe_ids == []
        assert user.search_history == []
        assert user.registered_at.tzinfo is not None
        assert user.is_guest is False
