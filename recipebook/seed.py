"""
Example recipes inserted into an empty store on first launch.
"""

from typing import List

from .models import Ingredient, Recipe


def _unsplash(photo_id: str) -> str:
    return f"https://images.unsplash.com/{photo_id}?ixlib=rb-4.0.3&w=400&h=300&fit=crop"


SEED_RECIPES: List[Recipe] = [
    Recipe(
        name="Roast Chicken",
        description="Oven-roasted chicken with spices, perfect for a family dinner",
        prep_time_minutes=45,
        category="Dinner",
        is_favorite=True,
        image_url=_unsplash("photo-1606636660488-16a8646f012c"),
        ingredients=[
            Ingredient(name="whole chicken", quantity="1"),
            Ingredient(name="paprika", quantity="2", unit="tsp"),
            Ingredient(name="olive oil", quantity="3", unit="tbsp"),
        ],
        steps=[
            "Preheat the oven to 200°C",
            "Rub the chicken with oil and spices",
            "Roast for 40 minutes until golden",
        ],
    ),
    Recipe(
        name="Caesar Salad",
        description="Fresh salad with grilled chicken, croutons and homemade caesar dressing",
        prep_time_minutes=20,
        category="Lunch",
        image_url=_unsplash("photo-1546793665-c74683f339c1"),
        ingredients=[
            Ingredient(name="romaine lettuce", quantity="1", unit="head"),
            Ingredient(name="chicken breast", quantity="200", unit="g"),
            Ingredient(name="croutons", quantity="1", unit="cup"),
        ],
        steps=["Grill the chicken", "Chop the lettuce", "Toss everything with the dressing"],
    ),
    Recipe(
        name="Pasta Carbonara",
        description="Classic Italian pasta with egg, pecorino, pancetta and black pepper",
        prep_time_minutes=25,
        category="Dinner",
        is_favorite=True,
        image_url=_unsplash("photo-1605478371315-e4c2bf81296a"),
    ),
    Recipe(
        name="Chocolate Brownies",
        description="Rich chocolate dessert with walnuts, great with ice cream",
        prep_time_minutes=35,
        category="Dessert",
        is_favorite=True,
        image_url=_unsplash("photo-1606313564200-e75d5e30476c"),
    ),
    Recipe(
        name="Homemade Burger",
        description="Premium beef burger with cheese, lettuce, tomato and special sauce",
        prep_time_minutes=30,
        category="Lunch",
        image_url=_unsplash("photo-1568901346375-23c9450c58cd"),
    ),
    Recipe(
        name="Tomato Soup",
        description="Creamy tomato soup with fresh basil and croutons",
        prep_time_minutes=40,
        category="Starter",
        image_url=_unsplash("photo-1547592166-23ac45744acd"),
    ),
    Recipe(
        name="Tacos al Pastor",
        description="Mexican tacos with marinated pork, pineapple and cilantro",
        prep_time_minutes=50,
        category="Dinner",
        is_favorite=True,
        image_url=_unsplash("photo-1565299624946-b28f40a0ca4b"),
    ),
    Recipe(
        name="Pizza Margherita",
        description="Classic Italian pizza with tomato sauce, fresh mozzarella and basil",
        prep_time_minutes=60,
        category="Dinner",
        image_url=_unsplash("photo-1574071318508-1cdbab80d002"),
    ),
    Recipe(
        name="Grilled Salmon",
        description="Fresh salmon fillet with lemon and dill, served with vegetables",
        prep_time_minutes=25,
        category="Dinner",
        is_favorite=True,
        image_url=_unsplash("photo-1467003909585-2f8a72700288"),
    ),
    Recipe(
        name="Apple Pie",
        description="Homemade apple pie with cinnamon and vanilla",
        prep_time_minutes=70,
        category="Dessert",
        image_url=_unsplash("photo-1565958011703-44f9829ba187"),
    ),
]


def seed_recipes() -> List[Recipe]:
    """Return the seed dataset (unsaved recipes, id is None)."""
    return list(SEED_RECIPES)
