"""
Contract tests run against both recipe store backends.

Every test here is parametrized over the relational store (in-memory SQLite)
and the document store, so both backends are held to the same behaviour.
"""

import threading
import time
from unittest.mock import patch

import pytest

from recipebook.errors import NotFoundError, ValidationError
from recipebook.models import Ingredient, Recipe
from recipebook.seed import SEED_RECIPES
from recipebook.stores.document_store import DocumentRecipeStore
from recipebook.stores.sql_store import SqlRecipeStore


@pytest.fixture(params=["sql", "document"])
def store(request):
    if request.param == "sql":
        backend = SqlRecipeStore("sqlite://")
    else:
        backend = DocumentRecipeStore()
    yield backend
    backend.close()


def make_recipe(name="Pancakes", category="Breakfast", **overrides):
    data = {
        "name": name,
        "description": f"{name} description",
        "category": category,
        "prep_time_minutes": 15,
        "ingredients": [Ingredient(name="flour", quantity="200", unit="g")],
        "steps": ["Mix", "Cook"],
        "image_url": "https://example.com/img.jpg",
    }
    data.update(overrides)
    return Recipe(**data)


class TestInsertAndRead:
    """Test cases for insert and point-in-time reads."""

    def test_insert_assigns_id(self, store):
        """Test that insert returns a fresh id and the recipe can be read back."""
        recipe_id = store.insert(make_recipe())
        assert isinstance(recipe_id, str)
        fetched = store.get_by_id(recipe_id)
        assert fetched.id == recipe_id
        assert fetched.name == "Pancakes"
        assert fetched.ingredients == [Ingredient(name="flour", quantity="200", unit="g")]
        assert fetched.steps == ["Mix", "Cook"]

    def test_input_id_ignored(self, store):
        """Test that an id on the inserted recipe is not used."""
        recipe_id = store.insert(make_recipe(id="999999"))
        assert recipe_id != "999999"

    @pytest.mark.parametrize("field", ["name", "description", "category"])
    def test_blank_required_field_rejected(self, store, field):
        """Test that insert raises ValidationError and stores nothing."""
        with pytest.raises(ValidationError):
            store.insert(make_recipe(**{field: "   "}))
        assert store.list_all() == []

    def test_ids_never_reused(self, store):
        """Test that deleting a recipe does not free its id for a later insert."""
        first = store.insert(make_recipe("A"))
        second = store.insert(make_recipe("B"))
        store.delete(second)
        third = store.insert(make_recipe("C"))
        assert third not in (first, second)

    def test_get_by_id_unknown(self, store):
        """Test that looking up an unknown id returns None."""
        assert store.get_by_id("does-not-exist") is None

    def test_image_url_none_round_trip(self, store):
        """Test that a recipe without an image reads back with image_url None."""
        recipe_id = store.insert(make_recipe(image_url=None))
        assert store.get_by_id(recipe_id).image_url is None

    def test_list_all_in_insert_order(self, store):
        """Test that list_all returns recipes in insertion order."""
        for name in ("A", "B", "C"):
            store.insert(make_recipe(name))
        assert [r.name for r in store.list_all()] == ["A", "B", "C"]

    def test_list_by_category_exact(self, store):
        """Test that list_by_category only returns exact category matches."""
        store.insert(make_recipe("A", category="Lunch"))
        store.insert(make_recipe("B", category="Dinner"))
        assert [r.name for r in store.list_by_category("Lunch")] == ["A"]

    def test_search_case_insensitive(self, store):
        """Test that search matches name, description and category substrings."""
        store.insert(make_recipe("Chocolate Cake", category="Dessert"))
        store.insert(make_recipe("Tomato Soup", category="Starter"))
        assert [r.name for r in store.search("CHOC")] == ["Chocolate Cake"]
        assert [r.name for r in store.search("starter")] == ["Tomato Soup"]
        assert len(store.search("")) == 2


class TestUpdate:
    """Test cases for update and set_favorite."""

    def test_update_replaces_fields(self, store):
        """Test that update rewrites every field but the id."""
        recipe_id = store.insert(make_recipe())
        updated = make_recipe("Waffles", category="Brunch", id=recipe_id, steps=["Heat iron", "Pour", "Serve"])
        store.update(updated)
        fetched = store.get_by_id(recipe_id)
        assert fetched.name == "Waffles"
        assert fetched.category == "Brunch"
        assert fetched.steps == ["Heat iron", "Pour", "Serve"]

    def test_update_without_id(self, store):
        """Test that update requires an id."""
        with pytest.raises(ValidationError):
            store.update(make_recipe())

    def test_update_unknown_id(self, store):
        """Test that updating a missing recipe raises NotFoundError."""
        store.insert(make_recipe())
        with pytest.raises(NotFoundError):
            store.update(make_recipe(id="424242"))

    def test_favorite_round_trip(self, store):
        """Test that set_favorite(True) then False restores the original recipe."""
        recipe_id = store.insert(make_recipe())
        original = store.get_by_id(recipe_id)
        store.set_favorite(recipe_id, True)
        favored = store.get_by_id(recipe_id)
        assert favored.is_favorite is True
        assert favored.model_dump(exclude={"is_favorite"}) == original.model_dump(exclude={"is_favorite"})
        store.set_favorite(recipe_id, False)
        assert store.get_by_id(recipe_id) == original

    def test_set_favorite_unknown_id(self, store):
        """Test that set_favorite on a missing recipe raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.set_favorite("424242", True)


class TestDelete:
    """Test cases for delete."""

    def test_delete_removes_recipe(self, store):
        """Test that a deleted recipe is gone from reads."""
        recipe_id = store.insert(make_recipe())
        store.delete(recipe_id)
        assert store.get_by_id(recipe_id) is None
        assert store.list_all() == []

    def test_delete_is_idempotent(self, store):
        """Test that deleting twice, or an unknown id, does not raise."""
        recipe_id = store.insert(make_recipe())
        store.delete(recipe_id)
        store.delete(recipe_id)
        store.delete("unknown")


class TestLiveQueries:
    """Test cases for live_all and live_by_category."""

    def test_live_all_emits_current_then_changes(self, store):
        """Test that live_all emits on subscribe and after each write."""
        store.insert(make_recipe("A"))
        emissions = []
        sub = store.live_all().subscribe(emissions.append)
        recipe_id = store.insert(make_recipe("B"))
        store.set_favorite(recipe_id, True)
        store.delete(recipe_id)
        sub.unsubscribe()

        assert [[r.name for r in e] for e in emissions] == [["A"], ["A", "B"], ["A", "B"], ["A"]]
        assert emissions[2][1].is_favorite is True

    def test_unsubscribe_releases_listener(self, store):
        """Test that the store drops the listener on unsubscribe."""
        sub = store.live_all().subscribe(lambda _: None)
        assert store.listener_count == 1
        sub.unsubscribe()
        assert store.listener_count == 0

    def test_no_emission_after_unsubscribe(self, store):
        """Test that writes after unsubscribe do not reach the callback."""
        emissions = []
        store.live_all().subscribe(emissions.append).unsubscribe()
        store.insert(make_recipe())
        assert emissions == [[]]

    def test_live_by_category(self, store):
        """Test that live_by_category only emits matching recipes."""
        emissions = []
        sub = store.live_by_category("Lunch").subscribe(emissions.append)
        store.insert(make_recipe("A", category="Lunch"))
        store.insert(make_recipe("B", category="Dinner"))
        sub.unsubscribe()
        assert [[r.name for r in e] for e in emissions] == [[], ["A"]]

    def test_emitted_lists_are_snapshots(self, store):
        """Test that an emitted list is not changed by later writes."""
        emissions = []
        sub = store.live_all().subscribe(emissions.append)
        store.insert(make_recipe("A"))
        first_list = emissions[-1]
        store.insert(make_recipe("B"))
        sub.unsubscribe()
        assert [r.name for r in first_list] == ["A"]


class TestSeed:
    """Test cases for seed_if_empty."""

    def test_seed_fills_empty_store(self, store):
        """Test that an empty store receives the example dataset."""
        inserted = store.seed_if_empty()
        assert inserted == len(SEED_RECIPES)
        assert [r.name for r in store.list_all()] == [r.name for r in SEED_RECIPES]

    def test_seed_skips_non_empty_store(self, store):
        """Test that seeding twice does not duplicate recipes."""
        store.seed_if_empty()
        assert store.seed_if_empty() == 0
        assert len(store.list_all()) == len(SEED_RECIPES)


class TestListenerDelivery:
    """Test cases for live delivery under failing subscribers and concurrent writers."""

    def test_failing_subscriber_does_not_fail_write(self, store):
        """Test that a raising subscriber neither fails the write nor starves other listeners."""
        def broken(recipes):
            if recipes:
                raise RuntimeError("render failed")

        seen = []
        store.live_all().subscribe(broken)
        store.live_all().subscribe(seen.append)

        recipe_id = store.insert(make_recipe())

        assert store.get_by_id(recipe_id) is not None
        assert [len(e) for e in seen] == [0, 1]

    def test_racing_writers_end_on_current_list(self):
        """Test that a slow writer's older snapshot is never delivered after a newer one."""
        store = DocumentRecipeStore()
        real_list_all = store.list_all
        paused, release = threading.Event(), threading.Event()

        def list_all_pausing_first_writer():
            snapshot = real_list_all()
            if threading.current_thread().name == "writer-a" and not paused.is_set():
                paused.set()
                release.wait(5)
            return snapshot

        emissions = []
        with patch.object(store, "list_all", side_effect=list_all_pausing_first_writer):
            sub = store.live_all().subscribe(emissions.append)
            writer_a = threading.Thread(target=store.insert, args=(make_recipe("A"),), name="writer-a")
            writer_b = threading.Thread(target=store.insert, args=(make_recipe("B"),), name="writer-b")
            writer_a.start()
            assert paused.wait(5)
            writer_b.start()
            time.sleep(0.1)
            release.set()
            writer_a.join(5)
            writer_b.join(5)
            sub.unsubscribe()

        assert [r.name for r in store.list_all()] == ["A", "B"]
        assert [r.name for r in emissions[-1]] == ["A", "B"]
        store.close()
