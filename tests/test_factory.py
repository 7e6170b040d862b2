"""
Tests for the composition root.
"""

import os
from unittest.mock import patch

import pytest

from recipebook.auth import LocalAuthProvider
from recipebook.factory import build_auth, build_container, build_store
from recipebook.state import RecipeStateContainer
from recipebook.stores.document_store import DocumentRecipeStore
from recipebook.stores.sql_store import SqlRecipeStore

TEST_ENV = {
    "RECIPEBOOK_BACKEND": "document",
    "DATABASE_URL": "sqlite://",
    "RECIPEBOOK_SEED_ON_START": "false",
    "RECIPEBOOK_LIVE_LINGER_SECONDS": "0",
    "RECIPEBOOK_ACTION_WORKERS": "1",
}


class TestBuildStore:
    """Test cases for build_store."""

    def test_sql_backend(self):
        store = build_store("sql", "sqlite://")
        try:
            assert isinstance(store, SqlRecipeStore)
        finally:
            store.close()

    def test_document_backend_from_env(self):
        with patch.dict(os.environ, TEST_ENV):
            assert isinstance(build_store(), DocumentRecipeStore)

    def test_unknown_backend(self):
        with pytest.raises(RuntimeError, match="Unknown recipe store backend"):
            build_store("mongo")


class TestBuildContainer:
    """Test cases for build_container."""

    def test_wires_configured_collaborators(self):
        """Test that the container gets the configured store and auth provider."""
        with patch.dict(os.environ, TEST_ENV):
            container = build_container()
        try:
            assert isinstance(container, RecipeStateContainer)
            assert isinstance(container.store, DocumentRecipeStore)
            assert isinstance(container.auth, LocalAuthProvider)
            assert container.store.list_all() == []
        finally:
            container.close()

    def test_seed_on_start(self):
        """Test that seed=True fills the empty store."""
        store = DocumentRecipeStore()
        with patch.dict(os.environ, TEST_ENV):
            container = build_container(store=store, seed=True)
        try:
            assert len(store.list_all()) > 0
        finally:
            container.close()

    def test_invalid_config_rejected(self):
        """Test that bad configuration fails before anything is built."""
        env = dict(TEST_ENV, RECIPEBOOK_ACTION_WORKERS="zero")
        with patch.dict(os.environ, env):
            with patch("recipebook.factory.build_store") as build:
                with pytest.raises(RuntimeError, match="Invalid recipebook configuration"):
                    build_container()
                build.assert_not_called()

    def test_build_auth_uses_database_url(self):
        with patch.dict(os.environ, TEST_ENV):
            auth = build_auth()
        try:
            assert str(auth.engine.url) == "sqlite://"
        finally:
            auth.close()
