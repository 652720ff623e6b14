# src/app/infra/db/base.py
"""
Abstract base class for the persistent recipe store.
This interface allows easy swapping between different store backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.app.domain.models import Provenance, Recipe


class RecipeRepository(ABC):
    """
    Abstract interface for recipe persistence.

    Implementations:
    - SupabaseRecipeRepository: Postgres-backed store using Supabase
    - InMemory stubs in the test suite

    Every method raises StoreUnavailableError when the backend cannot be
    reached; "not found" is signalled by None, never by an exception.
    """

    @abstractmethod
    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        """
        Point lookup by persisted id.

        Args:
            recipe_id: The persisted id (raw local id or namespaced id)

        Returns:
            The recipe, or None if not found
        """
        pass

    @abstractmethod
    def search_by_text(self, query: str) -> list[Recipe]:
        """
        Case-insensitive substring match over title and description.

        Args:
            query: Free text to look for

        Returns:
            Matching recipes, newest first
        """
        pass

    @abstractmethod
    def list_by_provenance(self, provenance: Provenance) -> list[Recipe]:
        """
        All persisted recipes of one provenance, oldest first by created_at.

        Args:
            provenance: Which source's recipes to list

        Returns:
            List of recipes
        """
        pass

    @abstractmethod
    def insert(self, recipe: Recipe) -> Recipe:
        """
        Persist a new recipe.

        Args:
            recipe: The recipe to store (title must be non-empty)

        Returns:
            The stored recipe as read back from the store
        """
        pass

    @abstractmethod
    def delete(self, recipe_id: str) -> bool:
        """
        Delete a recipe by id.

        Returns:
            True if a row was removed
        """
        pass

    @abstractmethod
    def find_mapping_by_external_id(self, external_id: str) -> Optional[str]:
        """
        Look up the internal id a catalog recipe was imported under.

        Args:
            external_id: The catalog's own id

        Returns:
            The internal id, or None if never imported
        """
        pass

    @abstractmethod
    def record_mapping(self, internal_id: str, external_id: str) -> None:
        """
        Record that external_id was imported as internal_id.
        external_id is unique; recording it again replaces the internal id.
        """
        pass
