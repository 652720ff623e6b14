from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.app.domain.errors import StoreUnavailableError
from src.app.domain.models import Nutrition, Provenance, Recipe, UNKNOWN
from src.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

SYSTEM_OWNER_ID = "00000000-0000-0000-0000-000000000000"

# recipe_type column values written by the web app
_PROVENANCE_TO_TYPE = {
    Provenance.LOCAL: "user",
    Provenance.CATALOG: "spoonacular",
    Provenance.GENERATED: "ai",
}
_TYPE_TO_PROVENANCE = {v: k for k, v in _PROVENANCE_TO_TYPE.items()}

_STORE_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)

# LIKE metacharacters, escaped with the default backslash escape
_LIKE_SPECIAL_RE = re.compile(r"([\\%_])")
# characters that need escaping inside a double-quoted PostgREST value
_QUOTED_SPECIAL_RE = re.compile(r'([\\"])')


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _ilike_value(term: str) -> str:
    """
    Substring ILIKE pattern for a PostgREST or=() filter, matching `term` literally.

    PostgREST turns every `*` into `%` and offers no escape for it, so a
    `*` matches any single character instead.
    """
    pattern = _LIKE_SPECIAL_RE.sub(r"\\\1", term).replace("*", "_")
    quoted = _QUOTED_SPECIAL_RE.sub(r"\\\1", f"%{pattern}%")
    return f'"{quoted}"'


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _safe_optional_int(value: object) -> int | None:
    try:
        return int(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _string_list(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if item)


def _row_to_nutrition(row: dict[str, Any]) -> Nutrition | None:
    keys = ("calories", "protein", "fat", "carbohydrates")
    if not any(row.get(k) for k in keys):
        return None
    return Nutrition(**{k: _safe_str(row.get(k)) or UNKNOWN for k in keys})


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    return Recipe(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        provenance=_TYPE_TO_PROVENANCE.get(str(row.get("recipe_type") or "user"), Provenance.LOCAL),
        description=str(row.get("description") or ""),
        image_url=_safe_str(row.get("image_url")),
        ingredients=_string_list(row.get("ingredients")),
        instructions=_string_list(row.get("instructions")),
        cuisine_type=_safe_str(row.get("cuisine_type")),
        diet_type=_safe_str(row.get("diet_type")),
        cook_time=_safe_str(row.get("cooking_time")),
        cook_time_minutes=_safe_optional_int(row.get("cooking_time_value")),
        nutrition=_row_to_nutrition(row),
        owner_ref=_safe_str(row.get("user_id")),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    created_at = recipe.created_at or _now_utc()
    row: dict[str, Any] = {
        "id": recipe.id,
        "title": recipe.title,
        "description": recipe.description,
        "image_url": recipe.image_url,
        "ingredients": list(recipe.ingredients),
        "instructions": list(recipe.instructions),
        "cuisine_type": recipe.cuisine_type,
        "diet_type": recipe.diet_type,
        "cooking_time": recipe.cook_time,
        "cooking_time_value": recipe.cook_time_minutes,
        "recipe_type": _PROVENANCE_TO_TYPE[recipe.provenance],
        "user_id": recipe.owner_ref or SYSTEM_OWNER_ID,
        "created_at": created_at.isoformat(),
    }
    if recipe.nutrition:
        row.update(
            calories=recipe.nutrition.calories,
            protein=recipe.nutrition.protein,
            fat=recipe.nutrition.fat,
            carbohydrates=recipe.nutrition.carbohydrates,
        )
    return row


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"
    MAPPING_TABLE_NAME = "recipe_external_mappings"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecipeRepository initialized")

    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("id", recipe_id)
                .limit(1)
                .execute()
            )
        except _STORE_ERRORS as error:
            logger.error("Store error fetching recipe %s: %s", recipe_id, error)
            raise StoreUnavailableError("get_by_id", str(error)) from error

        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def search_by_text(self, query: str) -> list[Recipe]:
        term = query.strip()
        if not term:
            return []
        value = _ilike_value(term)

        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .or_(f"title.ilike.{value},description.ilike.{value}")
                .order("created_at", desc=True)
                .execute()
            )
        except _STORE_ERRORS as error:
            logger.error("Store error searching recipes for %r: %s", query, error)
            raise StoreUnavailableError("search_by_text", str(error)) from error

        return [_row_to_recipe(row) for row in result.data or []]

    def list_by_provenance(self, provenance: Provenance) -> list[Recipe]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("recipe_type", _PROVENANCE_TO_TYPE[provenance])
                .order("created_at", desc=False)
                .execute()
            )
        except _STORE_ERRORS as error:
            logger.error("Store error listing %s recipes: %s", provenance.value, error)
            raise StoreUnavailableError("list_by_provenance", str(error)) from error

        return [_row_to_recipe(row) for row in result.data or []]

    def insert(self, recipe: Recipe) -> Recipe:
        if not recipe.title.strip():
            raise ValueError("Persisted recipes need a non-empty title")

        row = _recipe_to_row(recipe)
        try:
            result = self._client.table(self.TABLE_NAME).insert(row).execute()
        except _STORE_ERRORS as error:
            logger.error("Store error inserting recipe %s: %s", recipe.id, error)
            raise StoreUnavailableError("insert", str(error)) from error

        logger.info("Stored recipe: id=%s, provenance=%s", recipe.id, recipe.provenance.value)
        if result.data:
            return _row_to_recipe(result.data[0])
        return _row_to_recipe(row)

    def delete(self, recipe_id: str) -> bool:
        try:
            result = self._client.table(self.TABLE_NAME).delete().eq("id", recipe_id).execute()
        except _STORE_ERRORS as error:
            logger.error("Store error deleting recipe %s: %s", recipe_id, error)
            raise StoreUnavailableError("delete", str(error)) from error

        return bool(result.data)

    def find_mapping_by_external_id(self, external_id: str) -> Optional[str]:
        try:
            result = (
                self._client.table(self.MAPPING_TABLE_NAME)
                .select("internal_id")
                .eq("external_id", external_id)
                .limit(1)
                .execute()
            )
        except _STORE_ERRORS as error:
            logger.error("Store error reading mapping for %s: %s", external_id, error)
            raise StoreUnavailableError("find_mapping_by_external_id", str(error)) from error

        if not result.data:
            return None
        return _safe_str(result.data[0].get("internal_id"))

    def record_mapping(self, internal_id: str, external_id: str) -> None:
        data = {
            "internal_id": internal_id,
            "external_id": external_id,
            "created_at": _now_utc().isoformat(),
        }
        try:
            self._client.table(self.MAPPING_TABLE_NAME).upsert(data, on_conflict="external_id").execute()
        except _STORE_ERRORS as error:
            logger.error("Store error recording mapping %s -> %s: %s", external_id, internal_id, error)
            raise StoreUnavailableError("record_mapping", str(error)) from error
