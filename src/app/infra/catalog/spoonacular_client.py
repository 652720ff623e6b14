# src/app/infra/catalog/spoonacular_client.py
"""
Paid recipe catalog adapter (Spoonacular).
Translates catalog payloads into canonical recipes and surfaces quota
exhaustion (HTTP 402) as QuotaExceededError.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import bs4
import httpx
from pydantic import ValidationError

from src.app.domain.errors import QuotaExceededError, SourceUnavailableError
from src.app.domain.models import Nutrition, Provenance, Recipe, SearchFilters, UNKNOWN
from src.app.domain.recipe_ids import catalog_id
from src.app.schemas.external import SpoonacularRecipe, SpoonacularSearchResponse

logger = logging.getLogger(__name__)

SOURCE_NAME = "catalog"
CATALOG_OWNER_REF = "spoonacular"
DEFAULT_SEARCH_SIZE = 12
DEFAULT_DESCRIPTION = "A delicious recipe to try!"


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    soup = bs4.BeautifulSoup(text, features="html.parser")
    return " ".join(soup.get_text(" ").split())


def _instructions_from(payload: SpoonacularRecipe) -> tuple[str, ...]:
    steps = [
        strip_html(step.step)
        for block in payload.analyzedInstructions[:1]
        for step in block.steps
    ]
    steps = [s for s in steps if s]
    if steps:
        return tuple(steps)
    plain = strip_html(payload.instructions)
    return (plain,) if plain else ()


def _nutrient_label(payload: SpoonacularRecipe, name: str) -> str:
    nutrient = payload.nutrition.find(name) if payload.nutrition else None
    if nutrient is None:
        return UNKNOWN
    amount = round(nutrient.amount)
    # calories stay a bare number, like generated recipes
    if name == "Calories":
        return str(amount)
    return f"{amount}{nutrient.unit.strip()}"


def _nutrition_from(payload: SpoonacularRecipe) -> Optional[Nutrition]:
    if payload.nutrition is None:
        return None
    return Nutrition(
        calories=_nutrient_label(payload, "Calories"),
        protein=_nutrient_label(payload, "Protein"),
        fat=_nutrient_label(payload, "Fat"),
        carbohydrates=_nutrient_label(payload, "Carbohydrates"),
    )


def to_recipe(payload: SpoonacularRecipe, created_at: Optional[datetime] = None) -> Recipe:
    minutes = payload.readyInMinutes
    return Recipe(
        id=catalog_id(payload.id),
        title=payload.title.strip(),
        provenance=Provenance.CATALOG,
        description=strip_html(payload.summary) or DEFAULT_DESCRIPTION,
        image_url=payload.image,
        ingredients=tuple(i.original for i in payload.extendedIngredients if i.original),
        instructions=_instructions_from(payload),
        cuisine_type=payload.cuisines[0].lower() if payload.cuisines else None,
        diet_type=payload.diets[0].lower() if payload.diets else None,
        cook_time=f"{minutes} mins" if minutes else None,
        cook_time_minutes=minutes or None,
        nutrition=_nutrition_from(payload),
        owner_ref=CATALOG_OWNER_REF,
        created_at=created_at or datetime.now(timezone.utc),
    )


class SpoonacularCatalog:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.spoonacular.com/recipes",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
        page_size: int = DEFAULT_SEARCH_SIZE,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = httpx.AsyncClient(timeout=timeout) if http_client is None else http_client
        self.page_size = page_size

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        if not self.enabled:
            raise SourceUnavailableError(SOURCE_NAME, "API key not configured", retryable=False)

        try:
            resp = await self.http_client.get(
                f"{self.base_url}{path}",
                params={"apiKey": self.api_key, **params},
            )
        except httpx.TimeoutException as error:
            raise SourceUnavailableError(SOURCE_NAME, f"timeout: {error}") from error
        except httpx.HTTPError as error:
            raise SourceUnavailableError(SOURCE_NAME, str(error)) from error

        if resp.status_code == 402:
            logger.warning("Catalog quota exceeded on %s", path)
            raise QuotaExceededError(SOURCE_NAME)
        return resp

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        raise SourceUnavailableError(
            SOURCE_NAME,
            f"HTTP {resp.status_code}",
            status_code=resp.status_code,
            retryable=resp.status_code >= 500 or resp.status_code == 429,
        )

    async def search_by_text(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
    ) -> list[Recipe]:
        params: dict[str, Any] = {
            "query": query,
            "addRecipeInformation": "true",
            "addRecipeNutrition": "true",
            "number": str(self.page_size),
        }
        if filters:
            if filters.diet:
                params["diet"] = filters.diet
            if filters.cuisine:
                params["cuisine"] = filters.cuisine
            if filters.has_time_bound:
                params["maxReadyTime"] = str(filters.max_ready_minutes)

        resp = await self._get("/complexSearch", params)
        self._raise_for_status(resp)

        try:
            payload = SpoonacularSearchResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as error:
            raise SourceUnavailableError(SOURCE_NAME, f"malformed search payload: {error}", retryable=False) from error

        recipes = [to_recipe(item) for item in payload.results if item.title.strip()]
        logger.info("Catalog search %r returned %d recipes", query, len(recipes))
        return recipes

    async def fetch_by_id(self, external_id: str) -> Optional[Recipe]:
        resp = await self._get(f"/{external_id}/information", {"includeNutrition": "true"})
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp)

        try:
            payload = SpoonacularRecipe.model_validate(resp.json())
        except (ValueError, ValidationError) as error:
            raise SourceUnavailableError(SOURCE_NAME, f"malformed recipe payload: {error}", retryable=False) from error

        if not payload.title.strip():
            return None
        return to_recipe(payload)

    async def aclose(self) -> None:
        await self.http_client.aclose()
