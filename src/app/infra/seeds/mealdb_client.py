from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from src.app.domain.errors import SourceUnavailableError
from src.app.domain.models import SeedRecord
from src.app.schemas.external import MealDBMeal, MealDBResponse

logger = logging.getLogger(__name__)

SOURCE_NAME = "seed source"


def to_seed(meal: MealDBMeal) -> SeedRecord:
    return SeedRecord(
        id=str(meal.idMeal).strip(),
        title=meal.strMeal.strip(),
        category=meal.strCategory,
        area=meal.strArea,
        instructions=meal.strInstructions or "",
        ingredients=tuple(meal.ingredient_lines()),
        image_url=meal.strMealThumb,
    )


class MealDBSeedSource:
    """Free seed source: one random or keyword-matched meal per call."""

    def __init__(
        self,
        base_url: str = "https://www.themealdb.com/api/json/v1/1",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_client = httpx.AsyncClient(timeout=timeout) if http_client is None else http_client

    async def _fetch_meals(self, path: str, params: dict[str, Any] | None = None) -> list[SeedRecord]:
        try:
            resp = await self.http_client.get(f"{self.base_url}/{path}", params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            raise SourceUnavailableError(
                SOURCE_NAME,
                f"HTTP {status}",
                status_code=status,
                retryable=status >= 500 or status == 429,
            ) from error
        except httpx.HTTPError as error:
            raise SourceUnavailableError(SOURCE_NAME, str(error)) from error

        try:
            payload = MealDBResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as error:
            raise SourceUnavailableError(SOURCE_NAME, f"malformed payload: {error}", retryable=False) from error

        return [to_seed(meal) for meal in payload.meals or [] if meal.strMeal.strip()]

    async def random(self) -> Optional[SeedRecord]:
        seeds = await self._fetch_meals("random.php")
        return seeds[0] if seeds else None

    async def lookup(self, seed_id: str) -> Optional[SeedRecord]:
        seeds = await self._fetch_meals("lookup.php", {"i": seed_id})
        return seeds[0] if seeds else None

    async def search(self, query: str) -> list[SeedRecord]:
        seeds = await self._fetch_meals("search.php", {"s": query})
        logger.debug("Seed search %r matched %d meals", query, len(seeds))
        return seeds

    async def aclose(self) -> None:
        await self.http_client.aclose()
