# src/app/services/resolver.py
"""
Recipe resolution facade.
Answers "give me recipe X" and "search recipes matching Q" across the
local store, the paid catalog and the generation pipeline.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional

from starlette.concurrency import run_in_threadpool

from src.app.domain import recipe_ids
from src.app.domain.dedupe import dedupe
from src.app.domain.errors import (
    DuplicateTitleError,
    GenerationInvalidError,
    QuotaExceededError,
    RecipeNotFoundError,
    SourceUnavailableError,
)
from src.app.domain.filters import apply_filters
from src.app.domain.models import Provenance, Recipe, SearchFilters, SeedRecord, normalize_title
from src.app.infra.catalog.spoonacular_client import SpoonacularCatalog
from src.app.infra.db.base import RecipeRepository
from src.app.infra.seeds.mealdb_client import MealDBSeedSource
from src.app.services.generation import RecipeGenerator
from src.app.services.generation_pool import GenerationPool
from src.app.services.retry import call_with_retries

logger = logging.getLogger(__name__)

DEFAULT_SEED_BATCH = 5
DEFAULT_SEED_DELAY_SECONDS = 0.1

# failures that make one source contribute nothing to a search
_DEGRADABLE_ERRORS = (QuotaExceededError, SourceUnavailableError, GenerationInvalidError)


class RecipeResolver:
    def __init__(
        self,
        repository: RecipeRepository,
        catalog: SpoonacularCatalog,
        seed_source: MealDBSeedSource,
        generator: RecipeGenerator,
        pool: GenerationPool,
        *,
        seed_batch: int = DEFAULT_SEED_BATCH,
        seed_delay_seconds: float = DEFAULT_SEED_DELAY_SECONDS,
        max_attempts: int = 2,
    ) -> None:
        self._repo = repository
        self.catalog = catalog
        self.seed_source = seed_source
        self.generator = generator
        self.pool = pool
        self.seed_batch = seed_batch
        self.seed_delay_seconds = seed_delay_seconds
        self.max_attempts = max_attempts

    # ------------------------------------------------------------------
    # resolve by id
    # ------------------------------------------------------------------

    async def resolve_by_id(self, recipe_id: str) -> Recipe:
        """
        Resolve one recipe through the source its id names.

        Raises:
            RecipeNotFoundError: No source knows the id
            QuotaExceededError: Catalog quota is spent
            SourceUnavailableError: The responsible source is down
            DuplicateTitleError: A generated recipe with the same title is pooled
        """
        decoded = recipe_ids.decode(recipe_id)
        if not decoded.key:
            raise RecipeNotFoundError(str(recipe_id))

        if decoded.provenance is Provenance.CATALOG:
            return await self._resolve_catalog(decoded.key)
        if decoded.provenance is Provenance.GENERATED:
            return await self._resolve_generated(decoded.key)
        return await self._resolve_local(decoded.key)

    async def _get_stored(self, recipe_id: str) -> Optional[Recipe]:
        return await run_in_threadpool(self._repo.get_by_id, recipe_id)

    async def _resolve_local(self, key: str) -> Recipe:
        recipe = await self._get_stored(key)
        if recipe is None:
            raise RecipeNotFoundError(key)
        return recipe

    async def _resolve_catalog(self, external_id: str) -> Recipe:
        internal_id = await run_in_threadpool(self._repo.find_mapping_by_external_id, external_id)
        if internal_id:
            stored = await self._get_stored(internal_id)
            if stored is not None:
                logger.debug("Catalog id %s served from mapping -> %s", external_id, internal_id)
                return stored
            logger.warning("Mapping for catalog id %s points at missing row %s, re-importing", external_id, internal_id)

        recipe = await call_with_retries(
            lambda: self.catalog.fetch_by_id(external_id),
            max_attempts=self.max_attempts,
            description=f"catalog fetch {external_id}",
        )
        if recipe is None:
            raise RecipeNotFoundError(recipe_ids.catalog_id(external_id))

        stored = await self._get_stored(recipe.id)
        if stored is None:
            stored = await run_in_threadpool(self._repo.insert, recipe)
        await run_in_threadpool(self._repo.record_mapping, stored.id, external_id)
        logger.info("Imported catalog recipe %s as %s", external_id, stored.id)
        return stored

    async def _resolve_generated(self, key: str) -> Recipe:
        requested_id = recipe_ids.generated_id(key)
        seed_id = recipe_ids.seed_id(key)
        for candidate_id in dict.fromkeys((requested_id, recipe_ids.generated_id(seed_id))):
            stored = await self._get_stored(candidate_id)
            if stored is not None:
                return stored

        seed = await call_with_retries(
            lambda: self.seed_source.lookup(seed_id),
            max_attempts=self.max_attempts,
            description=f"seed lookup {seed_id}",
        )
        if seed is None:
            raise RecipeNotFoundError(requested_id)

        recipe = await self.generator.generate_from_seed(seed)
        return await self.pool.admit(recipe)

    # ------------------------------------------------------------------
    # search
    # ------------------------------------------------------------------

    async def search(self, query: str, filters: Optional[SearchFilters] = None) -> list[Recipe]:
        """
        Search every source at once and merge the answers.

        The local store is required; catalog and seed-source failures only
        shrink the result. Generated recipes come first, capped at the pool
        capacity.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Query is required.")
        filters = filters or SearchFilters()

        local, generated, catalog = await asyncio.gather(
            self._search_local(query),
            self._degrade("seed source", self._generate_candidates(query)),
            self._degrade("catalog", self._search_catalog(query, filters)),
        )

        merged = dedupe([*local, *generated, *catalog])
        admitted = await self._admit_candidates(merged, generated)
        filtered = apply_filters(admitted, filters)

        generated_slice = [r for r in filtered if r.provenance is Provenance.GENERATED][: self.pool.capacity]
        others = [r for r in filtered if r.provenance is not Provenance.GENERATED]

        logger.info(
            "Search %r: local=%d generated=%d catalog=%d -> %d results",
            query,
            len(local),
            len(generated),
            len(catalog),
            len(generated_slice) + len(others),
        )
        return generated_slice + others

    async def _degrade(self, source: str, branch: Awaitable[list[Recipe]]) -> list[Recipe]:
        try:
            return await branch
        except _DEGRADABLE_ERRORS as error:
            logger.warning("Search source %s contributed nothing: %s", source, error)
            return []

    async def _search_local(self, query: str) -> list[Recipe]:
        return await run_in_threadpool(self._repo.search_by_text, query)

    async def _search_catalog(self, query: str, filters: SearchFilters) -> list[Recipe]:
        if not self.catalog.enabled:
            return []
        return await self.catalog.search_by_text(query, filters)

    async def _select_seeds(self, query: str) -> list[SeedRecord]:
        """Keyword matches first, topped up with random seeds, skipping pooled titles."""
        seen = await self.pool.titles()
        selected: list[SeedRecord] = []

        def accept(seed: SeedRecord) -> None:
            key = normalize_title(seed.title)
            if key and key not in seen:
                seen.add(key)
                selected.append(seed)

        keyword_seeds = await call_with_retries(
            lambda: self.seed_source.search(query),
            max_attempts=self.max_attempts,
            description=f"seed search {query!r}",
        )
        for seed in keyword_seeds:
            if len(selected) >= self.seed_batch:
                break
            accept(seed)

        draws = 0
        while len(selected) < self.seed_batch and draws < self.seed_batch * 2:
            # pace consecutive random fetches only
            if draws:
                await asyncio.sleep(self.seed_delay_seconds)
            draws += 1
            try:
                seed = await self.seed_source.random()
            except SourceUnavailableError as error:
                logger.warning("Random seed fetch failed, keeping %d seeds: %s", len(selected), error)
                break
            if seed is None:
                break
            accept(seed)
        return selected

    async def _generate_candidates(self, query: str) -> list[Recipe]:
        if self.seed_batch <= 0:
            return []

        candidates: list[Recipe] = []
        for seed in await self._select_seeds(query):
            try:
                candidates.append(await self.generator.generate_from_seed(seed))
            except SourceUnavailableError as error:
                logger.warning("Completion failed for seed %s, deriving fields instead: %s", seed.id, error)
                candidates.append(self.generator.derive_from_seed(seed))
        return candidates

    async def _admit_candidates(self, merged: list[Recipe], candidates: list[Recipe]) -> list[Recipe]:
        """Persist fresh generated candidates while the pool has room, in order."""
        if not candidates:
            return merged

        pooled = await self.pool.titles()
        room = await self.pool.room()
        results: list[Recipe] = []
        for recipe in merged:
            is_fresh = any(recipe is candidate for candidate in candidates)
            if is_fresh and room > 0 and recipe.normalized_title not in pooled:
                try:
                    recipe = await self.pool.admit(recipe)
                    pooled.add(recipe.normalized_title)
                    room -= 1
                except DuplicateTitleError:
                    logger.debug("Candidate %r already pooled", recipe.title)
            results.append(recipe)
        return results

    # ------------------------------------------------------------------
    # freeform generation
    # ------------------------------------------------------------------

    async def generate_from_prompt(self, prompt: str) -> Recipe:
        """
        Generate a recipe from a free-text prompt and admit it to the pool.

        Raises:
            GenerationInvalidError: The model answer failed validation
            DuplicateTitleError: The pool already holds the title
        """
        recipe = await self.generator.generate_from_prompt(prompt)
        return await self.pool.admit(recipe)
