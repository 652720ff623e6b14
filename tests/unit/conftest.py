from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

from src.app.domain.errors import SourceUnavailableError, StoreUnavailableError
from src.app.domain.models import Provenance, Recipe, SearchFilters, SeedRecord
from src.app.domain.recipe_ids import generated_id
from src.app.infra.db.base import RecipeRepository
from src.app.services.generation import RecipeGenerator
from src.app.services.generation_pool import GenerationPool
from src.app.services.resolver import RecipeResolver

BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

SEED_COMPLETION = """DESCRIPTION: A tasty dish.
CUISINE: italian
DIET: vegetarian
COOKING TIME: 30 mins"""


def make_recipe(
    title: str,
    provenance: Provenance = Provenance.LOCAL,
    *,
    recipe_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    cook_time: Optional[str] = None,
    cook_time_minutes: Optional[int] = None,
    cuisine_type: Optional[str] = None,
    diet_type: Optional[str] = None,
    description: str = "",
) -> Recipe:
    return Recipe(
        id=recipe_id or f"{provenance.value}-{title.strip().lower().replace(' ', '-')}",
        title=title,
        provenance=provenance,
        description=description,
        cook_time=cook_time,
        cook_time_minutes=cook_time_minutes,
        cuisine_type=cuisine_type,
        diet_type=diet_type,
        created_at=created_at,
    )


def make_seed(seed_id: str, title: str, area: str = "Italian") -> SeedRecord:
    return SeedRecord(
        id=seed_id,
        title=title,
        category="Vegetarian",
        area=area,
        instructions="Boil the pasta. Stir in the sauce. Serve warm.",
        ingredients=("200g pasta", "1 jar tomato sauce"),
        image_url=f"https://img.example/{seed_id}.jpg",
    )


class TickingClock:
    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(minutes=1)
        return self.now


class InMemoryRecipeRepository(RecipeRepository):
    def __init__(self) -> None:
        self.rows: dict[str, Recipe] = {}
        self.mappings: dict[str, str] = {}
        self.deleted_ids: list[str] = []
        self.inserted_ids: list[str] = []
        self.unavailable = False

    def _check(self, operation: str) -> None:
        if self.unavailable:
            raise StoreUnavailableError(operation, "simulated outage")

    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        self._check("get_by_id")
        return self.rows.get(recipe_id)

    def search_by_text(self, query: str) -> list[Recipe]:
        self._check("search_by_text")
        q = query.lower()
        found = [
            r for r in self.rows.values()
            if q in r.title.lower() or q in (r.description or "").lower()
        ]
        return sorted(found, key=lambda r: r.created_at or BASE_TIME, reverse=True)

    def list_by_provenance(self, provenance: Provenance) -> list[Recipe]:
        self._check("list_by_provenance")
        found = [r for r in self.rows.values() if r.provenance is provenance]
        return sorted(found, key=lambda r: r.created_at or BASE_TIME)

    def insert(self, recipe: Recipe) -> Recipe:
        self._check("insert")
        if not recipe.title.strip():
            raise ValueError("Persisted recipes need a non-empty title")
        self.rows[recipe.id] = recipe
        self.inserted_ids.append(recipe.id)
        return recipe

    def delete(self, recipe_id: str) -> bool:
        self._check("delete")
        self.deleted_ids.append(recipe_id)
        return self.rows.pop(recipe_id, None) is not None

    def find_mapping_by_external_id(self, external_id: str) -> Optional[str]:
        self._check("find_mapping_by_external_id")
        return self.mappings.get(external_id)

    def record_mapping(self, internal_id: str, external_id: str) -> None:
        self._check("record_mapping")
        self.mappings[external_id] = internal_id


class CatalogStub:
    def __init__(self) -> None:
        self.enabled = True
        self.search_results: list[Recipe] = []
        self.recipes: dict[str, Recipe] = {}
        self.error: Optional[Exception] = None
        self.search_calls: list[tuple[str, Optional[SearchFilters]]] = []
        self.fetch_calls: list[str] = []

    async def search_by_text(self, query: str, filters: Optional[SearchFilters] = None) -> list[Recipe]:
        self.search_calls.append((query, filters))
        if self.error:
            raise self.error
        return list(self.search_results)

    async def fetch_by_id(self, external_id: str) -> Optional[Recipe]:
        self.fetch_calls.append(external_id)
        if self.error:
            raise self.error
        return self.recipes.get(external_id)

    async def aclose(self) -> None:
        pass


class SeedSourceStub:
    def __init__(self) -> None:
        self.seeds: dict[str, SeedRecord] = {}
        self.search_results: list[SeedRecord] = []
        self.random_queue: list[SeedRecord] = []
        self.error: Optional[Exception] = None
        self.lookup_calls: list[str] = []

    async def random(self) -> Optional[SeedRecord]:
        if self.error:
            raise self.error
        return self.random_queue.pop(0) if self.random_queue else None

    async def lookup(self, seed_id: str) -> Optional[SeedRecord]:
        self.lookup_calls.append(seed_id)
        if self.error:
            raise self.error
        return self.seeds.get(seed_id)

    async def search(self, query: str) -> list[SeedRecord]:
        if self.error:
            raise self.error
        return list(self.search_results)

    async def aclose(self) -> None:
        pass


class CompletionStub:
    def __init__(self, responder: Callable[[str, str], str] | str = SEED_COMPLETION) -> None:
        self.responder = responder
        self.calls: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        if callable(self.responder):
            return self.responder(system_prompt, user_prompt)
        return self.responder


def unavailable(source: str = "test source") -> SourceUnavailableError:
    return SourceUnavailableError(source, "simulated outage", retryable=False)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def repo() -> InMemoryRecipeRepository:
    return InMemoryRecipeRepository()


@pytest.fixture
def catalog() -> CatalogStub:
    return CatalogStub()


@pytest.fixture
def seed_source() -> SeedSourceStub:
    return SeedSourceStub()


@pytest.fixture
def completion() -> CompletionStub:
    return CompletionStub()


@pytest.fixture
def generator(completion: CompletionStub, clock: TickingClock) -> RecipeGenerator:
    return RecipeGenerator(completion, rng=random.Random(7), clock=clock, max_attempts=1)


@pytest.fixture
def pool(repo: InMemoryRecipeRepository, clock: TickingClock) -> GenerationPool:
    return GenerationPool(repo, capacity=5, clock=clock)


@pytest.fixture
def resolver(
    repo: InMemoryRecipeRepository,
    catalog: CatalogStub,
    seed_source: SeedSourceStub,
    generator: RecipeGenerator,
    pool: GenerationPool,
) -> RecipeResolver:
    return RecipeResolver(
        repository=repo,
        catalog=catalog,
        seed_source=seed_source,
        generator=generator,
        pool=pool,
        seed_batch=5,
        seed_delay_seconds=0,
        max_attempts=1,
    )


def pooled_recipe(title: str, created_at: datetime, seed: str) -> Recipe:
    return make_recipe(
        title,
        Provenance.GENERATED,
        recipe_id=generated_id(seed),
        created_at=created_at,
    )
