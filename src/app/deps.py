# src/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

import httpx
from supabase import Client, create_client

from src.app.config import get_settings
from src.app.infra.catalog.spoonacular_client import SpoonacularCatalog
from src.app.infra.db.supabase_recipes_repo import SupabaseRecipeRepository
from src.app.infra.llm.completion_client import CompletionClient
from src.app.infra.seeds.mealdb_client import MealDBSeedSource
from src.app.services.generation import RecipeGenerator
from src.app.services.generation_pool import GenerationPool
from src.app.services.resolver import RecipeResolver

_client: Client | None = None
_resolver: RecipeResolver | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        settings = get_settings()
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def build_resolver(supa: Client | None = None) -> RecipeResolver:
    settings = get_settings()
    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True)
    repository = SupabaseRecipeRepository(supa or get_supabase())

    return RecipeResolver(
        repository=repository,
        catalog=SpoonacularCatalog(
            api_key=settings.SPOONACULAR_API_KEY,
            base_url=settings.SPOONACULAR_API_URL,
            http_client=http_client,
        ),
        seed_source=MealDBSeedSource(
            base_url=settings.MEALDB_API_URL,
            http_client=http_client,
        ),
        generator=RecipeGenerator(
            CompletionClient(
                api_url=settings.COMPLETION_API_URL,
                api_key=settings.COMPLETION_API_KEY,
                model_name=settings.COMPLETION_MODEL,
                http_client=http_client,
            ),
            max_attempts=settings.SOURCE_MAX_ATTEMPTS,
        ),
        pool=GenerationPool(repository, capacity=settings.GENERATION_POOL_CAPACITY),
        seed_batch=settings.SEARCH_SEED_BATCH,
        seed_delay_seconds=settings.SEED_FETCH_DELAY_SECONDS,
        max_attempts=settings.SOURCE_MAX_ATTEMPTS,
    )


def get_resolver() -> RecipeResolver:
    # one resolver per process so every request shares the pool lock
    global _resolver
    if _resolver is None:
        _resolver = build_resolver()
    return _resolver


async def close_resolver() -> None:
    global _resolver
    if _resolver is None:
        return
    # the adapters share one http client
    await _resolver.catalog.aclose()
    _resolver = None
