from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from src.app.domain.errors import DuplicateTitleError, StoreUnavailableError
from src.app.domain.models import Provenance, Recipe
from src.app.services.generation_pool import GenerationPool

from tests.unit.conftest import (
    BASE_TIME,
    InMemoryRecipeRepository,
    TickingClock,
    make_recipe,
    pooled_recipe,
)


class FailingInsertRepository(InMemoryRecipeRepository):
    """Reads and deletes work; inserts hit an outage."""

    def insert(self, recipe: Recipe) -> Recipe:
        raise StoreUnavailableError("insert", "simulated outage")


def seed_pool(repo: InMemoryRecipeRepository, titles: list[str]) -> None:
    for i, title in enumerate(titles):
        recipe = pooled_recipe(title, BASE_TIME - timedelta(hours=len(titles) - i), seed=f"old{i}")
        repo.rows[recipe.id] = recipe


class TestAdmission:
    @pytest.mark.asyncio
    async def test_admit_stamps_created_at(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        stored = await pool.admit(pooled_recipe("Pad Thai", BASE_TIME - timedelta(days=3), seed="1"))

        assert stored.created_at > BASE_TIME
        assert repo.rows["generated:1"].created_at == stored.created_at

    @pytest.mark.asyncio
    async def test_capacity_evicts_oldest(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        seed_pool(repo, ["One", "Two", "Three", "Four", "Five"])

        await pool.admit(pooled_recipe("Six", BASE_TIME, seed="6"))

        titles = [r.title for r in await pool.entries()]
        assert titles == ["Two", "Three", "Four", "Five", "Six"]
        assert repo.deleted_ids == ["generated:old0"]

    @pytest.mark.asyncio
    async def test_overfull_pool_is_trimmed_to_capacity(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        seed_pool(repo, ["A", "B", "C", "D", "E", "F", "G"])

        await pool.admit(pooled_recipe("H", BASE_TIME, seed="h"))

        titles = [r.title for r in await pool.entries()]
        assert titles == ["D", "E", "F", "G", "H"]

    @pytest.mark.asyncio
    async def test_pool_never_exceeds_capacity(self, repo: InMemoryRecipeRepository, clock: TickingClock) -> None:
        pool = GenerationPool(repo, capacity=3, clock=clock)

        for i in range(8):
            await pool.admit(pooled_recipe(f"Dish {i}", BASE_TIME, seed=str(i)))
            assert len(await pool.entries()) <= 3

        assert [r.title for r in await pool.entries()] == ["Dish 5", "Dish 6", "Dish 7"]

    @pytest.mark.asyncio
    async def test_duplicate_title_rejected(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        await pool.admit(pooled_recipe("Pad Thai", BASE_TIME, seed="1"))

        with pytest.raises(DuplicateTitleError) as excinfo:
            await pool.admit(pooled_recipe("  pad thai ", BASE_TIME, seed="2"))

        assert excinfo.value.existing_id == "generated:1"
        assert list(repo.rows) == ["generated:1"]

    @pytest.mark.asyncio
    async def test_duplicate_does_not_evict(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        seed_pool(repo, ["One", "Two", "Three", "Four", "Five"])

        with pytest.raises(DuplicateTitleError):
            await pool.admit(pooled_recipe("three", BASE_TIME, seed="x"))

        assert repo.deleted_ids == []
        assert len(await pool.entries()) == 5

    @pytest.mark.asyncio
    async def test_failed_insert_keeps_oldest_entry(self, clock: TickingClock) -> None:
        repo = FailingInsertRepository()
        seed_pool(repo, ["One", "Two", "Three", "Four", "Five"])
        pool = GenerationPool(repo, capacity=5, clock=clock)

        with pytest.raises(StoreUnavailableError):
            await pool.admit(pooled_recipe("Six", BASE_TIME, seed="6"))

        assert len(repo.rows) == 5
        assert "generated:old0" in repo.rows
        assert repo.deleted_ids == []

    @pytest.mark.asyncio
    async def test_rejects_non_generated_and_untitled(self, pool: GenerationPool) -> None:
        with pytest.raises(ValueError):
            await pool.admit(make_recipe("Toast", Provenance.LOCAL))
        with pytest.raises(ValueError):
            await pool.admit(pooled_recipe("   ", BASE_TIME, seed="1"))

    def test_capacity_must_be_positive(self, repo: InMemoryRecipeRepository) -> None:
        with pytest.raises(ValueError):
            GenerationPool(repo, capacity=0)

    @pytest.mark.asyncio
    async def test_room(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        assert await pool.room() == 5
        seed_pool(repo, ["One", "Two"])
        assert await pool.room() == 3
        assert await pool.titles() == {"one", "two"}


class TestConcurrentAdmission:
    @pytest.mark.asyncio
    async def test_parallel_admits_respect_capacity(self, pool: GenerationPool) -> None:
        await asyncio.gather(*(pool.admit(pooled_recipe(f"Dish {i}", BASE_TIME, seed=str(i))) for i in range(12)))

        assert len(await pool.entries()) == 5

    @pytest.mark.asyncio
    async def test_parallel_same_title_admits_once(self, pool: GenerationPool) -> None:
        results = await asyncio.gather(
            pool.admit(pooled_recipe("Pad Thai", BASE_TIME, seed="1")),
            pool.admit(pooled_recipe("PAD THAI", BASE_TIME, seed="2")),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, DuplicateTitleError)]
        assert len(errors) == 1
        assert len(await pool.entries()) == 1


class TestRemoveDuplicateTitles:
    @pytest.mark.asyncio
    async def test_keeps_oldest_of_each_title(self, pool: GenerationPool, repo: InMemoryRecipeRepository) -> None:
        seed_pool(repo, ["Curry", "Stew", "curry ", "Stew", "Pie"])

        removed = await pool.remove_duplicate_titles()

        assert sorted(r.id for r in removed) == ["generated:old2", "generated:old3"]
        assert [r.title for r in await pool.entries()] == ["Curry", "Stew", "Pie"]
