# src/app/services/generation_pool.py
"""
Generation pool management.
Keeps the persisted generated recipes at a fixed capacity.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Callable

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import DuplicateTitleError
from src.app.domain.models import Provenance, Recipe
from src.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

DEFAULT_POOL_CAPACITY = 5


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GenerationPool:
    """
    Capacity-bounded set of persisted generated recipes.

    Responsibilities:
    - Reject candidates whose title is already pooled
    - Evict the oldest entry when an insert would exceed capacity
    - Stamp admitted entries with created_at=now

    Admission (read, insert, evict) runs under one lock per pool instance,
    so concurrent requests served by the same process cannot interleave.
    """

    def __init__(
        self,
        repository: RecipeRepository,
        capacity: int = DEFAULT_POOL_CAPACITY,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if capacity < 1:
            raise ValueError("Pool capacity must be at least 1")
        self._repo = repository
        self.capacity = capacity
        self._clock = clock
        self._lock = asyncio.Lock()

    async def entries(self) -> list[Recipe]:
        """Pooled recipes, oldest first."""
        return await run_in_threadpool(self._repo.list_by_provenance, Provenance.GENERATED)

    async def titles(self) -> set[str]:
        return {r.normalized_title for r in await self.entries() if r.normalized_title}

    async def room(self) -> int:
        return max(0, self.capacity - len(await self.entries()))

    async def admit(self, candidate: Recipe) -> Recipe:
        """
        Add a generated recipe to the pool.

        Args:
            candidate: The recipe to persist

        Returns:
            The stored entry

        Raises:
            DuplicateTitleError: If the pool already holds the title
            ValueError: If the candidate has no title or is not generated
        """
        title_key = candidate.normalized_title
        if not title_key:
            raise ValueError("Generated recipes need a non-empty title")
        if candidate.provenance is not Provenance.GENERATED:
            raise ValueError(f"Only generated recipes can be pooled, got {candidate.provenance.value}")

        async with self._lock:
            pool = await self.entries()

            for entry in pool:
                if entry.normalized_title == title_key:
                    logger.info("Pool rejected duplicate title: %r (existing id=%s)", candidate.title, entry.id)
                    raise DuplicateTitleError(candidate.title, existing_id=entry.id)

            # insert before evicting so a failed insert leaves the pool intact
            entry = dataclasses.replace(candidate, created_at=self._clock())
            stored = await run_in_threadpool(self._repo.insert, entry)
            logger.info("Pool admitted: id=%s, title=%r", stored.id, stored.title)

            # pool is read oldest-first; normally at most one entry goes
            overflow = len(pool) - self.capacity + 1
            for oldest in pool[:max(0, overflow)]:
                await run_in_threadpool(self._repo.delete, oldest.id)
                logger.info("Pool at capacity (%d), evicted oldest: id=%s, title=%r", self.capacity, oldest.id, oldest.title)
            return stored

    async def remove_duplicate_titles(self) -> list[Recipe]:
        """
        Delete pooled entries whose title repeats an older entry's.

        Returns:
            The removed entries
        """
        async with self._lock:
            seen: set[str] = set()
            removed: list[Recipe] = []
            for entry in await self.entries():
                key = entry.normalized_title
                if key and key not in seen:
                    seen.add(key)
                    continue
                await run_in_threadpool(self._repo.delete, entry.id)
                removed.append(entry)

        if removed:
            logger.info("Removed %d duplicate pool entries", len(removed))
        return removed
