"""
Bulk generation into the pool from randomly sampled seed records.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from src.app.domain.errors import DuplicateTitleError, SourceUnavailableError
from src.app.domain.models import Recipe
from src.app.infra.seeds.mealdb_client import MealDBSeedSource
from src.app.services.generation import RecipeGenerator
from src.app.services.generation_pool import GenerationPool

logger = logging.getLogger(__name__)


@dataclass
class RefillReport:
    admitted: list[Recipe] = field(default_factory=list)
    duplicates: int = 0
    errors: int = 0
    removed_duplicates: int = 0

    @property
    def attempts(self) -> int:
        return len(self.admitted) + self.duplicates + self.errors


async def refill_pool(
    seed_source: MealDBSeedSource,
    generator: RecipeGenerator,
    pool: GenerationPool,
    count: int,
    *,
    delay_seconds: float = 0.1,
    dedupe_first: bool = False,
    use_completion: bool = True,
) -> RefillReport:
    """
    Sample `count` random seeds, generate a recipe for each and admit it.

    Seed fetches are spaced by delay_seconds so the free source is not
    hammered. A failing seed or completion call counts as an error and the
    run continues.
    """
    report = RefillReport()
    if dedupe_first:
        report.removed_duplicates = len(await pool.remove_duplicate_titles())

    for i in range(count):
        if i:
            await asyncio.sleep(delay_seconds)
        try:
            seed = await seed_source.random()
            if seed is None:
                report.errors += 1
                continue
            if use_completion:
                recipe = await generator.generate_from_seed(seed)
            else:
                recipe = generator.derive_from_seed(seed)
            report.admitted.append(await pool.admit(recipe))
        except DuplicateTitleError:
            report.duplicates += 1
        except SourceUnavailableError as error:
            logger.warning("Refill attempt %d/%d failed: %s", i + 1, count, error)
            report.errors += 1

    logger.info(
        "Pool refill done: admitted=%d duplicates=%d errors=%d",
        len(report.admitted),
        report.duplicates,
        report.errors,
    )
    return report
