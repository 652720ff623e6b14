import argparse
import asyncio
import logging
import pathlib
import sys

from dotenv import find_dotenv, load_dotenv

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.app.config import get_settings
from src.app.deps import build_resolver
from src.app.services.pool_refill import refill_pool


async def run(count: int, dedupe_first: bool, use_completion: bool) -> None:
    settings = get_settings()
    resolver = build_resolver()
    try:
        report = await refill_pool(
            resolver.seed_source,
            resolver.generator,
            resolver.pool,
            count,
            delay_seconds=settings.SEED_FETCH_DELAY_SECONDS,
            dedupe_first=dedupe_first,
            use_completion=use_completion,
        )
    finally:
        await resolver.catalog.aclose()

    print("removed duplicates:", report.removed_duplicates)
    print("admitted:", len(report.admitted))
    for recipe in report.admitted:
        print("  -", recipe.id, recipe.title)
    print("duplicates skipped:", report.duplicates)
    print("errors:", report.errors)


def main() -> None:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        print(f".env found at: {env_path}")
        load_dotenv(dotenv_path=env_path)

    parser = argparse.ArgumentParser(description="Generate fresh recipes into the generation pool")
    parser.add_argument("--count", type=int, default=None, help="Recipes to generate (default: pool capacity)")
    parser.add_argument("--dedupe", action="store_true", help="Remove duplicate pool titles first")
    parser.add_argument(
        "--no-completion",
        action="store_true",
        help="Derive fields from the seed record only, without calling the model",
    )
    args = parser.parse_args()
    count = args.count if args.count is not None else get_settings().GENERATION_POOL_CAPACITY

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    asyncio.run(run(count, args.dedupe, not args.no_completion))


if __name__ == "__main__":
    main()
