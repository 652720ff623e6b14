from __future__ import annotations

import re
from typing import Optional

from src.app.domain.models import Recipe, SearchFilters

_MINUTES_RE = re.compile(r"(\d+)\s*mins?", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)", re.IGNORECASE)


def parse_minutes(label: Optional[str]) -> Optional[int]:
    """Minutes from labels like '30 mins'. Hour-only labels are not understood."""
    if not label:
        return None
    m = _MINUTES_RE.search(label)
    return int(m.group(1)) if m else None


def parse_duration_minutes(label: Optional[str]) -> Optional[int]:
    """Total minutes for '45 mins', '1.5 hours' or '1 hour 30 mins'."""
    if not label:
        return None
    hours = _HOURS_RE.search(label)
    minutes = _MINUTES_RE.search(label)
    if not hours and not minutes:
        return None
    total = 0.0
    if hours:
        total += float(hours.group(1)) * 60
    if minutes:
        total += int(minutes.group(1))
    return round(total)


def ready_minutes(recipe: Recipe) -> Optional[int]:
    if recipe.cook_time_minutes is not None:
        return recipe.cook_time_minutes
    return parse_minutes(recipe.cook_time)


def _same(value: Optional[str], wanted: str) -> bool:
    return (value or "").strip().lower() == wanted.strip().lower()


def matches(recipe: Recipe, filters: Optional[SearchFilters]) -> bool:
    if filters is None:
        return True
    if filters.cuisine and not _same(recipe.cuisine_type, filters.cuisine):
        return False
    if filters.diet and not _same(recipe.diet_type, filters.diet):
        return False
    if filters.has_time_bound:
        minutes = ready_minutes(recipe)
        # unknown time cannot satisfy a bound
        if minutes is None or minutes > filters.max_ready_minutes:
            return False
    return True


def apply_filters(recipes: list[Recipe], filters: Optional[SearchFilters]) -> list[Recipe]:
    return [r for r in recipes if matches(r, filters)]
