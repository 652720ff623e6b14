from __future__ import annotations

from typing import Iterable

from src.app.domain.models import Recipe, normalize_title


def dedupe(recipes: Iterable[Recipe]) -> list[Recipe]:
    """Drops empty and repeated titles (case-insensitive); first occurrence wins."""
    seen: set[str] = set()
    out: list[Recipe] = []
    for recipe in recipes:
        key = normalize_title(recipe.title)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(recipe)
    return out
