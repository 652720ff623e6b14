# src/app/domain/models.py
"""
Domain models for recipe resolution.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

UNKNOWN = "unknown"


class Provenance(str, Enum):
    """Which source produced a recipe."""
    LOCAL = "local"
    CATALOG = "catalog"
    GENERATED = "generated"


@dataclass(frozen=True)
class Nutrition:
    """Per-serving nutrition estimate, each value free text or "unknown"."""
    calories: str = UNKNOWN
    protein: str = UNKNOWN
    fat: str = UNKNOWN
    carbohydrates: str = UNKNOWN


@dataclass(frozen=True)
class Recipe:
    """
    Canonical recipe shape regardless of origin.
    Frozen: provenance and content never change after creation.
    """
    id: str
    title: str
    provenance: Provenance
    description: str = ""
    image_url: Optional[str] = None
    ingredients: tuple[str, ...] = ()
    instructions: tuple[str, ...] = ()
    cuisine_type: Optional[str] = None
    diet_type: Optional[str] = None
    cook_time: Optional[str] = None  # free text, e.g. "30 mins"
    cook_time_minutes: Optional[int] = None
    nutrition: Optional[Nutrition] = None
    owner_ref: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)


@dataclass(frozen=True)
class RecipeKey:
    """Decoded form of a recipe id."""
    provenance: Provenance
    key: str


@dataclass(frozen=True)
class SearchFilters:
    cuisine: Optional[str] = None
    diet: Optional[str] = None
    max_ready_minutes: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not (self.cuisine or self.diet or self.has_time_bound)

    @property
    def has_time_bound(self) -> bool:
        return self.max_ready_minutes is not None and self.max_ready_minutes > 0


@dataclass(frozen=True)
class SeedRecord:
    """A raw record from the free seed source, used only as generation input."""
    id: str
    title: str
    category: Optional[str] = None
    area: Optional[str] = None
    instructions: str = ""
    ingredients: tuple[str, ...] = ()  # "measure ingredient" strings
    image_url: Optional[str] = None


@dataclass
class SeedCompletion:
    """Fields parsed out of a seed-based completion."""
    description: str = ""
    cuisine_type: str = ""
    diet_type: str = ""
    cook_time: str = ""
    nutrition: Optional[Nutrition] = None
    unparsed_lines: list[str] = field(default_factory=list)


def normalize_title(title: Optional[str]) -> str:
    """Key used for title comparisons: trimmed and lowercased."""
    return (title or "").strip().lower()
