from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from src.app.services.prompts import VALID_DIET_TYPES

COOKING_TIME_RE = re.compile(
    r"^\d+(?:\.\d+)?\s*(?:mins?|minutes?|hours?)"
    r"(?:\s*(?:and\s+)?\d+\s*(?:mins?|minutes?))?$",
    re.IGNORECASE,
)


class GeneratedRecipePayload(BaseModel):
    """The JSON object a freeform completion must contain."""
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str
    ingredients: list[str]
    instructions: list[str]
    cuisine_type: str
    diet_type: str
    cooking_time: str
    nutrition: Optional[dict[str, Any]] = None

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("ingredients", "instructions")
    @classmethod
    def _non_empty_items(cls, value: list[str]) -> list[str]:
        items = [item.strip() for item in value if item and item.strip()]
        if not items:
            raise ValueError("must list at least one entry")
        return items

    @field_validator("cuisine_type")
    @classmethod
    def _normalize_cuisine(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("diet_type")
    @classmethod
    def _known_diet(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in VALID_DIET_TYPES:
            raise ValueError(f"must be one of: {', '.join(VALID_DIET_TYPES)}")
        return normalized

    @field_validator("cooking_time")
    @classmethod
    def _cooking_time_format(cls, value: str) -> str:
        value = value.strip()
        if not COOKING_TIME_RE.match(value):
            raise ValueError('must look like "X mins", "X hours" or "X hours Y mins"')
        return value
