# src/app/services/generation.py
"""
Generative adapter.

Two ways to synthesize a recipe with the completion endpoint:
- freeform: a user prompt, answered with a strict JSON object;
- seed-based: a free seed record, enriched with a line-oriented
  DESCRIPTION / CUISINE / DIET / COOKING TIME answer.

Nothing here persists; admission to the generation pool happens elsewhere.
"""
from __future__ import annotations

import json
import logging
import random
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4

from pydantic import ValidationError

from src.app.domain.errors import GenerationInvalidError
from src.app.domain.filters import parse_duration_minutes
from src.app.domain.models import (
    Nutrition,
    Provenance,
    Recipe,
    SeedCompletion,
    SeedRecord,
    UNKNOWN,
)
from src.app.domain.recipe_ids import generated_id
from src.app.infra.llm.completion_client import CompletionClient
from src.app.schemas.generation import GeneratedRecipePayload
from src.app.services.prompts import (
    FREEFORM_SYSTEM_PROMPT,
    SEED_SYSTEM_PROMPT,
    build_freeform_prompt,
    build_seed_prompt,
)
from src.app.services.retry import call_with_retries

logger = logging.getLogger(__name__)

GENERATOR_OWNER_REF = "00000000-0000-0000-0000-000000000000"
DEFAULT_DESCRIPTION = "A delicious dish you'll love!"
DEFAULT_INSTRUCTIONS = ("Mix all ingredients together.", "Cook until done.", "Serve hot.")

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_STEP_SPLIT_RE = re.compile(r"\r?\n|\.\s+")
_STEP_PREFIX_RE = re.compile(
    r"^step\s+(?:\d+|one|two|three|four|five|six|seven|eight|nine|ten)[:.;\s-]*",
    re.IGNORECASE,
)
_BARE_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")
_NUTRIENT_RES = {
    "calories": re.compile(r"(\d+(?:\.\d+)?)\s*(?:k?cal(?:ories)?)", re.IGNORECASE),
    "protein": re.compile(r"(\d+(?:\.\d+)?\s*g?)\s*(?:of\s+)?protein", re.IGNORECASE),
    "fat": re.compile(r"(\d+(?:\.\d+)?\s*g?)\s*(?:of\s+)?fat", re.IGNORECASE),
    "carbohydrates": re.compile(r"(\d+(?:\.\d+)?\s*g?)\s*(?:of\s+)?carb(?:ohydrate)?s?", re.IGNORECASE),
}

_MEAT_KEYWORDS = (
    "chicken", "beef", "pork", "lamb", "fish", "shrimp", "prawn", "bacon", "ham",
    "turkey", "duck", "anchov", "salmon", "tuna", "crab", "lobster", "clam",
    "mussel", "octopus", "squid", "veal", "goat", "mutton", "sausage", "prosciutto",
    "chorizo", "trout", "sardine", "steak", "mince", "meat", "rabbit", "venison",
    "goose", "scallop", "calamari", "cod", "haddock", "mackerel", "monkfish",
)


class SeedSection(Enum):
    NONE = "none"
    DESCRIPTION = "description"
    CUISINE = "cuisine"
    DIET = "diet"
    COOKING_TIME = "cooking time"
    NUTRITION = "nutrition"
    INGREDIENTS = "ingredients"
    INSTRUCTIONS = "instructions"


_SECTION_HEADERS = tuple(
    (f"{section.value.upper()}:", section)
    for section in SeedSection
    if section is not SeedSection.NONE
)


def _clean_line(line: str) -> str:
    return line.strip().lstrip("#*>").strip()


def _clean_value(value: str) -> str:
    return value.strip().strip("*").strip()


def _match_header(line: str) -> tuple[SeedSection, str] | None:
    upper = line.upper()
    for header, section in _SECTION_HEADERS:
        if upper.startswith(header):
            return section, _clean_value(line[len(header):])
    return None


class SeedCompletionParser:
    """
    Line-oriented state machine over the seed answer format.
    Each recognised header switches state; free lines only extend the
    description while in the DESCRIPTION state.
    """

    def __init__(self) -> None:
        self.state = SeedSection.NONE
        self._description: list[str] = []
        self._fields: dict[SeedSection, str] = {}
        self._preamble: list[str] = []

    def feed(self, raw_line: str) -> None:
        line = _clean_line(raw_line)
        if not line:
            return

        header = _match_header(line)
        if header is not None:
            self.state, value = header
            if self.state is SeedSection.DESCRIPTION:
                if value:
                    self._description.append(value)
            elif value and self.state not in self._fields:
                self._fields[self.state] = value
            return

        if self.state is SeedSection.DESCRIPTION:
            self._description.append(line)
        elif self.state is SeedSection.NONE:
            self._preamble.append(line)

    def result(self) -> SeedCompletion:
        description = " ".join(self._description).strip()
        nutrition_text = self._fields.get(SeedSection.NUTRITION)
        return SeedCompletion(
            description=description,
            cuisine_type=self._fields.get(SeedSection.CUISINE, "").strip().lower(),
            diet_type=self._fields.get(SeedSection.DIET, "").strip().lower(),
            cook_time=self._fields.get(SeedSection.COOKING_TIME, "").strip(),
            nutrition=parse_nutrition(nutrition_text) if nutrition_text else None,
            unparsed_lines=list(self._preamble),
        )


def parse_seed_completion(text: str) -> SeedCompletion:
    parser = SeedCompletionParser()
    for line in text.replace("\r\n", "\n").split("\n"):
        parser.feed(line)
    return parser.result()


def parse_nutrition(text: str) -> Nutrition:
    values = {}
    for key, pattern in _NUTRIENT_RES.items():
        m = pattern.search(text)
        values[key] = m.group(1).replace(" ", "") if m else UNKNOWN
    return Nutrition(**values)


def split_instructions(raw: str) -> tuple[str, ...]:
    steps = []
    for chunk in _STEP_SPLIT_RE.split(raw or ""):
        step = _STEP_PREFIX_RE.sub("", chunk.strip()).strip()
        if step:
            steps.append(step)
    return tuple(steps)


def guess_diet_type(ingredients: tuple[str, ...] | list[str]) -> str:
    for ingredient in ingredients:
        lowered = ingredient.lower()
        if any(meat in lowered for meat in _MEAT_KEYWORDS):
            return "omnivore"
    return "vegetarian"


def guess_cook_time(instructions: tuple[str, ...] | list[str]) -> tuple[str, int]:
    steps = len(instructions)
    if steps <= 3:
        return "15 mins", 15
    if steps <= 6:
        return "30 mins", 30
    return "45 mins", 45


def random_nutrition(rng: random.Random) -> Nutrition:
    return Nutrition(
        calories=str(rng.randint(200, 599)),
        protein=f"{rng.randint(10, 39)}g",
        fat=f"{rng.randint(5, 29)}g",
        carbohydrates=f"{rng.randint(20, 69)}g",
    )


def _normalize_cook_time(label: str) -> str:
    label = label.strip()
    if _BARE_NUMBER_RE.match(label):
        return f"{label} mins"
    return label


def _is_unknown(value: str) -> bool:
    return not value or value.strip().lower() == UNKNOWN


def _strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text.strip()).strip()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecipeGenerator:
    def __init__(
        self,
        completion_client: CompletionClient,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utc_now,
        max_attempts: int = 2,
    ) -> None:
        self.completion_client = completion_client
        self.rng = rng or random.Random()
        self.clock = clock
        self.max_attempts = max_attempts

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        return await call_with_retries(
            lambda: self.completion_client.complete(system_prompt, user_prompt),
            max_attempts=self.max_attempts,
            description="completion request",
        )

    def _seed_base(self, seed: SeedRecord) -> dict:
        instructions = split_instructions(seed.instructions) or DEFAULT_INSTRUCTIONS
        return {
            "id": generated_id(seed.id),
            "title": seed.title.strip(),
            "provenance": Provenance.GENERATED,
            "image_url": seed.image_url,
            "ingredients": seed.ingredients,
            "instructions": instructions,
            "owner_ref": GENERATOR_OWNER_REF,
            "created_at": self.clock(),
        }

    def derive_from_seed(self, seed: SeedRecord) -> Recipe:
        """Recipe built from the seed alone, for when the completion endpoint is down."""
        base = self._seed_base(seed)
        label, minutes = guess_cook_time(base["instructions"])
        area = (seed.area or "").strip()
        kind = f"This {seed.category.lower()} recipe" if seed.category else "This recipe"
        description = (
            f"{seed.title} is a delicious {area or 'international'} dish. "
            f"{kind} features fresh ingredients and traditional cooking methods "
            "to create a flavorful and satisfying meal."
        )
        return Recipe(
            **base,
            description=description,
            cuisine_type=area.lower() or "international",
            diet_type=guess_diet_type(seed.ingredients),
            cook_time=label,
            cook_time_minutes=minutes,
            nutrition=random_nutrition(self.rng),
        )

    def recipe_from_seed_completion(self, seed: SeedRecord, completion: SeedCompletion) -> Recipe:
        base = self._seed_base(seed)

        description = completion.description
        if not description and completion.unparsed_lines:
            description = " ".join(completion.unparsed_lines)
        if _is_unknown(description):
            description = DEFAULT_DESCRIPTION

        cuisine = completion.cuisine_type
        if _is_unknown(cuisine):
            cuisine = (seed.area or "").strip().lower() or UNKNOWN

        diet = completion.diet_type
        if _is_unknown(diet):
            diet = guess_diet_type(seed.ingredients)

        cook_time = _normalize_cook_time(completion.cook_time)
        minutes = parse_duration_minutes(cook_time)
        if minutes is None:
            cook_time, minutes = guess_cook_time(base["instructions"])

        return Recipe(
            **base,
            description=description,
            cuisine_type=cuisine,
            diet_type=diet,
            cook_time=cook_time,
            cook_time_minutes=minutes,
            nutrition=completion.nutrition or random_nutrition(self.rng),
        )

    async def generate_from_seed(self, seed: SeedRecord) -> Recipe:
        text = await self._complete(SEED_SYSTEM_PROMPT, build_seed_prompt(seed))
        completion = parse_seed_completion(text)
        logger.debug("Parsed seed completion for %s: %s", seed.id, completion)
        return self.recipe_from_seed_completion(seed, completion)

    async def generate_from_prompt(self, prompt: str) -> Recipe:
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required.")

        text = await self._complete(FREEFORM_SYSTEM_PROMPT, build_freeform_prompt(prompt))
        return self.recipe_from_json_completion(text)

    def recipe_from_json_completion(self, text: str) -> Recipe:
        try:
            data = json.loads(_strip_code_fences(text))
        except json.JSONDecodeError as error:
            raise GenerationInvalidError(f"Invalid JSON response from model: {error}", raw_output=text) from error

        try:
            payload = GeneratedRecipePayload.model_validate(data)
        except ValidationError as error:
            raise GenerationInvalidError(f"Model response failed validation: {error}", raw_output=text) from error

        nutrition = None
        if payload.nutrition:
            nutrition = Nutrition(
                **{
                    key: str(payload.nutrition.get(key) or UNKNOWN)
                    for key in ("calories", "protein", "fat", "carbohydrates")
                }
            )

        return Recipe(
            id=generated_id(uuid4().hex),
            title=payload.title,
            provenance=Provenance.GENERATED,
            description=payload.description,
            ingredients=tuple(payload.ingredients),
            instructions=tuple(payload.instructions),
            cuisine_type=payload.cuisine_type,
            diet_type=payload.diet_type,
            cook_time=payload.cooking_time,
            cook_time_minutes=parse_duration_minutes(payload.cooking_time),
            nutrition=nutrition,
            owner_ref=GENERATOR_OWNER_REF,
            created_at=self.clock(),
        )
