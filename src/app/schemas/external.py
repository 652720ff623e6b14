"""
Validated shapes of third-party payloads (catalog and seed source).
Raw JSON never travels past the adapters; it is parsed into these first.
"""
from __future__ import annotations

from typing import Annotated, Any, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

MAX_SEED_INGREDIENTS = 20

T = TypeVar("T")


def _none_as_empty_list(value: Any) -> Any:
    return [] if value is None else value


# the catalog sends null for empty arrays on some records
NullableList = Annotated[list[T], BeforeValidator(_none_as_empty_list)]


class SpoonacularIngredient(BaseModel):
    model_config = ConfigDict(extra="ignore")

    original: str = ""


class SpoonacularStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: Optional[int] = None
    step: str = ""


class SpoonacularInstructionBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    steps: NullableList[SpoonacularStep] = Field(default_factory=list)


class SpoonacularNutrient(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    amount: Optional[float] = None
    unit: str = ""


class SpoonacularNutrition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nutrients: NullableList[SpoonacularNutrient] = Field(default_factory=list)

    def find(self, name: str) -> Optional[SpoonacularNutrient]:
        wanted = name.lower()
        for nutrient in self.nutrients:
            if nutrient.name.strip().lower() == wanted and nutrient.amount is not None:
                return nutrient
        return None


class SpoonacularRecipe(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    summary: Optional[str] = None
    image: Optional[str] = None
    cuisines: NullableList[str] = Field(default_factory=list)
    diets: NullableList[str] = Field(default_factory=list)
    readyInMinutes: Optional[int] = None
    extendedIngredients: NullableList[SpoonacularIngredient] = Field(default_factory=list)
    analyzedInstructions: NullableList[SpoonacularInstructionBlock] = Field(default_factory=list)
    instructions: Optional[str] = None
    nutrition: Optional[SpoonacularNutrition] = None


class SpoonacularSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: NullableList[SpoonacularRecipe] = Field(default_factory=list)
    totalResults: Optional[int] = None


class MealDBMeal(BaseModel):
    """
    TheMealDB record. Ingredients arrive as strIngredient1..20 and
    strMeasure1..20, which land in model_extra.
    """
    model_config = ConfigDict(extra="allow")

    idMeal: str
    strMeal: str = ""
    strCategory: Optional[str] = None
    strArea: Optional[str] = None
    strInstructions: Optional[str] = None
    strMealThumb: Optional[str] = None

    def ingredient_lines(self) -> list[str]:
        extra = self.model_extra or {}
        lines: list[str] = []
        for i in range(1, MAX_SEED_INGREDIENTS + 1):
            ingredient = str(extra.get(f"strIngredient{i}") or "").strip()
            if not ingredient or ingredient.lower() == "null":
                continue
            measure = str(extra.get(f"strMeasure{i}") or "").strip()
            lines.append(f"{measure} {ingredient}".strip() if measure else ingredient)
        return lines


class MealDBResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # TheMealDB answers {"meals": null} when nothing matches
    meals: Optional[list[MealDBMeal]] = None
