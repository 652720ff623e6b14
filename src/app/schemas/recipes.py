from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.app.domain.models import Recipe


class NutritionResponse(BaseModel):
    calories: str
    protein: str
    fat: str
    carbohydrates: str


class RecipeResponse(BaseModel):
    id: str
    title: str
    description: str = ""
    imageUrl: Optional[str] = None
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    cuisineType: Optional[str] = None
    dietType: Optional[str] = None
    cookTime: Optional[str] = None
    cookTimeMinutes: Optional[int] = None
    nutrition: Optional[NutritionResponse] = None
    provenance: Literal["local", "catalog", "generated"]
    ownerRef: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeResponse":
        nutrition = None
        if recipe.nutrition:
            nutrition = NutritionResponse(
                calories=recipe.nutrition.calories,
                protein=recipe.nutrition.protein,
                fat=recipe.nutrition.fat,
                carbohydrates=recipe.nutrition.carbohydrates,
            )
        return cls(
            id=recipe.id,
            title=recipe.title,
            description=recipe.description,
            imageUrl=recipe.image_url,
            ingredients=list(recipe.ingredients),
            instructions=list(recipe.instructions),
            cuisineType=recipe.cuisine_type,
            dietType=recipe.diet_type,
            cookTime=recipe.cook_time,
            cookTimeMinutes=recipe.cook_time_minutes,
            nutrition=nutrition,
            provenance=recipe.provenance.value,
            ownerRef=recipe.owner_ref,
            createdAt=recipe.created_at,
        )


class RecipeListResponse(BaseModel):
    items: list[RecipeResponse]
    total: int


class GenerateRecipeRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)
