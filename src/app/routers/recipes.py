# src/app/routers/recipes.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.app.deps import get_resolver
from src.app.domain.errors import (
    DuplicateTitleError,
    GenerationInvalidError,
    QuotaExceededError,
    RecipeNotFoundError,
    ResolutionError,
    SourceUnavailableError,
)
from src.app.domain.models import SearchFilters
from src.app.schemas.recipes import GenerateRecipeRequest, RecipeListResponse, RecipeResponse
from src.app.services.resolver import RecipeResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _to_http_error(error: ResolutionError) -> HTTPException:
    if isinstance(error, RecipeNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    if isinstance(error, DuplicateTitleError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This recipe already exists")
    if isinstance(error, QuotaExceededError):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Recipe catalog quota exceeded")
    if isinstance(error, GenerationInvalidError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    if isinstance(error, SourceUnavailableError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to resolve recipe")


@router.get("/search", response_model=RecipeListResponse)
async def search_recipes(
    q: str = Query(..., min_length=1, description="Free-text query"),
    cuisine: Optional[str] = Query(None),
    diet: Optional[str] = Query(None),
    max_ready_minutes: Optional[int] = Query(None, alias="time", ge=0),
    resolver: RecipeResolver = Depends(get_resolver),
):
    filters = SearchFilters(cuisine=cuisine, diet=diet, max_ready_minutes=max_ready_minutes)
    try:
        recipes = await resolver.search(q, filters)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ResolutionError as e:
        logger.error("Search failed for %r: %s", q, e)
        raise _to_http_error(e)

    items = [RecipeResponse.from_recipe(r) for r in recipes]
    return RecipeListResponse(items=items, total=len(items))


@router.post("/generate", response_model=RecipeResponse)
async def generate_recipe(
    request: GenerateRecipeRequest,
    resolver: RecipeResolver = Depends(get_resolver),
):
    try:
        recipe = await resolver.generate_from_prompt(request.prompt)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ResolutionError as e:
        logger.warning("Freeform generation failed: %s", e)
        raise _to_http_error(e)
    return RecipeResponse.from_recipe(recipe)


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    resolver: RecipeResolver = Depends(get_resolver),
):
    try:
        recipe = await resolver.resolve_by_id(recipe_id)
    except ResolutionError as e:
        if not isinstance(e, (RecipeNotFoundError, DuplicateTitleError)):
            logger.error("Resolve failed for %s: %s", recipe_id, e)
        raise _to_http_error(e)
    return RecipeResponse.from_recipe(recipe)
