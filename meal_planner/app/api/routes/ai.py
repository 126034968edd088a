import logging

from fastapi import APIRouter

from meal_planner.app.schemas.meal import (
    BackendStatus,
    MealSuggestionRequest,
    StructuredMeal,
    TranscribeRecipeRequest,
    TranscribedRecipe,
)
from meal_planner.app.services import llm_client
from meal_planner.app.services.meal_types import infer_meal_types

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate-meal", response_model=StructuredMeal)
async def generate_meal(payload: MealSuggestionRequest):
    return await llm_client.generate_meal_suggestion(
        payload.meal_type,
        payload.existing_meals,
        payload.dietary_preferences,
    )


@router.post("/transcribe-recipe", response_model=TranscribedRecipe)
async def transcribe_recipe(payload: TranscribeRecipeRequest):
    recipe = await llm_client.transcribe_recipe(payload.content)
    return TranscribedRecipe(
        recipe=recipe,
        meal_types=infer_meal_types(recipe.title),
        source=payload.source,
        source_url=payload.source_url,
    )


@router.get("/status", response_model=BackendStatus)
async def backend_status():
    return await llm_client.check_backend_status()
