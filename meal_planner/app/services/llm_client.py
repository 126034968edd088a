"""
Ollama adapter and the caller-facing AI operations.

Meal suggestions and recipe transcriptions both go through
`meal_generation.produce`, with their own temperature and token settings.
`check_backend_status` backs the status endpoint and never raises.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from meal_planner.app.core.config import Settings, get_settings
from meal_planner.app.schemas.meal import BackendStatus, MealType, StructuredMeal
from meal_planner.app.services import meal_generation
from meal_planner.app.services.meal_generation import AttemptPolicy

logger = logging.getLogger(__name__)

MEAL_TYPE_GUIDE: Dict[str, str] = {
    "breakfast": "a breakfast meal (e.g., eggs, pancakes, oatmeal, smoothie bowl, toast)",
    "lunch": "a lunch meal (e.g., salad, sandwich, soup, grain bowl, light pasta)",
    "dinner": "a dinner meal (e.g., protein with sides, pasta, stir-fry, casserole)",
}

SUGGESTION_EXAMPLE_JSON = """{
  "title": "Recipe Title",
  "description": "A flavorful description of the dish",
  "prepTime": 15,
  "cookTime": 20,
  "servings": 4,
  "difficulty": "easy",
  "cuisine": "Italian",
  "ingredients": [
    {"name": "chicken breast", "quantity": 2, "unit": "lbs", "notes": "boneless, skinless"},
    {"name": "olive oil", "quantity": 2, "unit": "tbsp"}
  ],
  "instructions": [
    "Preheat your oven to 400°F (200°C) and position the rack in the middle.",
    "Season the chicken generously with salt and pepper on both sides.",
    "Heat olive oil in a large oven-safe skillet over medium-high heat until shimmering.",
    "Sear the chicken for 3-4 minutes per side until golden brown.",
    "Transfer the skillet to the oven and roast for 15-20 minutes until it reaches 165°F inside.",
    "Let rest for 5 minutes before slicing to allow juices to redistribute."
  ],
  "nutrition": {"calories": 350, "protein": 25, "carbs": 30, "fat": 15, "fiber": 5},
  "dietaryTags": ["high-protein", "gluten-free"]
}"""

TRANSCRIPTION_EXAMPLE_JSON = """{
  "title": "Recipe Title",
  "description": "Brief description",
  "prepTime": 15,
  "cookTime": 20,
  "servings": 4,
  "difficulty": "easy",
  "cuisine": "Italian",
  "ingredients": [
    {"name": "ingredient", "quantity": 2, "unit": "cups", "notes": "optional preparation note"}
  ],
  "instructions": ["Step 1", "Step 2"],
  "nutrition": {"calories": 350, "protein": 25, "carbs": 30, "fat": 15, "fiber": 5},
  "dietaryTags": []
}"""


def build_suggestion_prompt(
    meal_type: MealType,
    existing_meals: Sequence[str] = (),
    dietary_preferences: Sequence[str] = (),
) -> str:
    lines = [f"You are a professional chef assistant. Suggest {MEAL_TYPE_GUIDE[meal_type]}.", ""]
    if existing_meals:
        lines.append(f"Avoid these meals that are already planned: {', '.join(existing_meals)}.")
    if dietary_preferences:
        lines.append(f"Consider these dietary preferences: {', '.join(dietary_preferences)}.")
    lines.extend(
        [
            "",
            "IMPORTANT:",
            "- Return ONLY valid JSON. No text before or after. No markdown.",
            "- Provide 5-8 DETAILED instruction steps with specific techniques, temperatures, and timing.",
            "- Each step should be a complete sentence explaining exactly what to do.",
            "",
            SUGGESTION_EXAMPLE_JSON,
        ]
    )
    return "\n".join(lines)


def build_transcription_prompt(raw_content: str) -> str:
    return (
        "You are a recipe parser. Convert this recipe into JSON format.\n"
        "Restructure the recipe as written; do not invent ingredients or steps.\n\n"
        f"Raw content:\n<<<RECIPE_START>>>\n{raw_content}\n<<<RECIPE_END>>>\n\n"
        "IMPORTANT: Return ONLY valid JSON. No text before or after. No markdown.\n\n"
        f"{TRANSCRIPTION_EXAMPLE_JSON}\n\n"
        "Estimate nutrition if not provided."
    )


def _timeout(settings: Settings) -> httpx.Timeout:
    return httpx.Timeout(settings.ollama_timeout_seconds, read=settings.ollama_timeout_seconds, connect=10.0)


async def call_generate(
    prompt: str,
    temperature: float,
    max_tokens: int,
    model_name: Optional[str] = None,
) -> str:
    """Single non-streaming completion from the Ollama server; returns the raw response text."""
    settings = get_settings()
    payload: Dict[str, Any] = {
        "model": model_name or settings.ollama_model,
        "prompt": prompt,
        "stream": False,
        "options": {"temperature": temperature, "num_predict": max_tokens},
    }
    if settings.ollama_json_mode:
        payload["format"] = "json"

    async with httpx.AsyncClient(timeout=_timeout(settings)) as client:
        resp = await client.post(f"{settings.ollama_host.rstrip('/')}/api/generate", json=payload)
    if resp.status_code >= 400:
        logger.warning("Ollama generate returned error: status=%s, body=%s", resp.status_code, resp.text[:500])
        raise ValueError(f"Ollama error: {resp.status_code} - {resp.text[:200]}")

    data = resp.json()
    if isinstance(data, dict) and data.get("error"):
        raise ValueError(f"Ollama error: {data['error']}")
    content = data.get("response") if isinstance(data, dict) else None
    if not isinstance(content, str):
        raise ValueError("Ollama response missing content")
    logger.debug("ollama raw content: %s", content[:1000])
    return content


async def list_models() -> List[Dict[str, Any]]:
    settings = get_settings()
    timeout = httpx.Timeout(10.0, connect=5.0)
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.get(f"{settings.ollama_host.rstrip('/')}/api/tags")
    resp.raise_for_status()
    data = resp.json()
    models = data.get("models") if isinstance(data, dict) else None
    if not isinstance(models, list):
        logger.warning("Ollama /api/tags response has no model list: %s", resp.text[:200])
        return []
    return [m for m in models if isinstance(m, dict)]


def _model_stem(model_name: str) -> str:
    if model_name.endswith(":latest"):
        return model_name[: -len(":latest")]
    return model_name


async def check_backend_status() -> BackendStatus:
    """Report whether Ollama answers and has the configured model pulled. Never raises."""
    settings = get_settings()
    try:
        models = await list_models()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Ollama status check failed: %s", exc)
        return BackendStatus(
            reachable=False,
            model_available=False,
            error=f"Cannot connect to Ollama server at {settings.ollama_host}",
        )
    stem = _model_stem(settings.ollama_model)
    model_available = any(stem in str(m.get("name", "")) for m in models)
    if not model_available:
        logger.info("Ollama reachable but model %s not found among %d models", settings.ollama_model, len(models))
    return BackendStatus(reachable=True, model_available=model_available)


def suggestion_policy(settings: Settings) -> AttemptPolicy:
    return AttemptPolicy(
        base_temperature=settings.suggestion_base_temperature,
        temperature_step=settings.suggestion_temperature_step,
        max_tokens=settings.suggestion_max_tokens,
        max_attempts=settings.generation_max_attempts,
        temperature_floor=settings.generation_temperature_floor,
    )


def transcription_policy(settings: Settings) -> AttemptPolicy:
    return AttemptPolicy(
        base_temperature=settings.transcription_base_temperature,
        temperature_step=settings.transcription_temperature_step,
        max_tokens=settings.transcription_max_tokens,
        max_attempts=settings.generation_max_attempts,
        temperature_floor=settings.generation_temperature_floor,
    )


async def generate_meal_suggestion(
    meal_type: MealType,
    existing_meals: Sequence[str] = (),
    dietary_preferences: Sequence[str] = (),
) -> StructuredMeal:
    """Ask the model for a new meal of `meal_type`; raises GenerationFailed after the last attempt."""
    settings = get_settings()
    logger.info(
        "Generating %s suggestion (avoiding %d meals, %d preferences)",
        meal_type,
        len(existing_meals),
        len(dietary_preferences),
    )
    return await meal_generation.produce(
        lambda: build_suggestion_prompt(meal_type, existing_meals, dietary_preferences),
        call_generate,
        suggestion_policy(settings),
    )


async def transcribe_recipe(raw_content: str) -> StructuredMeal:
    """Restructure pasted recipe text into a StructuredMeal; raises GenerationFailed after the last attempt."""
    settings = get_settings()
    logger.info("Transcribing recipe text (len=%d)", len(raw_content))
    return await meal_generation.produce(
        lambda: build_transcription_prompt(raw_content),
        call_generate,
        transcription_policy(settings),
    )
