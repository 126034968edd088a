"""
Bounded retry loop that turns language-model output into a StructuredMeal.

Each attempt makes one backend call with the same prompt and a lower
temperature, extracts a JSON object from the raw text, and accepts it only if
it passes the acceptance gate (non-empty title and ingredients). Accepted data
is completed with defaults exactly once, by `complete_with_defaults`.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from meal_planner.app.schemas.meal import MealIngredient, Nutrition, StructuredMeal
from meal_planner.app.services import json_extraction
from meal_planner.app.services.quantity_parser import parse_quantity

logger = logging.getLogger(__name__)

BackendCall = Callable[[str, float, int], Awaitable[str]]

REASON_EXTRACTION_EMPTY = "extraction returned nothing"
REASON_STRUCTURE_INVALID = "invalid meal structure"

DEFAULT_PREP_TIME = 15
DEFAULT_COOK_TIME = 20
DEFAULT_SERVINGS = 4
DEFAULT_DIFFICULTY = "medium"
DEFAULT_CUISINE = "International"
DEFAULT_NUTRITION: Dict[str, float] = {
    "calories": 300,
    "protein": 20,
    "carbs": 30,
    "fat": 10,
    "fiber": 5,
}
DIFFICULTIES = ("easy", "medium", "hard")


class GenerationFailed(Exception):
    """Every attempt failed; `reason` is the last recorded failure."""

    def __init__(self, reason: str, attempts: int):
        super().__init__(f"Meal generation failed after {attempts} attempt(s): {reason}")
        self.reason = reason
        self.attempts = attempts


@dataclass(frozen=True)
class AttemptPolicy:
    base_temperature: float
    temperature_step: float
    max_tokens: int
    max_attempts: int = 3
    temperature_floor: float = 0.1

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def temperature_for(self, attempt: int) -> float:
        temperature = round(self.base_temperature - attempt * self.temperature_step, 2)
        return max(temperature, self.temperature_floor)


def _usable_ingredients(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    usable = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            usable.append({"name": item.strip()})
        elif isinstance(item, dict):
            name = item.get("name")
            if isinstance(name, str) and name.strip():
                usable.append(item)
    return usable


def passes_acceptance_gate(data: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(data, dict):
        return False
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return False
    return bool(_usable_ingredients(data.get("ingredients")))


def _number(value: Any, default: float, allow_zero: bool = True) -> float:
    parsed = parse_quantity(value)
    if parsed is None or (parsed == 0 and not allow_zero):
        return default
    return parsed


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_ingredient(item: Dict[str, Any]) -> MealIngredient:
    quantity = parse_quantity(item.get("quantity"))
    notes = item.get("notes")
    return MealIngredient(
        name=item["name"].strip(),
        quantity=1 if quantity is None else quantity,
        unit=_text(item.get("unit"), ""),
        notes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
    )


def _coerce_instructions(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    steps = []
    for step in raw:
        if isinstance(step, dict):
            step = step.get("text") or step.get("step") or step.get("description")
        if isinstance(step, str) and step.strip():
            steps.append(step.strip())
    return steps


def _coerce_tags(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    tags: List[str] = []
    for tag in raw:
        if isinstance(tag, str) and tag.strip() and tag.strip() not in tags:
            tags.append(tag.strip())
    return tags


def complete_with_defaults(data: Dict[str, Any]) -> StructuredMeal:
    """Build a StructuredMeal from gate-accepted data, defaulting every missing or unusable field."""
    difficulty = data.get("difficulty")
    difficulty = difficulty.strip().lower() if isinstance(difficulty, str) else None
    nutrition_in = data.get("nutrition") if isinstance(data.get("nutrition"), dict) else {}

    return StructuredMeal(
        title=data["title"].strip(),
        description=_text(data.get("description"), ""),
        prep_time=int(_number(data.get("prepTime"), DEFAULT_PREP_TIME)),
        cook_time=int(_number(data.get("cookTime"), DEFAULT_COOK_TIME)),
        servings=int(_number(data.get("servings"), DEFAULT_SERVINGS, allow_zero=False)) or DEFAULT_SERVINGS,
        difficulty=difficulty if difficulty in DIFFICULTIES else DEFAULT_DIFFICULTY,
        cuisine=_text(data.get("cuisine"), DEFAULT_CUISINE),
        ingredients=[_coerce_ingredient(item) for item in _usable_ingredients(data.get("ingredients"))],
        instructions=_coerce_instructions(data.get("instructions")),
        nutrition=Nutrition(
            **{key: _number(nutrition_in.get(key), default) for key, default in DEFAULT_NUTRITION.items()}
        ),
        dietary_tags=_coerce_tags(data.get("dietaryTags")),
    )


async def produce(
    prompt_builder: Callable[[], str],
    backend_call: BackendCall,
    policy: AttemptPolicy,
) -> StructuredMeal:
    """
    Run up to `policy.max_attempts` sequential backend calls and return the first acceptable meal.

    `backend_call(prompt, temperature, max_tokens)` returns the model's raw text.
    Per-attempt failures are logged and absorbed; only exhaustion raises GenerationFailed.
    """
    prompt = prompt_builder()
    last_error = REASON_EXTRACTION_EMPTY

    for attempt in range(policy.max_attempts):
        temperature = policy.temperature_for(attempt)
        try:
            raw = await backend_call(prompt, temperature, policy.max_tokens)
        except Exception as exc:  # noqa: BLE001
            last_error = f"backend error: {exc}"
            logger.warning("Attempt %d/%d failed: %s", attempt + 1, policy.max_attempts, last_error)
            continue

        data = json_extraction.extract(raw)
        if data is None:
            last_error = REASON_EXTRACTION_EMPTY
        elif not passes_acceptance_gate(data):
            last_error = REASON_STRUCTURE_INVALID
        else:
            meal = complete_with_defaults(data)
            logger.info(
                "Meal accepted on attempt %d (temperature=%.2f): %s, %d ingredients",
                attempt + 1,
                temperature,
                meal.title,
                len(meal.ingredients),
            )
            return meal

        logger.warning(
            "Attempt %d/%d failed (temperature=%.2f): %s; raw=%s",
            attempt + 1,
            policy.max_attempts,
            temperature,
            last_error,
            (raw or "")[:300],
        )

    logger.error("All %d attempts failed: %s", policy.max_attempts, last_error)
    raise GenerationFailed(last_error, policy.max_attempts)
