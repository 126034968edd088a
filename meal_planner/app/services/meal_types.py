from typing import List

from meal_planner.app.schemas.meal import MealType

BREAKFAST_KEYWORDS = ("breakfast", "pancake", "oatmeal", "egg")
LUNCH_KEYWORDS = ("salad", "sandwich", "soup")


def infer_meal_types(title: str) -> List[MealType]:
    """Guess which meal slots a transcribed recipe fits from its title."""
    lowered = title.lower()
    meal_types: List[MealType] = []
    if any(word in lowered for word in BREAKFAST_KEYWORDS):
        meal_types.append("breakfast")
    if any(word in lowered for word in LUNCH_KEYWORDS):
        meal_types.append("lunch")
    if not meal_types:
        meal_types = ["lunch", "dinner"]
    return meal_types
