from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MealType = Literal["breakfast", "lunch", "dinner"]
Difficulty = Literal["easy", "medium", "hard"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MealIngredient(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str
    quantity: float = 1
    unit: str = ""
    notes: Optional[str] = None


class Nutrition(CamelModel):
    model_config = ConfigDict(frozen=True)

    calories: float = 300
    protein: float = 20
    carbs: float = 30
    fat: float = 10
    fiber: float = 5
    is_estimated: bool = True


class StructuredMeal(CamelModel):
    """A validated meal suggestion or transcribed recipe with every field filled in."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    description: str = ""
    prep_time: int = Field(15, ge=0)
    cook_time: int = Field(20, ge=0)
    servings: int = Field(4, gt=0)
    difficulty: Difficulty = "medium"
    cuisine: str = "International"
    ingredients: List[MealIngredient] = Field(min_length=1)
    instructions: List[str] = Field(default_factory=list)
    nutrition: Nutrition = Field(default_factory=Nutrition)
    dietary_tags: List[str] = Field(default_factory=list)


class MealSuggestionRequest(CamelModel):
    meal_type: MealType
    existing_meals: List[str] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list)

    @field_validator("meal_type", mode="before")
    @classmethod
    def lowercase_meal_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class TranscribeRecipeRequest(CamelModel):
    content: str
    source: str = "manual"
    source_url: Optional[str] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Recipe content is required")
        return v


class TranscribedRecipe(CamelModel):
    recipe: StructuredMeal
    meal_types: List[MealType]
    source: str
    source_url: Optional[str] = None


class BackendStatus(CamelModel):
    reachable: bool
    model_available: bool
    error: Optional[str] = None
