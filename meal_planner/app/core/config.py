import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ollama_host: str = Field("http://localhost:11434", alias="OLLAMA_HOST")
    ollama_model: str = Field("llama3.2", alias="OLLAMA_MODEL")
    ollama_timeout_seconds: int = Field(120, alias="OLLAMA_TIMEOUT_SECONDS")
    ollama_json_mode: bool = Field(True, alias="OLLAMA_JSON_MODE")
    generation_max_attempts: int = Field(3, alias="MEAL_GENERATION_MAX_ATTEMPTS", ge=1)
    # Some backends reject a zero or negative temperature
    generation_temperature_floor: float = Field(0.1, alias="MEAL_GENERATION_TEMPERATURE_FLOOR")
    suggestion_base_temperature: float = Field(0.7, alias="MEAL_SUGGESTION_BASE_TEMPERATURE")
    suggestion_temperature_step: float = Field(0.2, alias="MEAL_SUGGESTION_TEMPERATURE_STEP")
    suggestion_max_tokens: int = Field(2000, alias="MEAL_SUGGESTION_MAX_TOKENS")
    transcription_base_temperature: float = Field(0.3, alias="RECIPE_TRANSCRIPTION_BASE_TEMPERATURE")
    transcription_temperature_step: float = Field(0.1, alias="RECIPE_TRANSCRIPTION_TEMPERATURE_STEP")
    transcription_max_tokens: int = Field(1200, alias="RECIPE_TRANSCRIPTION_MAX_TOKENS")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
