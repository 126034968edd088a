import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from meal_planner.app.api.routes import api_router
from meal_planner.app.core.config import get_settings
from meal_planner.app.services.meal_generation import GenerationFailed

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []) if part is not None)
        msg = err.get("msg", "Invalid value")
        details.append({"field": loc or None, "message": msg})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "validation_error",
            "message": "Invalid request payload.",
            "details": details,
        },
    )


async def generation_failed_handler(request: Request, exc: GenerationFailed):
    logger.error("AI generation failed for %s after %d attempts: %s", request.url.path, exc.attempts, exc.reason)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error_code": "generation_failed",
            "message": "AI generation failed. Make sure Ollama is running.",
            "details": exc.reason,
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Meal Planner AI", version="0.1.0")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(GenerationFailed, generation_failed_handler)
    app.include_router(api_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Meal planner AI configured for %s (model=%s)", settings.ollama_host, settings.ollama_model)
    return app


app = create_app()
