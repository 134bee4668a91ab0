import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from src.config import get_settings
from src.middlewares import request_logging_middleware
from src.routers import flashcards, ping

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan for the API.
    """
    logger.info("Starting flashcard ingestion API...")
    app.state.settings = settings

    if not settings.llm_api_key.strip():
        logger.warning("LLM_API_KEY is not set; generation requests will be rejected")
    logger.info(f"Preferences backend: {settings.preferences_backend}")

    logger.info("API ready")
    yield

    logger.info("API shutdown complete")


app = FastAPI(
    title="Flashcard Ingest",
    description="Turns Wikipedia articles, pasted text and exported files into flashcard sets.",
    version=settings.app_version,
    lifespan=lifespan,
)

app.middleware("http")(request_logging_middleware)
app.include_router(ping.router, prefix="/api/v1")
app.include_router(flashcards.router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(app, port=8000, host="0.0.0.0")
