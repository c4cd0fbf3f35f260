"""
FastAPI Application Entry Point

Usage:
    uvicorn src.api.main:app --reload --port 8111

Or with the CLI:
    python -m src.main serve
"""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware import LoggingMiddleware
from src.api.middleware.logging import REQUEST_ID_HEADER
from src.api.routes import articles_router
from src.api.services.scout_service import get_scout_service, reset_scout_service
from src.config.settings import resolve_api_settings
from src.utils.logging_config import configure_logging, get_logger

load_dotenv()

# Must run before loggers are created
configure_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the scout service on startup and release its store on shutdown."""
    service = get_scout_service()
    cached = await service.list_articles()
    logger.info("JCTC Scout API ready", cached_articles=len(cached))

    yield

    logger.info("Shutting down API")
    try:
        await service.close()
    except Exception as e:
        logger.warning("Store cleanup failed", error=str(e))
    reset_scout_service()


app = FastAPI(
    title="JCTC Scout API",
    description="Recent JCTC ASAP articles with Chinese titles, abstracts and summaries",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(resolve_api_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

app.include_router(articles_router, prefix="/api")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "jctc-scout-api"}


def main(reload: bool = False):
    """Run the API server."""
    import uvicorn

    api_settings = resolve_api_settings()

    uvicorn.run(
        "src.api.main:app",
        host=api_settings.host,
        port=api_settings.port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main(reload=True)
