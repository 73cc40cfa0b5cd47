"""
Application entry point with recommendation pipeline lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.features.recommendations.api.router import router as recommendations_router
from app.features.recommendations.service import build_recommendation_service
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline on startup and release its resources on shutdown."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        app.state.recommendations = build_recommendation_service(settings)
    except Exception as e:
        logger.error("Failed to initialize recommendation service", error=str(e))
        raise

    yield

    logger.info("Application shutting down")
    try:
        await app.state.recommendations.close()
    except Exception as e:
        logger.error("Error closing recommendation service", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="FeelGive Recommendations",
    description="Ranks nonprofits for crisis articles by geography, cause, trust and vetting",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(recommendations_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        request_id=getattr(request.state, "request_id", None),
    )
    return response


# Added last so it wraps the request logger and the ID is set before logging
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
