"""FastAPI application serving the face login endpoints."""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from facelogin.api import router as api_v1_router
from facelogin.core.config import settings
from facelogin.core.container import container
from facelogin.core.exceptions import ServiceNotInitializedError
from facelogin.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
    """Wire services on startup; stop any login attempt and free the camera on shutdown.

    Model weights are not loaded here. Each login attempt loads them during
    its bootstrap, so the API comes up even when the models or the camera
    are not available yet.
    """
    logger.info(
        "Starting face login service",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        roster=[entry.label for entry in settings.ROSTER],
        image_store=settings.IMAGE_STORE,
        threshold=settings.MATCH_THRESHOLD,
    )
    await container.initialize()

    yield

    logger.info("Shutting down face login service")
    await container.cleanup()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.exception_handler(ServiceNotInitializedError)
async def service_not_initialized_handler(request: Request, exc: ServiceNotInitializedError) -> JSONResponse:
    """Report missing services as temporarily unavailable."""
    logger.error("Service not initialized", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health_check() -> dict:
    """Liveness plus whether the face models are loaded.

    The service is healthy before the first login attempt; ``engine_ready``
    only turns true once an attempt has loaded the weights.
    """
    engine = container.engine
    return {
        "status": "healthy",
        "engine_ready": bool(engine is not None and engine.is_ready),
    }


def run() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("facelogin.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
