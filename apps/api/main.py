import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from apps.api.middlewares.metrics import MetricsMiddleware
from apps.api.routers import discovery, health, matches, messages, profiles, swipes
from apps.workers.notifier import ExpoPushClient, notifier
from core import close_redis
from core.config import settings
from core.errors import NotFoundError, TransientStorageError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    yield
    # Shutdown
    await close_redis()
    if isinstance(notifier.dispatcher, ExpoPushClient):
        await notifier.dispatcher.close()


app = FastAPI(
    title="Dating Match API",
    description="Discovery, swipe matching and chat for the dating app",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(TransientStorageError)
async def transient_handler(request: Request, exc: TransientStorageError) -> JSONResponse:
    logger.warning(f"Transient storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable, retry"},
        headers={"Retry-After": "1"},
    )


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
app.include_router(discovery.router, prefix="/discovery", tags=["discovery"])
app.include_router(swipes.router, prefix="/swipes", tags=["swipes"])
app.include_router(matches.router, prefix="/matches", tags=["matches"])
app.include_router(messages.router, prefix="/messages", tags=["messages"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"status": "ok", "service": "dating-match"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
