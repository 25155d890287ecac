"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from idynic.api import router as api_router
from idynic.core.config import get_settings
from idynic.core.errors import IdynicError
from idynic.core.logging import get_logger
from idynic.core.rate_limiter import RateLimiter

logger = get_logger(__name__)

ERROR_STATUS = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "generation_failure": 502,
    "retrieval_failure": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        sweep_seconds=settings.RATE_LIMIT_SWEEP_SECONDS,
    )
    await limiter.start()
    app.state.rate_limiter = limiter
    try:
        yield
    finally:
        await limiter.stop()


app = FastAPI(
    title="Idynic Core",
    description="Identity graph, opportunity matching and tailored profile service",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(IdynicError)
async def idynic_error_handler(request: Request, exc: IdynicError) -> JSONResponse:
    """Map core errors to {"error": {kind, message, retryable}}."""
    status_code = ERROR_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message}", extra={"path": request.url.path, **exc.context})
    return JSONResponse(content={"error": exc.to_dict()}, status_code=status_code)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
