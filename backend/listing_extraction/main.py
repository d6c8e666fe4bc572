"""
FastAPI application for the extraction service
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from listing_extraction import __version__
from listing_extraction.api.routes import extraction, metrics
from listing_extraction.components.contracts import ExtractionRunResult
from listing_extraction.core.config import get_settings
from listing_extraction.core.errors import ErrorKind
from listing_extraction.core.logging_config import LoggingConfig
from listing_extraction.core.middleware import (MetricsMiddleware,
                                                RequestContextMiddleware)
from listing_extraction.services import extraction_service

LoggingConfig.configure()
logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn about a missing completion key on startup; release the HTTP client on shutdown"""
    settings = get_settings()
    logger.info(
        f"{settings.app_name} starting ({settings.app_env})",
        extra={"model": settings.extraction_model, "endpoint": settings.llm_base_url},
    )
    if not settings.llm_api_key:
        logger.warning("LLM_API_KEY is not set; completion requests will be unauthenticated")
    yield
    if extraction_service._extraction_service is not None:
        await extraction_service._extraction_service.close()
    logger.info(f"{settings.app_name} stopped")


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Extraction of validated property listings from raw scraped content",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def malformed_request(request: Request, exc: RequestValidationError):
    """Bodies FastAPI cannot decode get the same input-failure envelope as a bad envelope"""
    problems = [
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    ]
    logger.info(f"Rejected malformed request body on {request.url.path}", extra={"problems": problems})
    result = ExtractionRunResult(
        success=False,
        error="Invalid request format",
        details="; ".join(problems),
        error_kind=ErrorKind.INPUT,
    )
    return JSONResponse(status_code=400, content=result.to_response())


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    """Errors outside the extraction boundary still answer with a failure envelope"""
    logger.exception(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}")
    result = ExtractionRunResult(
        success=False,
        error="Internal server error",
        details=str(exc) or type(exc).__name__,
        error_kind=ErrorKind.INTERNAL,
    )
    return JSONResponse(status_code=500, content=result.to_response())


app.include_router(extraction.router)
app.include_router(metrics.router)


@app.get("/health", tags=["health"])
async def health_check():
    """Liveness check"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": _settings.app_name,
        "environment": _settings.app_env,
    }
