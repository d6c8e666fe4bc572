"""
Extraction endpoints
"""
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from listing_extraction.core.config import get_settings
from listing_extraction.core.errors import ErrorKind
from listing_extraction.core.logging_config import LoggingConfig
from listing_extraction.services.extraction_service import (
    PropertyExtractionService, get_extraction_service)

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(prefix="/api/extraction", tags=["extraction"])

STATUS_BY_ERROR_KIND = {
    ErrorKind.INPUT: 400,
    ErrorKind.VALIDATION: 422,
    ErrorKind.PARSE: 500,
    ErrorKind.INTERNAL: 500,
    ErrorKind.TRANSPORT: 502,
}


@router.post("/transform-scrape")
async def transform_scrape(
    request: Any = Body(...),
    service: PropertyExtractionService = Depends(get_extraction_service),
):
    """
    Transform raw scraped content into validated property records

    Body: RawContentEnvelope (payload, sourceUrl, searchParameters?, extractionHints?).
    Any JSON is accepted here so that non-object bodies become input-failure envelopes.

    Returns:
        ExtractionRunResult; the status code reflects the failure kind
    """
    result = await service.extract(request)
    status_code = 200 if result.success else STATUS_BY_ERROR_KIND.get(result.error_kind, 500)
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.get("/health")
async def extraction_health():
    """Report whether the completion endpoint is configured"""
    settings = get_settings()
    return {
        "status": "healthy",
        "configured": {
            "apiKey": bool(settings.llm_api_key),
            "endpoint": bool(settings.llm_base_url),
        },
        "endpoint": settings.llm_base_url,
        "model": settings.extraction_model,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
