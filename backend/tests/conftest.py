"""
Pytest configuration and fixtures
"""
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Keep test runs away from real endpoints and log files
os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("LLM_BASE_URL", "http://llm.test/v1")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "text")

from listing_extraction.core.config import ExtractionConfig
from listing_extraction.core.llm_client import CompletionClient, CompletionResult
from listing_extraction.services.extraction_service import PropertyExtractionService

FIXED_NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)
SOURCE_URL = "https://example.com/listing/1"


def completion(content: str, model: str = "test-model", total_tokens: int = 321) -> CompletionResult:
    """Build a completion result as the client would return it"""
    return CompletionResult(
        content=content,
        model=model,
        prompt_tokens=total_tokens - 21,
        completion_tokens=21,
        total_tokens=total_tokens,
        elapsed_ms=5,
    )


def properties_response(properties, metadata=None) -> str:
    body = {"properties": properties}
    if metadata is not None:
        body["metadata"] = metadata
    return json.dumps(body)


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig(
        model="test-model",
        max_tokens=1000,
        temperature=0.1,
        timeout_seconds=5.0,
        base_url="http://llm.test/v1",
        api_key="test-key",
    )


@pytest.fixture
def fake_client(extraction_config):
    """CompletionClient whose network call is replaced by an AsyncMock"""
    client = CompletionClient(extraction_config)
    client.complete = AsyncMock(return_value=completion('{"properties": []}'))
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(extraction_config, fake_client) -> PropertyExtractionService:
    return PropertyExtractionService(extraction_config, client=fake_client, clock=lambda: FIXED_NOW)


@pytest.fixture
def envelope() -> dict:
    return {
        "payload": {"markdown": "# Office in Koramangala\n2000 sqft, ₹80,000/month, WiFi, Parking"},
        "sourceUrl": SOURCE_URL,
    }


@pytest.fixture
def valid_property() -> dict:
    return {
        "title": "Office in Koramangala",
        "description": "Furnished office with WiFi and parking",
        "location": "Koramangala, Bangalore",
        "price": {"amount": 80000, "currency": "INR", "period": "monthly"},
        "size": {"area": 2000, "unit": "sqft"},
        "amenities": ["WiFi", "Parking"],
        "features": {"wifi": True, "parking": True},
    }


@pytest.fixture
def make_completion():
    return completion


@pytest.fixture
def make_properties_response():
    return properties_response
