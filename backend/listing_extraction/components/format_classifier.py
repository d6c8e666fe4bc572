"""
Format Classifier component.

Tags a raw scraped payload as markdown / html / json / mixed and pulls out the
text blob the prompt is built from. Pure and total: every payload gets a
best-effort classification.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from listing_extraction.components.contracts import ExtractionMethod

_HTML_OPEN_TAG = re.compile(r"<html[\s>]", re.IGNORECASE)

# Object fields checked in priority order
_TEXT_FIELDS = (
    ("markdown", ExtractionMethod.MARKDOWN),
    ("html", ExtractionMethod.HTML),
)
_STRUCTURED_FIELDS = ("structuredData", "extractedData")


@dataclass(frozen=True)
class ClassifiedContent:
    method: ExtractionMethod
    text: str


def _serialize(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def classify(payload: Any) -> ClassifiedContent:
    """Classify a payload and extract the text handed downstream."""
    if isinstance(payload, str):
        method = ExtractionMethod.HTML if _HTML_OPEN_TAG.search(payload) else ExtractionMethod.MARKDOWN
        return ClassifiedContent(method, payload)

    if isinstance(payload, dict):
        for field, method in _TEXT_FIELDS:
            value = payload.get(field)
            if value:
                text = value if isinstance(value, str) else _serialize(value)
                return ClassifiedContent(method, text)
        for field in _STRUCTURED_FIELDS:
            value = payload.get(field)
            if value:
                return ClassifiedContent(ExtractionMethod.JSON, _serialize(value))
        return ClassifiedContent(ExtractionMethod.MIXED, _serialize(payload))

    return ClassifiedContent(ExtractionMethod.MIXED, _serialize(payload))
