"""
Response Router component.

Decides which pathway a parsed model response takes. Both outcomes are valid
terminal shapes of one run; this is a branch, not an error.
"""

from __future__ import annotations

from typing import Any, Union

from listing_extraction.components.contracts import PropertyBatch, UISpecification
from listing_extraction.core.errors import ParseFailure

UI_CONFIDENCE = 0.8
_UI_KEYS = ("component", "components")

RoutedResponse = Union[PropertyBatch, UISpecification]


def _component_type(payload: dict) -> str:
    component = payload.get("component")
    if isinstance(component, dict) and isinstance(component.get("component"), str):
        return component["component"]
    return "unknown"


def route(parsed: Any) -> RoutedResponse:
    """Split a parsed response into a property batch or a UI specification."""
    if isinstance(parsed, list):
        return PropertyBatch(candidates=parsed)

    if any(parsed.get(key) for key in _UI_KEYS):
        return UISpecification(
            payload=parsed,
            confidence=UI_CONFIDENCE,
            component_type=_component_type(parsed),
        )

    candidates = parsed.get("properties")
    if candidates is None:
        candidates = []
    if not isinstance(candidates, list):
        raise ParseFailure(
            "Model response has an invalid properties field",
            details=f"expected a list, got {type(candidates).__name__}",
        )

    metadata = parsed.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    return PropertyBatch(candidates=candidates, metadata=metadata)
