"""
Prompt Composer component.

Builds the system/user message pair for one extraction. Composition is pure:
identical inputs always give identical prompts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional

from listing_extraction.components.contracts import RawContentEnvelope, SearchParameters
from listing_extraction.components.format_classifier import ClassifiedContent
from listing_extraction.components.prompt_repository import get_system_prompt

EXTRACTION_PROMPT_NAME = "property_extraction"
TRUNCATION_MARKER = "\n[truncated]"


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str

    def to_messages(self) -> List[dict]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def _serialize_search_parameters(params: SearchParameters) -> str:
    return json.dumps(
        params.model_dump(by_alias=True, exclude_none=True, mode="json"),
        ensure_ascii=False,
        sort_keys=True,
    )


def _trim(text: str, max_chars: int) -> str:
    if max_chars and len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


def build_system_prompt() -> str:
    return get_system_prompt(EXTRACTION_PROMPT_NAME)


def build_user_prompt(
    envelope: RawContentEnvelope,
    content: ClassifiedContent,
    max_content_chars: int = 0,
) -> str:
    sections = [
        f"Extract property data from the following {content.method.value} content "
        f"scraped from: {envelope.source_url}"
    ]
    if envelope.extraction_hints:
        sections.append(f"User hints: {envelope.extraction_hints}")
    if envelope.search_parameters is not None:
        sections.append(
            f"Original search parameters: {_serialize_search_parameters(envelope.search_parameters)}"
        )
    sections.append("Raw data to process:\n" + _trim(content.text, max_content_chars))
    sections.append(
        "Please extract all property listings found in this data and format them according to the schema."
    )
    return "\n\n".join(sections)


def compose(
    envelope: RawContentEnvelope,
    content: ClassifiedContent,
    max_content_chars: Optional[int] = None,
) -> PromptPair:
    """Build the prompt pair for one run."""
    return PromptPair(
        system=build_system_prompt(),
        user=build_user_prompt(envelope, content, max_content_chars or 0),
    )
