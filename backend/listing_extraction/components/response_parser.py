"""
Response Parser component.

Pulls a JSON payload out of free-form model text. Strategies are tried in a
fixed order, most specific first:

1. ``content-tag``  text inside ``<content>...</content>``, HTML entities unescaped
2. ``code-fence``   a ```json (or untagged) fenced block holding an object or array
3. ``json-like``    the span from the first ``{`` to the last ``}``
4. ``raw``          the whole text

The order reflects which formatting conventions the producing model follows
most reliably. A strategy that matches but does not decode falls through to
the next one; when nothing decodes the run fails with ``ParseFailure``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from listing_extraction.core.errors import ParseFailure
from listing_extraction.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

_CONTENT_TAG = re.compile(r"<content>([\s\S]*?)</content>")
_CODE_FENCE = re.compile(r"```(?:json)?\s*([\[{][\s\S]*?[\]}])\s*```")
_JSON_LIKE = re.compile(r"\{[\s\S]*\}")

# &amp; goes last so "&amp;quot;" decodes to "&quot;", not to '"'
_ENTITY_REPLACEMENTS = (
    ("&quot;", '"'),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)

JsonPayload = Union[dict, list]
Extractor = Callable[[str], Optional[str]]


def unescape_entities(text: str) -> str:
    for entity, char in _ENTITY_REPLACEMENTS:
        text = text.replace(entity, char)
    return text


def _from_content_tag(text: str) -> Optional[str]:
    match = _CONTENT_TAG.search(text)
    if match and match.group(1).strip():
        return unescape_entities(match.group(1).strip())
    return None


def _from_code_fence(text: str) -> Optional[str]:
    match = _CODE_FENCE.search(text)
    return match.group(1) if match else None


def _from_json_like(text: str) -> Optional[str]:
    # top-level arrays are left to the raw strategy
    if text.lstrip().startswith("["):
        return None
    match = _JSON_LIKE.search(text)
    return match.group(0) if match else None



def _from_raw(text: str) -> Optional[str]:
    return text.strip() or None


STRATEGIES: List[Tuple[str, Extractor]] = [
    ("content-tag", _from_content_tag),
    ("code-fence", _from_code_fence),
    ("json-like", _from_json_like),
    ("raw", _from_raw),
]


@dataclass(frozen=True)
class ParsedResponse:
    payload: JsonPayload
    strategy: str


def parse_response(text: str) -> ParsedResponse:
    """Extract the first decodable JSON object or array from model output."""
    attempted = []
    for name, extractor in STRATEGIES:
        candidate = extractor(text)
        if candidate is None:
            continue
        attempted.append(name)
        try:
            payload: Any = json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"Strategy {name} matched but did not decode: {e}")
            continue
        if isinstance(payload, (dict, list)):
            logger.debug(f"Parsed model output with strategy {name}")
            return ParsedResponse(payload=payload, strategy=name)
        logger.debug(f"Strategy {name} decoded to {type(payload).__name__}, expected object")

    preview = text[:200].replace("\n", " ")
    raise ParseFailure(
        "Failed to parse model response as structured data",
        details=f"strategies tried: {', '.join(attempted) or 'none'}; output starts with: {preview!r}",
    )
