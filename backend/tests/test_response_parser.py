"""
Tests for model response parsing
"""
import json

import pytest

from listing_extraction.components.response_parser import (STRATEGIES,
                                                           parse_response,
                                                           unescape_entities)
from listing_extraction.core.errors import ErrorKind, ParseFailure


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace('"', "&quot;").replace("<", "&lt;").replace(">", "&gt;")


def test_strategy_order_is_fixed():
    assert [name for name, _ in STRATEGIES] == ["content-tag", "code-fence", "json-like", "raw"]


def test_content_tag_with_entities_round_trip():
    original = {"properties": [{"title": "A & B <Offices>", "description": "\"quoted\""}]}
    text = f"<content>{_escape(json.dumps(original))}</content>"
    parsed = parse_response(text)
    assert parsed.strategy == "content-tag"
    assert parsed.payload == original


def test_content_tag_wins_over_code_fence():
    text = (
        '<content>{"source": "tag"}</content>\n'
        "```json\n"
        '{"source": "fence"}\n'
        "```"
    )
    parsed = parse_response(text)
    assert parsed.payload == {"source": "tag"}
    assert parsed.strategy == "content-tag"


def test_code_fence_tagged_and_untagged():
    tagged = 'Here you go:\n```json\n{"properties": [], "metadata": {"confidence": 0.9}}\n```\nDone.'
    untagged = 'Result:\n```\n{"properties": []}\n```'
    assert parse_response(tagged).payload == {"properties": [], "metadata": {"confidence": 0.9}}
    assert parse_response(tagged).strategy == "code-fence"
    assert parse_response(untagged).strategy == "code-fence"


def test_json_like_span():
    text = 'I found these listings: {"properties": [{"title": "X"}]} Let me know if you need more.'
    parsed = parse_response(text)
    assert parsed.strategy == "json-like"
    assert parsed.payload == {"properties": [{"title": "X"}]}


def test_raw_array():
    parsed = parse_response('  [{"title": "X"}]  ')
    assert parsed.strategy == "raw"
    assert parsed.payload == [{"title": "X"}]


def test_fenced_array():
    parsed = parse_response('```json\n[{"title": "X"}]\n```')
    assert parsed.strategy == "code-fence"
    assert parsed.payload == [{"title": "X"}]


def test_undecodable_tag_falls_through_to_next_strategy():
    text = '<content>not json at all</content> {"properties": []}'
    parsed = parse_response(text)
    assert parsed.strategy == "json-like"
    assert parsed.payload == {"properties": []}


def test_plain_refusal_is_parse_failure():
    with pytest.raises(ParseFailure) as exc_info:
        parse_response("Sorry, I cannot process this.")
    assert exc_info.value.kind == ErrorKind.PARSE
    assert "raw" in exc_info.value.details


def test_scalar_json_is_rejected():
    with pytest.raises(ParseFailure):
        parse_response("42")


def test_unescape_order():
    assert unescape_entities("&amp;quot;") == "&quot;"
    assert unescape_entities("&lt;b&gt; &quot;x&quot;") == '<b> "x"'
