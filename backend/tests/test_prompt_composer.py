"""
Tests for prompt composition
"""
from listing_extraction.components.contracts import RawContentEnvelope
from listing_extraction.components.format_classifier import classify
from listing_extraction.components.prompt_composer import (TRUNCATION_MARKER,
                                                           compose)


def _envelope(**kwargs):
    data = {"payload": "# Office in Indiranagar", "sourceUrl": "https://example.com/a"}
    data.update(kwargs)
    return RawContentEnvelope.model_validate(data)


def test_system_prompt_carries_schema_and_rules():
    env = _envelope()
    prompts = compose(env, classify(env.payload))
    system = prompts.system
    for token in ("INR", "USD", "EUR", "monthly", "yearly", "one-time", "sqft", "seats",
                  "semi-furnished", "coming-soon", "fieldsExtracted", "fieldsMissing",
                  "confidence", "warnings"):
        assert token in system
    assert "Omit optional fields rather than guessing" in system


def test_user_prompt_minimal():
    env = _envelope()
    user = compose(env, classify(env.payload)).user
    assert user.startswith("Extract property data from the following markdown content scraped from: https://example.com/a")
    assert "User hints" not in user
    assert "Original search parameters" not in user
    assert "# Office in Indiranagar" in user
    assert user.rstrip().endswith("format them according to the schema.")


def test_user_prompt_with_hints_and_search_parameters():
    env = _envelope(
        extractionHints="Prices are per seat",
        searchParameters={"location": "Bangalore", "propertyType": "coworking", "maxPrice": 15000},
    )
    user = compose(env, classify(env.payload)).user
    hints_at = user.index("User hints: Prices are per seat")
    params_at = user.index('Original search parameters: {"location": "Bangalore", "maxPrice": 15000')
    content_at = user.index("# Office in Indiranagar")
    assert hints_at < params_at < content_at


def test_composition_is_deterministic():
    env = _envelope(searchParameters={"amenities": ["wifi"], "page": 2})
    content = classify(env.payload)
    assert compose(env, content) == compose(env, content)


def test_content_truncation():
    env = _envelope(payload="x" * 100)
    user = compose(env, classify(env.payload), max_content_chars=10).user
    assert ("x" * 10 + TRUNCATION_MARKER) in user
    assert "x" * 11 not in user


def test_messages_shape():
    env = _envelope()
    messages = compose(env, classify(env.payload)).to_messages()
    assert [m["role"] for m in messages] == ["system", "user"]
