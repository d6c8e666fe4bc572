"""CLI for running extractions against local payload files."""
import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from listing_extraction.components.format_classifier import classify
from listing_extraction.components.prompt_composer import compose
from listing_extraction.core.config import ExtractionConfig, get_settings
from listing_extraction.core.errors import InputValidationFailure
from listing_extraction.services.extraction_service import PropertyExtractionService


def load_payload(path: Path):
    """JSON files are loaded as objects, anything else is passed as text."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return text


def build_envelope(args) -> dict:
    envelope = {
        "payload": load_payload(args.payload),
        "sourceUrl": args.source_url,
    }
    if args.hints:
        envelope["extractionHints"] = args.hints
    if args.search_params:
        envelope["searchParameters"] = json.loads(args.search_params)
    return envelope


def build_config(args) -> ExtractionConfig:
    config = ExtractionConfig.from_settings(get_settings())
    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.max_tokens:
        overrides["max_tokens"] = args.max_tokens
    if args.temperature is not None:
        overrides["temperature"] = args.temperature
    if overrides:
        config = replace(config, **overrides)
    return config


def _read_envelope(args) -> Optional[dict]:
    """Envelope from the command line, or None after reporting why it could not be read"""
    try:
        return build_envelope(args)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read payload file: {e}", file=sys.stderr)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON input: {e}", file=sys.stderr)
    return None


async def _run_extract(args, envelope: dict) -> int:
    service = PropertyExtractionService(build_config(args))
    try:
        result = await service.extract(envelope)
    finally:
        await service.close()
    print(json.dumps(result.to_response(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


def cmd_extract(args):
    """Run one extraction and print the result envelope."""
    envelope = _read_envelope(args)
    if envelope is None:
        return 2
    return asyncio.run(_run_extract(args, envelope))


def cmd_prompt(args):
    """Print the prompt pair that would be sent, without calling the model."""
    raw = _read_envelope(args)
    if raw is None:
        return 2
    try:
        envelope = PropertyExtractionService.parse_envelope(raw)
    except InputValidationFailure as e:
        print(str(e), file=sys.stderr)
        return 2
    prompts = compose(envelope, classify(envelope.payload), build_config(args).max_content_chars)
    print("=== system ===")
    print(prompts.system)
    print("=== user ===")
    print(prompts.user)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("payload", type=Path, help="File with scraped content (.json is parsed as an object)")
    parser.add_argument("--source-url", required=True, help="URL the content was scraped from")
    parser.add_argument("--hints", default=None, help="Free-text extraction hints for the model")
    parser.add_argument("--search-params", default=None, help="Search parameters as a JSON object")
    parser.add_argument("--model", default=None, help="Override the extraction model")
    parser.add_argument("--max-tokens", type=int, default=None, help="Override max tokens")
    parser.add_argument("--temperature", type=float, default=None, help="Override sampling temperature")


def build_parser():
    p = argparse.ArgumentParser(prog="listing-extract")
    sub = p.add_subparsers(dest="cmd")
    s = sub.add_parser("extract", help="Extract property listings from a payload file")
    _add_common_arguments(s)
    s.set_defaults(func=cmd_extract)
    s = sub.add_parser("prompt", help="Show the composed prompts for a payload file")
    _add_common_arguments(s)
    s.set_defaults(func=cmd_prompt)
    return p


def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    if not hasattr(args, "func"):
        p.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
