"""
Property Enricher & Validator component.

Attaches provenance to each candidate record, validates it against the full
property schema and partitions the batch into valid records and failures.
Every record is validated independently and all of its errors are reported;
a record is never partially accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from listing_extraction.components.contracts import (PropertyBatch,
                                                     RawContentEnvelope,
                                                     ValidatedProperty,
                                                     ValidationFailure)
from listing_extraction.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

DEFAULT_CONFIDENCE = 0.5
DEFAULTED_CONFIDENCE_WARNING = "confidence not reported by model; defaulted to 0.5"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass
class BatchOutcome:
    valid: List[ValidatedProperty] = field(default_factory=list)
    failures: List[ValidationFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def format_errors(exc: ValidationError) -> List[str]:
    """Render pydantic errors as ``<fieldPath>: <message>``"""
    messages = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "record"
        messages.append(f"{path}: {error['msg']}")
    return messages


def build_extraction_metadata(run_metadata: Dict[str, Any], processed_at: str) -> Dict[str, Any]:
    """Per-record provenance derived from the run-level metadata block."""
    confidence = run_metadata.get("confidence")
    warnings = run_metadata.get("warnings")
    warnings = [str(w) for w in warnings] if isinstance(warnings, list) else []
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE
        warnings.append(DEFAULTED_CONFIDENCE_WARNING)
    return {
        "extractedBy": "model",
        "confidence": confidence,
        "warnings": warnings,
        "processedAt": processed_at,
        "fieldsExtracted": run_metadata.get("fieldsExtracted") or [],
        "fieldsMissing": run_metadata.get("fieldsMissing") or [],
    }


def enrich(
    candidate: Dict[str, Any],
    envelope: RawContentEnvelope,
    run_metadata: Dict[str, Any],
    now: datetime,
) -> Dict[str, Any]:
    stamp = isoformat(now)
    return {
        **candidate,
        "sourceUrl": envelope.source_url,
        "scrapedAt": stamp,
        "searchParameters": envelope.search_parameters,
        "extractionMetadata": build_extraction_metadata(run_metadata, stamp),
    }


def validate_candidate(
    index: int,
    candidate: Any,
    envelope: RawContentEnvelope,
    run_metadata: Dict[str, Any],
    now: datetime,
) -> Union[ValidatedProperty, ValidationFailure]:
    if not isinstance(candidate, dict):
        return ValidationFailure(
            index=index,
            errors=[f"record: Input should be an object, got {type(candidate).__name__}"],
        )
    try:
        return ValidatedProperty.model_validate(enrich(candidate, envelope, run_metadata, now))
    except ValidationError as e:
        return ValidationFailure(index=index, errors=format_errors(e))


def validate_batch(
    batch: PropertyBatch,
    envelope: RawContentEnvelope,
    clock: Optional[Clock] = None,
) -> BatchOutcome:
    """Enrich and validate every candidate in array order."""
    clock = clock or utc_now
    outcome = BatchOutcome()

    run_warnings = batch.metadata.get("warnings")
    if isinstance(run_warnings, list):
        outcome.warnings.extend(str(w) for w in run_warnings)
    if batch.metadata.get("confidence") is None:
        outcome.warnings.append(DEFAULTED_CONFIDENCE_WARNING)
        logger.warning("Model omitted confidence metadata; applying default %.1f", DEFAULT_CONFIDENCE)

    for index, candidate in enumerate(batch.candidates):
        result = validate_candidate(index, candidate, envelope, batch.metadata, clock())
        if isinstance(result, ValidationFailure):
            logger.info(
                "Candidate %d failed validation with %d error(s)",
                index,
                len(result.errors),
                extra={"validation_errors": result.errors},
            )
            outcome.failures.append(result)
        else:
            outcome.valid.append(result)

    return outcome
