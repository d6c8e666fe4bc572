"""
Result Assembler component.

Builds the terminal envelope for each of the run outcomes. Metadata fields are
always filled, with zero/empty defaults on failure paths.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Union

from listing_extraction.components.contracts import (ExtractionMethod,
                                                     ExtractionRunResult,
                                                     RunMetadata,
                                                     UISpecification)
from listing_extraction.components.property_validator import (DEFAULT_CONFIDENCE,
                                                              BatchOutcome)
from listing_extraction.core.errors import ErrorKind, ExtractionError


@dataclass
class RunContext:
    """Facts gathered while a run progresses"""
    started_at: float = field(default_factory=time.perf_counter)
    extraction_method: Union[ExtractionMethod, str] = "unknown"
    model: str = "unknown"
    tokens_used: int = 0

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)

    def base_metadata(self, **overrides) -> RunMetadata:
        values = dict(
            processing_time_ms=self.elapsed_ms(),
            model=self.model,
            tokens_used=self.tokens_used,
            extraction_method=self.extraction_method,
        )
        values.update(overrides)
        return RunMetadata(**values)


def property_success(ctx: RunContext, outcome: BatchOutcome) -> ExtractionRunResult:
    confidence_scores = {}
    for index, prop in enumerate(outcome.valid):
        confidence = prop.extraction_metadata.confidence if prop.extraction_metadata else None
        confidence_scores[str(index)] = confidence if confidence is not None else DEFAULT_CONFIDENCE

    return ExtractionRunResult(
        success=True,
        properties=outcome.valid,
        metadata=ctx.base_metadata(
            properties_extracted=len(outcome.valid),
            properties_validated=len(outcome.valid),
            confidence_scores=confidence_scores,
            warnings=list(outcome.warnings),
        ),
    )


def validation_failure(ctx: RunContext, outcome: BatchOutcome) -> ExtractionRunResult:
    failed = len(outcome.failures)
    return ExtractionRunResult(
        success=False,
        error="Property validation failed",
        details="One or more extracted properties failed validation",
        error_kind=ErrorKind.VALIDATION,
        validation_errors=outcome.failures,
        metadata=ctx.base_metadata(
            properties_extracted=0,
            properties_validated=len(outcome.valid),
            properties_failed=failed,
            warnings=[*outcome.warnings, f"{failed} properties failed validation"],
        ),
    )


def ui_success(ctx: RunContext, spec: UISpecification) -> ExtractionRunResult:
    return ExtractionRunResult(
        success=True,
        ui_spec=spec.payload,
        metadata=ctx.base_metadata(
            extraction_mode=spec.mode,
            ui_confidence=spec.confidence,
        ),
    )


def failure(ctx: RunContext, error: ExtractionError, warning: Optional[str] = None) -> ExtractionRunResult:
    return ExtractionRunResult(
        success=False,
        error=error.message,
        details=error.details,
        error_kind=error.kind,
        metadata=ctx.base_metadata(warnings=[warning or error.message]),
    )


def internal_failure(ctx: RunContext, exc: Exception) -> ExtractionRunResult:
    return ExtractionRunResult(
        success=False,
        error="Internal error during extraction",
        details=str(exc) or type(exc).__name__,
        error_kind=ErrorKind.INTERNAL,
        metadata=ctx.base_metadata(warnings=["Internal error"]),
    )
