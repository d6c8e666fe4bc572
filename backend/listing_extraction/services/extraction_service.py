"""
Property extraction service

Runs one extraction: classify -> compose -> complete -> parse -> route ->
validate -> assemble. Each call is independent; nothing is carried between runs.
"""
import asyncio
import uuid
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from listing_extraction.components import result_assembler
from listing_extraction.components.contracts import (ExtractionRunResult,
                                                     RawContentEnvelope,
                                                     UISpecification)
from listing_extraction.components.format_classifier import classify
from listing_extraction.components.prompt_composer import compose
from listing_extraction.components.property_validator import (Clock,
                                                              validate_batch)
from listing_extraction.components.response_parser import parse_response
from listing_extraction.components.response_router import route
from listing_extraction.components.result_assembler import RunContext
from listing_extraction.core import metrics
from listing_extraction.core.config import ExtractionConfig, get_settings
from listing_extraction.core.errors import (ExtractionError,
                                            InputValidationFailure)
from listing_extraction.core.llm_client import CompletionClient
from listing_extraction.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


def _input_failure(exc: ValidationError) -> InputValidationFailure:
    problems = [
        f"{'.'.join(str(p) for p in err['loc']) or 'envelope'}: {err['msg']}"
        for err in exc.errors()
    ]
    return InputValidationFailure("Invalid request format", details="; ".join(problems))


class PropertyExtractionService:
    """Turns raw scraped content into validated property records"""

    def __init__(
        self,
        config: ExtractionConfig,
        client: Optional[CompletionClient] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.client = client or CompletionClient(config)
        self.clock = clock

    @staticmethod
    def parse_envelope(envelope: Any) -> RawContentEnvelope:
        """Validate caller input before anything costly happens"""
        if isinstance(envelope, RawContentEnvelope):
            return envelope
        try:
            return RawContentEnvelope.model_validate(envelope)
        except ValidationError as e:
            raise _input_failure(e) from e

    async def extract(
        self,
        envelope: Union[RawContentEnvelope, Dict[str, Any]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ExtractionRunResult:
        """
        Run the pipeline for one envelope

        Never raises: transport, parse, validation and input problems all come
        back as an envelope with success=False.
        """
        ctx = RunContext()
        run_id = str(uuid.uuid4())
        LoggingConfig.set_context(extraction_run_id=run_id)
        try:
            result = await self._run(envelope, ctx, cancel_event)
        except ExtractionError as e:
            logger.warning(
                f"Extraction run failed ({e.kind.value}): {e}",
                extra={"extraction_error": e.to_dict(), "processing_time_ms": ctx.elapsed_ms()},
            )
            result = result_assembler.failure(ctx, e)
        except Exception as e:  # noqa: BLE001 - run boundary, converted to an envelope
            logger.exception("Unexpected error during extraction run")
            result = result_assembler.internal_failure(ctx, e)
        metrics.record_extraction(result)
        return result

    async def _run(
        self,
        envelope: Union[RawContentEnvelope, Dict[str, Any]],
        ctx: RunContext,
        cancel_event: Optional[asyncio.Event],
    ) -> ExtractionRunResult:
        envelope = self.parse_envelope(envelope)

        content = classify(envelope.payload)
        ctx.extraction_method = content.method
        logger.info(
            f"Extracting {content.method.value} content from {envelope.source_url}",
            extra={"content_chars": len(content.text)},
        )

        prompts = compose(envelope, content, self.config.max_content_chars)
        completion = await self.client.complete(prompts.to_messages(), cancel_event=cancel_event)
        ctx.model = completion.model
        ctx.tokens_used = completion.total_tokens

        parsed = parse_response(completion.content)
        routed = route(parsed.payload)

        if isinstance(routed, UISpecification):
            logger.info(
                f"Model returned a UI specification ({routed.component_type}); skipping property validation"
            )
            return result_assembler.ui_success(ctx, routed)

        outcome = validate_batch(routed, envelope, clock=self.clock)
        if not outcome.ok:
            logger.warning(
                f"{len(outcome.failures)} of {len(routed.candidates)} candidates failed validation; "
                f"rejecting batch"
            )
            return result_assembler.validation_failure(ctx, outcome)

        logger.info(
            f"Extracted {len(outcome.valid)} properties",
            extra={"tokens_used": ctx.tokens_used, "parse_strategy": parsed.strategy},
        )
        return result_assembler.property_success(ctx, outcome)

    async def close(self):
        await self.client.close()


# Global service instance
_extraction_service: Optional[PropertyExtractionService] = None


def get_extraction_service() -> PropertyExtractionService:
    """Get global extraction service built from settings"""
    global _extraction_service
    if _extraction_service is None:
        _extraction_service = PropertyExtractionService(ExtractionConfig.from_settings(get_settings()))
    return _extraction_service
