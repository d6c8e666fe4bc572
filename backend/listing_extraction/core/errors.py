"""
Extraction error classification
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure kinds surfaced in the result envelope"""
    INPUT = "input"  # Malformed envelope, rejected before the network call
    TRANSPORT = "transport"  # Network error, timeout or empty completion
    PARSE = "parse"  # Model output held no usable JSON
    VALIDATION = "validation"  # One or more records failed schema checks
    INTERNAL = "internal"  # Unexpected error inside the pipeline


class ExtractionError(Exception):
    """Base class for pipeline failures that abort a run"""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        """Envelope-style view used in structured log records"""
        return {
            "errorKind": self.kind.value,
            "error": self.message,
            "details": self.details,
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InputValidationFailure(ExtractionError):
    """The raw content envelope is malformed"""
    kind = ErrorKind.INPUT


class TransportFailure(ExtractionError):
    """The completion service could not be reached or returned nothing"""
    kind = ErrorKind.TRANSPORT


class ParseFailure(ExtractionError):
    """None of the extraction strategies yielded valid JSON"""
    kind = ErrorKind.PARSE
