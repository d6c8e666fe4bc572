"""
Contract models for the extraction pipeline.

Python attributes are snake_case; the wire form is camelCase. Both are accepted
on input, responses are dumped ``by_alias``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (AfterValidator, BaseModel, ConfigDict, EmailStr, Field,
                      HttpUrl, TypeAdapter, ValidationError, WrapValidator,
                      field_validator)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from listing_extraction.core.errors import ErrorKind

_http_url = TypeAdapter(HttpUrl)


def _url_checker(message: str):
    def check(value: str) -> str:
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise PydanticCustomError("url_format", message) from None
        return value
    return check


SourceUrl = Annotated[str, AfterValidator(_url_checker("Invalid source URL"))]
ImageUrl = Annotated[str, AfterValidator(_url_checker("Invalid image URL"))]
VideoUrl = Annotated[str, AfterValidator(_url_checker("Invalid video URL"))]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ExtractionMethod(str, Enum):
    """Detected shape of the raw input"""
    MARKDOWN = "markdown"
    HTML = "html"
    JSON = "json"
    MIXED = "mixed"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class SearchParameters(FrozenCamelModel):
    """Filters that originated the scrape. Unknown keys are passed through."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="allow")

    location: Optional[str] = None
    property_type: Optional[Literal["office", "coworking", "retail", "warehouse", "land"]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    furnished: Optional[Literal["furnished", "semi-furnished", "unfurnished"]] = None
    availability: Optional[Literal["immediate", "within-15-days", "within-30-days", "after-30-days"]] = None
    amenities: Optional[List[str]] = None
    sort_by: Optional[Literal["relevance", "price-low-to-high", "price-high-to-low", "newest"]] = None
    page: Optional[int] = Field(default=None, ge=1)


class RawContentEnvelope(FrozenCamelModel):
    """Pipeline input: scraped content plus provenance"""
    payload: Any = Field(..., description="Raw scraped content (string or object)")
    source_url: SourceUrl = Field(..., description="URL the content was scraped from")
    search_parameters: Optional[SearchParameters] = None
    extraction_hints: Optional[str] = Field(default=None, description="Free-text guidance for the model")

    @field_validator("payload")
    @classmethod
    def payload_not_empty(cls, v: Any) -> Any:
        if v is None or (isinstance(v, (str, dict, list)) and not v):
            raise ValueError("Raw content payload is required")
        return v


# ---------------------------------------------------------------------------
# Property records
# ---------------------------------------------------------------------------

def _domain_message(message: str, error_types: Tuple[str, ...]):
    """Replace range/choice errors with a domain message; type errors pass through"""
    def wrap(value: Any, handler):
        try:
            return handler(value)
        except ValidationError as e:
            if all(err["type"] in error_types for err in e.errors()):
                raise PydanticCustomError("domain_value", message) from None
            raise
    return WrapValidator(wrap)


def _positive(message: str):
    return _domain_message(message, ("greater_than",))


def _one_of(message: str):
    return _domain_message(message, ("literal_error",))


def _required_text(message: str):
    return _domain_message(message, ("string_too_short",))


class RecordModel(BaseModel):
    """Model output is checked as emitted: no string-to-number or int-to-bool coercion"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, strict=True)


class Price(RecordModel):
    amount: Annotated[float, Field(gt=0), _positive("Price amount must be positive")]
    currency: Annotated[Literal["INR", "USD", "EUR"], _one_of("Currency must be INR, USD, or EUR")]
    period: Annotated[
        Literal["monthly", "yearly", "one-time"],
        _one_of("Period must be monthly, yearly, or one-time"),
    ]


class Size(RecordModel):
    area: Annotated[float, Field(gt=0), _positive("Area must be positive")]
    unit: Annotated[Literal["sqft", "seats"], _one_of("Unit must be sqft or seats")]


class Features(RecordModel):
    furnished: Optional[bool] = None
    parking: Optional[bool] = None
    wifi: Optional[bool] = None
    ac: Optional[bool] = None
    security: Optional[bool] = None
    cafeteria: Optional[bool] = None
    elevator: Optional[bool] = None
    power_backup: Optional[bool] = None
    conference_room: Optional[bool] = None


class Contact(RecordModel):
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    contact_person: Optional[str] = None


class Media(RecordModel):
    images: Optional[List[ImageUrl]] = None
    videos: Optional[List[VideoUrl]] = None


class Availability(RecordModel):
    status: Annotated[
        Literal["available", "occupied", "coming-soon"],
        _one_of("Status must be available, occupied, or coming-soon"),
    ]
    date: Optional[str] = None


class ExtractionMetadata(RecordModel):
    """Provenance attached to every record produced by the pipeline"""
    extracted_by: Annotated[
        Literal["model", "scraper", "manual"],
        _one_of("ExtractedBy must be model, scraper, or manual"),
    ] = "model"
    confidence: Annotated[
        Optional[float],
        Field(ge=0.0, le=1.0),
        _domain_message("Confidence must be between 0 and 1", ("greater_than_equal", "less_than_equal")),
    ] = None
    warnings: List[str] = Field(default_factory=list)
    processed_at: str
    fields_extracted: List[str] = Field(default_factory=list)
    fields_missing: List[str] = Field(default_factory=list)


class CandidateProperty(RecordModel):
    """Listing fields as produced by the model"""
    title: Annotated[str, Field(min_length=1), _required_text("Title is required")]
    description: Annotated[str, Field(min_length=1), _required_text("Description is required")]
    location: Annotated[str, Field(min_length=1), _required_text("Location is required")]
    price: Optional[Price] = None
    size: Optional[Size] = None
    amenities: Optional[List[str]] = None
    features: Optional[Features] = None
    contact: Optional[Contact] = None
    media: Optional[Media] = None
    availability: Optional[Availability] = None


class ValidatedProperty(CandidateProperty):
    """A candidate that passed validation, with enrichment attached"""
    source_url: SourceUrl
    scraped_at: str
    search_parameters: Optional[SearchParameters] = None
    extraction_metadata: Optional[ExtractionMetadata] = None


class ValidationFailure(CamelModel):
    index: int
    errors: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Routing variants
# ---------------------------------------------------------------------------

class PropertyBatch(BaseModel):
    """Property pathway: raw candidates plus the run-level metadata block"""
    candidates: List[Any] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UISpecification(BaseModel):
    """UI pathway: opaque model output passed through unmodified"""
    payload: Dict[str, Any]
    confidence: float = 0.8
    mode: Literal["ui-generation"] = "ui-generation"
    component_type: str = "unknown"


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class RunMetadata(CamelModel):
    properties_extracted: int = 0
    properties_validated: int = 0
    properties_failed: int = 0
    confidence_scores: Dict[str, float] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    model: str = "unknown"
    tokens_used: int = 0
    extraction_method: Union[ExtractionMethod, Literal["unknown"]] = "unknown"
    extraction_mode: Literal["properties", "ui-generation"] = "properties"
    ui_confidence: float = 0.0


class ExtractionRunResult(CamelModel):
    """Terminal envelope returned by every run"""
    success: bool
    properties: List[ValidatedProperty] = Field(default_factory=list)
    ui_spec: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    details: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    validation_errors: List[ValidationFailure] = Field(default_factory=list)
    metadata: RunMetadata = Field(default_factory=RunMetadata)

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready camelCase dict; the UI payload is kept verbatim"""
        data = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        if self.ui_spec is not None:
            data["uiSpec"] = self.ui_spec
        return data
