"""
Service settings and the explicit extraction configuration
"""
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[2]


def _find_env_file() -> Optional[Path]:
    """Project-root .env first, then backend/.env"""
    for candidate in (_BACKEND_DIR.parent / ".env", _BACKEND_DIR / ".env"):
        if candidate.exists():
            return candidate
    return None


ENV_FILE = _find_env_file()
if ENV_FILE is not None:
    load_dotenv(ENV_FILE, override=False)

DEFAULT_EXTRACTION_MODEL = "gpt-4o-mini"


class Settings(BaseSettings):
    """Settings read from the environment and .env"""

    # Service
    app_name: str = "listing-extraction"
    app_env: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    allowed_origins: str = Field(default="http://localhost:8000", description="Comma-separated CORS origins")

    # Logging
    log_level: str = "INFO"
    log_module_levels: Optional[str] = Field(
        default=None,
        description='JSON map of logger name to level, e.g. {"listing_extraction.core.llm_client": "DEBUG"}'
    )
    log_format: Literal["json", "text"] = "json"
    log_file_enabled: bool = False
    log_file_path: str = Field(default="logs/listing_extraction.log", description="Relative paths resolve from the project root")
    log_file_retention: int = Field(default=14, ge=1, description="Rotated daily files kept")
    log_sensitive_data: bool = Field(default=False, description="Disable masking of API keys and bearer tokens")
    log_uvicorn_access: bool = False

    # Completion endpoint (OpenAI-compatible chat completions)
    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the chat completion API"
    )
    llm_api_key: Optional[str] = Field(default=None, description="Bearer key for the completion API")
    llm_timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Transport timeout for one completion request (seconds)"
    )

    # Extraction
    extraction_model: str = Field(default=DEFAULT_EXTRACTION_MODEL, description="Model used for extraction")
    extraction_max_tokens: int = Field(
        default=8000,
        ge=256,
        le=32000,
        description="Maximum tokens the model may generate for one extraction"
    )
    extraction_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for extraction (low = deterministic)"
    )
    extraction_max_content_chars: int = Field(
        default=0,
        ge=0,
        description="Trim classified content to this many characters before prompting (0 = no limit)"
    )

    @field_validator("llm_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are appended to the base URL, so no trailing slash"""
        return v.strip().rstrip("/")

    @property
    def allowed_origins_list(self) -> List[str]:
        """CORS origins as a list"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@dataclass(frozen=True)
class ExtractionConfig:
    """Explicit settings handed to the extraction pipeline.

    The pipeline never reads process state; the caller layer builds this
    once (usually from ``Settings``) and passes it in.
    """

    model: str = DEFAULT_EXTRACTION_MODEL
    max_tokens: int = 8000
    temperature: float = 0.3
    timeout_seconds: float = 60.0
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    max_content_chars: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionConfig":
        return cls(
            model=settings.extraction_model,
            max_tokens=settings.extraction_max_tokens,
            temperature=settings.extraction_temperature,
            timeout_seconds=settings.llm_timeout_seconds,
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            max_content_chars=settings.extraction_max_content_chars,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
