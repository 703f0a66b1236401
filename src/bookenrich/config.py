# ABOUTME: Tunable settings for enrichment: timeouts, cover validation, provider precedence.
# ABOUTME: EnrichmentSettings is a pydantic model; load_settings() validates a TOML [bookenrich] table.

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

from bookenrich.metadata.http import (
    DEFAULT_MAX_CONCURRENT_REQUESTS,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
)
from bookenrich.metadata.types import Provider

logger = logging.getLogger(__name__)

_TABLE = "bookenrich"


class ConfigError(Exception):
    """Raised when a settings file cannot be read or holds invalid values."""


def _parse_provider(value: Any) -> Provider:
    if isinstance(value, Provider):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for provider in Provider:
            if lowered in (provider.value, provider.label.lower()):
                return provider
    raise ValueError(f"Unknown provider in precedence list: {value!r}")


class EnrichmentSettings(BaseModel):
    """Every knob the enrichment engine exposes, with production defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search_timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    isbn_timeout: float = Field(10.0, gt=0)
    detail_timeout: float = Field(5.0, gt=0)
    cover_timeout: float = Field(5.0, gt=0)
    max_retries: StrictInt = Field(0, ge=0)
    min_request_interval: float = Field(0.0, ge=0)
    max_concurrent_requests: StrictInt = Field(
        DEFAULT_MAX_CONCURRENT_REQUESTS, ge=1, description="Requests in flight at once"
    )
    user_agent: StrictStr = DEFAULT_USER_AGENT
    google_api_key: StrictStr | None = None

    max_cover_validation_attempts: StrictInt = Field(5, ge=1)
    # OpenLibrary answers a missing cover with a 1x1 placeholder pixel.
    min_cover_bytes: StrictInt = Field(100, ge=0)
    cover_trust_threshold: StrictInt = 3
    trusted_cover_sources: tuple[StrictStr, ...] = ("Google Books",)

    complete_description_length: StrictInt = Field(50, ge=0)
    search_limit: StrictInt = Field(10, ge=1)

    series_precedence: tuple[Provider, ...] = (
        Provider.OPEN_LIBRARY,
        Provider.GOOGLE_BOOKS,
        Provider.IMSLP,
    )
    rating_precedence: tuple[Provider, ...] = (
        Provider.GOOGLE_BOOKS,
        Provider.OPEN_LIBRARY,
        Provider.IMSLP,
    )
    fill_precedence: tuple[Provider, ...] = (
        Provider.GOOGLE_BOOKS,
        Provider.OPEN_LIBRARY,
        Provider.IMSLP,
    )

    imslp_scores_only: StrictBool = True

    @field_validator(
        "search_timeout",
        "isbn_timeout",
        "detail_timeout",
        "cover_timeout",
        "min_request_interval",
        mode="before",
    )
    @classmethod
    def reject_booleans(cls, v: Any) -> Any:
        """TOML true/false is not a number of seconds."""
        if isinstance(v, bool):
            raise ValueError("must be a number, not true/false")
        return v

    @field_validator("series_precedence", "rating_precedence", "fill_precedence", mode="before")
    @classmethod
    def parse_providers(cls, v: Any) -> tuple[Provider, ...]:
        """Accept provider values or labels, case-insensitively."""
        if not isinstance(v, (list, tuple)):
            raise ValueError("must be a list of provider names")
        return tuple(_parse_provider(item) for item in v)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    unknown = sorted(str(e["loc"][0]) for e in errors if e["type"] == "extra_forbidden")
    if unknown:
        return f"Unknown setting(s): {', '.join(unknown)}"
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in errors
    )


def settings_from_mapping(values: dict[str, Any]) -> EnrichmentSettings:
    """Build settings from a plain mapping, rejecting unknown keys.

    Raises:
        ConfigError: If a key is unknown or a value fails validation.
    """
    try:
        return EnrichmentSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc


def load_settings(path: Path | str | None = None) -> EnrichmentSettings:
    """Load settings from a TOML file, falling back to defaults.

    The file must hold a [bookenrich] table; other tables are ignored so the
    settings can share a file with other tools.

    Raises:
        ConfigError: If the file is missing, is not valid TOML, or holds
            unknown keys or values of the wrong type.
    """
    if path is None:
        logger.debug("Using built-in default settings")
        return EnrichmentSettings()

    path = Path(path)
    try:
        with path.open("rb") as fh:
            document = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Settings file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    table = document.get(_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{_TABLE}] in {path} must be a table")
    logger.debug("Loaded settings from %s", path)
    return settings_from_mapping(table)
