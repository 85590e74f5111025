"""Configuration models for the fetch pipeline.

Settings are plain pydantic models so they can be validated, dumped, and
threaded explicitly through :class:`FileFetch.fetch.Fetcher` instead of living
in module globals.  Environment variables prefixed with ``FILEFETCH_`` override
the defaults through :class:`EnvironmentOverrides` (``pydantic-settings``).
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__
from .errors import ConfigurationError
from .mechanisms.base import FetchContext

__all__ = [
    "DEFAULT_BLACKLIST",
    "DEFAULT_FROM_EMAIL",
    "DEFAULT_METHODS",
    "DEFAULT_USER_AGENT",
    "EnvironmentOverrides",
    "FetchSettings",
    "LoggingConfiguration",
    "get_settings",
]

DEFAULT_FROM_EMAIL = "filefetch@example.com"
DEFAULT_USER_AGENT = f"FileFetch/{__version__}"

# Priority order per scheme; the first verified success wins.
DEFAULT_METHODS: Dict[str, List[str]] = {
    "http": ["httpx", "wget", "curl", "lynx"],
    "ftp": ["httpx", "ftplib", "wget", "curl", "ncftp", "ftp"],
    "file": ["httpx"],
}

# The plain ftp client has no usable error reporting and is driven through a pipe.
DEFAULT_BLACKLIST: List[str] = ["ftp"]


def _normalize_names(values: Optional[List[str]]) -> List[str]:
    normalized: List[str] = []
    for value in values or []:
        name = str(value).strip().lower()
        if name and name not in normalized:
            normalized.append(name)
    return normalized


class LoggingConfiguration(BaseModel):
    """Logging controls applied by :func:`FileFetch.logging_utils.setup_logging`."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=10, gt=0, description="Maximum size of rotated log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Upper-case and validate the logging level name."""

        upper = value.strip().upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level '{value}'")
        return upper


class FetchSettings(BaseModel):
    """Process-level fetch configuration.

    ``passive_ftp`` and ``debug`` are consulted per call and handed to each
    mechanism through a :class:`~FileFetch.mechanisms.base.FetchContext`, so
    concurrent fetches using different settings objects do not interfere.
    """

    model_config = ConfigDict(validate_assignment=True)

    passive_ftp: bool = Field(default=True, description="Request passive-mode FTP data connections")
    debug: bool = Field(
        default=False,
        description="Let subprocess output through and log every mechanism decision",
    )
    from_email: str = Field(
        default=DEFAULT_FROM_EMAIL,
        description="Anonymous FTP password and HTTP From header",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent for HTTP requests")
    timeout_sec: float = Field(
        default=60.0,
        gt=0.0,
        le=3600.0,
        description="Per-mechanism network or subprocess timeout",
    )
    blacklist: List[str] = Field(default_factory=lambda: list(DEFAULT_BLACKLIST))
    methods: Dict[str, List[str]] = Field(
        default_factory=lambda: {scheme: list(names) for scheme, names in DEFAULT_METHODS.items()}
    )
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    @field_validator("blacklist")
    @classmethod
    def validate_blacklist(cls, value: List[str]) -> List[str]:
        """Lower-case and de-duplicate blacklisted mechanism names."""

        return _normalize_names(value)

    @field_validator("methods")
    @classmethod
    def validate_methods(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Normalise scheme keys and mechanism names while keeping priority order."""

        normalized: Dict[str, List[str]] = {}
        for scheme, names in value.items():
            key = str(scheme).strip().lower()
            if not key:
                raise ValueError("scheme names must be non-empty")
            normalized[key] = _normalize_names(names)
        return normalized

    @field_validator("from_email")
    @classmethod
    def validate_from_email(cls, value: str) -> str:
        """Require something that looks like a mail address."""

        cleaned = value.strip()
        if "@" not in cleaned:
            raise ValueError(f"from_email '{value}' is not an email address")
        return cleaned

    def fetch_context(self) -> FetchContext:
        """Snapshot the per-call options handed to mechanisms."""

        return FetchContext(
            passive_ftp=self.passive_ftp,
            debug=self.debug,
            from_email=self.from_email,
            user_agent=self.user_agent,
            timeout_sec=self.timeout_sec,
        )

    def build_registry(self):
        """Create a registry wired with the built-in mechanisms and these tables."""

        from .registry import MechanismRegistry  # Local import to avoid circular dependency

        return MechanismRegistry.with_defaults(methods=self.methods, blacklist=self.blacklist)


class EnvironmentOverrides(BaseSettings):
    """Environment-derived overrides (``FILEFETCH_*``)."""

    passive_ftp: Optional[bool] = None
    debug: Optional[bool] = None
    from_email: Optional[str] = None
    user_agent: Optional[str] = None
    timeout_sec: Optional[float] = None
    blacklist: Optional[str] = Field(
        default=None,
        description="Comma separated mechanism names, e.g. 'ftp,lynx'",
    )
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="FILEFETCH_", case_sensitive=False, extra="ignore")


def get_settings(**overrides: object) -> FetchSettings:
    """Return settings built from defaults, ``FILEFETCH_*`` variables and ``overrides``.

    Keyword overrides win over the environment; ``None`` values are ignored so
    CLI options left unset fall through.

    Raises:
        ConfigurationError: If the merged values fail validation.
    """

    try:
        env = EnvironmentOverrides().model_dump(exclude_none=True)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid FILEFETCH_* environment: {exc}") from exc

    payload: Dict[str, object] = {}
    log_level = env.pop("log_level", None)
    blacklist = env.pop("blacklist", None)
    if blacklist is not None:
        payload["blacklist"] = [item for item in blacklist.split(",") if item.strip()]
    payload.update(env)
    if log_level is not None:
        payload["logging"] = {"level": log_level}
    payload.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return FetchSettings.model_validate(payload)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid fetch settings: {exc}") from exc
