"""
Configuration for greencache.

Process-wide defaults live in a ``GlobalConfiguration`` (pydantic-settings,
``GREENCACHE_`` environment prefix). Every cache call works on its own frozen
``CallConfiguration``, the global defaults merged with the caller's overrides
at the moment of the call.

The global configuration is meant to be set once at startup. It is not
guarded by a lock; mutating it while cache calls are in flight is not
supported.
"""

from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .store import create_store


class CacheSettings(BaseModel):
    """Fields shared by the global and per-call configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Expiry handed to SETEX, in seconds
    cache_time: int = Field(default=600, gt=0)
    encrypt: bool = False
    secret: Optional[str] = None
    skip_cache: bool = False
    silent: bool = False
    # structlog-compatible logger; None means the library logger
    logger: Optional[Any] = None
    log_prefix: str = "greencache"
    key_prefix: str = ""
    store: Optional[Any] = None
    redis_url: str = "redis://localhost:6379/0"
    probe_timeout: float = Field(default=1.0, gt=0)


class GlobalConfiguration(BaseSettings, CacheSettings):
    """Process-wide cache defaults, read from the environment on creation."""

    model_config = SettingsConfigDict(
        env_prefix="GREENCACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
        arbitrary_types_allowed=True,
    )


class CallConfiguration(CacheSettings):
    """Immutable configuration snapshot for a single cache call."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def full_key(self, key: str) -> str:
        """Store key for a caller key."""
        return f"{self.key_prefix}{key}"

    def event_name(self, event: str) -> str:
        """Namespaced log event name, e.g. ``greencache.cache.hit``."""
        return ".".join([self.log_prefix, event])


FIELD_NAMES = tuple(CacheSettings.model_fields)


def _describe(exc: ValidationError) -> Dict[str, Any]:
    return {
        "errors": [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
    }


class ConfigurationStore:
    """Holds the global configuration and produces per-call snapshots."""

    def __init__(self, configuration: Optional[GlobalConfiguration] = None):
        self._configuration = configuration

    @property
    def global_configuration(self) -> GlobalConfiguration:
        """The global configuration, created from defaults and env on first access."""
        if self._configuration is None:
            self._configuration = GlobalConfiguration()
        return self._configuration

    def configure(
        self,
        mutator: Optional[Callable[[GlobalConfiguration], Any]] = None,
        **fields: Any
    ) -> GlobalConfiguration:
        """
        Change global defaults.

        Args:
            mutator: Callable receiving the mutable global configuration
            **fields: Field values to assign after the mutator has run

        Returns:
            The updated global configuration
        """
        unknown = sorted(set(fields) - set(FIELD_NAMES))
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration fields: {', '.join(unknown)}",
                {"unknown": unknown},
            )

        configuration = self.global_configuration
        # Changes land on a copy first so a failure leaves the globals untouched
        candidate = configuration.model_copy()
        try:
            if mutator is not None:
                mutator(candidate)
            for name, value in fields.items():
                setattr(candidate, name, value)
        except ValidationError as exc:
            raise ConfigurationError("Invalid configuration value", _describe(exc)) from exc
        except ValueError as exc:
            # pydantic rejects unknown attributes with a plain ValueError
            raise ConfigurationError(str(exc)) from exc

        for name in FIELD_NAMES:
            if getattr(candidate, name) is not getattr(configuration, name):
                setattr(configuration, name, getattr(candidate, name))

        return configuration

    def merge(self, overrides: Optional[Mapping[str, Any]] = None) -> CallConfiguration:
        """
        Snapshot the global configuration with per-call overrides applied.

        Args:
            overrides: Field values taking precedence over the global ones

        Returns:
            A frozen configuration for one call

        Raises:
            ConfigurationError: on unknown override keys or invalid values
        """
        overrides = dict(overrides or {})
        unknown = sorted(set(overrides) - set(FIELD_NAMES))
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration overrides: {', '.join(unknown)}",
                {"unknown": unknown},
            )

        configuration = self.global_configuration
        if configuration.store is None and overrides.get("store") is None:
            configuration.store = create_store(configuration.redis_url, configuration.probe_timeout)

        values = {name: getattr(configuration, name) for name in FIELD_NAMES}
        values.update(overrides)
        try:
            return CallConfiguration(**values)
        except ValidationError as exc:
            raise ConfigurationError("Invalid configuration override", _describe(exc)) from exc

    def reset(self) -> None:
        """Drop the global configuration; the next access recreates it."""
        self._configuration = None
