"""
Read-through cache orchestration.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

from .config import CallConfiguration, ConfigurationStore, GlobalConfiguration
from .health import UNREACHABLE_ERRORS, StoreHealthProbe
from .logging import get_logger
from .metrics import CacheMetrics
from .pipeline import ValuePipeline

T = TypeVar("T")


@dataclass(frozen=True)
class Hit:
    """A value found in the cache. ``value`` may itself be ``None``."""
    value: Any


class Miss:
    """Nothing usable is cached under the key."""

    _instance: Optional["Miss"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"


MISS = Miss()
ReadResult = Union[Hit, Miss]


class Greencache:
    """
    Cache-or-compute façade over a key-value store.

    ``cache(key, compute)`` returns the cached value for ``key`` when one is
    present and readable, otherwise calls ``compute()``, stores the result
    and returns it. When caching is skipped or the store does not answer a
    PING, ``compute()`` is called directly and the store is left alone.
    """

    def __init__(
        self,
        configuration: Optional[ConfigurationStore] = None,
        *,
        pipeline: Optional[ValuePipeline] = None,
        probe: Optional[StoreHealthProbe] = None,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.configuration = configuration or ConfigurationStore()
        self.pipeline = pipeline or ValuePipeline()
        self.metrics = metrics
        self.probe = probe or StoreHealthProbe(metrics)
        self.logger = get_logger("greencache")

    def configure(self, mutator: Optional[Callable[[GlobalConfiguration], Any]] = None, **fields: Any) -> GlobalConfiguration:
        """Change the global defaults used by this cache."""
        return self.configuration.configure(mutator, **fields)

    def cache(self, key: str, compute: Callable[[], T], **overrides: Any) -> T:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Cache key, prefixed with ``key_prefix`` in the store
            compute: Zero-argument callable producing the value
            **overrides: Per-call configuration overrides, e.g. ``cache_time=10``

        Returns:
            The cached or freshly computed value

        Raises:
            ConfigurationError: on unknown overrides or encryption without a secret
            SerializationError: if the value cannot be stored or the payload read back
        """
        config = self.configuration.merge(overrides)

        if not self._available(config):
            return self._compute(compute)

        result = self.read(key, config)
        if isinstance(result, Hit):
            return result.value

        value = self._compute(compute)
        self.write(key, value, config)
        return value

    def get(self, key: str, **overrides: Any) -> ReadResult:
        """Read ``key`` without computing anything; ``MISS`` when bypassed."""
        config = self.configuration.merge(overrides)

        if not self._available(config):
            return MISS

        return self.read(key, config)

    def set(self, key: str, value: Any, **overrides: Any) -> bool:
        """Store ``value`` under ``key``. Returns whether a write happened."""
        config = self.configuration.merge(overrides)

        if config.skip_cache:
            self._record("bypass")
            return False

        return self.write(key, value, config)

    def read(self, key: str, config: CallConfiguration) -> ReadResult:
        """
        Look ``key`` up in the store.

        Presence is checked with EXISTS so that cached falsy values (``None``,
        ``0``, ``""``) are hits. A payload that fails decryption is a miss.
        """
        full_key = config.full_key(key)
        store = config.store

        try:
            raw = store.get(full_key) if store.exists(full_key) else None
        except UNREACHABLE_ERRORS as e:
            self.logger.warning("greencache.store.error", key=full_key, operation="read", error=str(e))
            return MISS

        text = self.pipeline.decrypt(raw, config)
        if text is None:
            result: ReadResult = MISS
        else:
            result = Hit(self.pipeline.deserialize(text))

        event = "hit" if isinstance(result, Hit) else "miss"
        self._log(config, f"cache.{event}", full_key)
        self._record(event)
        return result

    def write(self, key: str, value: Any, config: CallConfiguration) -> bool:
        """Store ``value`` if the store is up. Returns whether a write happened."""
        if not self.probe.is_up(config.store):
            return False

        full_key = config.full_key(key)
        payload = self.pipeline.encrypt(self.pipeline.serialize(value), config)

        self._log(config, "cache.write", full_key)
        try:
            config.store.setex(full_key, config.cache_time, payload)
        except UNREACHABLE_ERRORS as e:
            self.logger.warning("greencache.store.error", key=full_key, operation="write", error=str(e))
            return False

        self._record("write")
        return True

    def _available(self, config: CallConfiguration) -> bool:
        """Whether this call may touch the store at all."""
        if config.skip_cache or not self.probe.is_up(config.store):
            self._record("bypass")
            return False
        return True

    def _compute(self, compute: Callable[[], T]) -> T:
        if self.metrics is None:
            return compute()
        with self.metrics.time_compute():
            return compute()

    def _log(self, config: CallConfiguration, event: str, key: str):
        if config.silent:
            return
        logger = config.logger if config.logger is not None else self.logger
        logger.info(config.event_name(event), count=1, key=key)

    def _record(self, event: str):
        if self.metrics:
            self.metrics.record_event(event)
