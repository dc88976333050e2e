"""
greencache: a read-through cache façade over Redis.

Modules:

- config: Global defaults via pydantic-settings and per-call snapshots
- pipeline: JSON serialization and Fernet encryption of cached payloads
- health: Store liveness probe used for fail-open behavior
- cache: The cache-or-compute orchestrator
- logging: Structured logging with trace correlation
- metrics: Prometheus counters for cache events
- errors: Error types

Applications usually configure once at startup and then call ``cache``::

    import greencache

    greencache.configure(cache_time=300, key_prefix="myapp:")
    report = greencache.cache("report:42", lambda: build_report(42))

The module-level functions share one lazily created ``Greencache``
instance. Construct ``Greencache(ConfigurationStore())`` directly to keep
independent configurations.
"""

from typing import Any, Callable, Optional, TypeVar

from .cache import Greencache, Hit, Miss, MISS, ReadResult
from .config import CallConfiguration, ConfigurationStore, GlobalConfiguration
from .errors import ConfigurationError, GreencacheException, SerializationError
from .health import StoreHealthProbe
from .metrics import CacheMetrics
from .pipeline import ValuePipeline
from .store import KeyValueStore, create_store

__all__ = [
    "Greencache",
    "Hit",
    "Miss",
    "MISS",
    "ReadResult",
    "CallConfiguration",
    "ConfigurationStore",
    "GlobalConfiguration",
    "ConfigurationError",
    "GreencacheException",
    "SerializationError",
    "StoreHealthProbe",
    "CacheMetrics",
    "ValuePipeline",
    "KeyValueStore",
    "create_store",
    "default_cache",
    "configure",
    "cache",
    "get",
    "set",
]

T = TypeVar("T")

_default: Optional[Greencache] = None


def default_cache() -> Greencache:
    """The process-wide cache used by the module-level functions."""
    global _default
    if _default is None:
        _default = Greencache()
    return _default


def configure(mutator: Optional[Callable[[GlobalConfiguration], Any]] = None, **fields: Any) -> GlobalConfiguration:
    """Set global defaults, via a mutator callable and/or keyword fields."""
    return default_cache().configure(mutator, **fields)


def cache(key: str, compute: Callable[[], T], **overrides: Any) -> T:
    """Return the cached value for ``key``, computing and storing it on a miss."""
    return default_cache().cache(key, compute, **overrides)


def get(key: str, **overrides: Any) -> ReadResult:
    """Read ``key`` from the default cache."""
    return default_cache().get(key, **overrides)


def set(key: str, value: Any, **overrides: Any) -> bool:
    """Write ``value`` under ``key`` through the default cache."""
    return default_cache().set(key, value, **overrides)
