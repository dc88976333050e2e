"""
Shared fixtures for greencache tests.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from prometheus_client import CollectorRegistry
from redis.exceptions import ConnectionError as RedisConnectionError

from greencache import CacheMetrics, ConfigurationStore, GlobalConfiguration, Greencache, ValuePipeline


class InMemoryStore:
    """Dict-backed stand-in for a redis client."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.ttls: Dict[str, int] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.up = True

    def ping(self) -> bool:
        self.calls.append(("ping",))
        if not self.up:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
        return True

    def exists(self, *names: str) -> int:
        self.calls.append(("exists",) + names)
        return sum(1 for name in names if name in self.data)

    def get(self, name: str) -> Optional[Any]:
        self.calls.append(("get", name))
        return self.data.get(name)

    def setex(self, name: str, time: int, value: str) -> bool:
        self.calls.append(("setex", name, time, value))
        self.data[name] = value
        self.ttls[name] = time
        return True

    def commands(self) -> List[str]:
        """Names of the commands issued so far."""
        return [call[0] for call in self.calls]


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def configuration_store(store):
    """Configuration store wired to the in-memory store."""
    return ConfigurationStore(GlobalConfiguration(store=store, silent=True))


@pytest.fixture
def pipeline():
    """Value pipeline with a cheap key derivation."""
    return ValuePipeline(iterations=1000)


@pytest.fixture
def registry():
    """Isolated prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    """Cache metrics bound to the isolated registry."""
    return CacheMetrics(registry=registry)


@pytest.fixture
def greencache(configuration_store, pipeline):
    """Cache instance over the in-memory store."""
    return Greencache(configuration_store, pipeline=pipeline)
