"""
Backing store contract and the redis client factory.
"""

from typing import Optional, Protocol, Union, runtime_checkable

import redis


@runtime_checkable
class KeyValueStore(Protocol):
    """The subset of the redis command set greencache relies on."""

    def exists(self, *names: str) -> int:
        ...

    def get(self, name: str) -> Optional[Union[str, bytes]]:
        ...

    def setex(self, name: str, time: int, value: str) -> bool:
        ...

    def ping(self) -> bool:
        ...


def create_store(redis_url: str, timeout: float = 1.0) -> redis.Redis:
    """
    Build a redis client suitable for the cache.

    Connect and socket timeouts are bounded by ``timeout`` so a liveness
    probe against an unreachable server fails fast instead of hanging.

    Args:
        redis_url: Connection URL, e.g. ``redis://localhost:6379/0``
        timeout: Connect/read timeout in seconds

    Returns:
        A synchronous redis client returning ``str`` values
    """
    return redis.Redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
        retry_on_timeout=False,
    )
