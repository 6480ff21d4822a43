"""Cache port - key/value store with per-entry TTL."""

from typing import Any, Protocol


class Cache(Protocol):
    """Port for the permission caches.

    The in-memory implementation is the default; a shared store can
    replace it as long as TTL and sweep semantics hold.
    """

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    def delete(self, key: str) -> bool: ...

    def delete_prefix(self, prefix: str) -> int: ...

    def clear(self) -> None: ...

    def sweep(self) -> int: ...

    def stats(self) -> dict[str, Any]: ...
