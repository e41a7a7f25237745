"""
Capability interface shared by the memory, persistent and remote tiers.
"""
from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """
    Minimal cache surface every tier implements.

    Implementations:
    - MemoryCache: bounded in-process map
    - PersistentStore: SQLite via SQLAlchemy, survives restarts
    - RemoteSharedCache: Supabase table shared by every instance

    ``get`` returns None for absent or expired keys. Persistent and remote
    tiers also return None when the tier itself is failing.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    def get_or_fetch(self, key: str, producer: Callable[[], Any], ttl: Optional[Any] = None) -> Any:
        ...

    def delete(self, key: str) -> bool:
        ...

    def clear(self) -> int:
        ...

    def cleanup(self) -> int:
        ...
