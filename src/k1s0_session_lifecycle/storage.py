"""Client-side storage layers and the registry of keys owned by the session."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthKeyRegistry:
    """Keys and namespaces owned by the session lifecycle.

    A key belongs to the session when it equals one of ``exact_keys``,
    starts with one of ``prefixes`` or contains one of ``substrings``.
    Matching is case-insensitive.
    """

    exact_keys: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()
    substrings: tuple[str, ...] = ()

    def matches(self, key: str) -> bool:
        lowered = key.lower()
        if any(lowered == k.lower() for k in self.exact_keys):
            return True
        if any(lowered.startswith(p.lower()) for p in self.prefixes):
            return True
        return any(s.lower() in lowered for s in self.substrings)

    def select(self, keys: Iterable[str]) -> list[str]:
        return [k for k in keys if self.matches(k)]


DEFAULT_REGISTRY = AuthKeyRegistry(
    exact_keys=("user_permissions", "user_role"),
    prefixes=("sb-", "supabase.auth."),
    substrings=("auth-token", "access_token", "refresh_token", "session"),
)


class KeyValueStore(ABC):
    """Abstract string key-value store (memory, local storage, cookies)."""

    @abstractmethod
    async def list_keys(self) -> list[str]:
        ...

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...


class StructuredStore(ABC):
    """Abstract structured persistent store made of named databases."""

    @abstractmethod
    async def list_databases(self) -> list[str]:
        ...

    @abstractmethod
    async def delete_database(self, name: str) -> None:
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key-value store for testing."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})
        self._fail_keys: set[str] = set()

    def fail_remove(self, key: str) -> None:
        """Make ``remove(key)`` raise OSError."""
        self._fail_keys.add(key)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)

    async def list_keys(self) -> list[str]:
        return list(self._data)

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        if key in self._fail_keys:
            raise OSError(f"Cannot remove key: {key}")
        self._data.pop(key, None)


class InMemoryStructuredStore(StructuredStore):
    """In-memory structured store for testing."""

    def __init__(self, databases: Iterable[str] = ()) -> None:
        self._databases: set[str] = set(databases)
        self._fail_names: set[str] = set()

    def fail_delete(self, name: str) -> None:
        self._fail_names.add(name)

    @property
    def databases(self) -> set[str]:
        return set(self._databases)

    async def list_databases(self) -> list[str]:
        return sorted(self._databases)

    async def delete_database(self, name: str) -> None:
        if name in self._fail_names:
            raise OSError(f"Cannot delete database: {name}")
        self._databases.discard(name)
