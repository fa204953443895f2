"""Storage layer and key registry unit tests."""

import pytest
from k1s0_session_lifecycle.storage import (
    DEFAULT_REGISTRY,
    AuthKeyRegistry,
    InMemoryKeyValueStore,
    InMemoryStructuredStore,
)


@pytest.mark.parametrize(
    "key",
    [
        "sb-abcdefgh-auth-token",
        "supabase.auth.token",
        "SB-Project-Auth-Token",
        "my-app-access_token",
        "refresh_token",
        "user_permissions",
        "supabase-session-cache",
    ],
)
def test_default_registry_matches_auth_keys(key: str) -> None:
    assert DEFAULT_REGISTRY.matches(key)


@pytest.mark.parametrize("key", ["theme", "ui.sidebar", "locale", "draft-query-42"])
def test_default_registry_ignores_ux_state(key: str) -> None:
    assert not DEFAULT_REGISTRY.matches(key)


def test_registry_select_preserves_order() -> None:
    registry = AuthKeyRegistry(exact_keys=("token",), prefixes=("auth.",))
    assert registry.select(["auth.a", "theme", "token", "auth.b"]) == ["auth.a", "token", "auth.b"]


def test_empty_registry_matches_nothing() -> None:
    assert not AuthKeyRegistry().matches("sb-auth-token")


async def test_key_value_store_roundtrip() -> None:
    store = InMemoryKeyValueStore()
    await store.set("theme", "dark")
    assert await store.get("theme") == "dark"
    assert await store.list_keys() == ["theme"]
    await store.remove("theme")
    await store.remove("missing")
    assert await store.get("theme") is None


async def test_key_value_store_scripted_failure() -> None:
    store = InMemoryKeyValueStore({"k": "v"})
    store.fail_remove("k")
    with pytest.raises(OSError):
        await store.remove("k")


async def test_structured_store() -> None:
    store = InMemoryStructuredStore(["b", "a"])
    assert await store.list_databases() == ["a", "b"]
    await store.delete_database("a")
    assert store.databases == {"b"}
    store.fail_delete("b")
    with pytest.raises(OSError):
        await store.delete_database("b")
