"""Session cleanup across every client-side storage layer."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from .backend import AuthBackend
from .exceptions import CleanupError
from .executor import Sleep
from .metrics import session_cleanup_errors_total
from .storage import DEFAULT_REGISTRY, AuthKeyRegistry, KeyValueStore, StructuredStore

logger = structlog.stdlib.get_logger(__name__)

Reloader = Callable[[], Awaitable[None] | None]

VOLATILE = "volatile"
KEY_VALUE = "key_value"
STRUCTURED = "structured"
COOKIES = "cookies"
BACKEND = "backend"


@dataclass(frozen=True)
class CleanupOptions:
    """Which storage layers to purge."""

    volatile: bool = False
    key_value: bool = False
    structured: bool = False
    cookies: bool = False
    reload: bool = False
    reload_delay: float = 1.0


LOGOUT_CLEANUP = CleanupOptions(volatile=True, key_value=True)
EMERGENCY_CLEANUP = CleanupOptions(
    volatile=True, key_value=True, structured=True, cookies=True, reload=True
)
REFRESH_FAILURE_CLEANUP = CleanupOptions(key_value=True)


@dataclass
class CleanupReport:
    """What a cleanup run removed and which removals failed."""

    signed_out: bool = False
    reloaded: bool = False
    removed: dict[str, list[str]] = field(default_factory=dict)
    errors: list[CleanupError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.signed_out and not self.errors


class SessionCleanup:
    """Signs out and purges session artifacts from the configured layers.

    Only keys recognized by the registry are removed, so unrelated state kept
    in the same stores survives. A failing removal is logged and recorded in
    the report; it never stops the rest of the cleanup.
    """

    def __init__(
        self,
        backend: AuthBackend,
        *,
        volatile: KeyValueStore | None = None,
        key_value: KeyValueStore | None = None,
        structured: StructuredStore | None = None,
        cookies: KeyValueStore | None = None,
        registry: AuthKeyRegistry = DEFAULT_REGISTRY,
        reloader: Reloader | None = None,
        reload_delay: float | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._backend = backend
        self._stores: dict[str, KeyValueStore | None] = {
            VOLATILE: volatile,
            KEY_VALUE: key_value,
            COOKIES: cookies,
        }
        self._structured = structured
        self._registry = registry
        self._reloader = reloader
        self._reload_delay = reload_delay
        self._sleep = sleep or asyncio.sleep

    @property
    def registry(self) -> AuthKeyRegistry:
        return self._registry

    async def perform_cleanup(self, options: CleanupOptions) -> CleanupReport:
        report = CleanupReport()
        try:
            await self._backend.sign_out()
            report.signed_out = True
        except Exception as e:
            logger.warning("sign out failed during cleanup", error=str(e))
            report.errors.append(CleanupError(BACKEND, "session", cause=e))

        for layer, enabled in (
            (VOLATILE, options.volatile),
            (KEY_VALUE, options.key_value),
            (COOKIES, options.cookies),
        ):
            store = self._stores[layer]
            if enabled and store is not None:
                await self._purge_store(layer, store, report)

        if options.structured and self._structured is not None:
            await self._purge_structured(self._structured, report)

        for error in report.errors:
            session_cleanup_errors_total.add(1, {"layer": error.layer})

        if options.reload and self._reloader is not None:
            delay = self._reload_delay if self._reload_delay is not None else options.reload_delay
            await self._sleep(delay)
            outcome = self._reloader()
            if inspect.isawaitable(outcome):
                await outcome
            report.reloaded = True

        logger.info(
            "session cleanup finished",
            removed={layer: len(keys) for layer, keys in report.removed.items()},
            errors=len(report.errors),
            reloaded=report.reloaded,
        )
        return report

    async def _purge_store(self, layer: str, store: KeyValueStore, report: CleanupReport) -> None:
        try:
            keys = self._registry.select(await store.list_keys())
        except Exception as e:
            logger.warning("failed to enumerate storage", layer=layer, error=str(e))
            report.errors.append(CleanupError(layer, "*", cause=e))
            return
        removed = report.removed.setdefault(layer, [])
        for key in keys:
            try:
                await store.remove(key)
                removed.append(key)
            except Exception as e:
                logger.warning("failed to remove storage key", layer=layer, key=key, error=str(e))
                report.errors.append(CleanupError(layer, key, cause=e))

    async def _purge_structured(self, store: StructuredStore, report: CleanupReport) -> None:
        try:
            names = self._registry.select(await store.list_databases())
        except Exception as e:
            logger.warning("failed to enumerate databases", error=str(e))
            report.errors.append(CleanupError(STRUCTURED, "*", cause=e))
            return
        removed = report.removed.setdefault(STRUCTURED, [])
        for name in names:
            try:
                await store.delete_database(name)
                removed.append(name)
            except Exception as e:
                logger.warning("failed to delete database", name=name, error=str(e))
                report.errors.append(CleanupError(STRUCTURED, name, cause=e))

    async def logout_cleanup(self) -> CleanupReport:
        return await self.perform_cleanup(LOGOUT_CLEANUP)

    async def emergency_cleanup(self) -> CleanupReport:
        return await self.perform_cleanup(EMERGENCY_CLEANUP)

    async def refresh_failure_cleanup(self) -> CleanupReport:
        return await self.perform_cleanup(REFRESH_FAILURE_CLEANUP)
