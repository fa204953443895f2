"""SessionManager セッションライフサイクルのオーケストレーター"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

import structlog

from .cleanup import CleanupReport, SessionCleanup
from .exceptions import SessionExpiredError, SessionLifecycleErrorCodes, SessionRefreshError
from .executor import Sleep, retry
from .models import NotificationKind, ValidationResult
from .notifier import EXPIRED_MESSAGE, EXPIRED_TITLE, Notifier, safe_notify
from .policy import API_CALL_POLICY, RetryPolicy
from .relogin import AutoReloginCoordinator
from .validator import SessionValidator

T = TypeVar("T")

DEFAULT_VALIDATION_INTERVAL = 300.0

logger = structlog.stdlib.get_logger(__name__)


class Navigator(Protocol):
    """ログイン画面への遷移を担うプロトコル。"""

    def clear_authorization_cache(self) -> None: ...

    def redirect_to_login(self) -> None: ...


class InMemoryNavigator:
    """テスト用ナビゲーター。呼び出しを記録する。"""

    def __init__(self) -> None:
        self.cache_cleared = 0
        self.redirects = 0

    def clear_authorization_cache(self) -> None:
        self.cache_cleared += 1

    def redirect_to_login(self) -> None:
        self.redirects += 1


class SessionManager:
    """アプリケーションが利用する公開 API。

    単発リフレッシュ（SessionValidator）と複数回試行の回復経路
    （AutoReloginCoordinator）は handle_session_error でのみ接続される。
    """

    def __init__(
        self,
        validator: SessionValidator,
        coordinator: AutoReloginCoordinator,
        cleanup: SessionCleanup,
        notifier: Notifier,
        *,
        navigator: Navigator | None = None,
        validation_interval: float = DEFAULT_VALIDATION_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep | None = None,
    ) -> None:
        self._validator = validator
        self._coordinator = coordinator
        self._cleanup = cleanup
        self._notifier = notifier
        self._navigator = navigator
        self._validation_interval = validation_interval
        self._clock = clock
        self._sleep = sleep
        self._last_check: float | None = None
        self._task: asyncio.Task[None] | None = None
        self._handling: asyncio.Future[bool] | None = None
        self._running = False

    @property
    def coordinator(self) -> AutoReloginCoordinator:
        return self._coordinator

    @property
    def cleanup(self) -> SessionCleanup:
        return self._cleanup

    async def validate_session(self) -> ValidationResult:
        return await self._validator.validate()

    async def attempt_refresh(self) -> bool:
        return await self._validator.refresh_session_if_needed()

    async def clear_session(self) -> CleanupReport:
        return await self._cleanup.logout_cleanup()

    async def handle_session_error(
        self, error: Exception | None = None, redirect_to_login: bool = True
    ) -> bool:
        """セッションエラーを処理する。

        保持した認証情報があれば自動再ログインを試み、成功すれば True を返す。
        それ以外はセッションを破棄し、必要に応じてログイン画面へ遷移させる。

        処理中に到着した呼び出しは同じ結果を待つだけで、破棄や遷移を繰り返さない
        （redirect_to_login も最初の呼び出しの指定に従う）。
        """
        if self._handling is not None:
            logger.debug("session error already being handled; waiting for outcome")
            return await asyncio.shield(self._handling)

        handling: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._handling = handling
        try:
            restored = await self._handle_session_error(error, redirect_to_login)
            handling.set_result(restored)
            return restored
        finally:
            self._handling = None
            if not handling.done():
                handling.cancel()

    async def _handle_session_error(
        self, error: Exception | None, redirect_to_login: bool
    ) -> bool:
        logger.info("handling session error", error=str(error) if error else None)
        relogin_attempted = False
        if self._coordinator.in_progress or self._coordinator.has_stored_credentials():
            relogin_attempted = True
            if await self._coordinator.attempt_auto_relogin():
                return True

        await self.clear_session()
        # 再ログイン失敗時はコーディネーターが既にユーザーへ通知済み
        if not relogin_attempted:
            safe_notify(self._notifier, NotificationKind.ERROR, EXPIRED_TITLE, EXPIRED_MESSAGE)
        if redirect_to_login and self._navigator is not None:
            self._navigator.clear_authorization_cache()
            self._navigator.redirect_to_login()
        return False

    async def periodic_validation(self) -> ValidationResult | None:
        """validation_interval あたり最大1回だけ検証する。スキップ時は None。"""
        now = self._clock()
        if self._last_check is not None and now - self._last_check < self._validation_interval:
            return None
        self._last_check = now
        result = await self.validate_session()
        if result.should_sign_out:
            await self.handle_session_error(result.error)
        return result

    async def validate_before_api_call(self) -> bool:
        """認証付きリクエストの直前に呼ぶゲート。"""
        usable, _ = await self._gate()
        return usable

    async def _gate(self) -> tuple[bool, bool]:
        """(セッション使用可否, handle_session_error 実行済みか) を返す。"""
        result = await self.validate_session()
        if result.should_sign_out:
            await self.handle_session_error(result.error)
            return False, True
        if result.is_valid and not result.needs_refresh:
            return True, False
        if result.needs_refresh:
            return await self.attempt_refresh(), False
        return False, False

    async def run_authenticated(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        policy: RetryPolicy = API_CALL_POLICY,
    ) -> T:
        """有効なセッションを保証してから operation をリトライ付きで実行する。

        Raises:
            SessionExpiredError: セッションを回復できなかった場合
            RetryExhaustedError: operation がすべての試行で失敗した場合
        """
        usable, handled = await self._gate()
        if not usable:
            if handled:
                raise SessionExpiredError()
            cause = SessionRefreshError(
                code=SessionLifecycleErrorCodes.REFRESH_FAILED,
                message="No usable session before API call",
            )
            if not await self.handle_session_error(cause):
                raise SessionExpiredError(cause=cause)
        result = await retry(operation, policy, sleep=self._sleep)
        return result.unwrap()

    async def start(self) -> None:
        """定期検証タスクを開始する。"""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._validation_loop())

    async def stop(self) -> None:
        """定期検証タスクを停止する。"""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _validation_loop(self) -> None:
        sleep = self._sleep or asyncio.sleep
        while self._running:
            try:
                await self.periodic_validation()
            except Exception as e:
                logger.error("periodic session validation error", error=str(e))
            await sleep(self._validation_interval)
