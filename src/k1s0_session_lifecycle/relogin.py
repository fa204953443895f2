"""自動再ログインの調停"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from .backend import AuthBackend
from .exceptions import NoCredentialsError, ReloginError, SessionLifecycleErrorCodes
from .executor import Sleep, retry
from .metrics import session_relogin_total
from .models import Credentials, NotificationKind, Session
from .notifier import (
    RELOGIN_FAILED_MESSAGE,
    RELOGIN_FAILED_TITLE,
    RESTORED_TITLE,
    RESTORING_MESSAGE,
    RESTORING_TITLE,
    Notifier,
    safe_notify,
)
from .policy import AUTH_POLICY, RetryPolicy

logger = structlog.stdlib.get_logger(__name__)


@dataclass(frozen=True)
class ReloginOptions:
    """attempt_auto_relogin() の呼び出しオプション。"""

    on_success: Callable[[Session], None] | None = None
    on_failure: Callable[[Exception], None] | None = None
    notify: bool = True


class AutoReloginCoordinator:
    """保持した認証情報による再ログインを1本に直列化する。

    実行中の再ログインがある間に到着した呼び出しは新たなサインインを行わず、
    共有 Future を待って同じ結果を受け取る。
    """

    def __init__(
        self,
        backend: AuthBackend,
        notifier: Notifier,
        *,
        policy: RetryPolicy = AUTH_POLICY,
        timeout: float | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._backend = backend
        self._notifier = notifier
        self._policy = policy
        self._timeout = timeout
        self._sleep = sleep
        self._credentials: Credentials | None = None
        self._in_flight: asyncio.Future[bool] | None = None

    @property
    def in_progress(self) -> bool:
        return self._in_flight is not None

    def store_credentials(self, email: str, password: str) -> None:
        """認証情報をメモリ上にのみ保持する。"""
        self._credentials = Credentials(email=email, password=password)
        logger.debug("credentials stored for auto re-login", email=email)

    def clear_credentials(self) -> None:
        self._credentials = None

    def has_stored_credentials(self) -> bool:
        return self._credentials is not None

    async def attempt_auto_relogin(self, options: ReloginOptions | None = None) -> bool:
        """保持した認証情報で再ログインを試みる。

        Returns:
            再ログインに成功した場合 True
        """
        options = options or ReloginOptions()

        if self._in_flight is not None:
            logger.debug("auto re-login already in progress; waiting for outcome")
            return await asyncio.shield(self._in_flight)

        credentials = self._credentials
        if credentials is None:
            session_relogin_total.add(1, {"outcome": "no_credentials"})
            _invoke(options.on_failure, NoCredentialsError())
            return False

        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._in_flight = future
        try:
            return await self._relogin(credentials, options, future)
        finally:
            self._in_flight = None
            if not future.done():
                # 実行タスク自体がキャンセルされた場合は待機者にも伝える
                future.cancel()

    async def _relogin(
        self,
        credentials: Credentials,
        options: ReloginOptions,
        future: asyncio.Future[bool],
    ) -> bool:
        if options.notify:
            safe_notify(self._notifier, NotificationKind.INFO, RESTORING_TITLE, RESTORING_MESSAGE)
        logger.info("auto re-login started", email=credentials.email)

        async def sign_in() -> Session:
            return await self._backend.sign_in_with_password(
                credentials.email, credentials.password
            )

        result = await retry(sign_in, self._policy, timeout=self._timeout, sleep=self._sleep)

        if result.success:
            session_relogin_total.add(1, {"outcome": "success"})
            logger.info("auto re-login succeeded", email=credentials.email, attempts=result.attempts)
            if options.notify:
                safe_notify(
                    self._notifier,
                    NotificationKind.INFO,
                    RESTORED_TITLE,
                    f"Your session was restored after {result.attempts} attempt(s).",
                )
            future.set_result(True)
            _invoke(options.on_success, result.value)
            return True

        # 失敗したパスワードを後で盲目的に再試行しない
        if self._credentials is credentials:
            self._credentials = None
        session_relogin_total.add(1, {"outcome": "failure"})
        logger.warning(
            "auto re-login failed",
            email=credentials.email,
            attempts=result.attempts,
            error=str(result.error),
        )
        error = ReloginError(
            code=SessionLifecycleErrorCodes.RELOGIN_FAILED,
            message=f"Automatic re-login failed after {result.attempts} attempts",
            cause=result.error,
        )
        if options.notify:
            safe_notify(
                self._notifier, NotificationKind.ERROR, RELOGIN_FAILED_TITLE, RELOGIN_FAILED_MESSAGE
            )
        future.set_result(False)
        _invoke(options.on_failure, error)
        return False


def _invoke(callback: Callable[..., None] | None, arg: object) -> None:
    if callback is None:
        return
    try:
        callback(arg)
    except Exception as e:
        logger.warning("re-login callback failed", error=str(e))
