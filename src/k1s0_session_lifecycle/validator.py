"""セッション有効期限の判定と単発リフレッシュ"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from .backend import AuthBackend
from .exceptions import (
    SessionLifecycleErrorCodes,
    SessionRefreshError,
    SessionValidationError,
)
from .metrics import session_refresh_total, session_validation_total
from .models import Session, SessionState, ValidationResult

logger = structlog.stdlib.get_logger(__name__)

DEFAULT_EXPIRY_THRESHOLD = 300.0


class SessionValidator:
    """現在のセッションを時刻と比較して4状態（+バックエンドエラー）に分類する。"""

    def __init__(
        self,
        backend: AuthBackend,
        *,
        expiry_threshold: float = DEFAULT_EXPIRY_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._expiry_threshold = expiry_threshold
        self._clock = clock

    @property
    def expiry_threshold(self) -> float:
        return self._expiry_threshold

    def classify(self, session: Session | None, now: float | None = None) -> ValidationResult:
        """セッションのスナップショットを分類する（副作用なし）。"""
        if now is None:
            now = self._clock()
        if session is None:
            return ValidationResult(
                is_valid=False,
                needs_refresh=False,
                should_sign_out=False,
                state=SessionState.NO_SESSION,
            )
        if session.expires_at <= now:
            return ValidationResult(
                is_valid=False,
                needs_refresh=True,
                should_sign_out=False,
                state=SessionState.EXPIRED,
            )
        if session.expires_at <= now + self._expiry_threshold:
            return ValidationResult(
                is_valid=True,
                needs_refresh=True,
                should_sign_out=False,
                state=SessionState.EXPIRING_SOON,
            )
        return ValidationResult(
            is_valid=True,
            needs_refresh=False,
            should_sign_out=False,
            state=SessionState.HEALTHY,
        )

    async def validate(self) -> ValidationResult:
        """バックエンドから現在のセッションを取得して分類する。

        バックエンド呼び出し自体が失敗した場合は should_sign_out=True を返す。
        """
        try:
            session = await self._backend.get_current_session()
        except Exception as e:
            logger.warning("session validation failed", error=str(e))
            result = ValidationResult(
                is_valid=False,
                needs_refresh=False,
                should_sign_out=True,
                state=SessionState.BACKEND_ERROR,
                error=SessionValidationError(
                    code=SessionLifecycleErrorCodes.VALIDATION_FAILED,
                    message=f"Failed to read current session: {e}",
                    cause=e,
                ),
            )
        else:
            result = self.classify(session)
        session_validation_total.add(1, {"state": result.state.value})
        return result

    async def refresh(self) -> Session:
        """バックエンドに対して一度だけリフレッシュを行う（リトライなし）。

        Raises:
            SessionRefreshError: リフレッシュに失敗した、または新しいセッションが得られない場合
        """
        try:
            session = await self._backend.refresh_session()
        except Exception as e:
            session_refresh_total.add(1, {"outcome": "error"})
            raise SessionRefreshError(
                code=SessionLifecycleErrorCodes.REFRESH_FAILED,
                message=f"Session refresh failed: {e}",
                cause=e,
            ) from e
        if session is None:
            session_refresh_total.add(1, {"outcome": "no_session"})
            raise SessionRefreshError(
                code=SessionLifecycleErrorCodes.REFRESH_FAILED,
                message="Session refresh returned no session",
            )
        session_refresh_total.add(1, {"outcome": "success"})
        logger.debug("session refreshed", expires_at=session.expires_at)
        return session

    async def refresh_session_if_needed(self) -> bool:
        """必要な場合のみ単発リフレッシュを行い、セッションが使用可能かを返す。"""
        result = await self.validate()
        if not result.needs_refresh:
            return result.is_valid
        try:
            await self.refresh()
        except SessionRefreshError as e:
            logger.info("session refresh failed", state=result.state.value, error=str(e))
            return False
        return True
