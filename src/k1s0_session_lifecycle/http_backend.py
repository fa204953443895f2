"""GoTrue 互換 REST 認証バックエンド実装"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import httpx

from .backend import AuthBackend
from .exceptions import AuthBackendError, SessionLifecycleErrorCodes
from .models import AuthBackendConfig, Session

_TOKEN_PATH = "/auth/v1/token"
_LOGOUT_PATH = "/auth/v1/logout"
_USER_PATH = "/auth/v1/user"


class HttpAuthBackend(AuthBackend):
    """httpx を使った認証バックエンド。

    現在のセッションはプロセスメモリ上にのみ保持する。
    """

    def __init__(
        self, config: AuthBackendConfig, clock: Callable[[], float] = time.time
    ) -> None:
        self._config = config
        self._clock = clock
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if config.api_key:
            headers["apikey"] = config.api_key
        self._headers = headers
        self._session: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=self._headers,
            timeout=self._config.timeout_seconds,
        )

    def _bearer(self, session: Session) -> dict[str, str]:
        return {"Authorization": f"Bearer {session.access_token}"}

    def _handle_error(self, resp: httpx.Response, context: str) -> None:
        if resp.status_code in (400, 401, 403):
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.AUTHENTICATION_FAILED,
                message=f"{context}: HTTP {resp.status_code}: {resp.text}",
            )
        if resp.status_code >= 400:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.BACKEND_UNAVAILABLE,
                message=f"{context}: HTTP {resp.status_code}: {resp.text}",
            )

    def _parse_session(self, resp: httpx.Response, context: str) -> Session:
        try:
            data: dict[str, Any] = resp.json()
            return Session.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.MALFORMED_SESSION,
                message=f"{context}: malformed session payload",
                cause=e,
            ) from e

    async def _grant(self, grant_type: str, body: dict[str, str], context: str) -> Session:
        try:
            async with self._make_client() as client:
                resp = await client.post(
                    _TOKEN_PATH, params={"grant_type": grant_type}, json=body
                )
        except httpx.HTTPError as e:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.BACKEND_UNAVAILABLE,
                message=f"{context}: {e}",
                cause=e,
            ) from e
        self._handle_error(resp, context)
        session = self._parse_session(resp, context)
        self._session = session
        return session

    async def get_current_session(self) -> Session | None:
        """保持中のセッションを返す。verify_remote 有効時はサーバーで検証する。

        期限切れのトークンは検証せずにそのまま返す（判定は SessionValidator が行う）。
        """
        session = self._session
        if session is None or not self._config.verify_remote:
            return session
        if session.expires_at <= self._clock():
            return session
        try:
            async with self._make_client() as client:
                resp = await client.get(_USER_PATH, headers=self._bearer(session))
        except httpx.HTTPError as e:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.BACKEND_UNAVAILABLE,
                message=f"get_current_session: {e}",
                cause=e,
            ) from e
        # 検証中に期限を迎えたトークンも期限切れとして扱う
        if resp.status_code in (401, 403) and session.expires_at <= self._clock():
            return session
        self._handle_error(resp, "get_current_session")
        return session

    async def refresh_session(self) -> Session | None:
        """リフレッシュトークンでセッションを更新する。セッションがなければ None。"""
        session = self._session
        if session is None:
            return None
        return await self._grant(
            "refresh_token", {"refresh_token": session.refresh_token}, "refresh_session"
        )

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        return await self._grant(
            "password", {"email": email, "password": password}, "sign_in_with_password"
        )

    async def sign_out(self) -> None:
        """サーバー側のセッションを失効させる。ローカルのセッションは常に破棄する。"""
        session, self._session = self._session, None
        if session is None:
            return
        try:
            async with self._make_client() as client:
                resp = await client.post(_LOGOUT_PATH, headers=self._bearer(session))
        except httpx.HTTPError as e:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.BACKEND_UNAVAILABLE,
                message=f"sign_out: {e}",
                cause=e,
            ) from e
        # 401 はトークンが既に無効なだけなので成功扱い
        if resp.status_code != 401:
            self._handle_error(resp, "sign_out")
