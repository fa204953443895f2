"""SessionContext 起動時に一度だけ構築するコンポジションルート"""

from __future__ import annotations

from types import TracebackType

import structlog

from .backend import AuthBackend
from .cleanup import Reloader, SessionCleanup
from .config import SessionLifecycleConfig
from .exceptions import AuthenticationError, SessionLifecycleErrorCodes
from .executor import Sleep
from .logger import new_logger
from .manager import Navigator, SessionManager
from .models import Session
from .notifier import Notifier
from .relogin import AutoReloginCoordinator
from .storage import KeyValueStore, StructuredStore
from .validator import SessionValidator

logger = structlog.stdlib.get_logger(__name__)


class SessionContext:
    """クライアント1つにつき1つ存在するセッション関連コンポーネント一式。

    プロセス全体のシングルトンの代わりに、このオブジェクトを必要な箇所へ渡す。
    """

    def __init__(
        self,
        backend: AuthBackend,
        validator: SessionValidator,
        coordinator: AutoReloginCoordinator,
        cleanup: SessionCleanup,
        manager: SessionManager,
    ) -> None:
        self.backend = backend
        self.validator = validator
        self.coordinator = coordinator
        self.cleanup = cleanup
        self.manager = manager

    @classmethod
    def create(
        cls,
        config: SessionLifecycleConfig,
        backend: AuthBackend,
        notifier: Notifier,
        *,
        volatile: KeyValueStore | None = None,
        key_value: KeyValueStore | None = None,
        structured: StructuredStore | None = None,
        cookies: KeyValueStore | None = None,
        navigator: Navigator | None = None,
        reloader: Reloader | None = None,
        sleep: Sleep | None = None,
        configure_logging: bool = True,
    ) -> SessionContext:
        """設定と外部コラボレーターから各コンポーネントを組み立てる。

        configure_logging=True の場合、config.log に従って structlog を設定する。
        ホスト側で既にロギングを設定済みなら False を渡す。
        """
        if configure_logging:
            new_logger(level=config.log.level, format=config.log.format)
        validator = SessionValidator(
            backend, expiry_threshold=config.expiry_threshold_seconds
        )
        coordinator = AutoReloginCoordinator(
            backend,
            notifier,
            policy=config.retry.auth.to_policy(),
            timeout=config.relogin_timeout_seconds,
            sleep=sleep,
        )
        cleanup = SessionCleanup(
            backend,
            volatile=volatile,
            key_value=key_value,
            structured=structured,
            cookies=cookies,
            registry=config.cleanup.to_registry(),
            reloader=reloader,
            reload_delay=config.cleanup.reload_delay_seconds,
            sleep=sleep,
        )
        manager = SessionManager(
            validator,
            coordinator,
            cleanup,
            notifier,
            navigator=navigator,
            validation_interval=config.validation_interval_seconds,
            sleep=sleep,
        )
        return cls(backend, validator, coordinator, cleanup, manager)

    async def sign_in(self, email: str, password: str, *, remember: bool = True) -> Session:
        """手動ログイン。remember=True の場合、自動再ログイン用に認証情報を保持する。

        Raises:
            AuthenticationError: ログインに失敗した場合
        """
        try:
            session = await self.backend.sign_in_with_password(email, password)
        except Exception as e:
            logger.info("sign in failed", email=email, error=str(e))
            raise AuthenticationError(
                code=SessionLifecycleErrorCodes.AUTHENTICATION_FAILED,
                message=f"Sign in failed for {email}",
                cause=e,
            ) from e
        if remember:
            self.coordinator.store_credentials(email, password)
        logger.info("signed in", email=email)
        return session

    async def sign_out(self) -> None:
        """ログアウト。掃除に失敗しても保持した認証情報は必ず破棄する。"""
        try:
            await self.manager.clear_session()
        finally:
            self.coordinator.clear_credentials()
        logger.info("signed out")

    async def __aenter__(self) -> SessionContext:
        await self.manager.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.manager.stop()
