"""session_lifecycle ライブラリの例外型定義"""

from __future__ import annotations


class SessionLifecycleErrorCodes:
    """SessionLifecycleError のエラーコード定数。"""

    BACKEND_UNAVAILABLE: str = "BACKEND_UNAVAILABLE"
    MALFORMED_SESSION: str = "MALFORMED_SESSION"
    AUTHENTICATION_FAILED: str = "AUTHENTICATION_FAILED"
    VALIDATION_FAILED: str = "VALIDATION_FAILED"
    REFRESH_FAILED: str = "REFRESH_FAILED"
    RELOGIN_FAILED: str = "RELOGIN_FAILED"
    NO_CREDENTIALS: str = "NO_CREDENTIALS"
    CLEANUP_FAILED: str = "CLEANUP_FAILED"
    SESSION_EXPIRED: str = "SESSION_EXPIRED"
    RETRY_EXHAUSTED: str = "RETRY_EXHAUSTED"
    RETRY_TIMEOUT: str = "RETRY_TIMEOUT"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    CONFIG_VALIDATION: str = "VALIDATION_ERROR"


class SessionLifecycleError(Exception):
    """session_lifecycle ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class AuthBackendError(SessionLifecycleError):
    """認証バックエンド呼び出しの失敗。"""


class AuthenticationError(SessionLifecycleError):
    """手動ログイン（メール/パスワード）の失敗。"""


class SessionValidationError(SessionLifecycleError):
    """セッション判定中にバックエンドが応答しない、またはセッションが不正。

    常に強制サインアウトへエスカレートする。
    """


class SessionRefreshError(SessionLifecycleError):
    """単発のリフレッシュ失敗。ユーザーには見せずに再ログインへエスカレートする。"""


class ReloginError(SessionLifecycleError):
    """自動再ログインのリトライがすべて失敗した。"""


class NoCredentialsError(ReloginError):
    """自動再ログイン用の認証情報が保持されていない。"""

    def __init__(self) -> None:
        super().__init__(
            code=SessionLifecycleErrorCodes.NO_CREDENTIALS,
            message="No stored credentials for automatic re-login",
        )


class CleanupError(SessionLifecycleError):
    """個々のストレージ削除の失敗。ログに記録して握りつぶす。"""

    def __init__(
        self,
        layer: str,
        key: str,
        cause: Exception | None = None,
    ) -> None:
        self.layer = layer
        self.key = key
        super().__init__(
            code=SessionLifecycleErrorCodes.CLEANUP_FAILED,
            message=f"Failed to remove {key!r} from {layer}",
            cause=cause,
        )


class SessionExpiredError(SessionLifecycleError):
    """セッションを回復できず、再ログインが必要。"""

    def __init__(self, cause: Exception | None = None) -> None:
        super().__init__(
            code=SessionLifecycleErrorCodes.SESSION_EXPIRED,
            message="Session expired and could not be restored",
            cause=cause,
        )


class RetryExhaustedError(SessionLifecycleError):
    """リトライ上限に達した場合のエラー。"""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        msg = f"Retry limit reached after {attempts} attempts"
        if last_error:
            msg += f": {last_error}"
        super().__init__(
            code=SessionLifecycleErrorCodes.RETRY_EXHAUSTED,
            message=msg,
            cause=last_error,
        )


class RetryTimeoutError(SessionLifecycleError):
    """リトライ全体のデッドラインを超過した。"""

    def __init__(self, after_seconds: float, cause: Exception | None = None) -> None:
        self.after_seconds = after_seconds
        super().__init__(
            code=SessionLifecycleErrorCodes.RETRY_TIMEOUT,
            message=f"Retry deadline exceeded after {after_seconds:.1f}s",
            cause=cause,
        )


class ConfigError(SessionLifecycleError):
    """設定ファイルの読み込み・検証エラー。"""
