"""k1s0 session lifecycle library."""

from .backend import AuthBackend, InMemoryAuthBackend
from .cleanup import (
    EMERGENCY_CLEANUP,
    LOGOUT_CLEANUP,
    REFRESH_FAILURE_CLEANUP,
    CleanupOptions,
    CleanupReport,
    SessionCleanup,
)
from .config import SessionLifecycleConfig, load
from .context import SessionContext
from .exceptions import (
    AuthBackendError,
    AuthenticationError,
    CleanupError,
    ConfigError,
    NoCredentialsError,
    ReloginError,
    RetryExhaustedError,
    RetryTimeoutError,
    SessionExpiredError,
    SessionLifecycleError,
    SessionLifecycleErrorCodes,
    SessionRefreshError,
    SessionValidationError,
)
from .executor import retry, with_retry
from .http_backend import HttpAuthBackend
from .logger import new_logger
from .manager import InMemoryNavigator, Navigator, SessionManager
from .models import (
    AuthBackendConfig,
    Credentials,
    NotificationKind,
    RetryResult,
    Session,
    SessionState,
    ValidationResult,
)
from .notifier import InMemoryNotifier, LoggingNotifier, Notifier
from .policy import API_CALL_POLICY, AUTH_POLICY, SESSION_REFRESH_POLICY, RetryPolicy
from .relogin import AutoReloginCoordinator, ReloginOptions
from .storage import (
    DEFAULT_REGISTRY,
    AuthKeyRegistry,
    InMemoryKeyValueStore,
    InMemoryStructuredStore,
    KeyValueStore,
    StructuredStore,
)
from .validator import SessionValidator

__all__ = [
    "API_CALL_POLICY",
    "AUTH_POLICY",
    "DEFAULT_REGISTRY",
    "EMERGENCY_CLEANUP",
    "LOGOUT_CLEANUP",
    "REFRESH_FAILURE_CLEANUP",
    "SESSION_REFRESH_POLICY",
    "AuthBackend",
    "AuthBackendConfig",
    "AuthBackendError",
    "AuthKeyRegistry",
    "AuthenticationError",
    "AutoReloginCoordinator",
    "CleanupError",
    "CleanupOptions",
    "CleanupReport",
    "ConfigError",
    "Credentials",
    "HttpAuthBackend",
    "InMemoryAuthBackend",
    "InMemoryKeyValueStore",
    "InMemoryNavigator",
    "InMemoryNotifier",
    "InMemoryStructuredStore",
    "KeyValueStore",
    "LoggingNotifier",
    "Navigator",
    "NoCredentialsError",
    "NotificationKind",
    "Notifier",
    "ReloginError",
    "ReloginOptions",
    "RetryExhaustedError",
    "RetryPolicy",
    "RetryResult",
    "RetryTimeoutError",
    "Session",
    "SessionCleanup",
    "SessionContext",
    "SessionExpiredError",
    "SessionLifecycleConfig",
    "SessionLifecycleError",
    "SessionLifecycleErrorCodes",
    "SessionManager",
    "SessionRefreshError",
    "SessionState",
    "SessionValidationError",
    "SessionValidator",
    "StructuredStore",
    "ValidationResult",
    "load",
    "new_logger",
    "retry",
    "with_retry",
]
