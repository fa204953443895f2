"""Session lifecycle models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .exceptions import RetryExhaustedError

T = TypeVar("T")


@dataclass(frozen=True)
class Session:
    """Snapshot of an authentication session issued by the auth backend."""

    access_token: str
    refresh_token: str
    expires_at: float  # Unix timestamp
    user_id: str | None = None
    email: str | None = None

    def seconds_until_expiry(self, now: float | None = None) -> float:
        if now is None:
            now = time.time()
        return self.expires_at - now

    @classmethod
    def from_dict(cls, data: dict[str, Any], now: float | None = None) -> Session:
        """Build a session from a backend payload.

        Accepts an absolute ``expires_at`` or a relative ``expires_in``.

        Raises:
            KeyError: a token is missing
            TypeError: the payload or its ``user`` entry is not a mapping
            ValueError: the expiry is missing or not numeric
        """
        if not isinstance(data, dict):
            raise TypeError(f"session payload must be an object, got {type(data).__name__}")
        if data.get("expires_at") is not None:
            expires_at = float(data["expires_at"])
        elif data.get("expires_in") is not None:
            if now is None:
                now = time.time()
            expires_at = now + float(data["expires_in"])
        else:
            raise ValueError("session payload has no expiry")
        user = data.get("user") or {}
        if not isinstance(user, dict):
            raise TypeError("session payload user must be an object")
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=expires_at,
            user_id=user.get("id"),
            email=user.get("email"),
        )


@dataclass(frozen=True)
class Credentials:
    """Email/password pair kept in process memory for automatic re-login."""

    email: str
    password: str = field(repr=False)


class SessionState(str, Enum):
    """Classification of a session snapshot against the clock."""

    NO_SESSION = "no_session"
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    HEALTHY = "healthy"
    BACKEND_ERROR = "backend_error"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single session classification."""

    is_valid: bool
    needs_refresh: bool
    should_sign_out: bool
    state: SessionState
    error: Exception | None = None

    def __post_init__(self) -> None:
        # a session that must be discarded is never a refresh candidate
        if self.should_sign_out and self.needs_refresh:
            raise ValueError("should_sign_out and needs_refresh are mutually exclusive")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Outcome of one retry execution."""

    success: bool
    attempts: int
    elapsed: float
    value: T | None = None
    error: Exception | None = None

    def unwrap(self) -> T:
        """Return the value, or raise RetryExhaustedError chained to the last error."""
        if not self.success:
            raise RetryExhaustedError(attempts=self.attempts, last_error=self.error)
        return self.value  # type: ignore[return-value]


class NotificationKind(str, Enum):
    """Kind of user-visible notification."""

    INFO = "info"
    ERROR = "error"


@dataclass
class AuthBackendConfig:
    """HTTP auth backend settings."""

    base_url: str
    api_key: str = ""
    timeout_seconds: float = 10.0
    verify_remote: bool = False
