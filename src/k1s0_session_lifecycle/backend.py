"""Auth backend abstraction."""

from __future__ import annotations

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable

from .exceptions import AuthBackendError, SessionLifecycleErrorCodes
from .models import Session


class AuthBackend(ABC):
    """Abstract auth backend.

    Implementations raise AuthBackendError instead of returning error values.
    """

    @abstractmethod
    async def get_current_session(self) -> Session | None:
        ...

    @abstractmethod
    async def refresh_session(self) -> Session | None:
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class InMemoryAuthBackend(AuthBackend):
    """In-memory auth backend for testing.

    Failures can be scripted per operation with ``fail()``; every call is
    counted in ``calls``.
    """

    OPERATIONS = ("get_current_session", "refresh_session", "sign_in_with_password", "sign_out")

    def __init__(
        self,
        users: dict[str, str] | None = None,
        session_ttl: float = 3600.0,
        latency: float = 0.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._users = dict(users or {})
        self._session_ttl = session_ttl
        self._latency = latency
        self._clock = clock
        self._session: Session | None = None
        self._failures: dict[str, tuple[Exception, int | None]] = {}
        self.calls: Counter[str] = Counter()

    @property
    def session(self) -> Session | None:
        return self._session

    def set_session(self, session: Session | None) -> None:
        self._session = session

    def issue_session(self, ttl: float | None = None, email: str | None = None) -> Session:
        """Create and install a fresh session expiring ``ttl`` seconds from now."""
        self._session = Session(
            access_token=str(uuid.uuid4()),
            refresh_token=str(uuid.uuid4()),
            expires_at=self._clock() + (self._session_ttl if ttl is None else ttl),
            user_id=str(uuid.uuid5(uuid.NAMESPACE_URL, email)) if email else None,
            email=email,
        )
        return self._session

    def fail(self, operation: str, error: Exception | None = None, times: int | None = None) -> None:
        """Make ``operation`` raise ``error``; ``times=None`` fails until cleared."""
        if operation not in self.OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        if error is None:
            error = AuthBackendError(
                code=SessionLifecycleErrorCodes.BACKEND_UNAVAILABLE,
                message=f"{operation}: backend unavailable",
            )
        self._failures[operation] = (error, times)

    def clear_failures(self) -> None:
        self._failures.clear()

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        await asyncio.sleep(self._latency)
        failure = self._failures.get(operation)
        if failure is None:
            return
        error, remaining = failure
        if remaining is not None:
            if remaining <= 1:
                del self._failures[operation]
            else:
                self._failures[operation] = (error, remaining - 1)
        raise error

    async def get_current_session(self) -> Session | None:
        await self._enter("get_current_session")
        return self._session

    async def refresh_session(self) -> Session | None:
        await self._enter("refresh_session")
        if self._session is None:
            return None
        return self.issue_session(email=self._session.email)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        await self._enter("sign_in_with_password")
        if self._users.get(email) != password:
            raise AuthBackendError(
                code=SessionLifecycleErrorCodes.AUTHENTICATION_FAILED,
                message="Invalid login credentials",
            )
        return self.issue_session(email=email)

    async def sign_out(self) -> None:
        await self._enter("sign_out")
        self._session = None
