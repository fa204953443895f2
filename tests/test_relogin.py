"""AutoReloginCoordinator のユニットテスト"""

import asyncio

import pytest
from conftest import EMAIL, PASSWORD, SleepRecorder
from k1s0_session_lifecycle.backend import InMemoryAuthBackend
from k1s0_session_lifecycle.exceptions import (
    AuthBackendError,
    NoCredentialsError,
    ReloginError,
)
from k1s0_session_lifecycle.models import NotificationKind, Session
from k1s0_session_lifecycle.notifier import (
    RELOGIN_FAILED_TITLE,
    RESTORED_TITLE,
    RESTORING_TITLE,
    InMemoryNotifier,
)
from k1s0_session_lifecycle.policy import RetryPolicy
from k1s0_session_lifecycle.relogin import AutoReloginCoordinator, ReloginOptions

SINGLE_SHOT = RetryPolicy(max_retries=0, base_delay=0.0, jitter=False)


def make_coordinator(
    sleeps: SleepRecorder,
    policy: RetryPolicy | None = None,
    latency: float = 0.0,
) -> tuple[AutoReloginCoordinator, InMemoryAuthBackend, InMemoryNotifier]:
    backend = InMemoryAuthBackend(users={EMAIL: PASSWORD}, latency=latency)
    notifier = InMemoryNotifier()
    kwargs = {"policy": policy} if policy is not None else {}
    coordinator = AutoReloginCoordinator(backend, notifier, sleep=sleeps, **kwargs)
    return coordinator, backend, notifier


def test_store_and_clear_credentials(sleeps: SleepRecorder) -> None:
    coordinator, _, _ = make_coordinator(sleeps)
    assert coordinator.has_stored_credentials() is False
    coordinator.store_credentials(EMAIL, PASSWORD)
    assert coordinator.has_stored_credentials() is True
    coordinator.clear_credentials()
    assert coordinator.has_stored_credentials() is False


async def test_no_credentials_fails_immediately(sleeps: SleepRecorder) -> None:
    """認証情報がない場合は即座に失敗し、サインインしない。"""
    coordinator, backend, notifier = make_coordinator(sleeps)
    failures: list[Exception] = []

    ok = await coordinator.attempt_auto_relogin(ReloginOptions(on_failure=failures.append))

    assert ok is False
    assert len(failures) == 1
    assert isinstance(failures[0], NoCredentialsError)
    assert backend.calls["sign_in_with_password"] == 0
    assert notifier.sent == []


async def test_relogin_success(sleeps: SleepRecorder) -> None:
    coordinator, backend, notifier = make_coordinator(sleeps)
    coordinator.store_credentials(EMAIL, PASSWORD)
    sessions: list[Session] = []

    ok = await coordinator.attempt_auto_relogin(ReloginOptions(on_success=sessions.append))

    assert ok is True
    assert backend.calls["sign_in_with_password"] == 1
    assert notifier.titles == [RESTORING_TITLE, RESTORED_TITLE]
    assert "1 attempt" in notifier.sent[1].message
    assert sessions == [backend.session]
    assert coordinator.has_stored_credentials() is True
    assert coordinator.in_progress is False


async def test_relogin_success_after_transient_failure(sleeps: SleepRecorder) -> None:
    coordinator, backend, notifier = make_coordinator(sleeps)
    coordinator.store_credentials(EMAIL, PASSWORD)
    backend.fail("sign_in_with_password", times=1)

    assert await coordinator.attempt_auto_relogin() is True
    assert backend.calls["sign_in_with_password"] == 2
    assert sleeps.delays == [2.0]
    assert "2 attempt" in notifier.sent[-1].message


async def test_relogin_failure_clears_credentials(sleeps: SleepRecorder) -> None:
    """全試行失敗で認証情報を破棄すること。"""
    coordinator, backend, notifier = make_coordinator(sleeps)
    coordinator.store_credentials(EMAIL, "wrong-password")
    failures: list[Exception] = []

    ok = await coordinator.attempt_auto_relogin(ReloginOptions(on_failure=failures.append))

    assert ok is False
    assert coordinator.has_stored_credentials() is False
    # auth プリセット: 1 リトライ、2 秒、ジッターなし
    assert backend.calls["sign_in_with_password"] == 2
    assert sleeps.delays == [2.0]
    assert notifier.titles == [RESTORING_TITLE, RELOGIN_FAILED_TITLE]
    assert notifier.sent[-1].kind == NotificationKind.ERROR
    assert isinstance(failures[0], ReloginError)
    assert isinstance(failures[0].__cause__, AuthBackendError)
    assert coordinator.in_progress is False


async def test_relogin_without_notifications(sleeps: SleepRecorder) -> None:
    coordinator, _, notifier = make_coordinator(sleeps)
    coordinator.store_credentials(EMAIL, PASSWORD)
    assert await coordinator.attempt_auto_relogin(ReloginOptions(notify=False)) is True
    assert notifier.sent == []


async def test_concurrent_callers_share_one_sign_in(sleeps: SleepRecorder) -> None:
    """同時呼び出しはサインイン1回の結果を全員が受け取ること。"""
    coordinator, backend, notifier = make_coordinator(sleeps, policy=SINGLE_SHOT, latency=0.01)
    coordinator.store_credentials(EMAIL, PASSWORD)

    outcomes = await asyncio.gather(*(coordinator.attempt_auto_relogin() for _ in range(5)))

    assert outcomes == [True] * 5
    assert backend.calls["sign_in_with_password"] == 1
    assert notifier.titles == [RESTORING_TITLE, RESTORED_TITLE]


async def test_concurrent_callers_share_failure(sleeps: SleepRecorder) -> None:
    coordinator, backend, _ = make_coordinator(sleeps, policy=SINGLE_SHOT, latency=0.01)
    coordinator.store_credentials(EMAIL, "wrong-password")

    outcomes = await asyncio.gather(*(coordinator.attempt_auto_relogin() for _ in range(4)))

    assert outcomes == [False] * 4
    assert backend.calls["sign_in_with_password"] == 1
    assert coordinator.has_stored_credentials() is False


async def test_sequential_attempts_run_independently(sleeps: SleepRecorder) -> None:
    coordinator, backend, _ = make_coordinator(sleeps, policy=SINGLE_SHOT)
    coordinator.store_credentials(EMAIL, PASSWORD)

    assert await coordinator.attempt_auto_relogin() is True
    assert await coordinator.attempt_auto_relogin() is True
    assert backend.calls["sign_in_with_password"] == 2


async def test_cancelled_attempt_releases_waiters(sleeps: SleepRecorder) -> None:
    """実行中タスクのキャンセルは待機者にも伝わり、状態がリセットされること。"""
    coordinator, backend, _ = make_coordinator(sleeps, policy=SINGLE_SHOT, latency=10.0)
    coordinator.store_credentials(EMAIL, PASSWORD)

    leader = asyncio.create_task(coordinator.attempt_auto_relogin())
    while backend.calls["sign_in_with_password"] == 0:
        await asyncio.sleep(0)
    waiter = asyncio.create_task(coordinator.attempt_auto_relogin())
    await asyncio.sleep(0)

    leader.cancel()
    with pytest.raises(asyncio.CancelledError):
        await leader
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert coordinator.in_progress is False


async def test_callback_errors_are_contained(sleeps: SleepRecorder) -> None:
    coordinator, _, _ = make_coordinator(sleeps)
    coordinator.store_credentials(EMAIL, PASSWORD)

    def explode(_: Session) -> None:
        raise RuntimeError("callback failure")

    assert await coordinator.attempt_auto_relogin(ReloginOptions(on_success=explode)) is True
