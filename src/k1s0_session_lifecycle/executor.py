"""リトライ実行エンジン"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from .exceptions import RetryTimeoutError
from .models import RetryResult
from .policy import RetryPolicy

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

logger = structlog.stdlib.get_logger(__name__)


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    timeout: float | None = None,
    sleep: Sleep | None = None,
) -> RetryResult[T]:
    """非同期関数を指数バックオフ付きで実行し、RetryResult を返す。

    最大 policy.max_attempts 回試行し、試行と試行の間にだけ待機する。
    operation は複数回呼ばれうるため、冪等性は呼び出し側の責任。

    asyncio.CancelledError は捕捉せずに伝播させる。タスクのキャンセルが
    各サスペンションポイント（試行と待機）で有効な中断シグナルになる。

    Args:
        operation: 引数なしの非同期関数
        policy: リトライポリシー
        timeout: 全体のデッドライン（秒）。超過した場合は RetryTimeoutError で失敗する
        sleep: 待機関数（デフォルトは asyncio.sleep）

    Returns:
        成否・値またはエラー・試行回数・経過時間を持つ RetryResult
    """
    sleep = sleep or asyncio.sleep
    started = time.monotonic()
    last_error: Exception | None = None
    attempts = 0

    for attempt in range(policy.max_attempts):
        if timeout is not None:
            remaining = timeout - (time.monotonic() - started)
            if remaining <= 0:
                last_error = RetryTimeoutError(timeout, cause=last_error)
                break
        attempts = attempt + 1
        try:
            if timeout is None:
                value = await operation()
            else:
                value = await asyncio.wait_for(operation(), timeout=remaining)
            return RetryResult(
                success=True,
                attempts=attempts,
                elapsed=time.monotonic() - started,
                value=value,
            )
        except asyncio.TimeoutError as e:
            if timeout is not None and time.monotonic() - started >= timeout:
                last_error = RetryTimeoutError(timeout, cause=e)
                break
            last_error = e
        except Exception as e:
            last_error = e

        if attempt + 1 >= policy.max_attempts:
            break
        delay = policy.compute_delay(attempt)
        if timeout is not None and (time.monotonic() - started) + delay >= timeout:
            last_error = RetryTimeoutError(timeout, cause=last_error)
            break
        logger.debug(
            "retry attempt failed",
            attempt=attempts,
            max_attempts=policy.max_attempts,
            delay=round(delay, 3),
            error=str(last_error),
        )
        await sleep(delay)

    return RetryResult(
        success=False,
        attempts=attempts,
        elapsed=time.monotonic() - started,
        error=last_error,
    )


async def with_retry(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[T]],
    *,
    timeout: float | None = None,
    sleep: Sleep | None = None,
) -> T:
    """retry() の例外送出版。

    Raises:
        RetryExhaustedError: すべての試行が失敗した場合
    """
    result = await retry(operation, policy, timeout=timeout, sleep=sleep)
    return result.unwrap()
