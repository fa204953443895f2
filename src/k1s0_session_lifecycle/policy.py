"""リトライポリシー設定"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """指数バックオフのリトライポリシー。時間はすべて秒単位。"""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0: {self.max_retries}")
        if self.backoff_factor <= 1:
            raise ValueError(f"backoff_factor must be > 1: {self.backoff_factor}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    @property
    def max_attempts(self) -> int:
        """初回を含む最大試行回数。"""
        return self.max_retries + 1

    def compute_delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """attempt 回目（0 始まり）の失敗後に待機する秒数を計算する。"""
        capped = min(self.max_delay, self.base_delay * (self.backoff_factor**attempt))
        if self.jitter:
            return capped * (rng or random).uniform(0.5, 1.0)
        return capped

    @classmethod
    def preset(cls, name: str) -> RetryPolicy:
        """名前付きプリセットを返す。

        Raises:
            KeyError: 未知のプリセット名
        """
        return PRESETS[name]


SESSION_REFRESH_POLICY = RetryPolicy(
    max_retries=2, base_delay=0.5, max_delay=5.0, backoff_factor=2.0, jitter=True
)
API_CALL_POLICY = RetryPolicy(
    max_retries=3, base_delay=1.0, max_delay=10.0, backoff_factor=2.0, jitter=True
)
AUTH_POLICY = RetryPolicy(
    max_retries=1, base_delay=2.0, max_delay=5.0, backoff_factor=2.0, jitter=False
)

PRESETS: dict[str, RetryPolicy] = {
    "session_refresh": SESSION_REFRESH_POLICY,
    "api_call": API_CALL_POLICY,
    "auth": AUTH_POLICY,
}
