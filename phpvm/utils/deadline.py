"""操作截止时间

每个顶层操作创建一个 Deadline，沿网络请求与解压循环向下传递。
seconds <= 0 表示不限制。
"""

from __future__ import annotations

import time
from typing import Callable

from phpvm.core.exceptions import DeadlineExceededError


class Deadline:
    """单调时钟上的截止时间"""

    def __init__(
        self, seconds: float = 0, *, clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds if seconds > 0 else None

    @classmethod
    def never(cls) -> Deadline:
        return cls(0)

    def remaining(self) -> float | None:
        """剩余秒数；不限制时返回 None"""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, context: str = "") -> None:
        """已过期则抛出 DeadlineExceededError"""
        if self.expired():
            label = f": {context}" if context else ""
            raise DeadlineExceededError(f"操作超时{label}")

    def timeout_for(self, default: float) -> float:
        """单次请求的超时时间，不超过剩余时间"""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)
