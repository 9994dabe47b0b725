from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Callable, Iterator
from uuid import uuid4

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def uuid4_ids() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SequentialIds:
    """Deterministic ids for tests/golden runs: est_0001, est_0002, ..."""

    def __init__(self, prefix: str = "est_"):
        self.prefix = prefix
        self._counter: Iterator[int] = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter):04d}"
