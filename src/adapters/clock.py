import time
from datetime import UTC, datetime


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_unix(self) -> int:
        return int(time.time())


class FixedClock:
    """Clock pinned to a given epoch second; advance() moves it forward."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def now_unix(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds
