from datetime import datetime


def to_millis(moment: datetime) -> int:
    """Unix milliseconds for a naive local (or aware) datetime."""
    return int(round(moment.timestamp() * 1000))


def from_millis(ms: int) -> datetime:
    """Naive local datetime for a Unix-millisecond timestamp."""
    return datetime.fromtimestamp(ms / 1000.0)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock pinned to a given local time; `advance` moves it forward."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, delta):
        self.moment = self.moment + delta
        return self.moment
