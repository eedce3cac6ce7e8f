"""Builders shared by the test modules."""

from delta_hunter.models.market_data import Sample

MINUTE = 60 * 1000
NOW = 1_700_000_000_000


class FakeClock:
    """Callable millisecond clock that only moves when told to."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


def make_sample(symbol="BTCUSDT", price=100.0, volume=1000.0, delta=0.0, timestamp=NOW):
    return Sample(symbol=symbol, timestamp=timestamp, price=price, volume=volume, delta=delta)


def make_kline(close_time, close, volume=100.0):
    """Kline row in the REST array shape (values as strings, like the exchange sends)."""
    return [close_time - MINUTE + 1, str(close), str(close), str(close), str(close),
            str(volume), close_time, "0", 0, "0", "0", "0"]
