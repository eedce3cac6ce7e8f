# -*- coding: utf-8 -*-
"""
Ingestion tests
===============

实时 ticker 解析（丢弃并计数）与启动预热。
"""

import json

import pytest

from delta_hunter.ingestion.ticker_ingestor import LiveTickerIngestor, ticker_delta
from delta_hunter.ingestion.warmup import WarmupLoader, select_top_symbols
from delta_hunter.utils.events import EventTypes

from helpers import MINUTE, NOW, make_kline


def _ticker(symbol, price="100.5", volume="1000", pct="2.5"):
    return {"e": "24hrTicker", "s": symbol, "c": price, "v": volume, "P": pct, "Q": "1"}


@pytest.fixture
def ingestor(store, clock):
    store.set_tracked(["BTCUSDT", "ETHUSDT"])
    return LiveTickerIngestor(store, quote_asset="USDT", clock=clock)


class TestTickerIngestor:
    def test_appends_tracked_tickers(self, store, ingestor):
        appended = ingestor.handle_message(json.dumps([
            _ticker("BTCUSDT"),
            _ticker("ETHUSDT", price="2000", volume="500", pct="-2"),
            _ticker("DOGEUSDT"),
            _ticker("ETHBTC"),
        ]))

        assert appended == 2
        btc = store.latest("BTCUSDT")
        assert btc.price == 100.5
        assert btc.volume == 1000.0
        assert btc.delta == pytest.approx(25.0)
        assert btc.timestamp == NOW
        assert store.latest("ETHUSDT").delta == pytest.approx(-20.0)
        assert "DOGEUSDT" not in store.symbols()

    def test_accepts_decoded_list(self, store, ingestor):
        assert ingestor.handle_message([_ticker("BTCUSDT")]) == 1

    def test_malformed_message_is_dropped_and_counted(self, store, ingestor):
        assert ingestor.handle_message("{not json") == 0
        assert ingestor.handle_message(json.dumps({"s": "BTCUSDT"})) == 0
        assert ingestor.handle_message(None) == 0

        counters = ingestor.get_counters()
        assert counters["dropped_messages"] == 3
        assert counters["messages_received"] == 3
        assert store.total_samples() == 0

    def test_bad_ticker_is_skipped_without_losing_the_rest(self, store, ingestor):
        appended = ingestor.handle_message([
            _ticker("BTCUSDT", price="abc"),
            _ticker("BTCUSDT", price="0"),
            _ticker("BTCUSDT", price="NaN"),
            "garbage",
            _ticker("ETHUSDT"),
        ])

        assert appended == 1
        assert ingestor.skipped_tickers == 4
        assert ingestor.dropped_messages == 0

    def test_missing_percent_change_gives_zero_delta(self, store, ingestor):
        raw = _ticker("BTCUSDT")
        del raw["P"]

        ingestor.handle_message([raw])

        assert store.latest("BTCUSDT").delta == 0.0

    def test_ticker_delta_sign(self):
        assert ticker_delta(1000.0, 0.0) == 0.0
        assert ticker_delta(1000.0, 3.0) == pytest.approx(30.0)
        assert ticker_delta(1000.0, -3.0) == pytest.approx(-30.0)


class TestSelectTopSymbols:
    def test_filters_quote_asset_and_sorts_by_quote_volume(self):
        tickers = [
            {"symbol": "BTCUSDT", "quoteVolume": "500"},
            {"symbol": "ETHBTC", "quoteVolume": "99999"},
            {"symbol": "ETHUSDT", "quoteVolume": "900"},
            {"symbol": "DOGEUSDT", "quoteVolume": "bad"},
            {"symbol": "SOLUSDT", "quoteVolume": "700"},
        ]

        assert select_top_symbols(tickers, limit=2) == ["ETHUSDT", "SOLUSDT"]
        assert select_top_symbols(tickers, limit=10) == ["ETHUSDT", "SOLUSDT", "BTCUSDT", "DOGEUSDT"]


class TestWarmupLoader:
    def test_failure_of_one_symbol_is_isolated(self, store, event_bus):
        def fetch(symbol, limit):
            if symbol == "BADUSDT":
                raise ConnectionError("HTTP 429")
            if symbol == "JUNKUSDT":
                return [["x"]]
            return [make_kline(NOW - m * MINUTE, 10.0) for m in range(3)]

        sleeps = []
        events = []
        event_bus.subscribe(EventTypes.WARMUP_COMPLETED, events.append)
        loader = WarmupLoader(store, fetch, delay_seconds=0.05, event_bus=event_bus, sleep=sleeps.append)

        report = loader.run(["AUSDT", "BADUSDT", "JUNKUSDT", "BUSDT"])

        assert report.success_count == 2
        assert report.error_count == 2
        assert report.failed_symbols == ["BADUSDT", "JUNKUSDT"]
        assert store.total_samples() == 6
        assert store.tracked_symbols() == ["AUSDT", "BADUSDT", "JUNKUSDT", "BUSDT"]
        assert sleeps == [0.05, 0.05]
        assert events[0].data["successCount"] == 2

    def test_only_tracked_cap_is_backfilled(self, clock):
        from delta_hunter.store.time_series_store import TimeSeriesStore

        store = TimeSeriesStore(max_tracked=2, clock=clock)
        fetched = []

        def fetch(symbol, limit):
            fetched.append(symbol)
            return []

        WarmupLoader(store, fetch, delay_seconds=0).run(["AUSDT", "BUSDT", "CUSDT"])

        assert fetched == ["AUSDT", "BUSDT"]

    def test_fetcher_receives_configured_kline_limit(self, store):
        requests = []

        def fetch(symbol, limit):
            requests.append((symbol, limit))
            return [make_kline(NOW, 10.0)]

        WarmupLoader(store, fetch, kline_limit=500, delay_seconds=0).run(["AUSDT", "BUSDT"])

        assert requests == [("AUSDT", 500), ("BUSDT", 500)]
