# -*- coding: utf-8 -*-
"""事件总线与监控服务测试"""

import threading

from delta_hunter.monitor.data import SystemStatus
from delta_hunter.monitor.service import MonitorService
from delta_hunter.utils.events import EventBus, EventTypes

from helpers import NOW


def _signal(symbol, direction="LONG"):
    return {
        'symbol': symbol,
        'direction': direction,
        'confidence': 100,
        'entry_price': 100.0,
        'stop_loss': 95.0,
        'take_profit': 115.0,
        'reasons': ["风险收益比: 3:1"],
    }


class TestEventBus:
    def test_failing_subscriber_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventTypes.DATA_EVICTED, broken)
        bus.subscribe(EventTypes.DATA_EVICTED, seen.append)
        bus.publish(EventTypes.DATA_EVICTED, {'removed': 1}, source='test')

        assert len(seen) == 1
        assert seen[0].source == 'test'

    def test_events_reach_only_their_subscribers(self):
        bus = EventBus()
        started = []
        bus.subscribe(EventTypes.SYSTEM_STARTED, started.append)

        bus.publish(EventTypes.SYSTEM_STOPPED, {})
        bus.publish(EventTypes.ANALYSIS_COMPLETED, {})
        bus.publish(EventTypes.SYSTEM_STARTED, {'timestamp': NOW})

        assert [e.data for e in started] == [{'timestamp': NOW}]


class TestMonitorService:
    def test_collects_engine_events(self, store, event_bus):
        monitor = MonitorService(event_bus, store, lookback_options=[5, 60])

        event_bus.publish(EventTypes.SIGNAL_GENERATED, _signal("AUSDT"))
        event_bus.publish(EventTypes.SIGNAL_GENERATED, _signal("BUSDT", "SHORT"))
        event_bus.publish(EventTypes.ANALYSIS_COMPLETED, {'lookback_minutes': 60})
        event_bus.publish(EventTypes.DATA_EVICTED, {'removed': 7, 'cutoff': NOW})
        event_bus.publish(EventTypes.DATA_EVICTED, {'removed': 3, 'cutoff': NOW})
        event_bus.publish(EventTypes.WARMUP_COMPLETED, {'successCount': 2, 'errorCount': 0})

        recent = monitor.get_recent_signals(limit=1)
        assert [s.symbol for s in recent] == ["BUSDT"]
        assert recent[0].to_dict()['direction'] == "SHORT"

        snapshot = monitor.get_snapshot().to_dict()
        assert snapshot['totalSignals'] == 2
        assert snapshot['analysesRun'] == 1
        assert snapshot['samplesEvicted'] == 10
        assert snapshot['lastWarmup'] == {'successCount': 2, 'errorCount': 0}
        assert snapshot['lookbackOptions'] == [5, 60]
        assert snapshot['ingestion'] == {}

    def test_status_and_coin_list(self, store, event_bus):
        monitor = MonitorService(event_bus, store)
        store.set_tracked(["AUSDT"])
        store.append("AUSDT", 1.5, timestamp=NOW)

        assert monitor.get_snapshot().ready is False
        monitor.set_system_status(SystemStatus.READY)

        snapshot = monitor.get_snapshot().to_dict()
        assert snapshot['ready'] is True
        assert snapshot['status'] == "ready"
        assert snapshot['totalCoins'] == 1
        assert snapshot['totalRecords'] == 1

    def test_counters_survive_concurrent_publishers(self, store, event_bus):
        monitor = MonitorService(event_bus, store)

        def evict_many():
            for _ in range(500):
                event_bus.publish(EventTypes.DATA_EVICTED, {'removed': 2, 'cutoff': NOW})
                event_bus.publish(EventTypes.ANALYSIS_COMPLETED, {'lookback_minutes': 5})

        workers = [threading.Thread(target=evict_many) for _ in range(4)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        snapshot = monitor.get_snapshot()
        assert snapshot.samples_evicted == 4 * 500 * 2
        assert snapshot.analyses_run == 4 * 500
