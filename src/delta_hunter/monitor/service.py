"""
监控服务 - 通过事件总线收集引擎运行数据，提供诊断快照
"""

import threading
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from delta_hunter.ingestion.ticker_ingestor import LiveTickerIngestor
from delta_hunter.monitor.data import MonitorSnapshot, SignalHistory, SystemStatus
from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.events import Event, EventBus, EventTypes
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='MONITOR')

SIGNAL_HISTORY_SIZE = 1000


class MonitorService:
    """监控服务

    事件回调可能来自清理线程与分析调用方，计数器与信号历史统一由 _lock 保护。
    """

    def __init__(self, event_bus: EventBus, store: TimeSeriesStore,
                 ingestor: Optional[LiveTickerIngestor] = None,
                 lookback_options: Optional[List[int]] = None):
        self.event_bus = event_bus
        self.store = store
        self.ingestor = ingestor
        self.lookback_options = list(lookback_options or [])

        self.system_status = SystemStatus.STARTING
        self.signal_history: deque = deque(maxlen=SIGNAL_HISTORY_SIZE)
        self.total_signals = 0
        self.analyses_run = 0
        self.samples_evicted = 0
        self.last_warmup: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

        self._setup_event_subscriptions()

    def _setup_event_subscriptions(self):
        """设置事件订阅"""
        self.event_bus.subscribe(EventTypes.SIGNAL_GENERATED, self._handle_signal_event)
        self.event_bus.subscribe(EventTypes.ANALYSIS_COMPLETED, self._handle_analysis_event)
        self.event_bus.subscribe(EventTypes.DATA_EVICTED, self._handle_eviction_event)
        self.event_bus.subscribe(EventTypes.WARMUP_COMPLETED, self._handle_warmup_event)
        log.debug("[MONITOR] 事件订阅已设置")

    def _handle_signal_event(self, event: Event):
        data = event.data
        record = SignalHistory(
            timestamp=event.timestamp,
            symbol=data['symbol'],
            direction=data['direction'],
            price=data['entry_price'],
            confidence=data['confidence'],
            reasons=list(data.get('reasons', [])),
        )
        with self._lock:
            self.signal_history.append(record)
            self.total_signals += 1

    def _handle_analysis_event(self, event: Event):
        with self._lock:
            self.analyses_run += 1

    def _handle_eviction_event(self, event: Event):
        with self._lock:
            self.samples_evicted += event.data['removed']

    def _handle_warmup_event(self, event: Event):
        with self._lock:
            self.last_warmup = dict(event.data)

    def set_system_status(self, status: SystemStatus):
        """设置系统状态"""
        with self._lock:
            self.system_status = status
        log.info(f"[MONITOR] 系统状态更新: {status.value}")

    def get_recent_signals(self, limit: int = 50) -> List[SignalHistory]:
        """获取最近的信号历史"""
        with self._lock:
            return list(self.signal_history)[-limit:]

    def get_snapshot(self) -> MonitorSnapshot:
        """获取当前监控快照"""
        coins = self.store.get_status()
        total_records = self.store.total_samples()
        ingestion = self.ingestor.get_counters() if self.ingestor else {}

        with self._lock:
            return MonitorSnapshot(
                timestamp=datetime.now(),
                system_status=self.system_status,
                coins=coins,
                total_records=total_records,
                lookback_options=self.lookback_options,
                total_signals=self.total_signals,
                analyses_run=self.analyses_run,
                samples_evicted=self.samples_evicted,
                ingestion=ingestion,
                last_warmup=self.last_warmup,
            )
