"""
Delta Hunter 引擎 - 组装存储、分析、接入与监控
每个实例独立持有自己的状态，没有模块级单例。
"""

from typing import Callable, Iterable, Optional

from delta_hunter.analysis.coordinator import AnalysisCoordinator
from delta_hunter.config.config import EngineConfig, MAX_LOOKBACK_MINUTES, MIN_LOOKBACK_MINUTES
from delta_hunter.ingestion.ticker_ingestor import LiveTickerIngestor, RawMessage
from delta_hunter.ingestion.warmup import KlineFetcher, WarmupLoader, WarmupReport
from delta_hunter.models.strategy_data import AnalysisResult
from delta_hunter.monitor.data import MonitorSnapshot, SystemStatus
from delta_hunter.monitor.service import MonitorService
from delta_hunter.store.cleanup import CleanupScheduler
from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.data_transforms import format_timestamp, now_ms
from delta_hunter.utils.events import EventBus, EventTypes
from delta_hunter.utils.log import set_log_level, setup_logging

log = setup_logging(module_prefix='ENGINE')


class DeltaHunterEngine:
    """引擎门面"""

    def __init__(self, config: Optional[EngineConfig] = None,
                 clock: Callable[[], int] = now_ms):
        self.config = config or EngineConfig.create()
        self.clock = clock
        set_log_level(self.config.log_level)

        self.event_bus = EventBus()
        self.store = TimeSeriesStore(
            max_tracked=self.config.max_tracked_coins,
            clock=clock,
            event_bus=self.event_bus,
        )
        self.coordinator = AnalysisCoordinator(self.store, clock=clock, event_bus=self.event_bus)
        self.ingestor = LiveTickerIngestor(self.store, quote_asset=self.config.quote_asset, clock=clock)
        self.cleanup = CleanupScheduler(
            self.store,
            interval_minutes=self.config.cleanup_interval_minutes,
            max_history_minutes=self.config.max_history_minutes,
            clock=clock,
        )
        self.monitor = MonitorService(
            self.event_bus,
            self.store,
            ingestor=self.ingestor,
            lookback_options=self.config.lookback_options,
        )

    @property
    def is_ready(self) -> bool:
        return self.monitor.system_status is SystemStatus.READY

    def warm_up(self, fetch_klines: KlineFetcher, symbols: Iterable[str],
                sleep: Optional[Callable[[float], None]] = None) -> WarmupReport:
        """设置跟踪列表并回补历史K线"""
        self.monitor.set_system_status(SystemStatus.WARMING)
        loader_kwargs = {'sleep': sleep} if sleep is not None else {}
        loader = WarmupLoader(
            self.store,
            fetch_klines,
            kline_limit=self.config.kline_limit,
            delay_seconds=self.config.warmup_request_delay_seconds,
            progress_interval=self.config.warmup_progress_interval,
            event_bus=self.event_bus,
            **loader_kwargs,
        )
        return loader.run(symbols)

    def start(self):
        """启动清理定时器，引擎进入就绪状态"""
        self.cleanup.start()
        self.monitor.set_system_status(SystemStatus.READY)
        self.event_bus.publish(EventTypes.SYSTEM_STARTED, {'timestamp': self.clock()}, source='DeltaHunterEngine')
        log.info(f"[ENGINE] 引擎就绪 {format_timestamp(self.clock())}: "
                 f"总记录 {self.store.total_samples():,}")

    def stop(self):
        """停止引擎"""
        self.cleanup.stop()
        self.monitor.set_system_status(SystemStatus.STOPPED)
        self.event_bus.publish(EventTypes.SYSTEM_STOPPED, {'timestamp': self.clock()}, source='DeltaHunterEngine')
        log.info("[ENGINE] 引擎已停止")

    def handle_message(self, raw: RawMessage) -> int:
        """接收一条实时推送消息"""
        return self.ingestor.handle_message(raw)

    def analyze(self, lookback_minutes: int) -> AnalysisResult:
        """
        生成分析快照

        Raises:
            ValueError: 回看分钟数不是 1-1440 之间的整数
        """
        if isinstance(lookback_minutes, bool) or not isinstance(lookback_minutes, int):
            raise ValueError("lookback_minutes 必须是整数")
        if not MIN_LOOKBACK_MINUTES <= lookback_minutes <= MAX_LOOKBACK_MINUTES:
            raise ValueError(
                f"lookback_minutes 必须在 {MIN_LOOKBACK_MINUTES}-{MAX_LOOKBACK_MINUTES} 之间"
            )
        return self.coordinator.analyze(lookback_minutes)

    def status(self) -> MonitorSnapshot:
        """诊断快照"""
        return self.monitor.get_snapshot()
