"""
内存预热 - 启动时批量回补历史K线
逐个币种串行请求（请求间固定间隔限流），单个币种失败只记录，不影响其他币种。
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.events import EventBus, EventTypes, publish_event
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='INGEST')

# fetch_klines(symbol, limit) -> REST kline 数组列表
KlineFetcher = Callable[[str, int], Sequence[Sequence[Any]]]

DEFAULT_KLINE_LIMIT = 1440


@dataclass(frozen=True)
class WarmupReport:
    """预热结果"""
    success_count: int
    error_count: int
    duration_seconds: float
    failed_symbols: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'successCount': self.success_count,
            'errorCount': self.error_count,
            'durationSeconds': round(self.duration_seconds, 1),
            'failedSymbols': list(self.failed_symbols),
        }


def select_top_symbols(tickers: Iterable[Dict[str, Any]], limit: int,
                       quote_asset: str = 'USDT') -> List[str]:
    """从 24h ticker 列表中选出按计价成交额排序的前 limit 个交易对"""
    candidates = []
    for ticker in tickers:
        symbol = ticker.get('symbol', '')
        if not symbol.endswith(quote_asset):
            continue
        try:
            quote_volume = float(ticker.get('quoteVolume', 0))
        except (TypeError, ValueError):
            quote_volume = 0.0
        candidates.append((quote_volume, symbol))

    candidates.sort(key=lambda c: c[0], reverse=True)
    return [symbol for _, symbol in candidates[:limit]]


class WarmupLoader:
    """预热加载器：设置跟踪列表并逐个回补"""

    def __init__(self, store: TimeSeriesStore, fetch_klines: KlineFetcher,
                 kline_limit: int = DEFAULT_KLINE_LIMIT,
                 delay_seconds: float = 0.05, progress_interval: int = 10,
                 event_bus: Optional[EventBus] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.fetch_klines = fetch_klines
        self.kline_limit = kline_limit
        self.delay_seconds = delay_seconds
        self.progress_interval = max(progress_interval, 1)
        self.event_bus = event_bus
        self.sleep = sleep

    def run(self, symbols: Iterable[str]) -> WarmupReport:
        """执行预热"""
        start_time = time.monotonic()

        self.store.set_tracked(symbols)
        tracked = self.store.tracked_symbols()
        log.info(f"[WARMUP] 开始预热: {len(tracked)} 个币种, 每个回补 {self.kline_limit} 根1分钟K线")

        success_count = 0
        failed: List[str] = []

        for i, symbol in enumerate(tracked):
            try:
                klines = self.fetch_klines(symbol, self.kline_limit)
                self.store.bulk_merge(symbol, klines)
                success_count += 1
            except Exception as e:
                log.error(f"[WARMUP] {symbol} K线回补失败: {e}")
                failed.append(symbol)
                continue

            if (i + 1) % self.progress_interval == 0 or i == len(tracked) - 1:
                percent = round((i + 1) / len(tracked) * 100)
                log.info(f"[WARMUP] 进度: {i + 1}/{len(tracked)} ({percent}%) - {symbol}")

            if self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

        report = WarmupReport(
            success_count=success_count,
            error_count=len(failed),
            duration_seconds=time.monotonic() - start_time,
            failed_symbols=failed,
        )
        log.info(f"[WARMUP] 预热完成: 成功 {report.success_count} | 失败 {report.error_count} | "
                 f"耗时 {report.duration_seconds:.1f}秒 | 总记录 {self.store.total_samples()}")
        self._emit_completed(report)
        return report

    @publish_event(EventTypes.WARMUP_COMPLETED, source='WarmupLoader')
    def _emit_completed(self, report: WarmupReport) -> Dict[str, Any]:
        return report.to_dict()
