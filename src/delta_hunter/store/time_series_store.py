"""
时间序列存储 - 按币种保存有序的价格样本
所有数据只在内存中，进程重启即丢失。

- 实时追加为 O(1)，不保证时间戳严格递增（乱序单条追加不做纠正）
- 批量回补后对整个序列按时间戳重新排序
- 最近时间戳查询为 O(log n) 二分查找
- 过期清理为每个币种 O(n)，由定时器驱动而不是每次插入触发
"""

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from delta_hunter.models.market_data import Sample
from delta_hunter.models.strategy_data import SymbolStatus
from delta_hunter.utils.data_transforms import klines_to_samples, now_ms
from delta_hunter.utils.events import EventBus, EventTypes, publish_event
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='STORE')

DEFAULT_MAX_TRACKED = 150


class TimeSeriesStore:
    """
    按币种的有序样本存储，唯一持有所有序列的可变状态。

    序列在某个币种第一次收到样本时创建，之后即使被清理为空也保留键，
    空序列是合法的零长度状态。
    """

    def __init__(self, max_tracked: int = DEFAULT_MAX_TRACKED,
                 clock: Callable[[], int] = now_ms,
                 event_bus: Optional[EventBus] = None):
        self.max_tracked = max_tracked
        self.clock = clock
        self.event_bus = event_bus

        self._series: Dict[str, List[Sample]] = {}
        # dict 作为有序集合，保留跟踪列表的原始顺序
        self._tracked: Dict[str, None] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # 跟踪列表
    # ------------------------------------------------------------------

    def set_tracked(self, symbols: Iterable[str]):
        """替换跟踪列表（截断到 max_tracked），不清除已有序列"""
        capped: Dict[str, None] = {}
        for symbol in symbols:
            if len(capped) >= self.max_tracked:
                break
            capped[symbol] = None

        with self._lock:
            self._tracked = capped

        log.info(f"[STORE] {len(capped)} 个币种加入跟踪列表")

    def is_tracked(self, symbol: str) -> bool:
        """币种是否在跟踪列表中"""
        with self._lock:
            return symbol in self._tracked

    def tracked_symbols(self) -> List[str]:
        with self._lock:
            return list(self._tracked)

    # ------------------------------------------------------------------
    # 写入
    # ------------------------------------------------------------------

    def append(self, symbol: str, price: float, volume: float = 0.0,
               delta: float = 0.0, timestamp: Optional[int] = None) -> bool:
        """
        追加一条实时样本

        未跟踪的币种直接忽略。时间戳缺省为当前时钟。

        Returns:
            是否写入
        """
        with self._lock:
            if symbol not in self._tracked:
                return False

            sample = Sample(
                symbol=symbol,
                timestamp=self.clock() if timestamp is None else int(timestamp),
                price=price,
                volume=volume,
                delta=delta,
            )
            self._series.setdefault(symbol, []).append(sample)
            return True

    def bulk_merge(self, symbol: str, klines: Sequence[Sequence[Any]]) -> int:
        """
        批量合并回补K线

        先完整解析整个批次（格式错误时抛出 KlineFormatError，序列不受影响），
        再追加并对整个序列按时间戳升序重排。

        Returns:
            合并的样本数
        """
        samples = klines_to_samples(symbol, klines)

        with self._lock:
            series = self._series.setdefault(symbol, [])
            series.extend(samples)
            series.sort(key=lambda s: s.timestamp)

        log.debug(f"[STORE] {symbol}: 合并{len(samples)}根历史K线")
        return len(samples)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def query_nearest(self, symbol: str, target_timestamp: int) -> Optional[Sample]:
        """返回时间戳与目标最接近的样本；序列为空或不存在时返回 None"""
        with self._lock:
            return find_closest_sample(self._series.get(symbol, []), target_timestamp)

    def snapshot(self, symbol: str) -> List[Sample]:
        """
        在锁内复制序列，保证读取到单一时刻的一致状态

        复制是 O(n) 且期间阻塞实时追加；以此换取最近点查询、背离与信号评估
        都基于同一时刻的数据（150 个币种 x 1440 条样本的规模下可以接受）。
        """
        with self._lock:
            return list(self._series.get(symbol, []))

    def symbols(self) -> List[str]:
        """所有已创建序列的币种（包括被清空的）"""
        with self._lock:
            return list(self._series)

    def latest(self, symbol: str) -> Optional[Sample]:
        with self._lock:
            series = self._series.get(symbol)
            return series[-1] if series else None

    # ------------------------------------------------------------------
    # 清理
    # ------------------------------------------------------------------

    def evict_older_than(self, cutoff_timestamp: int) -> int:
        """
        删除每个序列中早于 cutoff 的样本

        找到第一个时间戳 >= cutoff 的样本并一次性丢弃之前的部分；
        没有任何样本满足时清空序列，但保留币种键。

        Returns:
            删除的样本总数
        """
        total_removed = 0

        with self._lock:
            for series in self._series.values():
                first_valid = next(
                    (i for i, s in enumerate(series) if s.timestamp >= cutoff_timestamp),
                    None
                )
                if first_valid is None:
                    total_removed += len(series)
                    series.clear()
                elif first_valid > 0:
                    del series[:first_valid]
                    total_removed += first_valid

        if total_removed > 0:
            log.info(f"[STORE] 清理: 删除{total_removed}条过期记录")
            self._emit_evicted(total_removed, cutoff_timestamp)

        return total_removed

    @publish_event(EventTypes.DATA_EVICTED, source='TimeSeriesStore')
    def _emit_evicted(self, removed: int, cutoff_timestamp: int) -> Dict[str, Any]:
        return {'removed': removed, 'cutoff': cutoff_timestamp}

    # ------------------------------------------------------------------
    # 诊断
    # ------------------------------------------------------------------

    def get_status(self) -> List[SymbolStatus]:
        """每个币种的样本数与最新价格（仅用于诊断）"""
        with self._lock:
            return [
                SymbolStatus(
                    symbol=symbol,
                    count=len(series),
                    latest_price=series[-1].price if series else 0.0,
                )
                for symbol, series in self._series.items()
            ]

    def total_samples(self) -> int:
        """所有序列的样本总数"""
        with self._lock:
            return sum(len(series) for series in self._series.values())

    def reset(self):
        """清空全部状态（仅供测试使用）"""
        with self._lock:
            self._series.clear()
            self._tracked.clear()


def find_closest_sample(series: Sequence[Sample], target_timestamp: int) -> Optional[Sample]:
    """
    二分查找时间戳最接近 target 的样本

    查找过程中记录遇到的最小距离；距离相等时保留先遇到的样本。
    """
    if not series:
        return None

    left, right = 0, len(series) - 1
    closest: Optional[Sample] = None
    min_diff = float('inf')

    while left <= right:
        mid = (left + right) // 2
        diff = abs(series[mid].timestamp - target_timestamp)

        if diff < min_diff:
            min_diff = diff
            closest = series[mid]

        if series[mid].timestamp < target_timestamp:
            left = mid + 1
        else:
            right = mid - 1

    return closest
