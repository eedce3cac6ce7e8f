"""
分析协调器 - 对所有币种生成一次按涨跌幅排序的分析快照
流程：读取序列快照 → 回看点比较 → CVD 背离 → 三重门信号 → 排序分组
"""

from typing import Any, Callable, Dict, List, Optional

from delta_hunter.analysis.divergence import DivergenceAnalyzer
from delta_hunter.models.market_data import Sample
from delta_hunter.models.strategy_data import AnalysisResult, CoinAnalysis
from delta_hunter.store.time_series_store import TimeSeriesStore, find_closest_sample
from delta_hunter.strategy.signal_evaluator import MIN_CONFIDENCE_SCORE, SignalEvaluator
from delta_hunter.utils.data_transforms import now_ms
from delta_hunter.utils.events import EventBus, EventTypes, publish_event
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='ANALYSIS')

MS_PER_MINUTE = 60 * 1000
# 最近样本与回看点的距离超过 回看时长 * 2 时视为过期
STALENESS_FACTOR = 2


class AnalysisCoordinator:
    """分析协调器"""

    def __init__(self, store: TimeSeriesStore,
                 clock: Callable[[], int] = now_ms,
                 event_bus: Optional[EventBus] = None):
        self.store = store
        self.clock = clock
        self.event_bus = event_bus

    def analyze(self, lookback_minutes: int) -> AnalysisResult:
        """
        生成分析快照

        Args:
            lookback_minutes: 回看分钟数（范围由调用方校验）

        Returns:
            AnalysisResult，gainers / losers 各自按涨跌幅绝对值降序
        """
        now = self.clock()
        target_time = now - lookback_minutes * MS_PER_MINUTE
        max_age = lookback_minutes * MS_PER_MINUTE * STALENESS_FACTOR

        results: List[CoinAnalysis] = []
        for symbol in self.store.symbols():
            try:
                analysis = self._analyze_symbol(symbol, now, target_time, max_age)
            except Exception as e:
                log.error(f"[ANALYSIS] {symbol} 分析失败: {e}")
                continue

            if analysis is not None:
                results.append(analysis)

        # 按涨跌幅绝对值降序（稳定排序），再分组且不改变相对顺序
        results.sort(key=lambda r: abs(r.percent_change), reverse=True)
        gainers = [r for r in results if r.percent_change > 0]
        losers = [r for r in results if r.percent_change < 0]

        result = AnalysisResult(
            timestamp=now,
            lookback_minutes=lookback_minutes,
            gainers=gainers,
            losers=losers,
        )

        for analysis in results:
            if analysis.ai_signal is not None:
                self._emit_signal(analysis)
        self._emit_analysis_completed(result, len(results))

        log.debug(f"[ANALYSIS] {lookback_minutes}分钟快照: {len(results)}个币种, "
                  f"涨{len(gainers)} 跌{len(losers)}")
        return result

    def _analyze_symbol(self, symbol: str, now: int, target_time: int,
                        max_age: int) -> Optional[CoinAnalysis]:
        """单个币种的分析；无数据或回看点过期时返回 None"""
        history: List[Sample] = self.store.snapshot(symbol)
        if not history:
            return None

        current = history[-1]
        old = find_closest_sample(history, target_time)
        if old is None:
            return None

        if abs(old.timestamp - target_time) > max_age:
            return None

        percent_change = (current.price - old.price) / old.price * 100

        divergence = DivergenceAnalyzer.analyze(history)
        setup = SignalEvaluator.evaluate_position(
            symbol, current.price, divergence.score, history, now=now
        )

        # 评估器内部已做过置信度门槛，这里再做一次外层校验
        ai_signal = None
        if setup.is_actionable and setup.confidence_score >= MIN_CONFIDENCE_SCORE:
            ai_signal = setup

        return CoinAnalysis(
            symbol=symbol,
            percent_change=percent_change,
            current_price=current.price,
            old_price=old.price,
            cvd_divergence_score=divergence.score,
            delta_trend=divergence.trend,
            ai_signal=ai_signal,
        )

    @publish_event(EventTypes.SIGNAL_GENERATED, source='AnalysisCoordinator')
    def _emit_signal(self, analysis: CoinAnalysis) -> Dict[str, Any]:
        setup = analysis.ai_signal
        log.info(f"[ANALYSIS] {setup.symbol}: {setup.direction.value} 信号 "
                 f"@{setup.entry_price} 置信度:{setup.confidence_score}")
        return {
            'symbol': setup.symbol,
            'direction': setup.direction.value,
            'confidence': setup.confidence_score,
            'entry_price': setup.entry_price,
            'stop_loss': setup.stop_loss,
            'take_profit': setup.take_profit,
            'reasons': list(setup.reasons),
        }

    @publish_event(EventTypes.ANALYSIS_COMPLETED, source='AnalysisCoordinator')
    def _emit_analysis_completed(self, result: AnalysisResult, symbol_count: int) -> Dict[str, Any]:
        return {
            'timestamp': result.timestamp,
            'lookback_minutes': result.lookback_minutes,
            'symbols': symbol_count,
            'gainers': len(result.gainers),
            'losers': len(result.losers),
        }
