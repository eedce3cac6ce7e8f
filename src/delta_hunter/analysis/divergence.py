"""
CVD 背离分析 - 纯函数
比较最近窗口内价格斜率与累计成交量差 (Cumulative Volume Delta) 斜率：
价格上涨而 CVD 下降视为看跌背离（假拉升），价格走平/下跌而 CVD 上升视为看涨背离（暗中吸筹）。
"""

import math
from typing import Sequence

from delta_hunter.models.market_data import Sample
from delta_hunter.models.strategy_data import DeltaTrend, DivergenceResult

# 滑动窗口大小与最少样本数
CVD_WINDOW_SIZE = 20
MIN_WINDOW_SIZE = 5

# 归一化 CVD 斜率判定趋势的阈值
TREND_THRESHOLD = 0.5
# 判定背离的阈值
PRICE_SLOPE_THRESHOLD = 0.1
CVD_SLOPE_THRESHOLD = 0.3
SCORE_MULTIPLIER = 20
MAX_SCORE = 100


class DivergenceAnalyzer:
    """CVD 背离分析器（无状态）"""

    @staticmethod
    def analyze(history: Sequence[Sample]) -> DivergenceResult:
        """
        计算 CVD 背离分数与趋势

        Args:
            history: 按时间排序的完整样本序列

        Returns:
            DivergenceResult，score 在 [-100, 100]；数据不足时为 (0, NEUTRAL)
        """
        window_size = min(CVD_WINDOW_SIZE, len(history))
        if window_size < MIN_WINDOW_SIZE:
            return DivergenceResult(score=0, trend=DeltaTrend.NEUTRAL)

        window = list(history[-window_size:])
        if window[0].price <= 0:
            # 窗口起点价格无效时无法计算价格斜率
            return DivergenceResult(score=0, trend=DeltaTrend.NEUTRAL)

        price_slope = DivergenceAnalyzer.price_slope(window)
        normalized_cvd_slope = DivergenceAnalyzer.normalized_cvd_slope(window)

        if normalized_cvd_slope > TREND_THRESHOLD:
            trend = DeltaTrend.UP
        elif normalized_cvd_slope < -TREND_THRESHOLD:
            trend = DeltaTrend.DOWN
        else:
            trend = DeltaTrend.NEUTRAL

        if price_slope > PRICE_SLOPE_THRESHOLD and normalized_cvd_slope < -CVD_SLOPE_THRESHOLD:
            # 看跌背离：价格上涨但主动卖出占优
            score = -min(MAX_SCORE, abs(price_slope - normalized_cvd_slope) * SCORE_MULTIPLIER)
        elif price_slope < PRICE_SLOPE_THRESHOLD and normalized_cvd_slope > CVD_SLOPE_THRESHOLD:
            # 看涨背离：价格走平/下跌但主动买入占优
            score = min(MAX_SCORE, abs(normalized_cvd_slope - price_slope) * SCORE_MULTIPLIER)
        else:
            score = 0

        return DivergenceResult(score=_round_half_up(score), trend=trend)

    @staticmethod
    def price_slope(window: Sequence[Sample]) -> float:
        """窗口内价格变化百分比"""
        first_price = window[0].price
        return (window[-1].price - first_price) / first_price * 100

    @staticmethod
    def normalized_cvd_slope(window: Sequence[Sample]) -> float:
        """
        归一化 CVD 斜率

        累计和从窗口第一个样本开始累加，因此起点值等于第一个样本自身的 delta，
        斜率 = cumulative[-1] - cumulative[0]。
        """
        cumulative = []
        running = 0.0
        for sample in window:
            running += sample.delta
            cumulative.append(running)

        cvd_slope = cumulative[-1] - cumulative[0]

        avg_volume = sum(s.volume for s in window) / len(window)
        return cvd_slope / (avg_volume * 0.1) if avg_volume > 0 else 0.0


def _round_half_up(value: float) -> int:
    """四舍五入到整数（.5 向正无穷方向）"""
    return int(math.floor(value + 0.5))
