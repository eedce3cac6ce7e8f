"""
分析与策略相关数据模型
to_dict() 输出 HTTP 层使用的 camelCase 结构
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DeltaTrend(Enum):
    """CVD 趋势"""
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class TradeDirection(Enum):
    """交易方向"""
    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"


@dataclass(frozen=True)
class DivergenceResult:
    """CVD 背离分析结果"""
    score: int  # -100 ~ +100，负值 = 看跌背离，正值 = 看涨背离
    trend: DeltaTrend


@dataclass(frozen=True)
class TradeSetup:
    """交易设置 - 三重门规则引擎的输出"""
    symbol: str
    direction: TradeDirection
    confidence_score: float  # 0-100
    reasons: List[str] = field(default_factory=list)
    entry_price: float = 0.0
    stop_loss: float = 0.0
    take_profit: float = 0.0
    risk_reward_ratio: float = 0.0

    @property
    def is_actionable(self) -> bool:
        return self.direction is not TradeDirection.NONE

    def to_dict(self) -> dict:
        return {
            'symbol': self.symbol,
            'direction': self.direction.value,
            'confidenceScore': self.confidence_score,
            'reasons': list(self.reasons),
            'entryPrice': self.entry_price,
            'stopLoss': self.stop_loss,
            'takeProfit': self.take_profit,
            'riskRewardRatio': self.risk_reward_ratio,
        }


@dataclass(frozen=True)
class CoinAnalysis:
    """单个币种的分析结果（每次请求临时生成）"""
    symbol: str
    percent_change: float
    current_price: float
    old_price: float
    cvd_divergence_score: int
    delta_trend: DeltaTrend
    ai_signal: Optional[TradeSetup] = None

    def to_dict(self) -> dict:
        data = {
            'symbol': self.symbol,
            'percentChange': self.percent_change,
            'currentPrice': self.current_price,
            'oldPrice': self.old_price,
            'cvdDivergenceScore': self.cvd_divergence_score,
            'deltaTrend': self.delta_trend.value,
        }
        if self.ai_signal is not None:
            data['aiSignal'] = self.ai_signal.to_dict()
        return data


@dataclass(frozen=True)
class AnalysisResult:
    """一次分析快照：按涨跌幅绝对值排序后分为涨幅榜与跌幅榜"""
    timestamp: int
    lookback_minutes: int
    gainers: List[CoinAnalysis]
    losers: List[CoinAnalysis]

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'lookbackMinutes': self.lookback_minutes,
            'gainers': [c.to_dict() for c in self.gainers],
            'losers': [c.to_dict() for c in self.losers],
        }


@dataclass(frozen=True)
class SymbolStatus:
    """单个币种的存储状态（诊断用）"""
    symbol: str
    count: int
    latest_price: float

    def to_dict(self) -> dict:
        return {'symbol': self.symbol, 'count': self.count, 'latestPrice': self.latest_price}
