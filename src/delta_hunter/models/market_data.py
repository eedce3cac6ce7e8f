"""
市场数据相关类型定义
时间戳统一为毫秒级 Unix 时间 (int)
"""

from dataclasses import dataclass


# REST kline 数组的列顺序: [openTime, open, high, low, close, volume, closeTime, ...]
KLINE_COLUMNS = ['open_time', 'open', 'high', 'low', 'close', 'volume', 'close_time']


@dataclass(frozen=True)
class MarketData:
    """市场数据基类"""
    symbol: str
    timestamp: int


@dataclass(frozen=True)
class Sample(MarketData):
    """单个时间点的价格样本"""
    price: float
    volume: float
    delta: float  # 净主动买入量估计，正值 = 买方压力

    def to_dict(self) -> dict:
        return {
            'symbol': self.symbol,
            'price': self.price,
            'volume': self.volume,
            'delta': self.delta,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class TickerData(MarketData):
    """实时行情推送中的单条 24h ticker"""
    last_price: float
    base_volume: float
    price_change_percent: float
