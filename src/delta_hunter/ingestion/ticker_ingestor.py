"""
实时 ticker 消息接入
解析全市场 24h ticker 推送（!ticker@arr 格式），过滤到跟踪列表后写入存储。
网络连接本身不在这里，调用方把收到的原始消息交给 handle_message。
"""

import json
import math
from typing import Any, Callable, Dict, List, Optional, Union

from delta_hunter.models.market_data import TickerData
from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.data_transforms import now_ms
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='INGEST')

# 实时 delta 估算：24h 成交量的 1% 乘以涨跌幅（与回补K线的 10% 估算口径不同）
TICKER_DELTA_RATIO = 0.01

RawMessage = Union[str, bytes, List[Dict[str, Any]]]


class LiveTickerIngestor:
    """
    实时 ticker 接入器

    解析失败的整条消息丢弃并计数 (dropped_messages)；
    单条 ticker 字段无效时跳过并计数 (skipped_tickers)。
    """

    def __init__(self, store: TimeSeriesStore, quote_asset: str = 'USDT',
                 clock: Callable[[], int] = now_ms):
        self.store = store
        self.quote_asset = quote_asset
        self.clock = clock

        self.messages_received = 0
        self.dropped_messages = 0
        self.skipped_tickers = 0
        self.samples_appended = 0

    def handle_message(self, raw: RawMessage) -> int:
        """
        处理一条推送消息

        Returns:
            本条消息写入的样本数
        """
        self.messages_received += 1

        try:
            tickers = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
            if not isinstance(tickers, list):
                raise ValueError(f"消息不是ticker数组: {type(tickers).__name__}")
        except (TypeError, ValueError) as e:
            self.dropped_messages += 1
            log.debug(f"[INGEST] 丢弃无法解析的消息 (累计{self.dropped_messages}): {e}")
            return 0

        timestamp = self.clock()
        appended = 0
        for raw_ticker in tickers:
            ticker = self._parse_ticker(raw_ticker, timestamp)
            if ticker is None:
                continue

            delta = ticker_delta(ticker.base_volume, ticker.price_change_percent)
            if self.store.append(ticker.symbol, ticker.last_price, ticker.base_volume,
                                 delta, ticker.timestamp):
                appended += 1

        self.samples_appended += appended
        return appended

    def _parse_ticker(self, raw_ticker: Any, timestamp: int) -> Optional[TickerData]:
        """解析单条 ticker；不是跟踪币种或字段无效时返回 None"""
        try:
            symbol = raw_ticker['s']
        except (KeyError, TypeError):
            self.skipped_tickers += 1
            return None

        if not isinstance(symbol, str) or not symbol.endswith(self.quote_asset):
            return None
        if not self.store.is_tracked(symbol):
            return None

        try:
            price = float(raw_ticker['c'])
            volume = float(raw_ticker['v'])
        except (KeyError, TypeError, ValueError):
            self.skipped_tickers += 1
            return None

        if not math.isfinite(price) or price <= 0:
            self.skipped_tickers += 1
            return None

        return TickerData(
            symbol=symbol,
            timestamp=timestamp,
            last_price=price,
            base_volume=volume,
            price_change_percent=_parse_percent(raw_ticker.get('P')),
        )

    def get_counters(self) -> Dict[str, int]:
        return {
            'messages_received': self.messages_received,
            'dropped_messages': self.dropped_messages,
            'skipped_tickers': self.skipped_tickers,
            'samples_appended': self.samples_appended,
        }


def ticker_delta(volume: float, price_change_percent: float) -> float:
    """delta = volume * 0.01 * sign(pct) * |pct|，涨跌幅为 0 时按正号处理"""
    sign = 1 if price_change_percent >= 0 else -1
    return volume * TICKER_DELTA_RATIO * sign * abs(price_change_percent)


def _parse_percent(value: Any) -> float:
    """涨跌幅缺失或无法解析时按 0 处理"""
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return 0.0
    return pct if math.isfinite(pct) else 0.0
