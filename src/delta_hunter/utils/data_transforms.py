"""
数据转换纯函数
所有的数据格式转换逻辑都应该是纯函数
"""

import time
from typing import Any, List, Sequence

import arrow
import pandas as pd

from delta_hunter.models.market_data import KLINE_COLUMNS, Sample

# 回补K线的 delta 估算比例：成交量的 10%，方向取收盘价变化的符号
KLINE_DELTA_RATIO = 0.1


class KlineFormatError(ValueError):
    """K线批次格式错误（列数不足或数值无法解析）"""


def now_ms() -> int:
    """当前毫秒时间戳"""
    return int(time.time() * 1000)


def format_timestamp(timestamp_ms: int, tz: str = 'UTC') -> str:
    """将毫秒时间戳格式化为可读字符串"""
    return arrow.get(timestamp_ms / 1000).to(tz).format('YYYY-MM-DD HH:mm:ss')


def klines_to_dataframe(klines: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """将 REST kline 数组列表转换为 DataFrame（只保留前7列，数值化）"""
    if not klines:
        return pd.DataFrame(columns=KLINE_COLUMNS)

    rows = []
    for i, kline in enumerate(klines):
        if len(kline) < len(KLINE_COLUMNS):
            raise KlineFormatError(f"第{i}根K线字段不足: {len(kline)} < {len(KLINE_COLUMNS)}")
        rows.append(list(kline[:len(KLINE_COLUMNS)]))

    df = pd.DataFrame(rows, columns=KLINE_COLUMNS)
    try:
        df = df.apply(pd.to_numeric)
    except (TypeError, ValueError) as e:
        raise KlineFormatError(f"K线数值解析失败: {e}") from e

    if df[['close', 'volume', 'close_time']].isna().any().any():
        raise KlineFormatError("K线包含缺失的收盘价/成交量/收盘时间")

    return df


def klines_to_samples(symbol: str, klines: Sequence[Sequence[Any]]) -> List[Sample]:
    """
    将 kline 批次转换为 Sample 列表

    delta = volume * 0.1 * sign(close[i] - close[i-1])，
    第一根K线没有前一根，按变化为 0 处理（delta 非负）。
    """
    df = klines_to_dataframe(klines)
    if df.empty:
        return []

    change = df['close'].diff().fillna(0.0)
    magnitude = df['volume'] * KLINE_DELTA_RATIO
    delta = magnitude.where(change >= 0, -magnitude)

    return [
        Sample(
            symbol=symbol,
            timestamp=int(close_time),
            price=float(close),
            volume=float(volume),
            delta=float(d),
        )
        for close_time, close, volume, d in zip(df['close_time'], df['close'], df['volume'], delta)
    ]
