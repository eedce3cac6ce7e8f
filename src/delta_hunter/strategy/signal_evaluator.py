"""
三重门信号评估器 (Trinity Protocol)
流动性扫荡 + CVD 背离确认 + 风险收益校验，只在三者同时成立时给出方向性交易设置。

每次评估相互独立、无状态；所有"无信号"情况都是正常返回 (direction = NONE)，
通过 reasons 与 confidence_score 区分，不抛异常。
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from delta_hunter.models.market_data import Sample
from delta_hunter.models.strategy_data import TradeDirection, TradeSetup
from delta_hunter.utils.data_transforms import now_ms

# 策略参数
MIN_CONFIDENCE_SCORE = 80
RISK_REWARD_RATIO = 3
STOP_LOSS_BUFFER = 0.005        # 止损缓冲 0.5%
MAX_VOLATILITY_THRESHOLD = 0.15  # 止盈距离超过 15% 视为波动过大

# 数据充足性
MIN_HISTORY = 50
MIN_EXTREMES_HISTORY = 20
MIN_EXTREMES_SAMPLES = 10
EXTREMES_PERIOD_MINUTES = 240

# 扫荡检测
SWEEP_LOOKBACK = 10
SWEEP_TOLERANCE = 0.002  # 0.2%

# 各关卡的置信度
SWEEP_SCORE = 40
STRONG_CVD_SCORE = 35
WEAK_CVD_SCORE = 15
CVD_CONTRADICTION_PENALTY = -20
RISK_REWARD_SCORE = 25
STRONG_CVD_THRESHOLD = 30


@dataclass(frozen=True)
class PriceExtremes:
    """周期内的最低/最高价及其时间"""
    low: float
    high: float
    low_timestamp: int
    high_timestamp: int


@dataclass(frozen=True)
class LiquiditySweep:
    """流动性扫荡检测结果"""
    detected: bool
    direction: TradeDirection
    sweep_level: float


@dataclass(frozen=True)
class RiskReward:
    """止损/止盈计算结果"""
    stop_loss: float
    take_profit: float
    ratio: float
    valid: bool


NO_SWEEP = LiquiditySweep(detected=False, direction=TradeDirection.NONE, sweep_level=0.0)


class SignalEvaluator:
    """信号评估器 - 纯函数集合，无需实例化"""

    @staticmethod
    def evaluate_position(symbol: str, current_price: float, cvd_score: float,
                          history: Sequence[Sample], now: Optional[int] = None) -> TradeSetup:
        """
        评估交易设置

        Args:
            symbol: 币种
            current_price: 当前价格（即入场价）
            cvd_score: CVD 背离分数 (-100 ~ +100)
            history: 完整的样本序列
            now: 当前毫秒时间戳，缺省取系统时间

        Returns:
            TradeSetup；direction 为 NONE 时 confidence_score / reasons 仍保留诊断信息
        """
        no_signal = TradeSetup(
            symbol=symbol,
            direction=TradeDirection.NONE,
            confidence_score=0,
            reasons=[],
            entry_price=current_price,
        )

        # 关卡0：数据充足性
        if len(history) < MIN_HISTORY:
            return no_signal

        if now is None:
            now = now_ms()

        # 关卡1：价格极值 + 流动性扫荡
        extremes = SignalEvaluator.find_price_extremes(history, now)
        if extremes is None:
            return no_signal

        sweep = SignalEvaluator.detect_liquidity_sweep(history, extremes, current_price)
        if not sweep.detected:
            return no_signal

        confidence = SWEEP_SCORE
        reasons: List[str] = [f"检测到流动性扫荡: {sweep.direction.value} @ {sweep.sweep_level:.4f}"]

        # 关卡2：CVD 确认
        confidence += SignalEvaluator._score_cvd(sweep.direction, cvd_score, reasons)

        # 关卡3：风险收益
        risk = SignalEvaluator.calculate_risk_reward(sweep.direction, current_price, sweep.sweep_level)
        if not risk.valid:
            reasons.append("波动率过高，交易取消")
            return replace(no_signal, confidence_score=confidence, reasons=reasons)

        confidence += RISK_REWARD_SCORE
        reasons.append(f"风险收益比: {risk.ratio}:1")

        confidence = max(0, min(100, confidence))
        if confidence < MIN_CONFIDENCE_SCORE:
            return replace(no_signal, confidence_score=confidence, reasons=reasons)

        return TradeSetup(
            symbol=symbol,
            direction=sweep.direction,
            confidence_score=confidence,
            reasons=reasons,
            entry_price=current_price,
            stop_loss=risk.stop_loss,
            take_profit=risk.take_profit,
            risk_reward_ratio=risk.ratio,
        )

    @staticmethod
    def _score_cvd(direction: TradeDirection, cvd_score: float, reasons: List[str]) -> int:
        """CVD 方向确认；矛盾时只扣分不记录原因"""
        if direction is TradeDirection.LONG:
            if cvd_score > STRONG_CVD_THRESHOLD:
                reasons.append(f"CVD 背离: 检测到暗中买入 (分数: {cvd_score})")
                return STRONG_CVD_SCORE
            if cvd_score > 0:
                reasons.append(f"CVD: 轻微买方压力 (分数: {cvd_score})")
                return WEAK_CVD_SCORE
            return CVD_CONTRADICTION_PENALTY

        if cvd_score < -STRONG_CVD_THRESHOLD:
            reasons.append(f"CVD 背离: 检测到暗中卖出 (分数: {cvd_score})")
            return STRONG_CVD_SCORE
        if cvd_score < 0:
            reasons.append(f"CVD: 轻微卖方压力 (分数: {cvd_score})")
            return WEAK_CVD_SCORE
        return CVD_CONTRADICTION_PENALTY

    @staticmethod
    def find_price_extremes(history: Sequence[Sample], now: int,
                            period_minutes: int = EXTREMES_PERIOD_MINUTES) -> Optional[PriceExtremes]:
        """最近 period_minutes 内的最低/最高价；数据不足时返回 None"""
        if len(history) < MIN_EXTREMES_HISTORY:
            return None

        cutoff = now - period_minutes * 60 * 1000
        relevant = [s for s in history if s.timestamp >= cutoff]
        if len(relevant) < MIN_EXTREMES_SAMPLES:
            return None

        low_sample = relevant[0]
        high_sample = relevant[0]
        for sample in relevant[1:]:
            if sample.price < low_sample.price:
                low_sample = sample
            if sample.price > high_sample.price:
                high_sample = sample

        return PriceExtremes(
            low=low_sample.price,
            high=high_sample.price,
            low_timestamp=low_sample.timestamp,
            high_timestamp=high_sample.timestamp,
        )

    @staticmethod
    def detect_liquidity_sweep(history: Sequence[Sample], extremes: PriceExtremes,
                               current_price: float) -> LiquiditySweep:
        """
        流动性扫荡（假突破）检测

        最近 10 个样本中有价格跌破低点且当前价重新站回低点之上 -> LONG；
        有价格突破高点且当前价回落到高点之下 -> SHORT。
        """
        if len(history) < 5:
            return NO_SWEEP

        recent = history[-SWEEP_LOOKBACK:]

        went_below_low = any(s.price < extremes.low * (1 - SWEEP_TOLERANCE) for s in recent)
        if went_below_low and current_price > extremes.low * (1 + SWEEP_TOLERANCE):
            return LiquiditySweep(detected=True, direction=TradeDirection.LONG, sweep_level=extremes.low)

        went_above_high = any(s.price > extremes.high * (1 + SWEEP_TOLERANCE) for s in recent)
        if went_above_high and current_price < extremes.high * (1 - SWEEP_TOLERANCE):
            return LiquiditySweep(detected=True, direction=TradeDirection.SHORT, sweep_level=extremes.high)

        return NO_SWEEP

    @staticmethod
    def calculate_risk_reward(direction: TradeDirection, entry_price: float,
                              sweep_level: float) -> RiskReward:
        """
        按扫荡位置设置止损，固定 3:1 风险收益比计算止盈

        止盈距离入场价超过 15% 时判定无效。
        """
        buffer = entry_price * STOP_LOSS_BUFFER

        if direction is TradeDirection.LONG:
            stop_loss = sweep_level - buffer
            take_profit = entry_price + (entry_price - stop_loss) * RISK_REWARD_RATIO
        else:
            stop_loss = sweep_level + buffer
            take_profit = entry_price - (stop_loss - entry_price) * RISK_REWARD_RATIO

        # 入场价无效（<= 0）时无法衡量止盈距离，直接判定无效
        valid = entry_price > 0 and abs(take_profit - entry_price) / entry_price <= MAX_VOLATILITY_THRESHOLD
        return RiskReward(
            stop_loss=stop_loss,
            take_profit=take_profit,
            ratio=RISK_REWARD_RATIO,
            valid=valid,
        )
