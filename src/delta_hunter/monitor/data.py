"""
监控数据模型 - 定义诊断接口需要的数据结构
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from delta_hunter.models.strategy_data import SymbolStatus


class SystemStatus(Enum):
    STARTING = "starting"
    WARMING = "warming"
    READY = "ready"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SignalHistory:
    """信号历史记录"""
    timestamp: datetime
    symbol: str
    direction: str
    price: float
    confidence: float
    reasons: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'symbol': self.symbol,
            'direction': self.direction,
            'price': self.price,
            'confidence': self.confidence,
            'reasons': list(self.reasons),
        }


@dataclass
class MonitorSnapshot:
    """监控快照 - 引擎当前状态的完整视图"""
    timestamp: datetime
    system_status: SystemStatus
    coins: List[SymbolStatus]
    total_records: int
    lookback_options: List[int]
    total_signals: int
    analyses_run: int
    samples_evicted: int
    ingestion: Dict[str, int] = field(default_factory=dict)
    last_warmup: Optional[Dict[str, Any]] = None

    @property
    def ready(self) -> bool:
        return self.system_status is SystemStatus.READY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ready': self.ready,
            'status': self.system_status.value,
            'coins': [c.to_dict() for c in self.coins],
            'totalCoins': len(self.coins),
            'totalRecords': self.total_records,
            'lookbackOptions': list(self.lookback_options),
            'totalSignals': self.total_signals,
            'analysesRun': self.analyses_run,
            'samplesEvicted': self.samples_evicted,
            'ingestion': dict(self.ingestion),
            'lastWarmup': self.last_warmup,
        }
