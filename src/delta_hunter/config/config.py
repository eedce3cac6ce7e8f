"""引擎配置管理"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml
from dotenv import load_dotenv

from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='ENGINE')

ENV_PREFIX = 'DELTA_HUNTER_'

# 分析请求允许的回看范围（分钟）
MIN_LOOKBACK_MINUTES = 1
MAX_LOOKBACK_MINUTES = 1440


@dataclass
class EngineConfig:
    """引擎配置"""
    # 最多跟踪的币种数量（内存保护）
    max_tracked_coins: int = 150

    # 内存中保留的最长历史（分钟），24小时
    max_history_minutes: int = 1440

    # 清理定时器间隔（分钟）
    cleanup_interval_minutes: int = 10

    # 预热回补：1分钟K线条数、请求间隔、进度日志间隔
    kline_limit: int = 1440
    warmup_request_delay_ms: int = 50
    warmup_progress_interval: int = 10

    # 前端可选的回看周期（分钟）
    lookback_options: List[int] = field(default_factory=lambda: [5, 15, 30, 60, 240, 1440])

    # 只跟踪该计价资产的交易对
    quote_asset: str = 'USDT'

    log_level: str = 'INFO'

    @classmethod
    def create(cls, config_path: Optional[Union[str, Path]] = None) -> 'EngineConfig':
        """创建配置实例：默认值 <- config.yaml <- DELTA_HUNTER_* 环境变量"""
        load_dotenv()

        if config_path is None:
            # 默认配置文件路径 - 当前工作目录下的 config.yaml
            config_path = Path.cwd() / "config.yaml"

        config_data = {}
        path = Path(config_path)
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        else:
            log.warning(f"[CONFIG] 配置文件不存在，使用默认配置: {path}")

        engine_data = config_data.get('engine', {})
        warmup_data = config_data.get('warmup', {})
        logging_data = config_data.get('logging', {})

        defaults = cls()
        config = cls(
            max_tracked_coins=int(engine_data.get('max_tracked_coins', defaults.max_tracked_coins)),
            max_history_minutes=int(engine_data.get('max_history_minutes', defaults.max_history_minutes)),
            cleanup_interval_minutes=int(engine_data.get('cleanup_interval_minutes', defaults.cleanup_interval_minutes)),
            kline_limit=int(warmup_data.get('kline_limit', defaults.kline_limit)),
            warmup_request_delay_ms=int(warmup_data.get('request_delay_ms', defaults.warmup_request_delay_ms)),
            warmup_progress_interval=int(warmup_data.get('progress_interval', defaults.warmup_progress_interval)),
            lookback_options=[int(v) for v in engine_data.get('lookback_options', defaults.lookback_options)],
            quote_asset=str(engine_data.get('quote_asset', defaults.quote_asset)),
            log_level=str(logging_data.get('level', defaults.log_level)).upper(),
        )
        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self):
        """环境变量覆盖 (DELTA_HUNTER_MAX_TRACKED_COINS 等)"""
        for name in ('max_tracked_coins', 'max_history_minutes', 'cleanup_interval_minutes',
                     'kline_limit', 'warmup_request_delay_ms', 'warmup_progress_interval'):
            value = os.getenv(ENV_PREFIX + name.upper())
            if value:
                setattr(self, name, int(value))

        quote_asset = os.getenv(ENV_PREFIX + 'QUOTE_ASSET')
        if quote_asset:
            self.quote_asset = quote_asset.upper()

        log_level = os.getenv(ENV_PREFIX + 'LOG_LEVEL')
        if log_level:
            self.log_level = log_level.upper()

    @property
    def warmup_request_delay_seconds(self) -> float:
        return self.warmup_request_delay_ms / 1000
