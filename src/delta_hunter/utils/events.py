"""
轻量级事件系统 - 用于解耦引擎组件与监控之间的通信
支持同步事件发布，线程安全
"""

import functools
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Callable, Any, Optional

from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='MONITOR')


@dataclass
class Event:
    """事件数据结构"""
    type: str
    data: Dict[str, Any]
    timestamp: datetime
    source: Optional[str] = None


class EventBus:
    """线程安全的事件总线"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}
        self._lock = threading.RLock()

    def subscribe(self, event_type: str, callback: Callable[[Event], None]):
        """订阅事件类型

        Args:
            event_type: 事件类型名称
            callback: 回调函数，接收 Event 对象
        """
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)
            log.debug(f"[EVENT] 订阅事件: {event_type}")

    def publish(self, event_type: str, data: Dict[str, Any], source: str = None):
        """发布事件（同步）

        订阅者抛出的异常只记录日志，不影响其他订阅者。
        """
        event = Event(
            type=event_type,
            data=data,
            timestamp=datetime.now(),
            source=source
        )

        with self._lock:
            subscribers = list(self._subscribers.get(event_type, []))

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                log.error(f"[EVENT] 事件处理异常 {event_type}: {e}")


def publish_event(event_type: str, source: str = None):
    """事件发布装饰器

    用于实例方法：总线取自 ``self.event_bus``，返回值（非None时）作为事件数据发布。

    使用示例:
    @publish_event(EventTypes.ANALYSIS_COMPLETED, source='AnalysisCoordinator')
    def _emit_analysis_completed(self, result):
        return {'lookback_minutes': result.lookback_minutes}
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            result = func(self, *args, **kwargs)

            bus = getattr(self, 'event_bus', None)
            if result is not None and bus is not None:
                bus.publish(event_type, result, source)

            return result
        return wrapper
    return decorator


class EventTypes:
    """标准事件类型定义"""

    # 数据事件
    DATA_EVICTED = "data_evicted"
    WARMUP_COMPLETED = "warmup_completed"

    # 分析事件
    ANALYSIS_COMPLETED = "analysis_completed"
    SIGNAL_GENERATED = "signal_generated"

    # 系统事件
    SYSTEM_STARTED = "system_started"
    SYSTEM_STOPPED = "system_stopped"
