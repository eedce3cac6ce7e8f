"""过期数据清理定时器（内存泄漏保护）"""

import threading
from typing import Callable, Optional

from delta_hunter.store.time_series_store import TimeSeriesStore
from delta_hunter.utils.data_transforms import now_ms
from delta_hunter.utils.log import setup_logging

log = setup_logging(module_prefix='STORE')

MS_PER_MINUTE = 60 * 1000


class CleanupScheduler:
    """每隔固定时间清理超过最大保留时长的样本"""

    def __init__(self, store: TimeSeriesStore,
                 interval_minutes: float = 10,
                 max_history_minutes: int = 1440,
                 clock: Callable[[], int] = now_ms):
        self.store = store
        self.interval_seconds = interval_minutes * 60
        self.max_history_minutes = max_history_minutes
        self.clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> int:
        """执行一次清理，返回删除数量"""
        cutoff = self.clock() - self.max_history_minutes * MS_PER_MINUTE
        return self.store.evict_older_than(cutoff)

    def start(self):
        """启动后台清理线程"""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name='store-cleanup', daemon=True)
        self._thread.start()
        log.info(f"[STORE] 清理定时器已启动 (每{self.interval_seconds / 60:g}分钟一次)")

    def stop(self, timeout: float = 5):
        """停止后台清理线程"""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
            log.info("[STORE] 清理定时器已停止")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                log.error(f"[STORE] 定时清理失败: {e}")
