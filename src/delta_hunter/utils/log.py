"""日志工具"""

import re
import sys
import threading

from logbook import Logger, StreamHandler, lookup_level
from colorama import init, Fore, Back, Style

# 初始化colorama以支持跨平台彩色输出
init()

ROOT_CHANNEL = 'DeltaHunter'

_handler_lock = threading.Lock()
_active_handler = None

# 匹配时间格式 (如 2024-01-01 12:34:56 或 12:34:56)
_TIME_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}|\d{2}:\d{2}:\d{2})')


class ColoredStreamHandler(StreamHandler):
    """支持彩色输出的StreamHandler"""

    # 日志级别颜色映射
    LEVEL_COLORS = {
        'TRACE': Fore.CYAN,
        'DEBUG': Fore.BLUE,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    # 模块前缀颜色映射
    MODULE_COLORS = {
        'STORE': Fore.YELLOW,
        'ANALYSIS': Fore.MAGENTA,
        'STRATEGY': Fore.MAGENTA,
        'INGEST': Fore.CYAN,
        'MONITOR': Fore.BLUE,
        'ENGINE': Fore.GREEN,
    }

    def format(self, record):
        """格式化日志记录，添加颜色"""
        formatted = super().format(record)

        level_color = self.LEVEL_COLORS.get(record.level_name, '')

        # 从channel中提取模块名 (如 DeltaHunter.STORE -> STORE)
        module_color = ''
        if record.channel:
            parts = record.channel.split('.')
            if len(parts) > 1:
                module_color = self.MODULE_COLORS.get(parts[-1], Fore.WHITE)

        if level_color:
            colored_level = f"{level_color}{record.level_name}{Style.RESET_ALL}"
            formatted = formatted.replace(record.level_name, colored_level, 1)

        if module_color:
            colored_channel = f"{module_color}{record.channel}{Style.RESET_ALL}"
            formatted = formatted.replace(record.channel, colored_channel, 1)

        # 时间灰色显示
        return _TIME_PATTERN.sub(f"{Style.DIM}\\1{Style.RESET_ALL}", formatted)


def setup_logging(level='INFO', module_prefix: str = None, use_colors: bool = True) -> Logger:
    """
    设置日志配置并返回logger实例

    输出处理器只在进程内推送一次，后续调用只返回对应频道的Logger。

    Args:
        level: 日志级别
        module_prefix: 模块前缀 (STORE / ANALYSIS / STRATEGY / INGEST / MONITOR / ENGINE)
        use_colors: 是否使用彩色输出
    """
    global _active_handler

    with _handler_lock:
        if _active_handler is None:
            if use_colors:
                handler = ColoredStreamHandler(sys.stdout, level=level)
            else:
                handler = StreamHandler(sys.stdout, level=level)
            handler.push_application()
            _active_handler = handler

    logger_name = f'{ROOT_CHANNEL}.{module_prefix}' if module_prefix else ROOT_CHANNEL
    return Logger(logger_name)


def set_log_level(level) -> None:
    """调整已推送处理器的日志级别（配置加载后调用）"""
    with _handler_lock:
        if _active_handler is not None:
            _active_handler.level = lookup_level(level)
