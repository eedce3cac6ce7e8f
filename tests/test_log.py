# -*- coding: utf-8 -*-
"""彩色日志输出测试"""

import io

import logbook
from colorama import Fore, Style

from delta_hunter.utils.log import ColoredStreamHandler, setup_logging


def test_channel_per_module():
    assert setup_logging(module_prefix='STORE').name == 'DeltaHunter.STORE'
    assert setup_logging().name == 'DeltaHunter'


def test_level_and_module_are_colored():
    handler = ColoredStreamHandler(io.StringIO())
    record = logbook.LogRecord('DeltaHunter.STORE', logbook.WARNING, '[STORE] 清理完成')

    formatted = handler.format(record)

    assert f"{Fore.YELLOW}WARNING{Style.RESET_ALL}" in formatted
    assert f"{Fore.YELLOW}DeltaHunter.STORE{Style.RESET_ALL}" in formatted
    assert '[STORE] 清理完成' in formatted


def test_unknown_module_falls_back_to_white():
    handler = ColoredStreamHandler(io.StringIO())
    record = logbook.LogRecord('DeltaHunter.OTHER', logbook.INFO, 'msg')

    assert f"{Fore.WHITE}DeltaHunter.OTHER{Style.RESET_ALL}" in handler.format(record)


def test_messages_reach_handler():
    with logbook.TestHandler() as captured:
        setup_logging(module_prefix='ENGINE').info('[ENGINE] 引擎就绪')

    assert captured.has_info('[ENGINE] 引擎就绪', channel='DeltaHunter.ENGINE')
