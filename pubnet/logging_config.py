"""
日志配置

为 'pubnet' 命名空间配置日志 (控制台 + 可选文件)。
各模块只使用 logging.getLogger(__name__)，由入口脚本调用 setup_logging。
"""

import logging
import sys
from typing import Optional


def setup_logging(level: int = logging.WARNING, log_file: Optional[str] = None) -> logging.Logger:
    """
    配置 'pubnet' 日志。

    Args:
        level: 日志级别 (logging.DEBUG / logging.INFO ...)
        log_file: 可选，同时写入文件
    """
    logger = logging.getLogger('pubnet')
    logger.setLevel(level)

    # 重复调用时不叠加 handler
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("日志已初始化")
    return logger
