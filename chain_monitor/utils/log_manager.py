"""
日志管理器模块

所有模块的日志记录器都挂在 ``chain_monitor`` 根记录器之下，由应用程序在启动时
统一配置控制台输出、文件输出和日志轮转。
"""

import logging
import logging.handlers
import sys
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

ROOT_LOGGER_NAME = 'chain_monitor'


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器

    负责：
    - 控制台和文件两种输出
    - 日志级别配置
    - 基于文件大小的日志轮转
    - 为仪表盘读取最近的日志行
    """

    def __init__(self):
        self._format = '[%(asctime)s] [%(levelname)s] %(name)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'
        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True
        self._handlers: List[logging.Handler] = []

    @property
    def log_file(self) -> Optional[str]:
        return self._log_file

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志系统并重新安装处理器

        Args:
            config: 日志配置字典，可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_file: 日志文件路径，为空表示不写文件
                - max_file_size: 单个日志文件最大字节数
                - backup_count: 轮转保留的文件数量
                - enable_console: 是否输出到控制台
                - format: 日志格式

        Raises:
            ValueError: 日志级别无效
        """
        if 'log_level' in config:
            level_str = str(config['log_level']).upper()
            if level_str not in LogLevel.__members__:
                raise ValueError(f"无效的日志级别: {level_str}")
            self._log_level = LogLevel[level_str]

        if 'log_file' in config:
            self._log_file = config['log_file'] or None
        self._max_file_size = config.get('max_file_size', self._max_file_size)
        self._backup_count = config.get('backup_count', self._backup_count)
        self._enable_console = config.get('enable_console', self._enable_console)
        self._format = config.get('format', self._format)

        self._install_handlers()

    def _install_handlers(self) -> None:
        """按当前配置重建根记录器的处理器"""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        self.cleanup()

        formatter = logging.Formatter(self._format, datefmt=self._date_format)

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self._handlers.append(console_handler)

        if self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            self._handlers.append(file_handler)

        for handler in self._handlers:
            handler.setLevel(self._log_level.value)
            root.addHandler(handler)

        root.setLevel(self._log_level.value)
        root.propagate = False

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取 chain_monitor 下的子日志记录器

        Args:
            name: 日志记录器名称（相对名称）

        Returns:
            日志记录器实例
        """
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
            return logging.getLogger(name)
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def set_level(self, level: LogLevel) -> None:
        """设置全局日志级别"""
        self._log_level = level
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level.value)
        for handler in self._handlers:
            handler.setLevel(level.value)

    def read_recent_lines(self, limit: int = 100) -> List[str]:
        """
        读取日志文件最后若干行，最新的在前

        Args:
            limit: 最多返回的行数

        Returns:
            日志行列表，未配置日志文件或文件不存在时返回空列表
        """
        if not self._log_file or not Path(self._log_file).exists():
            return []

        with open(self._log_file, 'r', encoding='utf-8', errors='replace') as f:
            lines = deque((line.rstrip('\n') for line in f if line.strip()), maxlen=limit)

        return list(reversed(lines))

    def get_log_stats(self) -> Dict[str, Any]:
        """获取日志配置信息"""
        return {
            'log_level': self._log_level.name,
            'log_file': self._log_file,
            'console_logging_enabled': self._enable_console,
            'max_file_size': self._max_file_size,
            'backup_count': self._backup_count
        }

    def cleanup(self) -> None:
        """移除并关闭已安装的处理器"""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers.clear()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器的便捷函数"""
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
