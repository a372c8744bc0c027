"""工具模块"""

from .exceptions import (
    MonitorError, ConfigError, ProbeError, AlertError, AlertConfigError,
    AlertSendError, PersistenceError, ErrorCode
)
from .config_validator import ConfigValidator
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'MonitorError', 'ConfigError', 'ProbeError', 'AlertError', 'AlertConfigError',
    'AlertSendError', 'PersistenceError', 'ErrorCode', 'ConfigValidator',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
