"""自定义异常类"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 探测错误 (3000-3999)
    PROBE_COMMAND_ERROR = 3000
    PROBE_CONNECTION_ERROR = 3001
    PROBE_TIMEOUT = 3002
    PROBE_PARSE_ERROR = 3003

    # 告警错误 (4000-4999)
    ALERT_CONFIG_ERROR = 4000
    ALERT_SEND_ERROR = 4001

    # 状态持久化错误 (6000-6999)
    PERSISTENCE_WRITE_ERROR = 6000
    PERSISTENCE_READ_ERROR = 6001


class MonitorError(Exception):
    """监控系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': ''.join(traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )) if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {self.cause})"
        return error_msg


class ConfigError(MonitorError):
    """配置相关异常，启动阶段不可恢复"""

    def __init__(self, message: str, config_path: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        kwargs.setdefault('recoverable', False)
        super().__init__(message, kwargs.pop('error_code', ErrorCode.CONFIG_VALIDATION_ERROR),
                         details, **kwargs)


class ProbeError(MonitorError):
    """单个目标的探测失败，调用方会将其转换为不健康的检查结果"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PROBE_CONNECTION_ERROR,
        target: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if target:
            details['target'] = target
        super().__init__(message, error_code, details, **kwargs)


class AlertError(MonitorError):
    """告警相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ALERT_SEND_ERROR,
        channel_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if channel_name:
            details['channel_name'] = channel_name
        super().__init__(message, error_code, details, **kwargs)


class AlertConfigError(AlertError):
    """通知渠道配置异常，该渠道不会被启用"""

    def __init__(self, message: str, channel_name: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.ALERT_CONFIG_ERROR,
            channel_name=channel_name,
            recoverable=False,
            **kwargs
        )


class AlertSendError(AlertError):
    """通知发送失败"""

    def __init__(self, message: str, channel_name: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            kwargs.pop('error_code', ErrorCode.ALERT_SEND_ERROR),
            channel_name=channel_name,
            recoverable=True,
            **kwargs
        )


class PersistenceError(MonitorError):
    """状态快照读写失败"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PERSISTENCE_WRITE_ERROR,
        path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if path:
            details['path'] = path
        super().__init__(message, error_code, details, **kwargs)
