"""通知渠道基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from ..models.health_check import Alert, SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_GOOD
from ..utils.log_manager import get_logger

SEVERITY_ICONS = {
    SEVERITY_CRITICAL: '🔴',
    SEVERITY_WARNING: '🟡',
    SEVERITY_GOOD: '🟢'
}


class BaseChannel(ABC):
    """通知渠道抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化通知渠道

        Args:
            name: 渠道名称
            config: 渠道配置参数
        """
        self.name = name
        self.config = config
        self.enabled = bool(config.get('enabled', True))
        self.channel_type = self.__class__.__name__.replace('Channel', '').lower()
        self.logger = get_logger(f'channel.{self.channel_type}.{self.name}')

    @abstractmethod
    async def deliver(self, alert: Alert) -> bool:
        """
        发送一条告警

        Args:
            alert: 告警记录

        Returns:
            bool: 发送是否成功
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def get_timeout(self) -> float:
        """
        获取单次发送的超时时间

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 5)
