"""通知渠道注册与创建"""

from typing import Dict, Any, List, Type

from .base import BaseChannel
from .email_channel import EmailChannel
from .slack_channel import SlackChannel
from .telegram_channel import TelegramChannel
from .webhook_channel import WebhookChannel
from ..utils.log_manager import get_logger

CHANNEL_TYPES: Dict[str, Type[BaseChannel]] = {
    'email': EmailChannel,
    'webhook': WebhookChannel,
    'slack': SlackChannel,
    'telegram': TelegramChannel
}

logger = get_logger('alerts.registry')


def build_channels(alert_configs: List[Dict[str, Any]]) -> List[BaseChannel]:
    """
    根据告警配置创建通知渠道

    配置不完整的渠道不会被启用，只记录错误日志，不影响其他渠道和整个进程。

    Args:
        alert_configs: 告警配置列表

    Returns:
        List[BaseChannel]: 成功创建的渠道
    """
    channels = []
    for index, config in enumerate(alert_configs):
        channel_type = str(config.get('type', '')).lower()
        name = config.get('name') or f'{channel_type or "channel"}_{index}'

        channel_class = CHANNEL_TYPES.get(channel_type)
        if channel_class is None:
            logger.warning(f"不支持的通知渠道类型: {channel_type} ({name})")
            continue

        try:
            channels.append(channel_class(name, config))
        except Exception as e:
            logger.error(f"初始化通知渠道 {name} 失败，该渠道不会启用: {e}")

    return channels
