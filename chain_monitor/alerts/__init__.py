"""告警模块"""

from .base import BaseChannel, SEVERITY_ICONS
from .dispatcher import NotificationDispatcher, create_alert
from .email_channel import EmailChannel
from .registry import CHANNEL_TYPES, build_channels
from .slack_channel import SlackChannel
from .telegram_channel import TelegramChannel
from .webhook_channel import WebhookChannel

__all__ = [
    'BaseChannel',
    'SEVERITY_ICONS',
    'NotificationDispatcher',
    'create_alert',
    'EmailChannel',
    'WebhookChannel',
    'SlackChannel',
    'TelegramChannel',
    'CHANNEL_TYPES',
    'build_channels'
]
