"""聊天机器人模块"""

from .formatters import (
    format_start, format_help, format_status, format_alerts, format_nodes,
    format_services, UNKNOWN_COMMAND_TEXT
)
from .telegram_bot import TelegramBot

__all__ = [
    'TelegramBot',
    'format_start',
    'format_help',
    'format_status',
    'format_alerts',
    'format_nodes',
    'format_services',
    'UNKNOWN_COMMAND_TEXT'
]
