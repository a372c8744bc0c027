"""Telegram 机器人通知渠道"""

import asyncio
from typing import Dict, Any

import aiohttp

from .base import BaseChannel, SEVERITY_ICONS
from ..models.health_check import Alert, SEVERITY_GOOD
from ..utils.exceptions import AlertConfigError, AlertSendError

TELEGRAM_API_BASE = 'https://api.telegram.org'
MAX_MESSAGE_LENGTH = 4000


def format_alert_message(alert: Alert) -> str:
    """将告警格式化为 Markdown 文本，超长时截断"""
    icon = SEVERITY_ICONS.get(alert.severity, SEVERITY_ICONS['warning'])
    text = f"{icon} *{alert.title}*\n\n{alert.message}\n\n_{alert.timestamp.strftime('%Y-%m-%d %H:%M:%S')}_"

    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[:3900] + '...\n\n_Message truncated_'
    return text


class TelegramChannel(BaseChannel):
    """Telegram 通知渠道

    恢复类告警（good）静默推送，不触发提示音。
    """

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.token = config.get('token', '')
        self.chat_id = config.get('chat_id', '')
        self.api_base = config.get('api_base', TELEGRAM_API_BASE).rstrip('/')

        if self.enabled and not self.validate_config():
            raise AlertConfigError(f"Telegram通知渠道配置无效: {name}", channel_name=name)

    def validate_config(self) -> bool:
        if not self.token:
            self.logger.error(f"Telegram通知渠道 {self.name} 缺少 token 配置")
            return False
        if not self.chat_id:
            self.logger.error(f"Telegram通知渠道 {self.name} 缺少 chat_id 配置")
            return False
        return True

    @property
    def api_url(self) -> str:
        return f'{self.api_base}/bot{self.token}'

    def build_payload(self, alert: Alert) -> Dict[str, Any]:
        return {
            'chat_id': self.chat_id,
            'text': format_alert_message(alert),
            'parse_mode': 'Markdown',
            'disable_notification': alert.severity == SEVERITY_GOOD
        }

    async def deliver(self, alert: Alert) -> bool:
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(f'{self.api_url}/sendMessage',
                                        json=self.build_payload(alert)) as response:
                    body = await response.json(content_type=None)
                    if response.status == 200 and isinstance(body, dict) and body.get('ok'):
                        self.logger.info(f"Telegram通知已发送: {alert.title}")
                        return True

                    description = body.get('description') if isinstance(body, dict) else body
                    self.logger.warning(
                        f"Telegram通知渠道 {self.name} 发送失败 "
                        f"(状态码: {response.status}, 描述: {description})"
                    )
                    return False

        except aiohttp.ClientError as e:
            raise AlertSendError(f"Telegram请求失败: {e}", channel_name=self.name, cause=e)
        except asyncio.TimeoutError as e:
            raise AlertSendError("Telegram请求超时", channel_name=self.name, cause=e)
        except ValueError as e:
            raise AlertSendError(f"Telegram响应不是有效的JSON: {e}", channel_name=self.name, cause=e)
