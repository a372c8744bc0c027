"""Slack 通知渠道"""

import asyncio
from typing import Dict, Any

import aiohttp

from .base import BaseChannel
from ..models.health_check import Alert, SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_GOOD
from ..utils.exceptions import AlertConfigError, AlertSendError

SEVERITY_COLORS = {
    SEVERITY_CRITICAL: 'danger',
    SEVERITY_WARNING: 'warning',
    SEVERITY_GOOD: 'good'
}


class SlackChannel(BaseChannel):
    """Slack Incoming Webhook 通知渠道，告警级别映射为附件颜色"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.webhook_url = config.get('webhook_url', '')

        if self.enabled and not self.validate_config():
            raise AlertConfigError(f"Slack通知渠道配置无效: {name}", channel_name=name)

    def validate_config(self) -> bool:
        if not self.webhook_url or not self.webhook_url.startswith(('http://', 'https://')):
            self.logger.error(f"Slack通知渠道 {self.name} 缺少有效的 webhook_url")
            return False
        return True

    def build_payload(self, alert: Alert) -> Dict[str, Any]:
        return {
            'attachments': [{
                'color': SEVERITY_COLORS.get(alert.severity, 'warning'),
                'title': alert.title,
                'text': alert.message,
                'ts': int(alert.timestamp.timestamp())
            }]
        }

    async def deliver(self, alert: Alert) -> bool:
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.webhook_url, json=self.build_payload(alert)) as response:
                    if 200 <= response.status < 300:
                        self.logger.info(f"Slack通知已发送: {alert.title}")
                        return True

                    response_text = await response.text()
                    self.logger.warning(
                        f"Slack通知渠道 {self.name} 收到错误响应 "
                        f"(状态码: {response.status}, 响应: {response_text[:200]})"
                    )
                    return False

        except aiohttp.ClientError as e:
            raise AlertSendError(f"Slack请求失败: {e}", channel_name=self.name, cause=e)
        except asyncio.TimeoutError as e:
            raise AlertSendError("Slack请求超时", channel_name=self.name, cause=e)
