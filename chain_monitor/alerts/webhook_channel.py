"""Webhook 通知渠道"""

import asyncio
import json
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from .base import BaseChannel
from ..models.health_check import Alert
from ..utils.exceptions import AlertConfigError, AlertSendError


class WebhookChannel(BaseChannel):
    """Webhook 通知渠道，以 JSON 形式 POST 告警内容"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.url = config.get('url', '')
        self.method = config.get('method', 'POST').upper()
        self.headers = {'Content-Type': 'application/json'}
        self.headers.update(config.get('headers') or {})
        self.template = config.get('template', '')

        if self.enabled and not self.validate_config():
            raise AlertConfigError(f"Webhook通知渠道配置无效: {name}", channel_name=name)

    def validate_config(self) -> bool:
        if not self.url:
            self.logger.error(f"Webhook通知渠道 {self.name} 缺少URL配置")
            return False

        parsed_url = urlparse(self.url)
        if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
            self.logger.error(f"Webhook通知渠道 {self.name} URL格式无效: {self.url}")
            return False

        if self.method not in ('POST', 'PUT', 'PATCH'):
            self.logger.error(f"Webhook通知渠道 {self.name} 不支持的HTTP方法: {self.method}")
            return False

        if self.template and not self.template.strip():
            self.logger.error(f"Webhook通知渠道 {self.name} 模板不能为空")
            return False

        return True

    async def deliver(self, alert: Alert) -> bool:
        request_data = self._prepare_request_data(alert)
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(self.method, self.url, headers=self.headers,
                                           **request_data) as response:
                    if 200 <= response.status < 300:
                        self.logger.info(f"Webhook通知已发送: {alert.title}")
                        return True

                    response_text = await response.text()
                    self.logger.warning(
                        f"Webhook通知渠道 {self.name} 收到错误响应 "
                        f"(状态码: {response.status}, 响应: {response_text[:200]})"
                    )
                    return False

        except aiohttp.ClientError as e:
            raise AlertSendError(f"Webhook请求失败: {e}", channel_name=self.name, cause=e)
        except asyncio.TimeoutError as e:
            raise AlertSendError("Webhook请求超时", channel_name=self.name, cause=e)

    def _prepare_request_data(self, alert: Alert) -> Dict[str, Any]:
        if not self.template:
            return {'json': alert.to_dict()}

        rendered = self.render_template(self.template, alert)
        try:
            return {'json': json.loads(rendered)}
        except json.JSONDecodeError:
            return {'data': rendered}

    def render_template(self, template_str: str, alert: Alert) -> str:
        """
        渲染 {{variable}} 形式的消息模板

        Args:
            template_str: 模板字符串
            alert: 告警记录

        Returns:
            str: 渲染结果

        Raises:
            AlertSendError: JSON 模板渲染后不是合法 JSON
        """
        template_vars = {
            'title': alert.title,
            'message': alert.message,
            'severity': alert.severity,
            'timestamp': alert.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            'target': alert.target or '',
            'category': alert.category or ''
        }

        is_json_template = template_str.strip().startswith('{') and template_str.strip().endswith('}')

        rendered = template_str
        for key, value in template_vars.items():
            safe_value = str(value)
            if is_json_template:
                # json.dumps 负责转义，去掉首尾引号后嵌入模板
                safe_value = json.dumps(safe_value, ensure_ascii=False)[1:-1]
            rendered = rendered.replace(f'{{{{{key}}}}}', safe_value)

        if is_json_template:
            try:
                json.loads(rendered)
            except json.JSONDecodeError as e:
                raise AlertSendError(f"渲染后的JSON格式无效: {e}", channel_name=self.name, cause=e)

        return rendered
