"""邮件通知渠道"""

import html
import re
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Dict, Any, List, Union

import aiosmtplib

from .base import BaseChannel
from ..models.health_check import Alert
from ..utils.exceptions import AlertConfigError, AlertSendError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def _split_addresses(value: Union[str, List[str], None]) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(',') if part.strip()]
    return list(value)


class EmailChannel(BaseChannel):
    """邮件通知渠道，通过 SMTP 发送 HTML 邮件"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)

        # SMTP配置
        self.smtp_server = config.get('smtp_server', '')
        self.smtp_port = config.get('smtp_port', 587)
        self.username = config.get('username', '')
        self.password = config.get('password', '')
        self.use_ssl = config.get('use_ssl', False)
        self.start_tls = config.get('start_tls', not self.use_ssl)

        # 邮件配置
        self.from_email = config.get('from_email') or self.username
        self.from_name = config.get('from_name', 'Chain Monitor')
        self.to_emails = _split_addresses(config.get('to_emails'))
        self.subject_prefix = config.get('subject_prefix', '[Chain Monitor]')

        if self.enabled and not self.validate_config():
            raise AlertConfigError(f"邮件通知渠道配置无效: {name}", channel_name=name)

    def validate_config(self) -> bool:
        if not self.smtp_server:
            self.logger.error(f"邮件通知渠道 {self.name} 缺少SMTP服务器配置")
            return False

        if not self.username or not self.password:
            self.logger.error(f"邮件通知渠道 {self.name} 缺少SMTP认证信息")
            return False

        if not self.to_emails:
            self.logger.error(f"邮件通知渠道 {self.name} 缺少收件人邮箱配置")
            return False

        for email in self.to_emails + [self.from_email]:
            if not EMAIL_PATTERN.match(email or ''):
                self.logger.error(f"邮件通知渠道 {self.name} 邮箱格式无效: {email}")
                return False

        if not isinstance(self.smtp_port, int) or self.smtp_port <= 0:
            self.logger.error(f"邮件通知渠道 {self.name} SMTP端口无效: {self.smtp_port}")
            return False

        if self.use_ssl and self.start_tls:
            self.logger.error(f"邮件通知渠道 {self.name} 不能同时启用SSL和STARTTLS")
            return False

        return True

    def create_message(self, alert: Alert) -> MIMEText:
        """构造告警邮件"""
        body = (
            f"<h2>{html.escape(alert.title)}</h2>\n"
            f"<p><strong>Severity:</strong> {alert.severity.upper()}</p>\n"
            f"<p><strong>Time:</strong> {alert.timestamp.isoformat()}</p>\n"
            f"<p><strong>Message:</strong></p>\n"
            f"<pre>{html.escape(alert.message)}</pre>\n"
        )

        message = MIMEText(body, 'html', 'utf-8')
        message['From'] = formataddr((self.from_name, self.from_email))
        message['To'] = ', '.join(self.to_emails)
        message['Subject'] = f"{self.subject_prefix} {alert.title}"
        return message

    async def deliver(self, alert: Alert) -> bool:
        try:
            await aiosmtplib.send(
                self.create_message(alert),
                hostname=self.smtp_server,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                use_tls=self.use_ssl,
                start_tls=self.start_tls,
                timeout=self.get_timeout()
            )
        except aiosmtplib.SMTPException as e:
            raise AlertSendError(f"SMTP发送失败: {e}", channel_name=self.name, cause=e)
        except OSError as e:
            raise AlertSendError(f"SMTP连接失败: {e}", channel_name=self.name, cause=e)

        self.logger.info(f"邮件通知已发送: {alert.title} -> {', '.join(self.to_emails)}")
        return True
