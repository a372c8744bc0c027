"""Telegram 聊天机器人

通过 getUpdates 长轮询接收命令，回复当前状态。告警推送由 TelegramChannel 负责。
"""

import asyncio
from typing import Dict, Any, Optional, List, Callable

import aiohttp

from . import formatters
from ..alerts.telegram_channel import TELEGRAM_API_BASE
from ..services.status_reporter import StatusReporter
from ..utils.exceptions import ConfigError, AlertError, ErrorCode
from ..utils.log_manager import get_logger

RETRY_DELAY = 5


class TelegramBot:
    """Telegram 命令机器人"""

    def __init__(self,
                 token: str,
                 reporter: StatusReporter,
                 poll_timeout: int = 30,
                 api_base: str = TELEGRAM_API_BASE,
                 check_interval: float = 30,
                 dashboard_port: int = 3001):
        """
        初始化机器人

        Args:
            token: Bot token
            reporter: 状态报告器
            poll_timeout: 长轮询等待时间（秒）
            api_base: Bot API 地址
            check_interval: 检查间隔，用于帮助信息
            dashboard_port: 仪表盘端口，用于帮助信息

        Raises:
            ConfigError: 缺少 token
        """
        if not token:
            raise ConfigError("TELEGRAM_BOT_TOKEN 未配置")

        self.token = token
        self.reporter = reporter
        self.poll_timeout = poll_timeout
        self.api_base = api_base.rstrip('/')
        self.check_interval = check_interval
        self.dashboard_port = dashboard_port
        self.username: Optional[str] = None
        self.is_running = False
        self._offset: Optional[int] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.logger = get_logger('bot.telegram')

        self._commands: Dict[str, Callable[[Any], str]] = {
            '/start': formatters.format_start,
            '/status': lambda chat_id: formatters.format_status(self.reporter.report()),
            '/alerts': lambda chat_id: formatters.format_alerts(
                self.reporter.recent_alerts(formatters.ALERTS_SHOWN)),
            '/nodes': lambda chat_id: formatters.format_nodes(self.reporter.report()),
            '/services': lambda chat_id: formatters.format_services(self.reporter.report()),
            '/help': lambda chat_id: formatters.format_help(self.check_interval, self.dashboard_port)
        }

    @property
    def api_url(self) -> str:
        return f'{self.api_base}/bot{self.token}'

    def handle_command(self, text: str, chat_id: Any) -> Optional[str]:
        """
        生成命令的回复文本

        Args:
            text: 消息文本
            chat_id: 消息来源会话

        Returns:
            Optional[str]: 回复文本，非命令消息返回None
        """
        if not text or not text.startswith('/'):
            return None

        command = text.split()[0].split('@')[0].lower()
        handler = self._commands.get(command)
        if handler is None:
            return formatters.UNKNOWN_COMMAND_TEXT

        try:
            return handler(chat_id)
        except Exception as e:
            self.logger.error(f"处理命令 {command} 失败: {e}", exc_info=True)
            return f"❌ Error handling {command}: {e}"

    async def _call(self, session: aiohttp.ClientSession, method: str,
                    payload: Optional[Dict[str, Any]] = None) -> Any:
        async with session.post(f'{self.api_url}/{method}', json=payload or {}) as response:
            body = await response.json(content_type=None)

        if not isinstance(body, dict) or not body.get('ok'):
            description = body.get('description') if isinstance(body, dict) else body
            raise AlertError(f"Telegram接口 {method} 调用失败: {description}",
                             ErrorCode.ALERT_SEND_ERROR, channel_name='telegram_bot')
        return body.get('result')

    async def connect(self, session: aiohttp.ClientSession) -> Dict[str, Any]:
        """
        验证 token 并获取机器人信息

        Raises:
            ConfigError: 无法连接 Telegram 或 token 无效
        """
        try:
            me = await self._call(session, 'getMe') or {}
        except (aiohttp.ClientError, asyncio.TimeoutError, AlertError, ValueError) as e:
            raise ConfigError(f"无法连接Telegram: {e}", cause=e)

        self.username = me.get('username')
        self.logger.info(f"Telegram机器人已连接: @{self.username}")
        return me

    async def send_message(self, session: aiohttp.ClientSession, chat_id: Any, text: str):
        await self._call(session, 'sendMessage', {
            'chat_id': chat_id,
            'text': text,
            'parse_mode': 'Markdown'
        })

    async def poll_once(self, session: aiohttp.ClientSession) -> int:
        """
        拉取一批更新并逐条回复

        Returns:
            int: 处理的更新数量
        """
        payload: Dict[str, Any] = {'timeout': self.poll_timeout, 'allowed_updates': ['message']}
        if self._offset is not None:
            payload['offset'] = self._offset

        updates: List[Dict[str, Any]] = await self._call(session, 'getUpdates', payload) or []
        for update in updates:
            self._offset = update['update_id'] + 1

            message = update.get('message') or {}
            chat_id = (message.get('chat') or {}).get('id')
            reply = self.handle_command(message.get('text', ''), chat_id)
            if reply is None or chat_id is None:
                continue

            try:
                await self.send_message(session, chat_id, reply)
            except (aiohttp.ClientError, asyncio.TimeoutError, AlertError, ValueError) as e:
                self.logger.error(f"回复消息失败: {e}")

        return len(updates)

    async def run(self):
        """长轮询循环，直到调用 stop()"""
        self.is_running = True
        self._stop_event = asyncio.Event()
        timeout = aiohttp.ClientTimeout(total=self.poll_timeout + 10)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            await self.connect(session)
            self.logger.info("Telegram机器人开始接收命令")

            while self.is_running:
                try:
                    await self.poll_once(session)
                except (aiohttp.ClientError, asyncio.TimeoutError, AlertError, ValueError) as e:
                    self.logger.error(f"获取Telegram更新失败: {e}")
                    try:
                        await asyncio.wait_for(self._stop_event.wait(), timeout=RETRY_DELAY)
                    except asyncio.TimeoutError:
                        pass

        self.logger.info("Telegram机器人已停止")

    async def stop(self):
        self.is_running = False
        if self._stop_event:
            self._stop_event.set()
