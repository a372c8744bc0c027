"""Telegram机器人测试"""

import pytest
from datetime import datetime

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from chain_monitor.bot import formatters
from chain_monitor.bot.telegram_bot import TelegramBot
from chain_monitor.models.health_check import (
    HealthResult, Alert, StatusReport, StatusSummary, CATEGORY_VALIDATOR,
    CATEGORY_RPC_NODE, CATEGORY_SERVICE, SEVERITY_CRITICAL
)
from chain_monitor.services.status_reporter import StatusReporter
from chain_monitor.services.status_store import StatusStore
from chain_monitor.utils.exceptions import ConfigError


def build_store() -> StatusStore:
    store = StatusStore()
    store.replace_results(
        validators={'node1': HealthResult(target='node1', category=CATEGORY_VALIDATOR, healthy=True),
                    'node2': HealthResult(target='node2', category=CATEGORY_VALIDATOR, healthy=False)},
        rpc_nodes={'Local RPC': HealthResult(target='Local RPC', category=CATEGORY_RPC_NODE,
                                             healthy=True, response_time=0.123)},
        services={'api': HealthResult(target='api', category=CATEGORY_SERVICE, healthy=True,
                                      metadata={'status': 'online', 'memory_bytes': 52428800,
                                                'restart_count': 3})},
        last_check=datetime(2024, 1, 1)
    )
    return store


class TestFormatters:
    """回复文本测试"""

    def setup_method(self):
        """测试前准备"""
        self.reporter = StatusReporter(build_store())

    def test_status(self):
        """测试状态汇总"""
        text = formatters.format_status(self.reporter.report())

        assert '*Validators:* 1/2 healthy' in text
        assert '*RPC Nodes:* 1/1 healthy' in text
        assert '*Services:* 1/1 online' in text
        assert 'Issues detected' in text

    def test_status_all_healthy(self):
        """测试全部健康"""
        report = StatusReport(summary=StatusSummary(), details={}, timestamp=datetime(2024, 1, 1))

        assert 'All systems operational' in formatters.format_status(report)

    def test_alerts(self):
        """测试最近告警最多5条并截断内容"""
        alerts = [Alert(title=f"alert-{i}", message='x' * 150, severity=SEVERITY_CRITICAL).to_dict()
                  for i in range(7)]

        text = formatters.format_alerts(alerts)

        assert text.count('🔴') == 5
        assert 'alert-5' not in text
        assert 'x' * 100 + '...' in text
        assert 'x' * 101 not in text

    def test_no_alerts(self):
        """测试没有告警"""
        assert formatters.format_alerts([]) == '✅ No recent alerts'

    def test_nodes(self):
        """测试节点列表"""
        text = formatters.format_nodes(self.reporter.report())

        assert '✅ node1: Online' in text
        assert '❌ node2: Offline' in text
        assert '✅ Local RPC: Online (123ms)' in text

    def test_services(self):
        """测试服务列表"""
        text = formatters.format_services(self.reporter.report())

        assert '✅ api: online (50MB)' in text
        assert '↻ Restarts: 3' in text

    def test_empty_lists(self):
        """测试没有节点和服务"""
        report = StatusReporter(StatusStore()).report()

        assert 'No validators found' in formatters.format_nodes(report)
        assert 'No RPC nodes found' in formatters.format_nodes(report)
        assert 'No PM2 services found' in formatters.format_services(report)

    def test_start_and_help(self):
        """测试欢迎和帮助信息"""
        assert '`42`' in formatters.format_start(42)
        assert 'every 15 seconds' in formatters.format_help(15, 3001)


class TestTelegramBot:
    """机器人命令测试"""

    def setup_method(self):
        """测试前准备"""
        self.bot = TelegramBot('123:abc', StatusReporter(build_store()))

    def test_missing_token(self):
        """测试缺少token"""
        with pytest.raises(ConfigError, match="TELEGRAM_BOT_TOKEN"):
            TelegramBot('', StatusReporter(StatusStore()))

    def test_known_commands(self):
        """测试已知命令"""
        assert 'System Status Report' in self.bot.handle_command('/status', 42)
        assert 'Validator Nodes' in self.bot.handle_command('/nodes', 42)
        assert 'PM2 Services' in self.bot.handle_command('/services', 42)
        assert 'No recent alerts' in self.bot.handle_command('/alerts', 42)
        assert 'Chain Monitor Help' in self.bot.handle_command('/help', 42)
        assert 'Your Chat ID: `42`' in self.bot.handle_command('/start', 42)

    def test_command_with_bot_suffix(self):
        """测试群组中带机器人名称的命令"""
        assert 'System Status Report' in self.bot.handle_command('/status@chain_monitor_bot', 42)

    def test_unknown_command(self):
        """测试未知命令"""
        assert self.bot.handle_command('/reboot', 42) == formatters.UNKNOWN_COMMAND_TEXT

    def test_plain_text_ignored(self):
        """测试普通消息不回复"""
        assert self.bot.handle_command('hello', 42) is None

    @pytest.mark.asyncio
    async def test_poll_once_replies(self):
        """测试拉取更新并回复命令"""
        sent = []
        offsets = []

        async def get_updates(request):
            offsets.append((await request.json()).get('offset'))
            return web.json_response({'ok': True, 'result': [
                {'update_id': 7, 'message': {'chat': {'id': 42}, 'text': '/status'}},
                {'update_id': 8, 'message': {'chat': {'id': 42}, 'text': 'just chatting'}}
            ]})

        async def send_message(request):
            sent.append(await request.json())
            return web.json_response({'ok': True, 'result': {}})

        app = web.Application()
        app.router.add_post('/bot123:abc/getUpdates', get_updates)
        app.router.add_post('/bot123:abc/sendMessage', send_message)
        server = TestServer(app)
        await server.start_server()
        try:
            self.bot.api_base = str(server.make_url('')).rstrip('/')
            async with aiohttp.ClientSession() as session:
                processed = await self.bot.poll_once(session)
                await self.bot.poll_once(session)
        finally:
            await server.close()

        assert processed == 2
        assert offsets == [None, 9]
        assert len(sent) == 2
        assert sent[0]['chat_id'] == 42
        assert 'System Status Report' in sent[0]['text']

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        """测试token无效时连接失败"""
        async def get_me(request):
            return web.json_response({'ok': False, 'description': 'Unauthorized'}, status=401)

        app = web.Application()
        app.router.add_post('/bot123:abc/getMe', get_me)
        server = TestServer(app)
        await server.start_server()
        try:
            self.bot.api_base = str(server.make_url('')).rstrip('/')
            async with aiohttp.ClientSession() as session:
                with pytest.raises(ConfigError, match="Unauthorized"):
                    await self.bot.connect(session)
        finally:
            await server.close()
