"""状态仪表盘

只读的 HTTP 接口，返回状态报告、最近告警和最近日志。
"""

from typing import Optional, Callable, List

from aiohttp import web

from ..services.status_reporter import StatusReporter
from ..utils.log_manager import get_logger, log_manager

DEFAULT_ALERTS_LIMIT = 50
LOG_LINES_LIMIT = 100


class DashboardServer:
    """状态仪表盘服务器"""

    def __init__(self,
                 reporter: StatusReporter,
                 host: str = '0.0.0.0',
                 port: int = 3001,
                 alerts_limit: int = DEFAULT_ALERTS_LIMIT,
                 log_reader: Optional[Callable[[int], List[str]]] = None):
        """
        初始化仪表盘

        Args:
            reporter: 状态报告器
            host: 监听地址
            port: 监听端口
            alerts_limit: /api/alerts 未指定 limit 时返回的条数
            log_reader: 读取最近日志行的函数，默认读取日志管理器的日志文件
        """
        self.reporter = reporter
        self.host = host
        self.port = port
        self.alerts_limit = alerts_limit
        self.log_reader = log_reader or log_manager.read_recent_lines
        self.logger = get_logger('web.dashboard')
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/', self.handle_index)
        app.router.add_get('/api/status', self.handle_status)
        app.router.add_get('/api/alerts', self.handle_alerts)
        app.router.add_get('/api/logs', self.handle_logs)
        return app

    async def start(self):
        """启动HTTP服务"""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self.logger.info(f"状态仪表盘已启动: http://{self.host}:{self.port}")

    async def stop(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self.logger.info("状态仪表盘已停止")

    def _error_response(self, error: Exception) -> web.Response:
        self.logger.error(f"仪表盘请求处理失败: {error}", exc_info=True)
        return web.json_response({'error': str(error)}, status=500)

    async def handle_index(self, request: web.Request) -> web.Response:
        return web.json_response({
            'name': 'Chain Monitor',
            'endpoints': ['/api/status', '/api/alerts', '/api/logs']
        })

    async def handle_status(self, request: web.Request) -> web.Response:
        try:
            return web.json_response(self.reporter.report().to_dict())
        except Exception as e:
            return self._error_response(e)

    async def handle_alerts(self, request: web.Request) -> web.Response:
        try:
            try:
                limit = int(request.query.get('limit', ''))
            except ValueError:
                limit = 0
            if limit <= 0:
                limit = self.alerts_limit
            return web.json_response(self.reporter.recent_alerts(limit))
        except Exception as e:
            return self._error_response(e)

    async def handle_logs(self, request: web.Request) -> web.Response:
        try:
            return web.json_response(self.log_reader(LOG_LINES_LIMIT))
        except Exception as e:
            return self._error_response(e)
