"""仪表盘模块"""

from .dashboard import DashboardServer, DEFAULT_ALERTS_LIMIT, LOG_LINES_LIMIT

__all__ = [
    'DashboardServer',
    'DEFAULT_ALERTS_LIMIT',
    'LOG_LINES_LIMIT'
]
