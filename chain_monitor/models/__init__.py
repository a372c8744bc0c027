"""数据模型模块"""

from .health_check import (
    HealthResult, Alert, ServiceInfo, StatusSummary, StatusReport, Transition,
    CATEGORY_VALIDATOR, CATEGORY_RPC_NODE, CATEGORY_SERVICE, CATEGORIES,
    SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_GOOD, SEVERITIES, ONLINE_STATUS
)

__all__ = [
    'HealthResult', 'Alert', 'ServiceInfo', 'StatusSummary', 'StatusReport', 'Transition',
    'CATEGORY_VALIDATOR', 'CATEGORY_RPC_NODE', 'CATEGORY_SERVICE', 'CATEGORIES',
    'SEVERITY_CRITICAL', 'SEVERITY_WARNING', 'SEVERITY_GOOD', 'SEVERITIES', 'ONLINE_STATUS'
]
