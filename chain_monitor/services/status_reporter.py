"""状态报告器

从状态存储实时计算汇总信息，供仪表盘和聊天机器人读取，不修改任何状态
"""

from datetime import datetime
from typing import Dict, List, Any

from .status_store import StatusStore
from ..models.health_check import StatusReport, StatusSummary, ONLINE_STATUS


class StatusReporter:
    """状态报告器"""

    def __init__(self, store: StatusStore):
        self.store = store

    def summarize(self) -> StatusSummary:
        """每次调用都重新计数，不做缓存"""
        validators = self.store.validators.values()
        rpc_nodes = self.store.rpc_nodes.values()
        services = self.store.services.values()

        return StatusSummary(
            total_validators=len(validators),
            healthy_validators=sum(1 for r in validators if r.healthy),
            total_rpc_nodes=len(rpc_nodes),
            healthy_rpc_nodes=sum(1 for r in rpc_nodes if r.healthy),
            total_services=len(services),
            online_services=sum(1 for r in services
                                if r.metadata.get('status') == ONLINE_STATUS)
        )

    def report(self) -> StatusReport:
        """生成状态报告

        Returns:
            StatusReport: 包含汇总计数和完整状态明细
        """
        return StatusReport(
            timestamp=datetime.now(),
            summary=self.summarize(),
            details=self.store.to_dict()
        )

    def recent_alerts(self, limit: int = 50) -> List[Dict[str, Any]]:
        """最近的告警记录，最新的在前"""
        return [alert.to_dict() for alert in self.store.get_recent_alerts(limit)]

    def is_all_healthy(self) -> bool:
        return self.summarize().all_healthy
