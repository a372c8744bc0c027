"""状态报告器测试"""

from datetime import datetime

from chain_monitor.models.health_check import (
    HealthResult, Alert, CATEGORY_VALIDATOR, CATEGORY_RPC_NODE, CATEGORY_SERVICE
)
from chain_monitor.services.status_reporter import StatusReporter
from chain_monitor.services.status_store import StatusStore


def service_result(name: str, status: str) -> HealthResult:
    return HealthResult(target=name, category=CATEGORY_SERVICE, healthy=status == 'online',
                        metadata={'source': 'supervisor', 'status': status})


class TestStatusReporter:
    """状态报告器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.store = StatusStore()
        self.store.replace_results(
            validators={
                'node1': HealthResult(target='node1', category=CATEGORY_VALIDATOR, healthy=True),
                'node2': HealthResult(target='node2', category=CATEGORY_VALIDATOR, healthy=False)
            },
            rpc_nodes={
                'Local RPC': HealthResult(target='Local RPC', category=CATEGORY_RPC_NODE, healthy=True)
            },
            services={
                'api': service_result('api', 'online'),
                'worker': service_result('worker', 'online'),
                'cron': service_result('cron', 'stopped')
            },
            last_check=datetime(2024, 1, 1)
        )
        self.reporter = StatusReporter(self.store)

    def test_summary_counts(self):
        """测试汇总计数"""
        summary = self.reporter.summarize()

        assert summary.total_validators == 2
        assert summary.healthy_validators == 1
        assert summary.total_rpc_nodes == 1
        assert summary.healthy_rpc_nodes == 1
        assert summary.total_services == 3
        assert summary.online_services == 2
        assert not self.reporter.is_all_healthy()

    def test_online_counts_status_not_health(self):
        """测试在线服务数按状态字段统计"""
        self.store.replace_results({}, {}, {
            'odd': HealthResult(target='odd', category=CATEGORY_SERVICE, healthy=True,
                                metadata={'status': 'launching'})
        }, None)

        assert self.reporter.summarize().online_services == 0

    def test_report_details(self):
        """测试报告包含完整明细"""
        report = self.reporter.report()

        assert set(report.details['validators'].keys()) == {'node1', 'node2'}
        assert report.details['last_check'] == '2024-01-01T00:00:00'
        assert report.details['services']['cron']['metadata']['status'] == 'stopped'

    def test_report_is_idempotent(self):
        """测试连续两次报告结果相同且不修改状态"""
        first = self.reporter.report()
        second = self.reporter.report()

        assert first.summary == second.summary
        assert first.details == second.details
        assert self.store.alerts == []

    def test_counts_are_fresh(self):
        """测试每次调用都重新计数"""
        assert self.reporter.summarize().total_validators == 2

        self.store.replace_results({}, {}, {}, None)

        assert self.reporter.summarize().total_validators == 0
        assert self.reporter.is_all_healthy()

    def test_recent_alerts(self):
        """测试最近告警"""
        for i in range(3):
            self.store.add_alert(Alert(title=f"alert-{i}", message="m"))

        alerts = self.reporter.recent_alerts(2)

        assert [a['title'] for a in alerts] == ['alert-2', 'alert-1']
