"""测试数据模型"""

import pytest
from datetime import datetime

from chain_monitor.models.health_check import (
    HealthResult, Alert, ServiceInfo, StatusSummary, StatusReport,
    CATEGORY_VALIDATOR, CATEGORY_SERVICE, SEVERITY_WARNING, SEVERITY_CRITICAL
)


class TestHealthResult:
    """测试HealthResult数据模型"""

    def test_create_health_result(self):
        """测试创建检查结果"""
        result = HealthResult(
            target="node1",
            category=CATEGORY_VALIDATOR,
            healthy=True,
            response_time=0.5
        )

        assert result.target == "node1"
        assert result.category == CATEGORY_VALIDATOR
        assert result.healthy is True
        assert result.response_time == 0.5
        assert result.error_message is None
        assert isinstance(result.observed_at, datetime)
        assert result.metadata == {}

    def test_result_is_immutable(self):
        """测试结果不可修改"""
        result = HealthResult(target="node1", category=CATEGORY_VALIDATOR, healthy=True)

        with pytest.raises(AttributeError):
            result.healthy = False

    def test_dict_round_trip(self):
        """测试字典转换"""
        observed_at = datetime(2024, 1, 2, 3, 4, 5)
        result = HealthResult(
            target="api",
            category=CATEGORY_SERVICE,
            healthy=False,
            observed_at=observed_at,
            error_message="服务状态: stopped",
            metadata={'status': 'stopped', 'pid': None}
        )

        data = result.to_dict()
        assert data['observed_at'] == '2024-01-02T03:04:05'
        assert data['metadata']['status'] == 'stopped'
        assert HealthResult.from_dict(data) == result


class TestAlert:
    """测试Alert数据模型"""

    def test_default_severity(self):
        """测试默认告警级别"""
        alert = Alert(title="Test Alert", message="hello")

        assert alert.severity == SEVERITY_WARNING
        assert alert.target is None
        assert isinstance(alert.timestamp, datetime)

    def test_dict_round_trip(self):
        """测试字典转换"""
        alert = Alert(
            title="VALIDATOR Node Down",
            message="node1 has gone offline.",
            severity=SEVERITY_CRITICAL,
            timestamp=datetime(2024, 5, 6, 7, 8, 9),
            target="node1",
            category=CATEGORY_VALIDATOR
        )

        data = alert.to_dict()
        assert data['timestamp'] == '2024-05-06T07:08:09'
        assert Alert.from_dict(data) == alert

    def test_invalid_severity_rejected(self):
        """测试未知告警级别被拒绝"""
        with pytest.raises(ValueError, match="fatal"):
            Alert(title="Test Alert", message="hello", severity="fatal")

        with pytest.raises(ValueError):
            Alert.from_dict({'title': "Test Alert", 'message': "hello", 'severity': "info"})


class TestServiceInfo:
    """测试ServiceInfo数据模型"""

    def test_is_online(self):
        """测试在线判断"""
        assert ServiceInfo(name="api", status="online", pid=1, uptime=None).is_online
        assert not ServiceInfo(name="api", status="stopped", pid=None, uptime=None).is_online


class TestStatusSummary:
    """测试StatusSummary和StatusReport"""

    def test_all_healthy(self):
        """测试全部健康判断"""
        summary = StatusSummary(total_validators=2, healthy_validators=2,
                                total_rpc_nodes=1, healthy_rpc_nodes=1,
                                total_services=3, online_services=3)
        assert summary.all_healthy

        degraded = StatusSummary(total_services=3, online_services=2)
        assert not degraded.all_healthy

    def test_empty_summary_is_healthy(self):
        """测试没有任何目标时视为全部健康"""
        assert StatusSummary().all_healthy

    def test_report_to_dict(self):
        """测试报告转换为字典"""
        report = StatusReport(
            summary=StatusSummary(total_validators=1, healthy_validators=1),
            details={'validators': {}},
            timestamp=datetime(2024, 1, 1)
        )

        data = report.to_dict()
        assert data['timestamp'] == '2024-01-01T00:00:00'
        assert data['summary']['total_validators'] == 1
        assert data['summary']['online_services'] == 0
        assert data['details'] == {'validators': {}}
