"""状态存储测试"""

import json
import os
import tempfile
from datetime import datetime
from unittest.mock import patch

from chain_monitor.models.health_check import (
    HealthResult, Alert, CATEGORY_VALIDATOR, CATEGORY_RPC_NODE, CATEGORY_SERVICE
)
from chain_monitor.services.status_store import StatusStore, MAX_ALERTS


def make_result(target: str, category: str = CATEGORY_VALIDATOR, healthy: bool = True) -> HealthResult:
    return HealthResult(target=target, category=category, healthy=healthy,
                        observed_at=datetime(2024, 1, 1, 12, 0, 0),
                        metadata={'source': 'console', 'last_output': 'ok'})


class TestStatusStore:
    """状态存储测试类"""

    def setup_method(self):
        """测试前准备"""
        self.temp_dir = tempfile.mkdtemp()
        self.status_file = os.path.join(self.temp_dir, 'status.json')

    def teardown_method(self):
        """测试后清理"""
        for name in os.listdir(self.temp_dir):
            os.unlink(os.path.join(self.temp_dir, name))
        os.rmdir(self.temp_dir)

    def test_empty_store(self):
        """测试初始状态"""
        store = StatusStore()

        assert store.validators == {}
        assert store.rpc_nodes == {}
        assert store.services == {}
        assert store.last_check is None
        assert store.alerts == []

    def test_get_result_by_category(self):
        """测试按类别读取结果"""
        store = StatusStore()
        store.replace_results(
            validators={'node1': make_result('node1')},
            rpc_nodes={'node12': make_result('node12', CATEGORY_RPC_NODE)},
            services={},
            last_check=datetime.now()
        )

        assert store.get_result(CATEGORY_VALIDATOR, 'node1').target == 'node1'
        assert store.get_result(CATEGORY_RPC_NODE, 'node12').target == 'node12'
        assert store.get_result(CATEGORY_SERVICE, 'node1') is None

    def test_add_alert_newest_first(self):
        """测试告警按时间倒序保存"""
        store = StatusStore()
        store.add_alert(Alert(title="first", message=""))
        store.add_alert(Alert(title="second", message=""))

        assert [a.title for a in store.alerts] == ['second', 'first']
        assert [a.title for a in store.get_recent_alerts(1)] == ['second']

    def test_alert_history_capped(self):
        """测试告警数量上限，超出时丢弃最旧的"""
        store = StatusStore()
        for i in range(MAX_ALERTS + 1):
            store.add_alert(Alert(title=f"alert-{i}", message=""))

        assert len(store.alerts) == MAX_ALERTS
        assert store.alerts[0].title == f"alert-{MAX_ALERTS}"
        assert store.alerts[-1].title == "alert-1"
        assert all(a.title != "alert-0" for a in store.alerts)

    def test_replace_results_commits_alerts(self):
        """测试替换结果时一并提交周期内的告警并保持上限"""
        store = StatusStore()
        for i in range(MAX_ALERTS):
            store.add_alert(Alert(title=f"old-{i}", message=""))

        store.replace_results({'node1': make_result('node1', healthy=False)}, {}, {}, datetime.now(),
                              alerts=[Alert(title="first", message=""), Alert(title="second", message="")])

        assert len(store.alerts) == MAX_ALERTS
        assert [a.title for a in store.alerts[:3]] == ['second', 'first', f"old-{MAX_ALERTS - 1}"]
        assert store.validators['node1'].healthy is False

    def test_snapshot_is_independent(self):
        """测试快照与原存储互不影响"""
        store = StatusStore()
        store.replace_results({'node1': make_result('node1')}, {}, {}, datetime.now())

        snapshot = store.snapshot()
        store.replace_results({}, {}, {}, datetime.now())

        assert 'node1' in snapshot.validators
        assert snapshot.persistence_file is None

    def test_save_and_load_round_trip(self):
        """测试持久化后重新加载内容一致"""
        store = StatusStore(self.status_file)
        store.replace_results(
            validators={'node1': make_result('node1')},
            rpc_nodes={'Local RPC': make_result('Local RPC', CATEGORY_RPC_NODE, healthy=False)},
            services={'api': make_result('api', CATEGORY_SERVICE)},
            last_check=datetime(2024, 1, 1, 12, 0, 30)
        )
        store.add_alert(Alert(title="RPC Endpoint Down", message="down",
                              timestamp=datetime(2024, 1, 1, 12, 0, 31)))

        assert store.save() is True

        loaded = StatusStore(self.status_file)
        assert loaded == store

    def test_persisted_layout(self):
        """测试持久化文件的结构"""
        store = StatusStore(self.status_file)
        store.replace_results({'node1': make_result('node1')}, {}, {}, datetime(2024, 1, 1))
        store.save()

        with open(self.status_file, 'r', encoding='utf-8') as f:
            data = json.load(f)

        assert set(data.keys()) == {'validators', 'rpc_nodes', 'services', 'last_check', 'alerts'}
        assert data['last_check'] == '2024-01-01T00:00:00'
        assert data['validators']['node1']['healthy'] is True

    def test_save_leaves_no_temp_files(self):
        """测试原子写入后不残留临时文件"""
        store = StatusStore(self.status_file)
        store.save()
        store.save()

        assert os.listdir(self.temp_dir) == ['status.json']

    def test_save_failure_keeps_previous_file(self):
        """测试写入失败时原文件保持不变"""
        store = StatusStore(self.status_file)
        store.replace_results({'node1': make_result('node1')}, {}, {}, datetime.now())
        store.save()

        with open(self.status_file, 'r', encoding='utf-8') as f:
            original = f.read()

        store.replace_results({}, {}, {}, datetime.now())
        with patch('chain_monitor.services.status_store.os.replace', side_effect=OSError("磁盘已满")):
            assert store.save() is False

        with open(self.status_file, 'r', encoding='utf-8') as f:
            assert f.read() == original
        assert os.listdir(self.temp_dir) == ['status.json']

    def test_save_without_file(self):
        """测试未配置文件时不保存"""
        assert StatusStore().save() is False

    def test_load_missing_file(self):
        """测试状态文件不存在时为空状态"""
        store = StatusStore(self.status_file)

        assert store.validators == {}
        assert store.load() is False

    def test_load_corrupt_file(self):
        """测试状态文件损坏时为空状态"""
        with open(self.status_file, 'w', encoding='utf-8') as f:
            f.write('{not json')

        store = StatusStore(self.status_file)

        assert store.validators == {}
        assert store.alerts == []
        assert store.last_check is None

    def test_load_truncates_alerts(self):
        """测试加载时告警数量也受上限约束"""
        alerts = [Alert(title=f"a{i}", message="").to_dict() for i in range(MAX_ALERTS + 20)]
        with open(self.status_file, 'w', encoding='utf-8') as f:
            json.dump({'alerts': alerts}, f)

        store = StatusStore(self.status_file)

        assert len(store.alerts) == MAX_ALERTS
        assert store.alerts[0].title == 'a0'

    def test_load_rejects_unknown_severity(self):
        """测试状态文件中的告警级别无效时为空状态"""
        with open(self.status_file, 'w', encoding='utf-8') as f:
            json.dump({'alerts': [{'title': 'x', 'message': '', 'severity': 'fatal'}]}, f)

        store = StatusStore(self.status_file)

        assert store.alerts == []
        assert store.load() is False
