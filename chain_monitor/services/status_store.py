"""状态存储模块

保存每个目标最近一次的检查结果和有限长度的告警历史，并负责状态快照的持久化
"""

import copy
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any

from ..models.health_check import (
    HealthResult, Alert, CATEGORY_VALIDATOR, CATEGORY_RPC_NODE, CATEGORY_SERVICE
)
from ..utils.exceptions import PersistenceError, ErrorCode
from ..utils.log_manager import get_logger

MAX_ALERTS = 100


class StatusStore:
    """状态存储

    由应用程序创建一次并显式传递给调度器、通知分发器和状态报告器。
    """

    def __init__(self, persistence_file: Optional[str] = None):
        """初始化状态存储

        Args:
            persistence_file: 状态快照文件路径，为None时不持久化
        """
        self.validators: Dict[str, HealthResult] = {}
        self.rpc_nodes: Dict[str, HealthResult] = {}
        self.services: Dict[str, HealthResult] = {}
        self.last_check: Optional[datetime] = None
        self.alerts: List[Alert] = []  # 最新的在前
        self.persistence_file = persistence_file
        self.logger = get_logger('services.status_store')

        if self.persistence_file:
            self.load()

    def category_map(self, category: str) -> Dict[str, HealthResult]:
        """返回指定类别的结果字典"""
        if category == CATEGORY_VALIDATOR:
            return self.validators
        if category == CATEGORY_RPC_NODE:
            return self.rpc_nodes
        if category == CATEGORY_SERVICE:
            return self.services
        raise ValueError(f"未知的目标类别: {category}")

    def get_result(self, category: str, target: str) -> Optional[HealthResult]:
        return self.category_map(category).get(target)

    def snapshot(self) -> 'StatusStore':
        """返回一个不关联持久化文件的深拷贝"""
        clone = StatusStore()
        clone.validators = copy.deepcopy(self.validators)
        clone.rpc_nodes = copy.deepcopy(self.rpc_nodes)
        clone.services = copy.deepcopy(self.services)
        clone.last_check = self.last_check
        clone.alerts = list(self.alerts)
        return clone

    def replace_results(self,
                        validators: Dict[str, HealthResult],
                        rpc_nodes: Dict[str, HealthResult],
                        services: Dict[str, HealthResult],
                        last_check: Optional[datetime],
                        alerts: Optional[List[Alert]] = None):
        """一次性替换全部检查结果，并按发生顺序提交本周期的告警

        调用期间没有挂起点，读取方只会看到完整的旧结果和旧告警，
        或完整的新结果和新告警。
        """
        self.validators = dict(validators)
        self.rpc_nodes = dict(rpc_nodes)
        self.services = dict(services)
        self.last_check = last_check
        if alerts:
            self.alerts = (list(reversed(alerts)) + self.alerts)[:MAX_ALERTS]

    def add_alert(self, alert: Alert):
        """在告警列表最前面插入告警，只保留最近 MAX_ALERTS 条"""
        self.alerts.insert(0, alert)
        if len(self.alerts) > MAX_ALERTS:
            del self.alerts[MAX_ALERTS:]

    def get_recent_alerts(self, limit: Optional[int] = None) -> List[Alert]:
        if limit is None:
            return list(self.alerts)
        return self.alerts[:max(limit, 0)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'validators': {name: r.to_dict() for name, r in self.validators.items()},
            'rpc_nodes': {name: r.to_dict() for name, r in self.rpc_nodes.items()},
            'services': {name: r.to_dict() for name, r in self.services.items()},
            'last_check': self.last_check.isoformat() if self.last_check else None,
            'alerts': [alert.to_dict() for alert in self.alerts]
        }

    def update_from_dict(self, data: Dict[str, Any]):
        """用快照数据覆盖当前内容"""
        validators = {name: HealthResult.from_dict(r)
                      for name, r in (data.get('validators') or {}).items()}
        rpc_nodes = {name: HealthResult.from_dict(r)
                     for name, r in (data.get('rpc_nodes') or {}).items()}
        services = {name: HealthResult.from_dict(r)
                    for name, r in (data.get('services') or {}).items()}
        alerts = [Alert.from_dict(a) for a in (data.get('alerts') or [])][:MAX_ALERTS]
        last_check = data.get('last_check')

        self.replace_results(validators, rpc_nodes, services,
                             datetime.fromisoformat(last_check) if last_check else None)
        self.alerts = alerts

    def save(self) -> bool:
        """保存状态快照

        先写入同目录下的临时文件再原子替换，读取方不会看到写了一半的文件。
        失败时只记录日志，内存中的状态仍然有效，下个周期会再次尝试。

        Returns:
            bool: 是否保存成功
        """
        if not self.persistence_file:
            return False

        try:
            self._write_snapshot()
            return True
        except PersistenceError as e:
            self.logger.error(f"保存状态失败: {e.format_error()}")
            return False

    def _write_snapshot(self):
        target = Path(self.persistence_file)
        tmp_path = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f'.{target.name}.', suffix='.tmp',
                                            dir=str(target.parent))
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"写入状态文件失败: {e}", ErrorCode.PERSISTENCE_WRITE_ERROR,
                                   path=str(target), cause=e)
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def load(self) -> bool:
        """从状态文件加载快照，文件不存在或损坏时保持空状态

        Returns:
            bool: 是否加载成功
        """
        if not self.persistence_file or not os.path.exists(self.persistence_file):
            return False

        try:
            with open(self.persistence_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("状态文件根节点必须是对象")
            self.update_from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            error = PersistenceError(f"加载状态失败: {e}", ErrorCode.PERSISTENCE_READ_ERROR,
                                     path=self.persistence_file, cause=e)
            self.logger.error(error.format_error())
            return False

        self.logger.info(
            f"从 {self.persistence_file} 加载了状态数据: "
            f"{len(self.validators)} 个验证节点, {len(self.rpc_nodes)} 个RPC节点, "
            f"{len(self.services)} 个服务, {len(self.alerts)} 条告警"
        )
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatusStore):
            return NotImplemented
        return (self.validators == other.validators
                and self.rpc_nodes == other.rpc_nodes
                and self.services == other.services
                and self.last_check == other.last_check
                and self.alerts == other.alerts)
