"""健康检查相关的数据模型"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

# 目标类别
CATEGORY_VALIDATOR = 'validator'
CATEGORY_RPC_NODE = 'rpc-node'
CATEGORY_SERVICE = 'service'
CATEGORIES = (CATEGORY_VALIDATOR, CATEGORY_RPC_NODE, CATEGORY_SERVICE)

# 告警级别
SEVERITY_CRITICAL = 'critical'
SEVERITY_WARNING = 'warning'
SEVERITY_GOOD = 'good'
SEVERITIES = (SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_GOOD)

# 进程管理器中表示服务在线的状态值
ONLINE_STATUS = 'online'


class Transition(Enum):
    """健康状态跳变类型"""
    NONE = 'none'
    DEGRADED = 'degraded'
    RECOVERED = 'recovered'


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class HealthResult:
    """单个目标一次探测的结果，每个周期重新生成"""
    target: str
    category: str
    healthy: bool
    observed_at: datetime = field(default_factory=datetime.now)
    response_time: Optional[float] = None  # 秒
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['observed_at'] = self.observed_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealthResult':
        return cls(
            target=data['target'],
            category=data['category'],
            healthy=bool(data['healthy']),
            observed_at=_parse_time(data.get('observed_at')) or datetime.now(),
            response_time=data.get('response_time'),
            error_message=data.get('error_message'),
            metadata=dict(data.get('metadata') or {})
        )


@dataclass(frozen=True)
class Alert:
    """告警记录，创建后不再修改"""
    title: str
    message: str
    severity: str = SEVERITY_WARNING
    timestamp: datetime = field(default_factory=datetime.now)
    target: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"未知的告警级别: {self.severity}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Alert':
        return cls(
            title=data['title'],
            message=data['message'],
            severity=data.get('severity', SEVERITY_WARNING),
            timestamp=_parse_time(data.get('timestamp')) or datetime.now(),
            target=data.get('target'),
            category=data.get('category')
        )


@dataclass(frozen=True)
class ServiceInfo:
    """进程管理器返回的单个服务信息"""
    name: str
    status: str
    pid: Optional[int] = None
    uptime: Optional[int] = None  # 启动时间戳（毫秒）
    restart_count: int = 0
    memory_bytes: int = 0
    cpu_percent: float = 0.0

    @property
    def is_online(self) -> bool:
        return self.status == ONLINE_STATUS


@dataclass(frozen=True)
class StatusSummary:
    """状态汇总计数"""
    total_validators: int = 0
    healthy_validators: int = 0
    total_rpc_nodes: int = 0
    healthy_rpc_nodes: int = 0
    total_services: int = 0
    online_services: int = 0

    @property
    def all_healthy(self) -> bool:
        return (self.healthy_validators == self.total_validators
                and self.healthy_rpc_nodes == self.total_rpc_nodes
                and self.online_services == self.total_services)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class StatusReport:
    """供仪表盘和机器人使用的只读状态报告"""
    summary: StatusSummary
    details: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'summary': self.summary.to_dict(),
            'details': self.details
        }
