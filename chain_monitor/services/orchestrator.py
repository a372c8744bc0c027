"""健康检查调度模块

按固定间隔执行检查周期：探测全部目标、检测状态跳变、分发告警、更新并持久化状态。
同一时间只会有一个周期在运行。
"""

import asyncio
import re
import time
from datetime import datetime
from typing import Dict, Any, List, Optional, Iterable, Callable, Awaitable

from .status_store import StatusStore
from .transition_detector import classify
from ..alerts.dispatcher import NotificationDispatcher, create_alert
from ..models.health_check import (
    HealthResult, Alert, Transition, CATEGORIES, CATEGORY_VALIDATOR, CATEGORY_RPC_NODE,
    CATEGORY_SERVICE
)
from ..probes.base import RpcEndpointProbe
from ..probes.console_probe import ConsoleProbe
from ..probes.factory import probe_factory
from ..probes.supervisor_probe import SupervisorProbe
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

_TRAILING_NUMBER = re.compile(r'(\d+)$')


class TargetClassifier:
    """把控制台会话划分为验证节点或RPC节点

    优先使用显式名单；配置了 validator_max_ordinal 时按会话名末尾序号划分；
    否则归入默认类别。
    """

    def __init__(self,
                 validators: Optional[Iterable[str]] = None,
                 rpc_nodes: Optional[Iterable[str]] = None,
                 validator_max_ordinal: Optional[int] = None,
                 default_category: str = CATEGORY_VALIDATOR):
        if default_category not in (CATEGORY_VALIDATOR, CATEGORY_RPC_NODE):
            raise ConfigError(f"default_category 必须是 {CATEGORY_VALIDATOR} 或 {CATEGORY_RPC_NODE}")
        self.validators = set(validators or [])
        self.rpc_nodes = set(rpc_nodes or [])
        self.validator_max_ordinal = validator_max_ordinal
        self.default_category = default_category

    @classmethod
    def from_config(cls, console_config: Dict[str, Any]) -> 'TargetClassifier':
        return cls(
            validators=console_config.get('validators'),
            rpc_nodes=console_config.get('rpc_nodes'),
            validator_max_ordinal=console_config.get('validator_max_ordinal'),
            default_category=console_config.get('default_category', CATEGORY_VALIDATOR)
        )

    def classify(self, name: str) -> str:
        if name in self.validators:
            return CATEGORY_VALIDATOR
        if name in self.rpc_nodes:
            return CATEGORY_RPC_NODE

        if self.validator_max_ordinal is not None:
            match = _TRAILING_NUMBER.search(name)
            if match:
                ordinal = int(match.group(1))
                return CATEGORY_VALIDATOR if ordinal <= self.validator_max_ordinal else CATEGORY_RPC_NODE

        return self.default_category


class HealthCheckOrchestrator:
    """健康检查调度器"""

    def __init__(self,
                 store: StatusStore,
                 dispatcher: NotificationDispatcher,
                 console_probe: Optional[ConsoleProbe] = None,
                 supervisor_probe: Optional[SupervisorProbe] = None,
                 rpc_probes: Optional[List[RpcEndpointProbe]] = None,
                 classifier: Optional[TargetClassifier] = None,
                 check_interval: float = 30,
                 probe_timeout: float = 10,
                 max_concurrent_checks: int = 10,
                 forget_missing_sessions: bool = False):
        """初始化调度器

        Args:
            store: 状态存储
            dispatcher: 通知分发器
            console_probe: 控制台会话探测器，为None时不检查节点会话
            supervisor_probe: 进程管理器探测器，为None时不检查服务
            rpc_probes: RPC端点探测器列表
            classifier: 会话分类规则
            check_interval: 检查间隔（秒）
            probe_timeout: 单次探测超时（秒）
            max_concurrent_checks: 同一周期内最大并发探测数
            forget_missing_sessions: 会话消失后是否直接移除，而不是标记为不健康
        """
        self.store = store
        self.dispatcher = dispatcher
        self.console_probe = console_probe
        self.supervisor_probe = supervisor_probe
        self.rpc_probes: List[RpcEndpointProbe] = list(rpc_probes or [])
        self.classifier = classifier or TargetClassifier()
        self.check_interval = check_interval
        self.probe_timeout = probe_timeout
        self.max_concurrent_checks = max_concurrent_checks
        self.forget_missing_sessions = forget_missing_sessions

        self.is_running = False
        self.cycle_count = 0
        self.last_cycle_duration: Optional[float] = None
        self._cycle_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self.logger = get_logger('services.orchestrator')

    def configure_endpoints(self, endpoints: List[Dict[str, Any]]):
        """根据配置创建RPC端点探测器

        Raises:
            ConfigError: 端点类型不支持或配置无效
        """
        probes = []
        for endpoint in endpoints:
            endpoint_config = dict(endpoint)
            endpoint_config.setdefault('timeout', self.probe_timeout)
            probe = probe_factory.create_probe(endpoint_config)
            probes.append(probe)
            self.logger.info(
                f"配置RPC端点 {probe.name}: 类型={endpoint_config.get('type', 'http')}, URL={probe.url}")
        self.rpc_probes = probes

    async def start(self, interval: Optional[float] = None):
        """启动调度循环

        第一个周期立即执行；之后每个周期在上一个周期开始后 interval 秒启动，
        如果周期耗时超过间隔，则在其结束后立即开始下一个周期。

        Args:
            interval: 检查间隔（秒），默认使用构造时的 check_interval
        """
        if self.is_running:
            self.logger.warning("健康检查调度器已经在运行")
            return

        interval = interval if interval is not None else self.check_interval
        self.is_running = True
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        self.logger.info(f"启动健康检查调度器，检查间隔 {interval} 秒")

        try:
            while self.is_running:
                cycle_start = loop.time()
                await self.run_cycle()

                delay = max(0.0, interval - (loop.time() - cycle_start))
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.is_running = False
            self.logger.info("健康检查调度器已停止")

    async def stop(self):
        """停止调度循环，正在执行的周期会先完成"""
        self.is_running = False
        if self._stop_event:
            self._stop_event.set()

    async def run_cycle(self) -> None:
        """执行一个完整的检查周期，内部错误只记录日志，不向外抛出"""
        async with self._cycle_lock:
            started_at = datetime.now()
            start_time = time.time()
            self.logger.info("开始健康检查...")

            try:
                alert_count = await self._execute_cycle(started_at)
            except Exception as e:
                self.logger.error(f"健康检查周期异常: {e}", exc_info=True)
            else:
                self.last_cycle_duration = time.time() - start_time
                self.logger.info(
                    f"健康检查完成: 耗时 {self.last_cycle_duration:.2f}s, 产生 {alert_count} 条告警")
            finally:
                self.cycle_count += 1

    async def _execute_cycle(self, started_at: datetime) -> int:
        previous = self.store.snapshot()
        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        console_results, endpoint_results, service_results = await asyncio.gather(
            self._check_console_targets(previous, semaphore),
            self._check_rpc_endpoints(semaphore),
            self._check_services(previous)
        )

        fresh: Dict[str, Dict[str, HealthResult]] = {category: {} for category in CATEGORIES}
        for result in console_results + endpoint_results + service_results:
            bucket = fresh[result.category]
            if result.target in bucket:
                self.logger.warning(f"目标名称重复，后一个结果将覆盖前一个: {result.target}")
            bucket[result.target] = result

        pending_alerts: List[Alert] = []
        for category, results in fresh.items():
            for name, result in results.items():
                transition = classify(previous.get_result(category, name), result)
                if transition == Transition.NONE:
                    continue

                self.logger.warning(
                    f"{category} {name} 状态变化: {'健康 -> 不健康' if transition == Transition.DEGRADED else '不健康 -> 健康'}")
                await self.dispatcher.dispatch(create_alert(result, transition), pending_alerts)

        self.store.replace_results(
            validators=fresh[CATEGORY_VALIDATOR],
            rpc_nodes=fresh[CATEGORY_RPC_NODE],
            services=fresh[CATEGORY_SERVICE],
            last_check=started_at,
            alerts=pending_alerts
        )
        self.store.save()
        return len(pending_alerts)

    async def _run_probe(self, semaphore: asyncio.Semaphore, target: str, category: str,
                         source: str, probe_call: Callable[[], Awaitable[HealthResult]]) -> HealthResult:
        """在并发限制和超时保护下执行一次探测，任何失败都转换为不健康的结果"""
        async with semaphore:
            start_time = time.time()
            try:
                return await asyncio.wait_for(probe_call(), timeout=self.probe_timeout)
            except asyncio.TimeoutError:
                error_message = f"探测超时 ({self.probe_timeout}s)"
            except Exception as e:
                error_message = f"探测异常: {e}"

            self.logger.error(f"目标 {target} {error_message}")
            return HealthResult(
                target=target,
                category=category,
                healthy=False,
                response_time=time.time() - start_time,
                error_message=error_message,
                metadata={'source': source}
            )

    async def _check_console_targets(self, previous: StatusStore,
                                     semaphore: asyncio.Semaphore) -> List[HealthResult]:
        if not self.console_probe:
            return []

        discovery_error = None
        try:
            live = await asyncio.wait_for(self.console_probe.list_live_targets(),
                                          timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            discovery_error = f"会话列表获取超时 ({self.probe_timeout}s)"
            live = []
        except Exception as e:
            discovery_error = f"会话列表获取失败: {e}"
            live = []

        if discovery_error:
            self.logger.error(discovery_error)

        tasks = []
        for name in live:
            category = self.classifier.classify(name)
            tasks.append(self._run_probe(
                semaphore, name, category, 'console',
                lambda name=name, category=category: self.console_probe.probe(name, category)
            ))
        results = list(await asyncio.gather(*tasks))

        if not self.forget_missing_sessions:
            results.extend(self._missing_console_results(previous, set(live), discovery_error))
        return results

    def _missing_console_results(self, previous: StatusStore, live: set,
                                 discovery_error: Optional[str]) -> List[HealthResult]:
        """上一周期存在、本周期已消失的会话视为不健康"""
        results = []
        for known in (previous.validators, previous.rpc_nodes):
            for name, result in known.items():
                if result.metadata.get('source') != 'console' or name in live:
                    continue
                results.append(HealthResult(
                    target=name,
                    category=self.classifier.classify(name),
                    healthy=False,
                    error_message=discovery_error or "会话不存在",
                    metadata={'source': 'console', 'last_output': ''}
                ))
        return results

    async def _check_rpc_endpoints(self, semaphore: asyncio.Semaphore) -> List[HealthResult]:
        tasks = [
            self._run_probe(semaphore, probe.name, CATEGORY_RPC_NODE, 'endpoint', probe.probe)
            for probe in self.rpc_probes
        ]
        return list(await asyncio.gather(*tasks))

    async def _check_services(self, previous: StatusStore) -> List[HealthResult]:
        """进程管理器返回的服务列表即为全部服务；获取失败时已知服务全部视为不健康"""
        if not self.supervisor_probe:
            return []

        try:
            services = await asyncio.wait_for(self.supervisor_probe.list_services(),
                                              timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            error_message = f"服务列表获取超时 ({self.probe_timeout}s)"
        except Exception as e:
            error_message = f"服务列表获取失败: {e}"
        else:
            observed_at = datetime.now()
            return [self.supervisor_probe.build_result(service, observed_at) for service in services]

        self.logger.error(error_message)
        return [
            HealthResult(
                target=name,
                category=CATEGORY_SERVICE,
                healthy=False,
                error_message=error_message,
                metadata={**result.metadata, 'source': 'supervisor', 'status': 'unknown'}
            )
            for name, result in previous.services.items()
        ]

    def get_scheduler_stats(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'cycle_count': self.cycle_count,
            'last_cycle_duration': self.last_cycle_duration,
            'check_interval': self.check_interval,
            'probe_timeout': self.probe_timeout,
            'max_concurrent_checks': self.max_concurrent_checks,
            'rpc_endpoints': [probe.name for probe in self.rpc_probes],
            'console_enabled': self.console_probe is not None,
            'supervisor_enabled': self.supervisor_probe is not None
        }
