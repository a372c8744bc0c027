"""进程管理器（pm2）服务探测器"""

import json
from datetime import datetime
from typing import Dict, Any, List, Optional

from .base import BaseProbe
from ..models.health_check import HealthResult, ServiceInfo, CATEGORY_SERVICE
from ..utils.exceptions import ProbeError, ErrorCode


class SupervisorProbe(BaseProbe):
    """通过 ``pm2 jlist`` 获取全部受管服务的状态"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__('pm2', config or {})
        self.command = list(self.config.get('command', ['pm2', 'jlist']))

    def validate_config(self) -> bool:
        return bool(self.command) and all(isinstance(part, str) for part in self.command)

    async def list_services(self) -> List[ServiceInfo]:
        """
        列出进程管理器中的全部服务

        Returns:
            List[ServiceInfo]: 服务信息列表

        Raises:
            ProbeError: 命令执行失败或输出无法解析
        """
        output = await self.run_command(self.command)
        services = self.parse_service_list(output)
        self.logger.debug(f"进程管理器返回 {len(services)} 个服务")
        return services

    @staticmethod
    def parse_service_list(output: str) -> List[ServiceInfo]:
        """
        解析 pm2 jlist 的 JSON 输出

        pm2 有时会在 JSON 之前打印 ``[PM2] ...`` 提示信息，因此逐个尝试从 '[' 处
        解码，取第一个能解码为对象列表的位置。

        Raises:
            ProbeError: 输出中没有合法的 JSON 列表
        """
        decoder = json.JSONDecoder()
        entries = None
        last_error: Optional[json.JSONDecodeError] = None
        start = output.find('[')
        while start >= 0:
            try:
                value, _ = decoder.raw_decode(output, start)
            except json.JSONDecodeError as e:
                last_error = e
            else:
                if isinstance(value, list) and all(isinstance(entry, dict) for entry in value):
                    entries = value
                    break
            start = output.find('[', start + 1)

        if entries is None:
            if last_error is not None:
                raise ProbeError(f"解析进程管理器输出失败: {last_error}", ErrorCode.PROBE_PARSE_ERROR,
                                 cause=last_error)
            raise ProbeError("进程管理器输出中没有服务列表", ErrorCode.PROBE_PARSE_ERROR)

        services = []
        for entry in entries:
            if not isinstance(entry, dict) or 'name' not in entry:
                continue
            pm2_env = entry.get('pm2_env') or {}
            monit = entry.get('monit') or {}
            services.append(ServiceInfo(
                name=str(entry['name']),
                status=pm2_env.get('status', 'unknown'),
                pid=entry.get('pid'),
                uptime=pm2_env.get('pm_uptime'),
                restart_count=pm2_env.get('restart_time', 0) or 0,
                memory_bytes=monit.get('memory', 0) or 0,
                cpu_percent=monit.get('cpu', 0) or 0
            ))
        return services

    @staticmethod
    def build_result(service: ServiceInfo,
                     observed_at: Optional[datetime] = None) -> HealthResult:
        """将服务信息转换为检查结果，在线即健康"""
        return HealthResult(
            target=service.name,
            category=CATEGORY_SERVICE,
            healthy=service.is_online,
            observed_at=observed_at or datetime.now(),
            error_message=None if service.is_online else f"服务状态: {service.status}",
            metadata={
                'source': 'supervisor',
                'status': service.status,
                'pid': service.pid,
                'uptime': service.uptime,
                'restart_count': service.restart_count,
                'memory_bytes': service.memory_bytes,
                'cpu_percent': service.cpu_percent
            }
        )
