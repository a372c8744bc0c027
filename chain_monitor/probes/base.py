"""探测器基类"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Any, List

from ..models.health_check import HealthResult
from ..utils.exceptions import ProbeError, ErrorCode
from ..utils.log_manager import get_logger


class BaseProbe(ABC):
    """探测器抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化探测器

        Args:
            name: 探测器名称（RPC端点名称或探测器实例名）
            config: 探测器配置参数
        """
        self.name = name
        self.config = config
        self.probe_type = self.__class__.__name__.replace('Probe', '').lower()
        self.logger = get_logger(f'probe.{self.probe_type}.{self.name}')

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 10)

    async def run_command(self, args: List[str]) -> str:
        """
        执行外部命令并返回标准输出

        超时后子进程会被强制结束。

        Args:
            args: 命令及参数

        Returns:
            str: 标准输出文本

        Raises:
            ProbeError: 命令无法启动、超时或退出码非零
        """
        command_line = ' '.join(args)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise ProbeError(f"无法执行命令 {command_line}: {e}",
                             ErrorCode.PROBE_COMMAND_ERROR, cause=e)

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(),
                                                    timeout=self.get_timeout())
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ProbeError(f"命令执行超时: {command_line}", ErrorCode.PROBE_TIMEOUT, cause=e)

        if process.returncode != 0:
            error_text = stderr.decode('utf-8', errors='replace').strip()
            raise ProbeError(
                f"命令 {command_line} 退出码 {process.returncode}: {error_text or '无错误输出'}",
                ErrorCode.PROBE_COMMAND_ERROR
            )

        return stdout.decode('utf-8', errors='replace')


class RpcEndpointProbe(BaseProbe):
    """RPC端点探测器基类，每个实例对应一个配置的端点"""

    def __init__(self, name: str, config: Dict[str, Any]):
        super().__init__(name, config)
        self.url = config.get('url', '')

    @abstractmethod
    async def probe(self) -> HealthResult:
        """
        探测端点并返回结果，探测失败时返回不健康的结果而不是抛出异常

        Returns:
            HealthResult: 探测结果
        """
        pass
