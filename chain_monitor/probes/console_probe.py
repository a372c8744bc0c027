"""控制台会话探测器

通过 tmux 列出节点会话，并抓取会话最近的控制台输出判断节点是否健康。
"""

import time
from typing import Dict, Any, List, Optional

from .base import BaseProbe
from ..models.health_check import HealthResult, CATEGORY_VALIDATOR
from ..utils.exceptions import ProbeError

# 控制台输出中出现任意一个即判定为不健康（不区分大小写）
FAILURE_KEYWORDS = ('error', 'fatal', 'panic', 'connection refused')


class ConsoleProbe(BaseProbe):
    """tmux 会话探测器"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__('console', config or {})
        self.session_prefix = self.config.get('session_prefix', 'node')
        self.tail_lines = self.config.get('tail_lines', 10)
        self.tmux_command = self.config.get('tmux_command', 'tmux')

    def validate_config(self) -> bool:
        if not isinstance(self.tail_lines, int) or self.tail_lines <= 0:
            return False
        return isinstance(self.session_prefix, str)

    async def list_live_targets(self) -> List[str]:
        """
        列出当前存活的节点会话

        Returns:
            List[str]: 以配置前缀开头的会话名称

        Raises:
            ProbeError: tmux 命令执行失败
        """
        output = await self.run_command(
            [self.tmux_command, 'list-sessions', '-F', '#{session_name}'])
        sessions = [line.strip() for line in output.splitlines() if line.strip()]
        live = [session for session in sessions if session.startswith(self.session_prefix)]
        self.logger.debug(f"发现 {len(live)} 个节点会话: {live}")
        return live

    async def probe(self, name: str, category: str = CATEGORY_VALIDATOR) -> HealthResult:
        """
        抓取会话输出并检查故障关键字

        Args:
            name: 会话名称
            category: 目标类别

        Returns:
            HealthResult: 探测结果
        """
        start_time = time.time()
        metadata: Dict[str, Any] = {'source': 'console'}

        try:
            output = await self.run_command(
                [self.tmux_command, 'capture-pane', '-p', '-t', name])
        except ProbeError as e:
            return HealthResult(
                target=name,
                category=category,
                healthy=False,
                response_time=time.time() - start_time,
                error_message=e.message,
                metadata=metadata
            )

        last_output = self.tail_output(output)
        matched = self.find_failure_keywords(last_output)
        metadata['last_output'] = last_output
        if matched:
            metadata['matched_keywords'] = matched

        return HealthResult(
            target=name,
            category=category,
            healthy=not matched,
            response_time=time.time() - start_time,
            error_message=f"控制台输出包含故障关键字: {', '.join(matched)}" if matched else None,
            metadata=metadata
        )

    def tail_output(self, output: str) -> str:
        """取最后 tail_lines 行非空尾部输出"""
        lines = output.rstrip().splitlines()
        return '\n'.join(lines[-self.tail_lines:])

    @staticmethod
    def find_failure_keywords(output: str) -> List[str]:
        lowered = output.lower()
        return [keyword for keyword in FAILURE_KEYWORDS if keyword in lowered]
