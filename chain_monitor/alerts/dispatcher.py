"""通知分发器"""

import asyncio
from typing import Dict, List, Any, Optional

from .base import BaseChannel
from ..models.health_check import (
    Alert, HealthResult, Transition, CATEGORY_VALIDATOR, CATEGORY_SERVICE,
    SEVERITY_CRITICAL, SEVERITY_GOOD
)
from ..services.status_store import StatusStore
from ..utils.exceptions import AlertConfigError
from ..utils.log_manager import get_logger


def _format_ms(response_time: Optional[float]) -> str:
    return f"{round(response_time * 1000)}ms" if response_time is not None else 'unknown'


def create_alert(result: HealthResult, transition: Transition) -> Alert:
    """
    根据状态跳变生成告警

    宕机为 critical，恢复为 good。

    Args:
        result: 本周期的新结果
        transition: 跳变类型，不能是 NONE

    Returns:
        Alert: 告警记录

    Raises:
        ValueError: 没有发生跳变
    """
    if transition == Transition.NONE:
        raise ValueError("没有状态跳变，无需生成告警")

    down = transition == Transition.DEGRADED
    severity = SEVERITY_CRITICAL if down else SEVERITY_GOOD
    name = result.target
    metadata = result.metadata

    if result.category == CATEGORY_SERVICE:
        if down:
            title = 'Service Down'
            message = (f'Service "{name}" is {metadata.get("status", "unknown")}.\n'
                       f'PID: {metadata.get("pid")}\n'
                       f'Restarts: {metadata.get("restart_count", 0)}')
        else:
            title = 'Service Recovered'
            message = f'Service "{name}" is back online.\nPID: {metadata.get("pid")}'

    elif metadata.get('source') == 'endpoint':
        url = metadata.get('url', '')
        if down:
            title = 'RPC Endpoint Down'
            message = (f"{name} ({url}) is not responding.\n"
                       f"Error: {result.error_message or 'Unknown error'}\n"
                       f"Response time: {_format_ms(result.response_time)}")
        else:
            title = 'RPC Endpoint Recovered'
            message = (f"{name} ({url}) is responding again.\n"
                       f"Response time: {_format_ms(result.response_time)}")

    else:
        node_type = 'VALIDATOR' if result.category == CATEGORY_VALIDATOR else 'RPC'
        if down:
            title = f'{node_type} Node Down'
            message = (f"{name} has gone offline.\n"
                       f"Error: {result.error_message or 'Unknown error'}\n"
                       f"Last output:\n{metadata.get('last_output', '')}")
        else:
            title = f'{node_type} Node Recovered'
            message = f"{name} is back online."

    return Alert(
        title=title,
        message=message,
        severity=severity,
        target=name,
        category=result.category
    )


class NotificationDispatcher:
    """通知分发器

    把一条告警并发发送到所有启用的渠道。单个渠道失败或超时只记录日志，
    不影响其他渠道；告警本身无论发送结果如何都会写入状态存储。
    """

    def __init__(self, store: StatusStore, channels: Optional[List[BaseChannel]] = None):
        """
        初始化通知分发器

        Args:
            store: 状态存储
            channels: 初始渠道列表
        """
        self.store = store
        self.channels: List[BaseChannel] = []
        self.logger = get_logger('alerts.dispatcher')

        for channel in channels or []:
            self.add_channel(channel)

    def add_channel(self, channel: BaseChannel):
        """
        注册通知渠道

        Raises:
            AlertConfigError: 不是 BaseChannel 实例
        """
        if not isinstance(channel, BaseChannel):
            raise AlertConfigError(f"通知渠道必须继承自BaseChannel: {type(channel)}")

        self.channels.append(channel)
        state = '启用' if channel.enabled else '停用'
        self.logger.info(f"已添加通知渠道: {channel.name} ({channel.channel_type}, {state})")

    def remove_channel(self, name: str) -> bool:
        for i, channel in enumerate(self.channels):
            if channel.name == name:
                self.channels.pop(i)
                self.logger.info(f"已移除通知渠道: {name}")
                return True
        return False

    @property
    def enabled_channels(self) -> List[BaseChannel]:
        return [channel for channel in self.channels if channel.enabled]

    def get_channel_names(self) -> List[str]:
        return [channel.name for channel in self.channels]

    async def dispatch(self, alert: Alert,
                       pending: Optional[List[Alert]] = None) -> List[Dict[str, Any]]:
        """
        记录并发送告警，所有渠道完成或超时后才返回

        Args:
            alert: 告警记录
            pending: 检查周期内暂存告警的列表。传入时告警先追加到该列表，
                由调度器在周期结束时与检查结果一起写入状态存储；
                不传时直接写入状态存储

        Returns:
            List[Dict[str, Any]]: 每个启用渠道的发送结果
        """
        if pending is None:
            self.store.add_alert(alert)
        else:
            pending.append(alert)
        self.logger.warning(f"告警 [{alert.severity}] {alert.title}: {alert.target or '-'}")

        channels = self.enabled_channels
        if not channels:
            self.logger.debug("没有启用的通知渠道，告警仅记录在状态中")
            return []

        results = await asyncio.gather(*(self._deliver(channel, alert) for channel in channels))
        self._log_send_results(results, alert)
        return list(results)

    async def _deliver(self, channel: BaseChannel, alert: Alert) -> Dict[str, Any]:
        """向单个渠道发送，超时或异常都转换为失败结果"""
        timeout = channel.get_timeout()
        try:
            success = await asyncio.wait_for(channel.deliver(alert), timeout=timeout)
            return {'channel': channel.name, 'success': bool(success), 'error': None}
        except asyncio.TimeoutError:
            self.logger.error(f"通知渠道 {channel.name} 发送超时 ({timeout}s)")
            return {'channel': channel.name, 'success': False, 'error': 'timeout'}
        except Exception as e:
            self.logger.error(f"通知渠道 {channel.name} 发送失败: {e}")
            return {'channel': channel.name, 'success': False, 'error': str(e)}

    def _log_send_results(self, results: List[Dict[str, Any]], alert: Alert):
        succeeded = [r['channel'] for r in results if r['success']]
        failed = [r['channel'] for r in results if not r['success']]

        if succeeded:
            self.logger.info(
                f"告警发送成功 {len(succeeded)}/{len(results)} 个渠道 (告警: {alert.title})")
        if failed:
            self.logger.warning(f"以下通知渠道发送失败: {', '.join(failed)} (告警: {alert.title})")
