"""RPC端点探测器工厂"""

from typing import Dict, Type, Any, List

from .base import RpcEndpointProbe
from ..utils.exceptions import ConfigError


class ProbeFactory:
    """按端点类型创建RPC探测器"""

    def __init__(self):
        self._probes: Dict[str, Type[RpcEndpointProbe]] = {}

    def register_probe(self, endpoint_type: str, probe_class: Type[RpcEndpointProbe]):
        """
        注册探测器类

        Args:
            endpoint_type: 端点类型名称，如 http、websocket
            probe_class: 探测器类

        Raises:
            ConfigError: 类型不合法或重复注册
        """
        if not issubclass(probe_class, RpcEndpointProbe):
            raise ConfigError(f"探测器类 {probe_class.__name__} 必须继承自 RpcEndpointProbe")

        if endpoint_type in self._probes:
            raise ConfigError(f"端点类型 '{endpoint_type}' 已经注册了探测器")

        self._probes[endpoint_type] = probe_class

    def create_probe(self, endpoint_config: Dict[str, Any]) -> RpcEndpointProbe:
        """
        根据端点配置创建探测器实例

        Args:
            endpoint_config: 端点配置，包含 name、url、type

        Returns:
            RpcEndpointProbe: 探测器实例

        Raises:
            ConfigError: 类型不支持或配置验证失败
        """
        name = endpoint_config.get('name') or endpoint_config.get('url', '')
        endpoint_type = endpoint_config.get('type', 'http')

        if endpoint_type not in self._probes:
            raise ConfigError(f"端点 '{name}' 的类型 '{endpoint_type}' 不受支持，"
                              f"支持的类型: {self.get_supported_types()}")

        probe = self._probes[endpoint_type](name, endpoint_config)
        if not probe.validate_config():
            raise ConfigError(f"端点 '{name}' 的配置验证失败: {endpoint_config.get('url')}")

        return probe

    def get_supported_types(self) -> List[str]:
        return list(self._probes.keys())

    def is_type_supported(self, endpoint_type: str) -> bool:
        return endpoint_type in self._probes


# 全局工厂实例
probe_factory = ProbeFactory()


def register_probe(endpoint_type: str):
    """
    装饰器：注册RPC探测器类

    Args:
        endpoint_type: 端点类型名称
    """
    def decorator(probe_class: Type[RpcEndpointProbe]):
        probe_factory.register_probe(endpoint_type, probe_class)
        return probe_class

    return decorator
