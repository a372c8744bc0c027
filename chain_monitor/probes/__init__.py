"""探测器模块"""

from .base import BaseProbe, RpcEndpointProbe
from .factory import ProbeFactory, probe_factory, register_probe
from .console_probe import ConsoleProbe, FAILURE_KEYWORDS
from .rpc_probe import HttpRpcProbe, WebSocketRpcProbe
from .supervisor_probe import SupervisorProbe

__all__ = ['BaseProbe', 'RpcEndpointProbe', 'ProbeFactory', 'probe_factory',
           'register_probe', 'ConsoleProbe', 'FAILURE_KEYWORDS', 'HttpRpcProbe',
           'WebSocketRpcProbe', 'SupervisorProbe']
