"""RPC端点探测器"""

import asyncio
import json
import time
from typing import Dict, Any, Optional

import aiohttp

from .base import RpcEndpointProbe
from .factory import register_probe
from ..models.health_check import HealthResult, CATEGORY_RPC_NODE

BLOCK_NUMBER_REQUEST = {
    'jsonrpc': '2.0',
    'method': 'eth_blockNumber',
    'params': [],
    'id': 1
}


def parse_block_number(value: Any) -> Optional[int]:
    """将十六进制区块号转换为整数，无法解析时返回None"""
    if not isinstance(value, str):
        return None
    try:
        return int(value, 16)
    except ValueError:
        return None


@register_probe('http')
class HttpRpcProbe(RpcEndpointProbe):
    """HTTP JSON-RPC 探测器，请求当前区块号"""

    def validate_config(self) -> bool:
        return isinstance(self.url, str) and self.url.startswith(('http://', 'https://'))

    async def probe(self) -> HealthResult:
        start_time = time.time()
        error_message = None
        healthy = False
        metadata: Dict[str, Any] = {
            'source': 'endpoint',
            'endpoint_type': 'http',
            'url': self.url
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.get_timeout())
            headers = {'Content-Type': 'application/json'}
            headers.update(self.config.get('headers', {}))

            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=BLOCK_NUMBER_REQUEST,
                                        headers=headers) as response:
                    metadata['status_code'] = response.status

                    if response.status == 200:
                        body = await response.json(content_type=None)
                        result = body.get('result') if isinstance(body, dict) else None

                        if result:
                            healthy = True
                            metadata['block_number'] = result
                            block_height = parse_block_number(result)
                            if block_height is not None:
                                metadata['block_height'] = block_height
                        elif isinstance(body, dict) and body.get('error'):
                            error_message = f"JSON-RPC错误: {body['error']}"
                        else:
                            error_message = "JSON-RPC响应缺少result字段"
                    else:
                        error_message = f"HTTP状态码异常: {response.status}"

        except asyncio.TimeoutError:
            error_message = "RPC请求超时"
        except aiohttp.ClientError as e:
            error_message = f"HTTP客户端错误: {e}"
        except json.JSONDecodeError as e:
            error_message = f"响应不是有效的JSON: {e}"
        except Exception as e:
            error_message = f"RPC健康检查异常: {e}"

        return HealthResult(
            target=self.name,
            category=CATEGORY_RPC_NODE,
            healthy=healthy,
            response_time=time.time() - start_time,
            error_message=error_message,
            metadata=metadata
        )


@register_probe('websocket')
class WebSocketRpcProbe(RpcEndpointProbe):
    """WebSocket 端点探测器，握手成功即视为健康"""

    def validate_config(self) -> bool:
        return isinstance(self.url, str) and self.url.startswith(('ws://', 'wss://'))

    async def probe(self) -> HealthResult:
        start_time = time.time()
        error_message = None
        healthy = False
        metadata: Dict[str, Any] = {
            'source': 'endpoint',
            'endpoint_type': 'websocket',
            'url': self.url
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.get_timeout())
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(self.url) as ws:
                    healthy = True
                    await ws.close()

        except aiohttp.WSServerHandshakeError as e:
            error_message = f"WebSocket握手失败: {e.status}"
        except asyncio.TimeoutError:
            error_message = "WebSocket连接超时"
        except aiohttp.ClientError as e:
            error_message = f"WebSocket连接错误: {e}"
        except Exception as e:
            error_message = f"WebSocket健康检查异常: {e}"

        return HealthResult(
            target=self.name,
            category=CATEGORY_RPC_NODE,
            healthy=healthy,
            response_time=time.time() - start_time,
            error_message=error_message,
            metadata=metadata
        )
