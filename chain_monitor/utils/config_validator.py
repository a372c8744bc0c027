"""配置验证工具"""

from typing import Dict, Any, List

from .exceptions import ConfigError

SUPPORTED_ENDPOINT_TYPES = ['http', 'websocket']
SUPPORTED_CHANNEL_TYPES = ['email', 'webhook', 'slack', 'telegram']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        for key in ('check_interval', 'probe_timeout'):
            value = global_config.get(key)
            if value is not None and not _is_positive_number(value):
                raise ConfigError(f"{key} 必须是正数")

        max_concurrent = global_config.get('max_concurrent_checks')
        if max_concurrent is not None and not _is_positive_int(max_concurrent):
            raise ConfigError("max_concurrent_checks 必须是正整数")

        log_level = global_config.get('log_level')
        if log_level is not None and str(log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

        status_file = global_config.get('status_file')
        if status_file is not None and not isinstance(status_file, str):
            raise ConfigError("status_file 必须是字符串")

    @staticmethod
    def validate_console_config(console_config: Dict[str, Any]) -> None:
        """验证控制台会话配置"""
        if not isinstance(console_config, dict):
            raise ConfigError("console配置必须是字典类型")

        prefix = console_config.get('session_prefix')
        if prefix is not None and not isinstance(prefix, str):
            raise ConfigError("session_prefix 必须是字符串")

        tail_lines = console_config.get('tail_lines')
        if tail_lines is not None and not _is_positive_int(tail_lines):
            raise ConfigError("tail_lines 必须是正整数")

        for key in ('validators', 'rpc_nodes'):
            names = console_config.get(key)
            if names is not None and not isinstance(names, list):
                raise ConfigError(f"{key} 必须是会话名称列表")

        max_ordinal = console_config.get('validator_max_ordinal')
        if max_ordinal is not None and (not isinstance(max_ordinal, int) or isinstance(max_ordinal, bool)):
            raise ConfigError("validator_max_ordinal 必须是整数")

        default_category = console_config.get('default_category')
        if default_category is not None and default_category not in ('validator', 'rpc-node'):
            raise ConfigError("default_category 必须是 validator 或 rpc-node")

    @staticmethod
    def validate_endpoint_config(endpoint_config: Dict[str, Any]) -> None:
        """
        验证RPC端点配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(endpoint_config, dict):
            raise ConfigError("RPC端点配置必须是字典类型")

        for field in ('name', 'url'):
            if not endpoint_config.get(field):
                raise ConfigError(f"RPC端点配置缺少必需的配置项: {field}")

        name = endpoint_config['name']
        endpoint_type = endpoint_config.get('type', 'http')
        if endpoint_type not in SUPPORTED_ENDPOINT_TYPES:
            raise ConfigError(
                f"RPC端点 '{name}' 的类型 '{endpoint_type}' 不受支持。支持的类型: {SUPPORTED_ENDPOINT_TYPES}")

    @staticmethod
    def validate_endpoints(endpoints: List[Dict[str, Any]]) -> None:
        if not isinstance(endpoints, list):
            raise ConfigError("rpc_endpoints配置必须是列表类型")

        names = set()
        for endpoint in endpoints:
            ConfigValidator.validate_endpoint_config(endpoint)
            if endpoint['name'] in names:
                raise ConfigError(f"RPC端点名称重复: {endpoint['name']}")
            names.add(endpoint['name'])

    @staticmethod
    def validate_supervisor_config(supervisor_config: Dict[str, Any]) -> None:
        if not isinstance(supervisor_config, dict):
            raise ConfigError("supervisor配置必须是字典类型")

        command = supervisor_config.get('command')
        if command is not None:
            if not isinstance(command, list) or not command or not all(isinstance(c, str) for c in command):
                raise ConfigError("supervisor.command 必须是非空的字符串列表")

    @staticmethod
    def validate_alert_config(alert_config: Dict[str, Any]) -> None:
        """
        验证告警配置

        只检查结构；渠道自身的必需参数由渠道初始化时检查，缺失时该渠道不启用。

        Args:
            alert_config: 告警配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(alert_config, dict):
            raise ConfigError("告警配置必须是字典类型")

        for field in ('name', 'type'):
            if field not in alert_config:
                raise ConfigError(f"告警配置缺少必需的配置项: {field}")

        channel_type = alert_config['type']
        if channel_type not in SUPPORTED_CHANNEL_TYPES:
            raise ConfigError(
                f"告警 '{alert_config['name']}' 的类型 '{channel_type}' 不受支持。支持的类型: {SUPPORTED_CHANNEL_TYPES}")

    @staticmethod
    def validate_dashboard_config(dashboard_config: Dict[str, Any]) -> None:
        if not isinstance(dashboard_config, dict):
            raise ConfigError("dashboard配置必须是字典类型")

        port = dashboard_config.get('port')
        if port is not None and (not _is_positive_int(port) or port > 65535):
            raise ConfigError("dashboard.port 必须是 1-65535 之间的整数")

        alerts_limit = dashboard_config.get('alerts_limit')
        if alerts_limit is not None and not _is_positive_int(alerts_limit):
            raise ConfigError("dashboard.alerts_limit 必须是正整数")

    @staticmethod
    def validate_bot_config(bot_config: Dict[str, Any]) -> None:
        """
        验证机器人配置，启用时必须提供 token 和 chat_id

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(bot_config, dict):
            raise ConfigError("bot配置必须是字典类型")

        if bot_config.get('enabled'):
            if not bot_config.get('token'):
                raise ConfigError("已启用机器人但缺少 token (TELEGRAM_BOT_TOKEN)")
            if not bot_config.get('chat_id'):
                raise ConfigError("已启用机器人但缺少 chat_id (TELEGRAM_CHAT_ID)")

        poll_timeout = bot_config.get('poll_timeout')
        if poll_timeout is not None and not _is_positive_int(poll_timeout):
            raise ConfigError("bot.poll_timeout 必须是正整数")
