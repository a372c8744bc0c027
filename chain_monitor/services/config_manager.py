"""配置管理器"""

import copy
import os
from typing import Dict, Any, Optional, Mapping, List

import yaml

from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.config_validator import ConfigValidator
from ..utils.log_manager import get_logger

DEFAULT_CONFIG: Dict[str, Any] = {
    'global': {
        'check_interval': 30,
        'probe_timeout': 10,
        'max_concurrent_checks': 10,
        'status_file': 'status.json',
        'log_level': 'INFO',
        'log_file': 'logs/chain_monitor.log'
    },
    'console': {
        'enabled': True,
        'session_prefix': 'node',
        'tail_lines': 10,
        'validators': [],
        'rpc_nodes': [],
        'validator_max_ordinal': 10,
        'default_category': 'validator',
        'forget_missing_sessions': False
    },
    'supervisor': {
        'enabled': True,
        'command': ['pm2', 'jlist']
    },
    'alerts': [],
    'dashboard': {
        'enabled': False,
        'host': '0.0.0.0',
        'port': 3001,
        'alerts_limit': 50
    },
    'bot': {
        'enabled': False,
        'token': '',
        'chat_id': '',
        'poll_timeout': 30
    }
}

SECTION_NAMES = ('global', 'console', 'supervisor', 'dashboard', 'bot')


def default_endpoints(host: str) -> List[Dict[str, Any]]:
    """未配置 rpc_endpoints 时使用的本机端点"""
    return [
        {'name': 'Local RPC', 'url': f'http://{host}:80', 'type': 'http'},
        {'name': 'Local WebSocket', 'url': f'ws://{host}:8545', 'type': 'websocket'}
    ]


def _env_flag(value: str) -> bool:
    return value.strip().lower() == 'true'


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、默认值合并、环境变量覆盖和验证"""

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，为None时只使用默认配置和环境变量
            environ: 环境变量，默认使用 os.environ
        """
        self.config_path = config_path
        self.environ = environ if environ is not None else os.environ
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载配置

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        file_config = self._read_file() if self.config_path else {}
        if not self.config_path:
            self.logger.info("未指定配置文件，使用默认配置")

        config = self._merge_defaults(file_config)
        self._apply_env_overrides(config)
        self._validate_config(config)

        self.logger.info(
            f"配置验证成功，包含 {len(config['rpc_endpoints'])} 个RPC端点和 {len(config['alerts'])} 个告警配置")
        self.config = config
        return self.config

    def _read_file(self) -> Dict[str, Any]:
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", config_path=self.config_path,
                              error_code=ErrorCode.CONFIG_PARSE_ERROR, cause=e)
        except FileNotFoundError:
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}", config_path=self.config_path,
                              error_code=ErrorCode.CONFIG_FILE_NOT_FOUND)
        except PermissionError:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}", config_path=self.config_path)
        except OSError as e:
            self.logger.error(f"读取配置文件失败: {e}")
            raise ConfigError(f"读取配置文件失败: {e}", config_path=self.config_path, cause=e)

        if config is None:
            self.logger.error("配置文件为空")
            raise ConfigError("配置文件为空", config_path=self.config_path)

        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=self.config_path)

        return config

    def _merge_defaults(self, file_config: Dict[str, Any]) -> Dict[str, Any]:
        """字典类型的配置段逐项覆盖默认值，列表类型整体替换"""
        config = copy.deepcopy(DEFAULT_CONFIG)

        for section in SECTION_NAMES:
            value = file_config.get(section)
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigError(f"{section}配置必须是字典类型", config_path=self.config_path)
            config[section].update(value)

        if file_config.get('alerts') is not None:
            config['alerts'] = copy.deepcopy(file_config['alerts'])

        if file_config.get('rpc_endpoints') is not None:
            config['rpc_endpoints'] = copy.deepcopy(file_config['rpc_endpoints'])
        else:
            config['rpc_endpoints'] = default_endpoints(self.environ.get('IP') or 'localhost')

        return config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> None:
        env = self.environ
        alerts = config['alerts']
        if not isinstance(alerts, list):
            return

        if 'EMAIL_NOTIFICATIONS' in env:
            channel = self._upsert_channel(alerts, 'email', 'email')
            channel['enabled'] = _env_flag(env['EMAIL_NOTIFICATIONS'])
            channel.setdefault('smtp_server', 'smtp.gmail.com')
            channel.setdefault('smtp_port', 587)
            for key, env_name in (('smtp_server', 'SMTP_HOST'), ('username', 'SMTP_USER'),
                                  ('password', 'SMTP_PASS'), ('from_email', 'EMAIL_FROM'),
                                  ('to_emails', 'EMAIL_TO')):
                if env.get(env_name):
                    channel[key] = env[env_name]
            if env.get('SMTP_PORT'):
                channel['smtp_port'] = self._env_int('SMTP_PORT')

        if 'WEBHOOK_NOTIFICATIONS' in env:
            channel = self._upsert_channel(alerts, 'webhook', 'webhook')
            channel['enabled'] = _env_flag(env['WEBHOOK_NOTIFICATIONS'])
            if env.get('WEBHOOK_URL'):
                channel['url'] = env['WEBHOOK_URL']

        if 'SLACK_NOTIFICATIONS' in env:
            channel = self._upsert_channel(alerts, 'slack', 'slack')
            channel['enabled'] = _env_flag(env['SLACK_NOTIFICATIONS'])
            if env.get('SLACK_WEBHOOK_URL'):
                channel['webhook_url'] = env['SLACK_WEBHOOK_URL']

        if env.get('TELEGRAM_BOT_TOKEN'):
            config['bot']['token'] = env['TELEGRAM_BOT_TOKEN']
        if env.get('TELEGRAM_CHAT_ID'):
            config['bot']['chat_id'] = env['TELEGRAM_CHAT_ID']

        if env.get('DASHBOARD_PORT'):
            config['dashboard']['port'] = self._env_int('DASHBOARD_PORT')

    @staticmethod
    def _upsert_channel(alerts: List[Dict[str, Any]], name: str, channel_type: str) -> Dict[str, Any]:
        for channel in alerts:
            if isinstance(channel, dict) and channel.get('name') == name:
                return channel
        channel = {'name': name, 'type': channel_type}
        alerts.append(channel)
        return channel

    def _env_int(self, env_name: str) -> int:
        value = self.environ[env_name]
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"环境变量 {env_name} 必须是整数: {value}")

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置内容

        Raises:
            ConfigError: 配置验证失败
        """
        ConfigValidator.validate_global_config(config['global'])
        ConfigValidator.validate_console_config(config['console'])
        ConfigValidator.validate_endpoints(config['rpc_endpoints'])
        ConfigValidator.validate_supervisor_config(config['supervisor'])

        if not isinstance(config['alerts'], list):
            raise ConfigError("alerts配置必须是列表类型")
        for alert_config in config['alerts']:
            ConfigValidator.validate_alert_config(alert_config)

        ConfigValidator.validate_dashboard_config(config['dashboard'])
        ConfigValidator.validate_bot_config(config['bot'])
