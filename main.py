#!/usr/bin/env python3
"""
区块链基础设施监控系统主应用程序入口

集成所有组件，实现应用程序启动和优雅关闭，
添加信号处理和异常捕获。
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List

from dotenv import load_dotenv

from chain_monitor.alerts.dispatcher import NotificationDispatcher
from chain_monitor.alerts.registry import build_channels
from chain_monitor.alerts.telegram_channel import TelegramChannel
from chain_monitor.bot.telegram_bot import TelegramBot
from chain_monitor.models.health_check import Alert, SEVERITY_WARNING
from chain_monitor.probes.console_probe import ConsoleProbe
from chain_monitor.probes.supervisor_probe import SupervisorProbe
from chain_monitor.services.config_manager import ConfigManager
from chain_monitor.services.orchestrator import HealthCheckOrchestrator, TargetClassifier
from chain_monitor.services.status_reporter import StatusReporter
from chain_monitor.services.status_store import StatusStore
from chain_monitor.utils.config_validator import ConfigValidator
from chain_monitor.utils.exceptions import MonitorError, ConfigError
from chain_monitor.utils.log_manager import log_manager, get_logger
from chain_monitor.web.dashboard import DashboardServer

# 版本信息
__version__ = "1.0.0"


class ChainMonitorApp:
    """区块链基础设施监控系统主应用程序类"""

    def __init__(self, config_path: Optional[str] = None,
                 overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径，为None时使用默认配置
            overrides: 命令行覆盖项 (log_level, log_file, dashboard, bot)
        """
        self.config_path = config_path
        self.overrides = overrides or {}
        self.config: Dict[str, Any] = {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()
        self._fatal_error: Optional[BaseException] = None

        # 核心组件
        self.store: Optional[StatusStore] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.orchestrator: Optional[HealthCheckOrchestrator] = None
        self.reporter: Optional[StatusReporter] = None
        self.dashboard: Optional[DashboardServer] = None
        self.bot: Optional[TelegramBot] = None

        # 任务管理
        self.background_tasks = set()

    async def initialize(self):
        """初始化应用程序组件

        Raises:
            ConfigError: 配置无效
        """
        try:
            self.config = ConfigManager(self.config_path).load_config()
            self._apply_overrides(self.config)
            global_config = self.config['global']

            # 配置日志系统
            self._configure_logging(global_config)
            self.logger = get_logger('main')
            self.logger.info("开始初始化监控系统")

            # 状态存储
            self.store = StatusStore(self._get_status_file_path(global_config))
            self.reporter = StatusReporter(self.store)

            # 通知渠道
            self.dispatcher = NotificationDispatcher(
                self.store, build_channels(self.config['alerts']))

            bot_config = self.config['bot']
            if bot_config.get('enabled'):
                self.bot = TelegramBot(
                    token=bot_config['token'],
                    reporter=self.reporter,
                    poll_timeout=bot_config.get('poll_timeout', 30),
                    check_interval=global_config['check_interval'],
                    dashboard_port=self.config['dashboard']['port']
                )
                self.dispatcher.add_channel(TelegramChannel('telegram_bot', {
                    'token': bot_config['token'],
                    'chat_id': bot_config['chat_id']
                }))

            # 健康检查调度器
            self.orchestrator = self._create_orchestrator(self.config)

            dashboard_config = self.config['dashboard']
            if dashboard_config.get('enabled'):
                self.dashboard = DashboardServer(
                    self.reporter,
                    host=dashboard_config.get('host', '0.0.0.0'),
                    port=dashboard_config.get('port', 3001),
                    alerts_limit=dashboard_config.get('alerts_limit', 50)
                )

            self.logger.info("应用程序组件初始化完成")

        except Exception as e:
            if self.logger:
                self.logger.error(f"应用程序初始化失败: {e}", exc_info=True)
            else:
                print(f"应用程序初始化失败: {e}", file=sys.stderr)
            raise

    def _apply_overrides(self, config: Dict[str, Any]):
        """应用命令行覆盖项，覆盖后重新验证受影响的配置段"""
        if self.overrides.get('log_level'):
            config['global']['log_level'] = self.overrides['log_level']
        if self.overrides.get('log_file'):
            config['global']['log_file'] = self.overrides['log_file']
        if self.overrides.get('dashboard'):
            config['dashboard']['enabled'] = True
        if self.overrides.get('bot'):
            config['bot']['enabled'] = True

        ConfigValidator.validate_global_config(config['global'])
        ConfigValidator.validate_bot_config(config['bot'])

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_config = {
            'log_level': global_config.get('log_level', 'INFO'),
            'enable_console': True,
            'log_file': global_config.get('log_file')
        }

        if global_config.get('log_file'):
            log_config['max_file_size'] = global_config.get('max_log_size',
                                                            10 * 1024 * 1024)
            log_config['backup_count'] = global_config.get('log_backup_count', 5)

        log_manager.configure(log_config)

    def _get_status_file_path(self, global_config: Dict[str, Any]) -> Optional[str]:
        """获取状态文件路径

        Args:
            global_config: 全局配置

        Returns:
            状态文件路径，如果不需要持久化返回None
        """
        status_file = global_config.get('status_file')
        if status_file:
            # 确保状态文件目录存在
            Path(status_file).parent.mkdir(parents=True, exist_ok=True)
        return status_file

    def _create_orchestrator(self, config: Dict[str, Any]) -> HealthCheckOrchestrator:
        global_config = config['global']
        console_config = config['console']
        supervisor_config = config['supervisor']

        console_probe = ConsoleProbe(console_config) if console_config.get('enabled', True) else None
        supervisor_probe = SupervisorProbe(supervisor_config) if supervisor_config.get('enabled', True) else None

        orchestrator = HealthCheckOrchestrator(
            store=self.store,
            dispatcher=self.dispatcher,
            console_probe=console_probe,
            supervisor_probe=supervisor_probe,
            classifier=TargetClassifier.from_config(console_config),
            check_interval=global_config['check_interval'],
            probe_timeout=global_config['probe_timeout'],
            max_concurrent_checks=global_config['max_concurrent_checks'],
            forget_missing_sessions=console_config.get('forget_missing_sessions', False)
        )
        orchestrator.configure_endpoints(config['rpc_endpoints'])
        return orchestrator

    def _track_task(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self.background_tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self.background_tasks.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            self.logger.error(f"后台任务 {task.get_name()} 异常退出: {error}")
            self._fatal_error = error
            self.shutdown()

    async def start(self):
        """启动应用程序，直到收到关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            self.logger.info("启动监控系统")

            if self.dashboard:
                await self.dashboard.start()

            if self.bot:
                self._track_task(self.bot.run(), 'telegram_bot')

            self._track_task(self.orchestrator.start(), 'orchestrator')

            self.logger.info("监控系统启动完成")

            # 等待关闭信号
            await self.shutdown_event.wait()

            if self._fatal_error is not None:
                raise self._fatal_error

        except Exception as e:
            self.logger.error(f"应用程序运行异常: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序，等待正在执行的检查周期结束并保存状态"""
        if not self.is_running:
            return

        self.logger.info("正在停止监控系统...")
        self.is_running = False

        try:
            if self.orchestrator:
                await self.orchestrator.stop()

            if self.bot:
                await self.bot.stop()

            # 调度器会在当前周期结束后退出，机器人的长轮询需要取消
            for task in list(self.background_tasks):
                if task.get_name() != 'orchestrator' and not task.done():
                    task.cancel()

            if self.background_tasks:
                await asyncio.gather(*self.background_tasks, return_exceptions=True)

            self.background_tasks.clear()

            if self.dashboard:
                await self.dashboard.stop()

            if self.store:
                self.store.save()

            self.logger.info("监控系统已停止")

        except Exception as e:
            self.logger.error(f"停止应用程序时发生异常: {e}", exc_info=True)
        finally:
            log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status = {
            'is_running': self.is_running,
            'config_path': self.config_path,
            'background_tasks_count': len(self.background_tasks)
        }

        if self.orchestrator:
            status['scheduler_stats'] = self.orchestrator.get_scheduler_stats()

        if self.reporter:
            status['summary'] = self.reporter.summarize().to_dict()

        if self.dispatcher:
            status['channels'] = self.dispatcher.get_channel_names()

        return status


# 全局应用程序实例
app: Optional[ChainMonitorApp] = None


def signal_handler(signum: int):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def install_signal_handlers():
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except NotImplementedError:
            # Windows 事件循环不支持 add_signal_handler
            signal.signal(signum, lambda s, frame: signal_handler(s))


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='chain-monitor',
        description='区块链基础设施监控系统 - 监控验证节点、RPC节点和进程管理器服务并发送告警通知',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s                                # 使用默认配置和环境变量启动监控
  %(prog)s config.yaml                    # 使用指定配置文件启动监控
  %(prog)s config.yaml --dashboard --bot  # 同时启动状态仪表盘和Telegram机器人
  %(prog)s --validate config.yaml         # 验证配置文件格式
  %(prog)s --test-alerts config.yaml      # 测试告警系统
  %(prog)s --check-once                   # 执行一次检查后退出

监控对象:
  - 以 tmux 会话运行的验证节点和RPC节点
  - HTTP / WebSocket RPC 端点
  - pm2 管理的服务

环境变量可以写在当前目录的 .env 文件中
        """
    )

    # 位置参数：配置文件路径
    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径（可选）'
    )

    # 可选参数
    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件格式并退出'
    )

    parser.add_argument(
        '--test-alerts',
        action='store_true',
        help='发送一条测试告警并退出'
    )

    parser.add_argument(
        '--check-once',
        action='store_true',
        help='执行一次健康检查后退出'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--dashboard',
        action='store_true',
        help='启动状态仪表盘'
    )

    parser.add_argument(
        '--bot',
        action='store_true',
        help='启动Telegram机器人（需要 TELEGRAM_BOT_TOKEN 和 TELEGRAM_CHAT_ID）'
    )

    return parser


def validate_config_file(config_path: Optional[str]) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径，为None时验证默认配置和环境变量

    Returns:
        验证是否成功
    """
    try:
        print(f"正在验证配置文件: {config_path or '(默认配置)'}")

        config = ConfigManager(config_path).load_config()
        endpoints: List[Dict[str, Any]] = config['rpc_endpoints']
        alerts = config['alerts']

        print("✅ 配置文件验证成功!")
        print(f"   - 检查间隔: {config['global']['check_interval']} 秒")
        print(f"   - RPC端点数量: {len(endpoints)}")
        for endpoint in endpoints:
            print(f"     * {endpoint['name']} ({endpoint.get('type', 'http')}): {endpoint['url']}")

        print(f"   - 告警配置数量: {len(alerts)}")
        for alert_config in alerts:
            state = '启用' if alert_config.get('enabled', True) else '停用'
            print(f"     * {alert_config.get('name', 'unnamed')} ({alert_config.get('type', 'unknown')}, {state})")

        return True

    except Exception as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False


async def run_alert_test(config_path: Optional[str], overrides: Optional[Dict[str, Any]] = None) -> bool:
    """发送一条测试告警到所有启用的渠道

    Args:
        config_path: 配置文件路径

    Returns:
        是否至少有一个渠道发送成功
    """
    test_app = ChainMonitorApp(config_path, overrides)
    try:
        print(f"正在测试告警系统: {config_path or '(默认配置)'}")
        await test_app.initialize()

        alert = Alert(
            title='Test Alert',
            message='This is a test alert from Chain Monitor. If you received it, notifications are working.',
            severity=SEVERITY_WARNING
        )
        results = await test_app.dispatcher.dispatch(alert)

        if not results:
            print("❌ 没有启用的通知渠道")
            return False

        for result in results:
            mark = '✅' if result['success'] else '❌'
            error = f" - {result['error']}" if result['error'] else ''
            print(f"   {mark} {result['channel']}{error}")

        success = any(result['success'] for result in results)
        print("✅ 告警系统测试成功!" if success else "❌ 告警系统测试失败!")
        return success

    except Exception as e:
        print(f"❌ 告警系统测试失败: {e}")
        return False
    finally:
        log_manager.cleanup()


async def check_once(config_path: Optional[str], overrides: Optional[Dict[str, Any]] = None) -> bool:
    """执行一次健康检查

    Args:
        config_path: 配置文件路径

    Returns:
        所有目标是否健康
    """
    check_app = ChainMonitorApp(config_path, overrides)
    try:
        print(f"正在执行健康检查: {config_path or '(默认配置)'}")
        await check_app.initialize()
        await check_app.orchestrator.run_cycle()

        report = check_app.reporter.report()
        summary = report.summary
        print("✅ 健康检查完成:")
        print(f"   - 验证节点: {summary.healthy_validators}/{summary.total_validators} 健康")
        print(f"   - RPC节点: {summary.healthy_rpc_nodes}/{summary.total_rpc_nodes} 健康")
        print(f"   - 服务: {summary.online_services}/{summary.total_services} 在线")

        for section in ('validators', 'rpc_nodes', 'services'):
            for name, result in report.details[section].items():
                if result['healthy']:
                    print(f"   ✅ {name}")
                else:
                    print(f"   ❌ {name}: {result['error_message']}")

        return summary.all_healthy

    except Exception as e:
        print(f"❌ 健康检查失败: {e}")
        return False
    finally:
        log_manager.cleanup()


async def main():
    """主函数"""
    global app

    # 解析命令行参数
    parser = create_argument_parser()
    args = parser.parse_args()

    load_dotenv()

    config_path = args.config_file
    if config_path and not Path(config_path).exists():
        print(f"配置文件不存在: {config_path}", file=sys.stderr)
        sys.exit(1)

    overrides = {
        'log_level': args.log_level,
        'log_file': args.log_file,
        'dashboard': args.dashboard,
        'bot': args.bot
    }

    # 处理特殊模式
    if args.validate:
        success = validate_config_file(config_path)
        sys.exit(0 if success else 1)

    if args.test_alerts:
        success = await run_alert_test(config_path, overrides)
        sys.exit(0 if success else 1)

    if args.check_once:
        success = await check_once(config_path, overrides)
        sys.exit(0 if success else 1)

    try:
        # 创建应用程序实例
        app = ChainMonitorApp(config_path, overrides)

        # 注册信号处理器
        install_signal_handlers()

        # 初始化并启动应用程序
        await app.initialize()

        print(f"区块链监控系统 v{__version__} 已启动")
        print(f"配置文件: {config_path or '(默认配置)'}")
        print("按 Ctrl+C 停止程序")

        await app.start()

    except KeyboardInterrupt:
        print("\n用户中断程序")
    except ConfigError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        sys.exit(1)
    except MonitorError as e:
        print(f"监控系统错误: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"未预期的错误: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        if app:
            await app.stop()


def run():
    """命令行入口"""
    # 设置事件循环策略（Windows兼容性）
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    # 运行主程序
    asyncio.run(main())


if __name__ == "__main__":
    run()
