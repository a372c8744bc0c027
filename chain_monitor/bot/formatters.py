"""机器人命令的回复文本"""

from datetime import datetime
from typing import Dict, Any, List

from ..alerts.base import SEVERITY_ICONS
from ..models.health_check import StatusReport, ONLINE_STATUS

ALERTS_SHOWN = 5
ALERT_PREVIEW_LENGTH = 100

COMMANDS_TEXT = (
    "/status - Overall system health\n"
    "/alerts - Recent alerts and issues\n"
    "/nodes - Validator and RPC node status\n"
    "/services - PM2 service status\n"
    "/help - This help message\n"
)

UNKNOWN_COMMAND_TEXT = 'Unknown command. Type /help for available commands.'


def _format_time(value: Any) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    return str(value)


def format_start(chat_id: Any) -> str:
    return (
        "🔗 *Chain Monitor Bot*\n\n"
        "Welcome! I'll help you monitor your blockchain infrastructure.\n\n"
        "*Available Commands:*\n"
        f"{COMMANDS_TEXT}\n"
        "*Monitoring Features:*\n"
        "✅ Validator nodes monitoring\n"
        "✅ RPC endpoint health checks\n"
        "✅ PM2 service monitoring\n"
        "✅ Real-time alerts\n\n"
        f"Your Chat ID: `{chat_id}`"
    )


def format_help(check_interval: float = 30, dashboard_port: int = 3001) -> str:
    return (
        "🔗 *Chain Monitor Help*\n\n"
        "*Commands:*\n"
        f"{COMMANDS_TEXT}\n"
        "*Alert Types:*\n"
        f"{SEVERITY_ICONS['critical']} Critical - Node offline, service crashed\n"
        f"{SEVERITY_ICONS['warning']} Warning - Test and informational alerts\n"
        f"{SEVERITY_ICONS['good']} Good - Recovery notifications\n\n"
        "*Monitoring Frequency:*\n"
        f"System checks every {check_interval:g} seconds\n\n"
        "*Dashboard:*\n"
        f"Access web dashboard at: http://your-server:{dashboard_port}"
    )


def format_status(report: StatusReport) -> str:
    summary = report.summary
    text = (
        "📊 *System Status Report*\n\n"
        f"🔸 *Validators:* {summary.healthy_validators}/{summary.total_validators} healthy\n"
        f"🔸 *RPC Nodes:* {summary.healthy_rpc_nodes}/{summary.total_rpc_nodes} healthy\n"
        f"🔸 *Services:* {summary.online_services}/{summary.total_services} online\n\n"
    )
    text += '✅ *All systems operational*' if summary.all_healthy else '⚠️ *Issues detected*'
    text += f"\n\n_Last updated: {_format_time(report.timestamp)}_"
    return text


def format_alerts(alerts: List[Dict[str, Any]]) -> str:
    """最近告警，最多显示5条，每条内容截断到100个字符"""
    if not alerts:
        return '✅ No recent alerts'

    text = f"🚨 *Recent Alerts (Last {ALERTS_SHOWN})*\n\n"
    for alert in alerts[:ALERTS_SHOWN]:
        icon = SEVERITY_ICONS.get(alert.get('severity'), SEVERITY_ICONS['good'])
        message = alert.get('message', '')
        if len(message) > ALERT_PREVIEW_LENGTH:
            message = message[:ALERT_PREVIEW_LENGTH] + '...'
        text += f"{icon} *{alert.get('title', '')}*\n{message}\n_{_format_time(alert.get('timestamp'))}_\n\n"
    return text.rstrip('\n')


def format_nodes(report: StatusReport) -> str:
    validators = report.details.get('validators', {})
    rpc_nodes = report.details.get('rpc_nodes', {})

    text = "⚡ *Validator Nodes*\n\n"
    if not validators:
        text += 'No validators found\n\n'
    else:
        for name, result in validators.items():
            icon = '✅' if result['healthy'] else '❌'
            text += f"{icon} {name}: {'Online' if result['healthy'] else 'Offline'}\n"
        text += '\n'

    text += "🌐 *RPC Nodes*\n\n"
    if not rpc_nodes:
        text += 'No RPC nodes found'
    else:
        for name, result in rpc_nodes.items():
            icon = '✅' if result['healthy'] else '❌'
            response_time = result.get('response_time')
            suffix = f" ({round(response_time * 1000)}ms)" if response_time else ''
            text += f"{icon} {name}: {'Online' if result['healthy'] else 'Offline'}{suffix}\n"
    return text.rstrip('\n')


def format_services(report: StatusReport) -> str:
    services = report.details.get('services', {})

    text = "🔧 *PM2 Services*\n\n"
    if not services:
        return text + 'No PM2 services found'

    for name, result in services.items():
        metadata = result.get('metadata', {})
        status = metadata.get('status', 'unknown')
        icon = '✅' if status == ONLINE_STATUS else '❌'
        memory_bytes = metadata.get('memory_bytes') or 0
        memory = f" ({round(memory_bytes / 1024 / 1024)}MB)" if memory_bytes else ''
        text += f"{icon} {name}: {status}{memory}\n"

        restarts = metadata.get('restart_count') or 0
        if restarts > 0:
            text += f"   ↻ Restarts: {restarts}\n"
    return text.rstrip('\n')
