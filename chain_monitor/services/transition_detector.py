"""状态跳变检测"""

from typing import Optional

from ..models.health_check import HealthResult, Transition


def classify(previous: Optional[HealthResult], current: HealthResult) -> Transition:
    """比较同一目标前后两次结果的健康标志

    首次观测（没有上一次结果）不视为跳变；不做防抖，一次翻转即告警。

    Args:
        previous: 上一周期存储的结果，首次观测时为None
        current: 本周期的新结果

    Returns:
        Transition: NONE、DEGRADED 或 RECOVERED
    """
    if previous is None or previous.healthy == current.healthy:
        return Transition.NONE
    if previous.healthy:
        return Transition.DEGRADED
    return Transition.RECOVERED
