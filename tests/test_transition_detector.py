"""状态跳变检测测试"""

from chain_monitor.models.health_check import HealthResult, Transition, CATEGORY_VALIDATOR
from chain_monitor.services.transition_detector import classify


def make_result(healthy: bool) -> HealthResult:
    return HealthResult(target="node1", category=CATEGORY_VALIDATOR, healthy=healthy)


class TestClassify:
    """跳变分类测试"""

    def test_first_observation_is_silent(self):
        """测试首次观测不产生跳变"""
        assert classify(None, make_result(False)) == Transition.NONE
        assert classify(None, make_result(True)) == Transition.NONE

    def test_degraded(self):
        """测试健康变为不健康"""
        assert classify(make_result(True), make_result(False)) == Transition.DEGRADED

    def test_recovered(self):
        """测试不健康变为健康"""
        assert classify(make_result(False), make_result(True)) == Transition.RECOVERED

    def test_unchanged(self):
        """测试状态不变"""
        assert classify(make_result(True), make_result(True)) == Transition.NONE
        assert classify(make_result(False), make_result(False)) == Transition.NONE

    def test_metadata_changes_are_ignored(self):
        """测试只比较健康标志"""
        previous = HealthResult(target="node1", category=CATEGORY_VALIDATOR, healthy=True,
                                metadata={'last_output': 'block 1'})
        current = HealthResult(target="node1", category=CATEGORY_VALIDATOR, healthy=True,
                               metadata={'last_output': 'block 2'})

        assert classify(previous, current) == Transition.NONE
