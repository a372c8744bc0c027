"""日志管理器测试"""

import logging
import os
import shutil
import tempfile
import pytest

from chain_monitor.utils.log_manager import LogManager, LogLevel, ROOT_LOGGER_NAME


class TestLogManager:
    """日志管理器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = os.path.join(self.temp_dir, 'logs', 'monitor.log')
        self.manager = LogManager()

    def teardown_method(self):
        """测试后清理"""
        self.manager.cleanup()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_get_logger_naming(self):
        """测试日志记录器挂在根记录器之下"""
        assert self.manager.get_logger('probes.rpc').name == 'chain_monitor.probes.rpc'
        assert self.manager.get_logger('chain_monitor.web').name == 'chain_monitor.web'
        assert self.manager.get_logger(ROOT_LOGGER_NAME).name == ROOT_LOGGER_NAME

    def test_configure_level(self):
        """测试配置日志级别"""
        self.manager.configure({'log_level': 'debug', 'enable_console': False})

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG
        assert self.manager.get_log_stats()['log_level'] == 'DEBUG'

    def test_invalid_level(self):
        """测试无效的日志级别"""
        with pytest.raises(ValueError, match="无效的日志级别"):
            self.manager.configure({'log_level': 'VERBOSE'})

    def test_file_logging_creates_directory(self):
        """测试写入日志文件并自动创建目录"""
        self.manager.configure({'log_file': self.log_file, 'enable_console': False})

        logger = self.manager.get_logger('test')
        logger.info("第一条")
        logger.warning("第二条")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()

        assert os.path.exists(self.log_file)
        lines = self.manager.read_recent_lines(10)
        assert len(lines) == 2
        assert lines[0].endswith("第二条")
        assert lines[1].endswith("第一条")

    def test_read_recent_lines_limit(self):
        """测试只返回最后若干行"""
        os.makedirs(os.path.dirname(self.log_file))
        with open(self.log_file, 'w', encoding='utf-8') as f:
            f.write('\n'.join(f"line {i}" for i in range(1, 151)) + '\n\n')
        self.manager.configure({'log_file': self.log_file, 'enable_console': False})

        lines = self.manager.read_recent_lines(100)

        assert len(lines) == 100
        assert lines[0] == 'line 150'
        assert lines[-1] == 'line 51'

    def test_read_without_file(self):
        """测试未配置日志文件"""
        assert self.manager.read_recent_lines() == []

    def test_cleanup_removes_handlers(self):
        """测试清理处理器"""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        existing = list(root.handlers)
        self.manager.configure({'log_file': self.log_file, 'enable_console': True})
        installed = [h for h in root.handlers if h not in existing]
        assert len(installed) == 2

        self.manager.cleanup()

        for handler in installed:
            assert handler not in root.handlers

    def test_reconfigure_does_not_duplicate(self):
        """测试重复配置不会叠加处理器"""
        root = logging.getLogger(ROOT_LOGGER_NAME)
        before = len(root.handlers)

        self.manager.configure({'enable_console': True})
        self.manager.configure({'enable_console': True})

        assert len(root.handlers) == before + 1

    def test_set_level(self):
        """测试运行时调整日志级别"""
        self.manager.configure({'enable_console': False})
        self.manager.set_level(LogLevel.ERROR)

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR
