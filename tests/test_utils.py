"""
日志与环境变量工具测试
"""

import logging
import os

from courtqueue.utils import env_loader
from courtqueue.utils.env_loader import load_project_env, resolve_env_path
from courtqueue.utils.logger import LOG_FORMAT, get_logger, setup_logger


def test_get_logger_has_no_handlers():
    """模块记录器不挂载处理器，交给根记录器输出"""
    logger = get_logger('courtqueue.tests.plain')
    
    assert logger.handlers == []
    assert logger.propagate is True


def test_setup_logger_with_file(tmp_path):
    """测试写入日志文件"""
    logger = setup_logger(
        name='courtqueue.tests.file',
        level='debug',
        log_to_file=True,
        log_to_console=False,
        log_file_name='test.log',
        log_dir=tmp_path,
    )
    try:
        logger.debug("写入调试日志")
        for handler in logger.handlers:
            handler.flush()
        
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT
        assert "写入调试日志" in (tmp_path / 'test.log').read_text(encoding='utf-8')
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_setup_logger_idempotent(tmp_path):
    """已有处理器时不重复挂载"""
    name = 'courtqueue.tests.idempotent'
    first = setup_logger(name=name, log_to_console=True)
    second = setup_logger(name=name, log_to_console=True)
    try:
        assert first is second
        assert len(second.handlers) == 1
    finally:
        for handler in list(first.handlers):
            first.removeHandler(handler)


def test_resolve_env_path(monkeypatch, tmp_path):
    """测试.env路径优先级"""
    monkeypatch.delenv(env_loader.ENV_FILE_VARIABLE, raising=False)
    assert resolve_env_path() == env_loader.PROJECT_ROOT / '.env'
    
    monkeypatch.setenv(env_loader.ENV_FILE_VARIABLE, str(tmp_path / 'custom.env'))
    assert resolve_env_path() == tmp_path / 'custom.env'
    assert resolve_env_path(str(tmp_path / 'explicit.env')) == tmp_path / 'explicit.env'


def test_load_project_env(monkeypatch, tmp_path):
    """加载.env文件，不覆盖已有环境变量"""
    env_file = tmp_path / '.env'
    env_file.write_text('COURTQUEUE_TEST_A=from_file\nCOURTQUEUE_TEST_B=from_file\n', encoding='utf-8')
    monkeypatch.delenv('COURTQUEUE_TEST_A', raising=False)
    monkeypatch.setenv('COURTQUEUE_TEST_B', 'from_system')
    
    try:
        assert load_project_env(str(env_file)) is True
        assert os.environ['COURTQUEUE_TEST_A'] == 'from_file'
        assert os.environ['COURTQUEUE_TEST_B'] == 'from_system'
    finally:
        os.environ.pop('COURTQUEUE_TEST_A', None)


def test_load_project_env_missing(tmp_path):
    assert load_project_env(str(tmp_path / 'missing.env')) is False
