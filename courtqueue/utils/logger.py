"""
全局日志配置模块
模块内通过 get_logger(__name__) 获取记录器，输出统一交给根记录器；
程序启动时调用一次 configure_root_logger 挂载控制台与按日滚动的文件处理器
"""
import logging
import sys
import time
from pathlib import Path
from typing import Optional


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / "courtqueue" / "logs"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

_log_configured = False


def setup_logger(
    name: Optional[str] = None,
    level: str = 'INFO',
    log_to_file: bool = False,
    log_to_console: bool = True,
    log_file_name: Optional[str] = None,
    log_dir: Optional[Path] = None,
    encoding: str = 'utf-8'
) -> logging.Logger:
    """为指定记录器挂载处理器（已有处理器时直接返回）"""
    logger = logging.getLogger(name) if name else logging.getLogger()
    if logger.handlers:
        return logger
    
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)
    logger.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    
    if log_to_file:
        target_dir = Path(log_dir) if log_dir else LOGS_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        file_name = log_file_name or f"{time.strftime('%Y_%m_%d', time.localtime())}.log"
        file_handler = logging.FileHandler(target_dir / file_name, encoding=encoding, mode='a')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    if name:
        logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取日志记录器（不挂载处理器，日志向上传递到根记录器）"""
    return logging.getLogger(name) if name else logging.getLogger()


def configure_root_logger(
    level: str = 'INFO',
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_file_name: Optional[str] = None,
    log_dir: Optional[Path] = None
) -> logging.Logger:
    """配置根日志记录器（只生效一次）"""
    global _log_configured
    
    root = logging.getLogger()
    if _log_configured:
        return root
    
    setup_logger(
        name=None,
        level=level,
        log_to_file=log_to_file,
        log_to_console=log_to_console,
        log_file_name=log_file_name,
        log_dir=log_dir,
    )
    _log_configured = True
    return root
