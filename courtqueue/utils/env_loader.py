"""统一的环境变量加载工具"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE_VARIABLE = 'COURTQUEUE_ENV_FILE'


def resolve_env_path(env_path: Optional[str] = None) -> Path:
    """确定.env文件路径: 参数 > COURTQUEUE_ENV_FILE > 项目根目录"""
    if env_path:
        return Path(env_path)
    configured = os.getenv(ENV_FILE_VARIABLE)
    if configured:
        return Path(configured)
    return PROJECT_ROOT / ".env"


def load_project_env(env_path: Optional[str] = None) -> bool:
    """加载.env文件中的变量（不覆盖已存在的系统环境变量），返回是否找到文件"""
    path = resolve_env_path(env_path)
    if not path.exists():
        logger.info(f"未找到环境变量文件: {path}，将使用系统环境变量")
        return False
    
    load_dotenv(path, override=False)
    logger.info(f"已加载环境变量文件: {path}")
    return True
