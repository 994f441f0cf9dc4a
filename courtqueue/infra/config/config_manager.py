"""
统一配置管理器
加载和解析YAML配置文件，支持环境变量解析、默认值合并与配置验证
"""

from pathlib import Path
from typing import Any, Dict, List
import copy
import os
import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    'matchmaking': {
        'group_size': 4,
        'initial_rating': 1200,
    },
    'rating': {
        'k_factor': 32,
        'logistic_constant': 400,
    },
    'queue': {
        'base_weight': 1.0,
        'wait_bonus_minutes': 30,
        'max_wait_bonus': 2.0,
        'assistance_threshold': 1000,
        'assistance_bonus': 0.3,
        'tie_tolerance': 0.01,
    },
    'server': {
        'host': '127.0.0.1',
        'port': 5000,
        'cors_origins': ['http://localhost:3000'],
    },
    'logging': {
        'level': 'INFO',
        'log_to_file': True,
        'log_to_console': True,
    },
    'export': {
        'on_shutdown': False,
        'output_dir': 'results',
    },
}

LOG_LEVEL_NAMES = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """逐层合并配置，配置文件中的值优先"""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """统一配置管理器: 加载YAML配置、解析环境变量、提供配置访问接口"""
    
    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")
        
        self._config = _merge(DEFAULT_CONFIG, self._load_config())
    
    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ConfigManager':
        """直接从字典构建（不读取文件）"""
        manager = cls.__new__(cls)
        manager.config_path = None
        manager._config = _merge(DEFAULT_CONFIG, config)
        return manager
    
    def _load_config(self) -> dict:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
                if not config:
                    raise ValueError("配置文件为空")
                if not isinstance(config, dict):
                    raise ValueError("配置文件顶层必须是映射")
                return config
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")
    
    def _resolve_env_var(self, value: Any) -> Any:
        """解析环境变量格式的配置值，支持格式: env_var:VARIABLE_NAME"""
        if isinstance(value, str) and value.startswith("env_var:"):
            env_key = value[8:]  # 移除 "env_var:" 前缀
            env_value = os.getenv(env_key)
            if env_value is None:
                raise ValueError(f"环境变量 {env_key} 未设置")
            return env_value
        return value
    
    def _section(self, name: str) -> Dict[str, Any]:
        return {
            key: self._resolve_env_var(value)
            for key, value in (self._config.get(name) or {}).items()
        }
    
    def get_raw_config(self) -> dict:
        """获取原始配置字典（已合并默认值）"""
        return self._config
    
    def get_matchmaking_settings(self) -> Dict[str, Any]:
        """获取撮合配置"""
        settings = self._section('matchmaking')
        return {
            'group_size': int(settings['group_size']),
            'initial_rating': int(settings['initial_rating']),
        }
    
    def get_group_size(self) -> int:
        """获取每局人数"""
        return self.get_matchmaking_settings()['group_size']
    
    def get_rating_settings(self) -> Dict[str, float]:
        """获取ELO评分配置"""
        settings = self._section('rating')
        return {
            'k_factor': float(settings['k_factor']),
            'logistic_constant': float(settings['logistic_constant']),
        }
    
    def get_queue_settings(self) -> Dict[str, float]:
        """获取队列权重配置"""
        settings = self._section('queue')
        return {
            'base_weight': float(settings['base_weight']),
            'wait_bonus_minutes': float(settings['wait_bonus_minutes']),
            'max_wait_bonus': float(settings['max_wait_bonus']),
            'assistance_threshold': int(settings['assistance_threshold']),
            'assistance_bonus': float(settings['assistance_bonus']),
            'tie_tolerance': float(settings['tie_tolerance']),
        }
    
    # ==================== 服务相关配置 ====================
    
    def get_server_settings(self) -> Dict[str, Any]:
        """获取服务监听配置"""
        settings = self._section('server')
        return {
            'host': str(settings['host']),
            'port': int(settings['port']),
            'cors_origins': list(settings.get('cors_origins') or []),
        }
    
    def get_logging_settings(self) -> Dict[str, Any]:
        """获取日志配置"""
        settings = self._section('logging')
        return {
            'level': str(settings['level']).upper(),
            'log_to_file': bool(settings['log_to_file']),
            'log_to_console': bool(settings['log_to_console']),
        }
    
    def get_export_settings(self) -> Dict[str, Any]:
        """获取结果导出配置"""
        settings = self._section('export')
        return {
            'on_shutdown': bool(settings['on_shutdown']),
            'output_dir': Path(settings['output_dir']),
        }
    
    def validate_config(self) -> List[str]:
        """验证配置文件的完整性和有效性"""
        errors = []
        
        try:
            group_size = self.get_group_size()
            if group_size < 2 or group_size % 2:
                errors.append(f"matchmaking.group_size 必须是正偶数，当前为 {group_size}")
        except (TypeError, ValueError) as e:
            errors.append(f"matchmaking 配置无效: {e}")
        
        try:
            rating = self.get_rating_settings()
            if rating['k_factor'] <= 0:
                errors.append("rating.k_factor 必须为正数")
            if rating['logistic_constant'] <= 0:
                errors.append("rating.logistic_constant 必须为正数")
        except (TypeError, ValueError) as e:
            errors.append(f"rating 配置无效: {e}")
        
        try:
            queue = self.get_queue_settings()
            if queue['wait_bonus_minutes'] <= 0:
                errors.append("queue.wait_bonus_minutes 必须为正数")
            if queue['max_wait_bonus'] < 0:
                errors.append("queue.max_wait_bonus 不能为负数")
            if queue['tie_tolerance'] < 0:
                errors.append("queue.tie_tolerance 不能为负数")
        except (TypeError, ValueError) as e:
            errors.append(f"queue 配置无效: {e}")
        
        try:
            port = self.get_server_settings()['port']
            if not 0 < port < 65536:
                errors.append(f"server.port 超出范围: {port}")
        except (TypeError, ValueError) as e:
            errors.append(f"server 配置无效: {e}")
        
        level = str((self._config.get('logging') or {}).get('level', '')).upper()
        if level not in LOG_LEVEL_NAMES:
            errors.append(f"logging.level 无效: {level}")
        
        return errors
