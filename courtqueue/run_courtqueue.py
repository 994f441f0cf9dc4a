import argparse
from pathlib import Path

import uvicorn

from courtqueue.infra.config import ConfigManager
from courtqueue.server import create_app
from courtqueue.utils.logger import configure_root_logger, get_logger
from courtqueue.utils.env_loader import load_project_env

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / 'configs' / 'default.yaml'


def load_config(config_path: str) -> ConfigManager:
    """加载并验证配置，验证失败时抛出 ValueError"""
    config_manager = ConfigManager(config_path)
    validation_errors = config_manager.validate_config()
    if validation_errors:
        raise ValueError("配置验证失败: " + "; ".join(validation_errors))
    return config_manager


def main(argv=None):
    load_project_env()
    
    parser = argparse.ArgumentParser(description="courtqueue 撮合与评分服务")
    parser.add_argument('--config', type=str, default=str(DEFAULT_CONFIG_PATH), help='YAML配置文件路径')
    parser.add_argument('--host', type=str, default=None, help='监听地址（覆盖配置文件）')
    parser.add_argument('--port', type=int, default=None, help='监听端口（覆盖配置文件）')
    args = parser.parse_args(argv)
    
    try:
        config_manager = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        configure_root_logger(level='INFO', log_to_file=False, log_to_console=True)
        logger.error(f"配置加载失败: {e}")
        return 1
    
    logging_settings = config_manager.get_logging_settings()
    configure_root_logger(
        level=logging_settings['level'],
        log_to_file=logging_settings['log_to_file'],
        log_to_console=logging_settings['log_to_console'],
    )
    
    server_settings = config_manager.get_server_settings()
    host = args.host or server_settings['host']
    port = args.port or server_settings['port']
    
    logger.info(f"courtqueue 启动 - 配置文件: {args.config}, 每局人数: {config_manager.get_group_size()}")
    app = create_app(config_manager)
    uvicorn.run(app, host=host, port=port, log_level=logging_settings['level'].lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
