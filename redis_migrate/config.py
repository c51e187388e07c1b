"""
Redis Migrate工具的配置管理。

处理从文件、环境变量和命令行参数加载配置。
"""

import os
import yaml
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SOURCE_TYPES = ("redis", "sqlite")
LIST_PUSH_SIDES = ("right", "left")


@dataclass
class RedisConfig:
    """Redis连接配置。"""
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0
    ssl: bool = False
    ssl_cert_reqs: Optional[str] = None
    ssl_ca_certs: Optional[str] = None
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None
    url: Optional[str] = None


@dataclass
class MigrationSettings:
    """迁移操作设置。"""
    source_type: str = "redis"
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    prefix: Optional[str] = None
    list_push: str = "right"
    scan_match: str = "*"
    scan_count: int = 1024
    sqlite_path: Optional[str] = None
    sqlite_table: str = "kv"
    sqlite_key_column: str = "key"
    sqlite_value_column: str = "value"
    parser: Optional[str] = None
    show_progress: bool = False

    def validate(self):
        """检查设置是否一致，无效时抛出ConfigurationError。"""
        if self.source_type not in SOURCE_TYPES:
            raise ConfigurationError(f"不支持的源类型: {self.source_type}")
        if self.list_push not in LIST_PUSH_SIDES:
            raise ConfigurationError(f"无效的列表写入方向: {self.list_push}")
        if self.scan_count <= 0:
            raise ConfigurationError(f"scan_count必须为正数: {self.scan_count}")
        if self.prefix == "":
            raise ConfigurationError("前缀不能为空字符串")
        if self.source_type == "sqlite":
            if not self.sqlite_path:
                raise ConfigurationError("sqlite源需要配置sqlite_path")
            if not self.parser:
                raise ConfigurationError("sqlite源需要配置parser")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    console: bool = True
    colored: bool = True


def _split_patterns(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [p for p in value.split(',') if p]


@dataclass
class Config:
    """Main configuration class."""
    source: RedisConfig
    target: RedisConfig
    migration: MigrationSettings
    logging: LoggingConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        data = data or {}
        try:
            return cls(
                source=RedisConfig(**(data.get('source') or {})),
                target=RedisConfig(**(data.get('target') or {})),
                migration=MigrationSettings(**(data.get('migration') or {})),
                logging=LoggingConfig(**(data.get('logging') or {}))
            )
        except TypeError as e:
            raise ConfigurationError(f"无效的配置项: {e}") from e

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
            return cls.from_dict(data)
        except Exception as e:
            logger.error(f"Failed to load config from {config_path}: {e}")
            raise

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        source_config = RedisConfig(
            host=os.getenv('REDIS_SOURCE_HOST', 'localhost'),
            port=int(os.getenv('REDIS_SOURCE_PORT', '6379')),
            password=os.getenv('REDIS_SOURCE_PASSWORD'),
            db=int(os.getenv('REDIS_SOURCE_DB', '0')),
            ssl=os.getenv('REDIS_SOURCE_SSL', 'false').lower() == 'true',
            url=os.getenv('REDIS_SOURCE_URL')
        )

        target_config = RedisConfig(
            host=os.getenv('REDIS_TARGET_HOST', 'localhost'),
            port=int(os.getenv('REDIS_TARGET_PORT', '6380')),
            password=os.getenv('REDIS_TARGET_PASSWORD'),
            db=int(os.getenv('REDIS_TARGET_DB', '0')),
            ssl=os.getenv('REDIS_TARGET_SSL', 'false').lower() == 'true',
            url=os.getenv('REDIS_TARGET_URL')
        )

        migration_config = MigrationSettings(
            source_type=os.getenv('MIGRATION_SOURCE_TYPE', 'redis'),
            includes=_split_patterns(os.getenv('MIGRATION_INCLUDES')),
            excludes=_split_patterns(os.getenv('MIGRATION_EXCLUDES')),
            prefix=os.getenv('MIGRATION_PREFIX') or None,
            list_push=os.getenv('MIGRATION_LIST_PUSH', 'right'),
            scan_match=os.getenv('MIGRATION_SCAN_MATCH', '*'),
            scan_count=int(os.getenv('MIGRATION_SCAN_COUNT', '1024')),
            sqlite_path=os.getenv('MIGRATION_SQLITE_PATH'),
            sqlite_table=os.getenv('MIGRATION_SQLITE_TABLE', 'kv'),
            parser=os.getenv('MIGRATION_PARSER'),
            show_progress=os.getenv('MIGRATION_SHOW_PROGRESS', 'false').lower() == 'true'
        )

        logging_config = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            file=os.getenv('LOG_FILE'),
            console=os.getenv('LOG_CONSOLE', 'true').lower() == 'true',
            colored=os.getenv('LOG_COLORED', 'true').lower() == 'true'
        )

        return cls(
            source=source_config,
            target=target_config,
            migration=migration_config,
            logging=logging_config
        )


def setup_logging(config: LoggingConfig):
    """Setup logging based on configuration."""
    try:
        import colorlog
        colorlog_available = True
    except ImportError:
        colorlog_available = False

    # Set logging level
    level = getattr(logging, config.level.upper(), logging.INFO)

    # Create formatters
    if config.colored and config.console and colorlog_available:
        console_formatter = colorlog.ColoredFormatter(
            '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        console_formatter = logging.Formatter(config.format)

    file_formatter = logging.Formatter(config.format)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if config.file:
        try:
            log_dir = Path(config.file).parent
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(config.file)
            file_handler.setLevel(level)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")

    logging.getLogger('redis').setLevel(logging.WARNING)


def create_sample_config() -> str:
    """Create a sample configuration file content."""
    sample_config = {
        'source': {
            'host': 'localhost',
            'port': 6379,
            'password': None,
            'db': 0,
            'ssl': False
        },
        'target': {
            'host': 'localhost',
            'port': 6380,
            'password': None,
            'db': 0,
            'ssl': False
        },
        'migration': {
            'source_type': 'redis',
            'includes': [],
            'excludes': [],
            'prefix': None,
            'list_push': 'right',
            'scan_match': '*',
            'scan_count': 1024,
            'sqlite_path': None,
            'sqlite_table': 'kv',
            'sqlite_key_column': 'key',
            'sqlite_value_column': 'value',
            'parser': None,
            'show_progress': False
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'file': None,
            'console': True,
            'colored': True
        }
    }

    return yaml.dump(sample_config, default_flow_style=False, indent=2)


def load_config(config_path: Optional[str] = None,
                use_env: bool = True,
                create_default: bool = False) -> Config:
    """
    Load configuration from various sources.

    Args:
        config_path: Path to configuration file
        use_env: Whether to use environment variables as fallback
        create_default: Whether to create default config if none found

    Returns:
        Configuration object
    """
    if config_path and os.path.exists(config_path):
        try:
            return Config.from_file(config_path)
        except Exception as e:
            logger.warning(f"Failed to load config from file: {e}")

    if use_env:
        try:
            return Config.from_env()
        except ValueError as e:
            logger.warning(f"Failed to load config from environment: {e}")

    if create_default:
        logger.info("Using default configuration")
        return Config(
            source=RedisConfig(),
            target=RedisConfig(port=6380),
            migration=MigrationSettings(),
            logging=LoggingConfig()
        )

    raise ConfigurationError("No valid configuration found")
