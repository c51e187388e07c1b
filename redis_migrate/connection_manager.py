"""
Redis连接管理器

创建源和目标Redis客户端，支持身份验证、SSL和URL连接。
连接时使用指数退避重试并通过PING确认连接可用。
"""

import redis
import logging
import time
from typing import Optional, Dict, Any

from .config import RedisConfig
from .exceptions import ConnectionError

logger = logging.getLogger(__name__)


class RedisConnectionManager:
    """管理源和目标Redis实例的连接。"""

    def __init__(self, retry_config: Optional[Dict[str, Any]] = None):
        self.source_client: Optional[redis.Redis] = None
        self.target_client: Optional[redis.Redis] = None

        self.retry_config = retry_config or {
            'max_attempts': 5,
            'backoff_factor': 2,    # 指数退避
            'max_delay': 60,
            'initial_delay': 1
        }

    def _create_connection_config(self, config: RedisConfig) -> Dict[str, Any]:
        """创建Redis连接参数。"""
        params = {
            "host": config.host,
            "port": config.port,
            "password": config.password,
            "db": config.db,
            "ssl": config.ssl,
            "ssl_cert_reqs": config.ssl_cert_reqs,
            "ssl_ca_certs": config.ssl_ca_certs,
            "ssl_certfile": config.ssl_certfile,
            "ssl_keyfile": config.ssl_keyfile,
            # 源和目标之间按原始字节传递
            "decode_responses": False,
            "socket_timeout": 60,
            "socket_connect_timeout": 30,
            "socket_keepalive": True,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }

        # ssl为False时不传递ssl_*参数
        if not config.ssl:
            params = {k: v for k, v in params.items() if not k.startswith('ssl_')}

        return {k: v for k, v in params.items() if v is not None}

    def _connect_with_retry(self, factory, name: str) -> redis.Redis:
        """带重试机制的连接（指数退避）"""
        max_attempts = self.retry_config['max_attempts']
        backoff_factor = self.retry_config['backoff_factor']
        max_delay = self.retry_config['max_delay']
        initial_delay = self.retry_config['initial_delay']

        last_error = None

        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(f"尝试连接 {name} (第 {attempt}/{max_attempts} 次)")
                client = factory()
                client.ping()
                logger.info(f"✅ 成功连接到 {name}")
                return client

            except (redis.exceptions.ConnectionError,
                    redis.exceptions.TimeoutError,
                    redis.exceptions.ResponseError) as e:
                last_error = e

                if attempt < max_attempts:
                    delay = min(initial_delay * (backoff_factor ** (attempt - 1)), max_delay)
                    logger.warning(
                        f"⚠️  连接 {name} 失败 (第 {attempt}/{max_attempts} 次): {e}"
                        f"\n   {delay:.1f}秒后重试..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"❌ 连接 {name} 失败，已达最大重试次数: {e}")

        raise ConnectionError(f"无法连接到 {name}: {last_error}")

    def connect(self, config: RedisConfig, name: str) -> redis.Redis:
        """
        按配置连接到一个Redis实例。

        参数:
            config: Redis连接配置，设置了url时优先使用url
            name: 连接名称（用于日志）

        返回:
            Redis客户端实例
        """
        if config.url:
            def factory():
                return redis.from_url(config.url, decode_responses=False)
            return self._connect_with_retry(factory, f"{name} {config.url}")

        params = self._create_connection_config(config)

        def factory():
            return redis.Redis(**params)
        return self._connect_with_retry(factory, f"{name} {config.host}:{config.port}")

    def connect_source(self, config: RedisConfig) -> redis.Redis:
        """连接到源Redis实例。"""
        self.source_client = self.connect(config, "源Redis")
        return self.source_client

    def connect_target(self, config: RedisConfig) -> redis.Redis:
        """连接到目标Redis实例。"""
        self.target_client = self.connect(config, "目标Redis")
        return self.target_client

    def get_source_info(self) -> Dict[str, Any]:
        """Get source Redis instance information."""
        if not self.source_client:
            raise RuntimeError("Source client not connected")
        return self.source_client.info()

    def get_target_info(self) -> Dict[str, Any]:
        """Get target Redis instance information."""
        if not self.target_client:
            raise RuntimeError("Target client not connected")
        return self.target_client.info()

    def close_connections(self):
        """Close all Redis connections."""
        for name, client in (("源", self.source_client), ("目标", self.target_client)):
            if client is None:
                continue
            try:
                client.close()
                logger.info(f"已关闭{name}Redis连接")
            except redis.exceptions.RedisError as e:
                logger.warning(f"关闭{name}Redis连接失败: {e}")
        self.source_client = None
        self.target_client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_connections()
