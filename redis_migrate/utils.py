"""
Redis Migrate工具的实用函数。

提供编码转换、日志格式化和动态加载的通用工具。
"""

import importlib
import logging
from typing import Any, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# 用surrogateescape解码，二进制键和成员可以无损往返
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def to_text(value: Union[str, bytes, int, float]) -> str:
    """把Redis返回的字节转换为字符串。"""
    if isinstance(value, bytes):
        return value.decode(TEXT_ENCODING, TEXT_ERRORS)
    return str(value)


def to_bytes(value: Union[str, bytes]) -> bytes:
    """把字符串转换回原始字节。"""
    if isinstance(value, bytes):
        return value
    return value.encode(TEXT_ENCODING, TEXT_ERRORS)


def format_duration(seconds: float) -> str:
    """
    格式化持续时间为可读格式。

    参数:
        seconds: 持续时间（秒）

    返回:
        格式化的字符串（例如："1小时30分45秒"）
    """
    if seconds < 60:
        return f"{seconds:.1f}秒"

    minutes = int(seconds // 60)
    seconds = seconds % 60

    if minutes < 60:
        return f"{minutes}分{seconds:.1f}秒"

    hours = minutes // 60
    minutes = minutes % 60

    if hours < 24:
        return f"{hours}小时{minutes}分{seconds:.0f}秒"

    days = hours // 24
    hours = hours % 24

    return f"{days}天{hours}小时{minutes}分"


def sanitize_key_for_logging(key: Union[str, bytes], max_length: int = 100) -> str:
    """
    Sanitize Redis key for safe logging.

    Args:
        key: Redis key
        max_length: Maximum length for logged key

    Returns:
        Sanitized key string
    """
    if not key:
        return "<empty>"

    key = to_text(key)

    # Replace non-printable characters
    sanitized = ''.join(c if c.isprintable() else f'\\x{ord(c) & 0xff:02x}' for c in key)

    # Truncate if too long
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."

    return sanitized


def load_object(path: str) -> Any:
    """
    按 "module:attr" 或 "module.attr" 路径加载对象。

    参数:
        path: 对象路径，例如 "myproject.parsers:LevelParser"

    返回:
        加载到的对象

    异常:
        ConfigurationError: 路径无效或无法导入
    """
    if not path:
        raise ConfigurationError("对象路径不能为空")

    if ':' in path:
        module_name, _, attr_path = path.partition(':')
    else:
        module_name, _, attr_path = path.rpartition('.')

    if not module_name or not attr_path:
        raise ConfigurationError(f"无效的对象路径: {path}")

    try:
        obj = importlib.import_module(module_name)
        for attr in attr_path.split('.'):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"无法加载 {path}: {e}") from e

    logger.debug(f"已加载 {path}")
    return obj
