"""
Redis Migrate - 按键类型把数据迁移到Redis

此包把任意键值存储（通用有序键值数据库或在线Redis服务器）中的数据
逐键复制到目标Redis服务器，保持每个键的类型（string、hash、list、set、zset），
支持按include/exclude模式过滤键以及为目标键添加前缀。
"""

__version__ = "1.0.0"
__author__ = "Redis Migrate Tool"

from .models import (
    KeyType,
    HashItem,
    ZSetMember,
    SourceKey,
    SourceKeyIterator,
    Source,
    KeyValueItem,
    KeyValueIterator,
    KeyValueDB,
    KeyValueParser,
)
from .kv_source import KeyValueSource
from .pattern_source import KeyPatternSource, new_key_pattern_source
from .destination import Destination, PrefixedDestination, new_prefixed_destination
from .recorder import CopyRecorder, StdCopyRecorder, LoggingCopyRecorder
from .engine import copy
from .redis_store import RedisSource, RedisDestination
from .sqlite_store import SqliteKeyValueDB

__all__ = [
    "KeyType",
    "HashItem",
    "ZSetMember",
    "SourceKey",
    "SourceKeyIterator",
    "Source",
    "KeyValueItem",
    "KeyValueIterator",
    "KeyValueDB",
    "KeyValueParser",
    "KeyValueSource",
    "KeyPatternSource",
    "new_key_pattern_source",
    "Destination",
    "PrefixedDestination",
    "new_prefixed_destination",
    "CopyRecorder",
    "StdCopyRecorder",
    "LoggingCopyRecorder",
    "copy",
    "RedisSource",
    "RedisDestination",
    "SqliteKeyValueDB",
]
