"""
Redis服务器驱动

把在线Redis服务器作为类型化源（基于SCAN逐页拉取键）或迁移目标。
客户端需使用 decode_responses=False 创建，键和成员以surrogateescape解码，
二进制数据可以无损往返。
"""

import logging
from typing import List, Optional, Set

import redis

from .destination import Destination
from .exceptions import (
    ConfigurationError,
    StoreReadError,
    StoreWriteError,
    TypeResolutionError,
    UnsupportedTypeError,
)
from .models import (
    HashItem,
    KeyType,
    Source,
    SourceKey,
    SourceKeyIterator,
    ZSetMember,
)
from .utils import sanitize_key_for_logging, to_bytes, to_text

logger = logging.getLogger(__name__)

DEFAULT_SCAN_COUNT = 1024

_REDIS_TYPES = {
    'string': KeyType.STRING,
    'hash': KeyType.HASH,
    'list': KeyType.LIST,
    'set': KeyType.SET,
    'zset': KeyType.ZSET,
}


class RedisSourceKey(SourceKey):
    """Redis中的一个键，类型在resolve_type()时通过TYPE命令查询。"""

    def __init__(self, client: redis.Redis, key: str):
        self._client = client
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def resolve_type(self) -> KeyType:
        try:
            typ = to_text(self._client.type(to_bytes(self._key)))
        except redis.exceptions.RedisError as e:
            raise TypeResolutionError(f"查询键类型失败 {sanitize_key_for_logging(self._key)}: {e}") from e

        if typ == 'none':
            raise TypeResolutionError(f"键不存在 {sanitize_key_for_logging(self._key)}")
        if typ not in _REDIS_TYPES:
            raise UnsupportedTypeError(f"不支持的键类型 {sanitize_key_for_logging(self._key)}, {typ}")
        return _REDIS_TYPES[typ]


class RedisKeyIterator(SourceKeyIterator):
    """
    使用SCAN分页拉取键。

    SCAN失败时记录错误并结束迭代。
    SCAN在rehash期间可能多次返回同一个键，已返回过的键会被跳过；
    为此迭代器会保存本次遍历见过的所有键，内存占用与键数量成正比。
    """

    def __init__(self, client: redis.Redis, match: str = "*", scan_count: int = DEFAULT_SCAN_COUNT):
        self._client = client
        self._match = match
        self._scan_count = scan_count
        self._error: Optional[Exception] = None
        self._cursor = 0
        self._finished = False
        self._keys: List[bytes] = []
        self._idx = 0
        self._seen: Set[bytes] = set()

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    def _fetch(self):
        try:
            cursor, keys = self._client.scan(
                cursor=self._cursor,
                match=self._match,
                count=self._scan_count
            )
        except redis.exceptions.RedisError as e:
            self._finished = True
            self._error = StoreReadError(f"SCAN失败 (cursor={self._cursor}): {e}")
            logger.error(f"SCAN操作出错: {e}")
            return

        self._keys = list(keys)
        self._idx = 0
        self._cursor = int(cursor)
        self._finished = self._cursor == 0
        logger.debug(f"SCAN返回 {len(self._keys)} 个键，下一个cursor: {self._cursor}")

    def next_key(self) -> Optional[SourceKey]:
        while True:
            # 一页可能为空而cursor未结束，需要继续拉取
            while self._idx >= len(self._keys):
                if self._finished:
                    return None
                self._fetch()

            key = self._keys[self._idx]
            self._idx += 1
            if key in self._seen:
                logger.debug(f"SCAN重复返回键，跳过: {sanitize_key_for_logging(to_text(key))}")
                continue
            self._seen.add(key)
            return RedisSourceKey(self._client, to_text(key))

    def close(self):
        self._keys = []
        self._seen = set()
        self._finished = True


class RedisSource(Source):
    """
    以在线Redis服务器为源。

    参数:
        client: 源Redis客户端（decode_responses=False）
        match: SCAN的MATCH模式
        scan_count: SCAN的COUNT参数
    """

    def __init__(self, client: redis.Redis, match: str = "*", scan_count: int = DEFAULT_SCAN_COUNT):
        self.client = client
        self.match = match
        self.scan_count = scan_count

    def iterator(self) -> SourceKeyIterator:
        return RedisKeyIterator(self.client, self.match, self.scan_count)

    def close(self):
        self.client.close()

    def _read(self, operation: str, key: SourceKey, func, *args, **kwargs):
        try:
            return func(to_bytes(key.key), *args, **kwargs)
        except redis.exceptions.RedisError as e:
            raise StoreReadError(f"{operation} 失败 {sanitize_key_for_logging(key.key)}: {e}") from e

    def get_string(self, key: SourceKey) -> bytes:
        value = self._read('GET', key, self.client.get)
        return value if value is not None else b""

    def get_hash_items(self, key: SourceKey) -> List[HashItem]:
        values = self._read('HGETALL', key, self.client.hgetall) or {}
        return [HashItem(to_text(field), value) for field, value in values.items()]

    def get_list_items(self, key: SourceKey) -> List[bytes]:
        return list(self._read('LRANGE', key, self.client.lrange, 0, -1) or [])

    def get_set_members(self, key: SourceKey) -> List[str]:
        return [to_text(member) for member in self._read('SMEMBERS', key, self.client.smembers) or ()]

    def get_zset_members(self, key: SourceKey) -> List[ZSetMember]:
        values = self._read('ZRANGE', key, self.client.zrange, 0, -1, withscores=True) or []
        return [ZSetMember(to_text(member), float(score)) for member, score in values]


LIST_PUSH_RIGHT = "right"
LIST_PUSH_LEFT = "left"


class RedisDestination(Destination):
    """
    以在线Redis服务器为目标，所有写入都是盲覆盖或追加。

    列表顺序:
        list_push="right"（默认）使用RPUSH，目标列表保持源的顺序；
        list_push="left" 使用LPUSH，目标列表顺序与源相反。

    参数:
        client: 目标Redis客户端
        list_push: 列表写入方向，"right" 或 "left"
    """

    def __init__(self, client: redis.Redis, list_push: str = LIST_PUSH_RIGHT):
        if list_push not in (LIST_PUSH_RIGHT, LIST_PUSH_LEFT):
            raise ConfigurationError(f"无效的列表写入方向: {list_push}")
        self.client = client
        self.list_push_side = list_push
        self._push = client.rpush if list_push == LIST_PUSH_RIGHT else client.lpush

    def _write(self, operation: str, key: str, func, *args):
        try:
            func(to_bytes(key), *args)
        except redis.exceptions.RedisError as e:
            raise StoreWriteError(f"{operation} 失败 {sanitize_key_for_logging(key)}: {e}") from e

    def set(self, key: str, value: bytes):
        self._write('SET', key, self.client.set, value)

    def hash_set(self, key: str, field: str, value: bytes):
        self._write('HSET', key, self.client.hset, to_bytes(field), value)

    def set_add(self, key: str, member: str):
        self._write('SADD', key, self.client.sadd, to_bytes(member))

    def sorted_set_add(self, key: str, member: str, score: float):
        self._write('ZADD', key, self.client.zadd, {to_bytes(member): score})

    def list_push(self, key: str, item: bytes):
        command = 'RPUSH' if self.list_push_side == LIST_PUSH_RIGHT else 'LPUSH'
        self._write(command, key, self._push, to_bytes(item))

    def close(self):
        self.client.close()
