"""
键模式过滤装饰器

包装任意类型化源，根据include/exclude正则列表把键重新归类为SKIP，
不改变底层数据。过滤在resolve_type()时按键惰性进行。
"""

import logging
import re
from typing import List, Optional, Sequence

from .exceptions import PatternError
from .models import (
    HashItem,
    KeyType,
    Source,
    SourceKey,
    SourceKeyIterator,
    ZSetMember,
)

logger = logging.getLogger(__name__)


def compile_patterns(patterns: Optional[Sequence[str]]) -> List[re.Pattern]:
    """
    编译模式列表。

    异常:
        PatternError: 任一模式不是合法的正则表达式
    """
    compiled = []
    for pattern in patterns or ():
        try:
            compiled.append(re.compile(pattern))
        except (re.error, TypeError) as e:
            raise PatternError(f"无效的键模式 {pattern!r}: {e}") from e
    return compiled


class PatternFilteredKey(SourceKey):
    """只改变resolve_type()结果的键包装。"""

    def __init__(self, inner: SourceKey, source: 'KeyPatternSource'):
        self.inner = inner
        self._source = source

    @property
    def key(self) -> str:
        return self.inner.key

    def resolve_type(self) -> KeyType:
        typ = self.inner.resolve_type()
        if typ == KeyType.SKIP:
            return typ
        if self._source.matches(self.key):
            return typ
        return KeyType.SKIP


class KeyPatternIterator(SourceKeyIterator):

    def __init__(self, inner: SourceKeyIterator, source: 'KeyPatternSource'):
        self._inner = inner
        self._source = source

    @property
    def error(self) -> Optional[Exception]:
        return self._inner.error

    def next_key(self) -> Optional[SourceKey]:
        key = self._inner.next_key()
        if key is None:
            return None
        return PatternFilteredKey(key, self._source)

    def close(self):
        self._inner.close()


class KeyPatternSource(Source):
    """
    按键名过滤的源装饰器。

    exclude优先于include：同时匹配两者的键会被跳过。
    配置了include时，键必须至少匹配其中一个。
    """

    def __init__(self, source: Source, includes: Sequence[str] = (), excludes: Sequence[str] = ()):
        self.source = source
        self.includes = compile_patterns(includes)
        self.excludes = compile_patterns(excludes)

    def matches(self, key: str) -> bool:
        """键是否通过过滤。"""
        for pattern in self.excludes:
            if pattern.search(key):
                return False
        if self.includes:
            return any(pattern.search(key) for pattern in self.includes)
        return True

    @staticmethod
    def _unwrap(key: SourceKey) -> SourceKey:
        if isinstance(key, PatternFilteredKey):
            return key.inner
        return key

    def iterator(self) -> SourceKeyIterator:
        return KeyPatternIterator(self.source.iterator(), self)

    def close(self):
        self.source.close()

    def get_string(self, key: SourceKey) -> bytes:
        return self.source.get_string(self._unwrap(key))

    def get_hash_items(self, key: SourceKey) -> List[HashItem]:
        return self.source.get_hash_items(self._unwrap(key))

    def get_list_items(self, key: SourceKey) -> List[bytes]:
        return self.source.get_list_items(self._unwrap(key))

    def get_set_members(self, key: SourceKey) -> List[str]:
        return self.source.get_set_members(self._unwrap(key))

    def get_zset_members(self, key: SourceKey) -> List[ZSetMember]:
        return self.source.get_zset_members(self._unwrap(key))


def new_key_pattern_source(source: Source,
                           includes: Optional[Sequence[str]] = None,
                           excludes: Optional[Sequence[str]] = None) -> Source:
    """
    创建键模式过滤源。

    include和exclude都为空时直接返回原始源。

    参数:
        source: 被包装的源
        includes: 包含模式（正则表达式）
        excludes: 排除模式（正则表达式）

    返回:
        过滤后的源

    异常:
        PatternError: 任一模式无效
    """
    if not includes and not excludes:
        return source
    filtered = KeyPatternSource(source, includes or (), excludes or ())
    logger.info(f"启用键过滤: includes={list(includes or [])}, excludes={list(excludes or [])}")
    return filtered
