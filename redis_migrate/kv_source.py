"""
通用键值存储到类型化源的适配器

包装一个有序字节流存储和用户提供的解析器，按需逐行构造类型化记录。
"""

import logging
from typing import List, Optional

from .exceptions import ParseError, StoreReadError
from .models import (
    HashItem,
    KeyType,
    KeyValueDB,
    KeyValueItem,
    KeyValueIterator,
    KeyValueParser,
    ParserLike,
    Source,
    SourceKey,
    SourceKeyIterator,
    ZSetMember,
)

logger = logging.getLogger(__name__)


class KeyValueSourceKey(SourceKey):
    """指向已缓冲KeyValueItem的句柄。"""

    def __init__(self, item: KeyValueItem):
        self._item = item

    @property
    def key(self) -> str:
        return self._item.key

    def resolve_type(self) -> KeyType:
        return self._item.type


class KeyValueSourceIterator(SourceKeyIterator):
    """
    逐行拉取原始数据并解析。

    存储读取错误会被记录并终止迭代，之后的调用都返回None；
    解析错误则直接抛给调用方，且该行已被消费，不会重试。
    """

    def __init__(self, source: 'KeyValueSource', rows: KeyValueIterator):
        self._source = source
        self._rows = rows
        self._error: Optional[Exception] = None

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    def next_key(self) -> Optional[SourceKey]:
        if self._error is not None:
            return None

        try:
            key, value = self._rows.next_row()
        except StoreReadError as e:
            self._error = e
            logger.warning(f"读取原始行失败，停止迭代: {e}")
            return None
        except Exception as e:
            error = StoreReadError(f"读取原始行失败: {e}")
            error.__cause__ = e
            self._error = error
            logger.warning(f"读取原始行失败，停止迭代: {e}")
            return None

        if not key:
            return None

        item = self._source._parse(key, value)
        handle = KeyValueSourceKey(item)
        self._source._current = handle
        return handle

    def close(self):
        self._rows.close()


class KeyValueSource(Source):
    """
    把KeyValueDB适配为类型化源。

    每行解析出的记录在next_key()时就已完全读入，各类型访问方法
    只读取当前缓冲的记录，从不回读存储。

    参数:
        db: 通用有序键值数据库
        parser: KeyValueParser实例，或签名为 (key, value) -> KeyValueItem 的可调用对象
    """

    def __init__(self, db: KeyValueDB, parser: ParserLike):
        self.db = db
        if isinstance(parser, KeyValueParser):
            self._parse_func = parser.parse
        elif callable(parser):
            self._parse_func = parser
        else:
            raise TypeError(f"parser必须是KeyValueParser或可调用对象: {parser!r}")
        self._current: Optional[KeyValueSourceKey] = None

    def _parse(self, key: str, value: bytes) -> KeyValueItem:
        try:
            item = self._parse_func(key, value)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(f"解析键 {key} 失败: {e}") from e
        if not isinstance(item, KeyValueItem):
            raise ParseError(f"解析键 {key} 返回了非KeyValueItem对象: {type(item).__name__}")
        return item

    def _item_for(self, key: SourceKey) -> KeyValueItem:
        # 只接受当前迭代步骤产生的句柄
        if self._current is None or key is not self._current:
            raise StoreReadError(f"stale source key {key.key!r}: 不是当前迭代步骤的键")
        return self._current._item

    def iterator(self) -> SourceKeyIterator:
        self._current = None
        return KeyValueSourceIterator(self, self.db.iterator())

    def close(self):
        self._current = None
        self.db.close()

    def get_string(self, key: SourceKey) -> bytes:
        return self._item_for(key).string_value

    def get_hash_items(self, key: SourceKey) -> List[HashItem]:
        item = self._item_for(key)
        return [HashItem(item.hash_field, item.hash_value)]

    def get_list_items(self, key: SourceKey) -> List[bytes]:
        return [self._item_for(key).list_item]

    def get_set_members(self, key: SourceKey) -> List[str]:
        return [self._item_for(key).set_member]

    def get_zset_members(self, key: SourceKey) -> List[ZSetMember]:
        item = self._item_for(key)
        return [ZSetMember(item.zset_member, item.zset_score)]
