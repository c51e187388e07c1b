"""
类型化记录模型

定义迁移引擎共享的词汇：键类型枚举、各类型的值结构，
以及源、迭代器、通用有序键值存储和解析器的抽象接口。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from .exceptions import ParseError


class KeyType(str, Enum):
    """键的语义类型。SKIP表示被过滤器排除，不会出现在真实存储中。"""
    SKIP = ""
    STRING = "string"
    HASH = "hash"
    LIST = "list"
    SET = "set"
    ZSET = "zset"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HashItem:
    """哈希的字段-值对。"""
    field: str
    value: bytes


@dataclass(frozen=True)
class ZSetMember:
    """有序集合的成员-分数对。"""
    member: str
    score: float


class SourceKey(ABC):
    """源中键的句柄。"""

    @property
    @abstractmethod
    def key(self) -> str:
        """原始键字符串。"""

    @abstractmethod
    def resolve_type(self) -> KeyType:
        """
        解析键的类型。

        异常:
            TypeResolutionError: 无法确定类型
            StoreReadError: 查询源存储失败
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.key!r})"


class SourceKeyIterator(ABC):
    """按顺序拉取源中的键。"""

    @abstractmethod
    def next_key(self) -> Optional[SourceKey]:
        """返回下一个键，源耗尽时返回None。"""

    @property
    @abstractmethod
    def error(self) -> Optional[Exception]:
        """迭代终止时记录的存储错误。"""

    @abstractmethod
    def close(self):
        """释放迭代器资源。"""


class Source(ABC):
    """类型化源：产生键，并按正确的结构读取每个键的值。"""

    @abstractmethod
    def iterator(self) -> SourceKeyIterator:
        pass

    @abstractmethod
    def close(self):
        pass

    @abstractmethod
    def get_string(self, key: SourceKey) -> bytes:
        pass

    @abstractmethod
    def get_hash_items(self, key: SourceKey) -> List[HashItem]:
        pass

    @abstractmethod
    def get_list_items(self, key: SourceKey) -> List[bytes]:
        pass

    @abstractmethod
    def get_set_members(self, key: SourceKey) -> List[str]:
        pass

    @abstractmethod
    def get_zset_members(self, key: SourceKey) -> List[ZSetMember]:
        pass


# 每种类型必须填充的字段，其余字段必须为None
_TYPE_FIELDS: Dict[KeyType, Tuple[str, ...]] = {
    KeyType.SKIP: (),
    KeyType.STRING: ('string_value',),
    KeyType.HASH: ('hash_field', 'hash_value'),
    KeyType.LIST: ('list_item',),
    KeyType.SET: ('set_member',),
    KeyType.ZSET: ('zset_member', 'zset_score'),
}


@dataclass
class KeyValueItem:
    """
    解析一行原始数据得到的记录。

    只填充与type对应的值字段，其余字段保持None。
    推荐使用for_*构造方法创建。
    """
    key: str
    type: KeyType
    string_value: Optional[bytes] = None
    hash_field: Optional[str] = None
    hash_value: Optional[bytes] = None
    list_item: Optional[bytes] = None
    set_member: Optional[str] = None
    zset_member: Optional[str] = None
    zset_score: Optional[float] = None

    def __post_init__(self):
        try:
            self.type = KeyType(self.type)
        except ValueError:
            raise ParseError(f"未知的键类型 {self.type!r}, key: {self.key}")

        expected = _TYPE_FIELDS[self.type]
        for f in fields(self):
            if f.name in ('key', 'type'):
                continue
            value = getattr(self, f.name)
            if f.name in expected and value is None:
                raise ParseError(f"{self.type.value} 记录缺少字段 {f.name}, key: {self.key}")
            if f.name not in expected and value is not None:
                raise ParseError(f"{self.type.value} 记录不应包含字段 {f.name}, key: {self.key}")

    @classmethod
    def for_skip(cls, key: str) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.SKIP)

    @classmethod
    def for_string(cls, key: str, value: bytes) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.STRING, string_value=value)

    @classmethod
    def for_hash(cls, key: str, field: str, value: bytes) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.HASH, hash_field=field, hash_value=value)

    @classmethod
    def for_list(cls, key: str, item: bytes) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.LIST, list_item=item)

    @classmethod
    def for_set(cls, key: str, member: str) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.SET, set_member=member)

    @classmethod
    def for_zset(cls, key: str, member: str, score: float) -> 'KeyValueItem':
        return cls(key=key, type=KeyType.ZSET, zset_member=member, zset_score=float(score))


class KeyValueIterator(ABC):
    """通用有序字节存储的行迭代器。"""

    @abstractmethod
    def next_row(self) -> Tuple[str, bytes]:
        """
        返回下一行(key, value)。

        流结束时返回("", b"")，存储失败时抛出异常。
        """

    @abstractmethod
    def close(self):
        pass


class KeyValueDB(ABC):
    """通用有序键值数据库。"""

    @abstractmethod
    def iterator(self) -> KeyValueIterator:
        pass

    @abstractmethod
    def close(self):
        pass


class KeyValueParser(ABC):
    """把原始行映射为KeyValueItem，决定了支持哪种磁盘编码。"""

    @abstractmethod
    def parse(self, key: str, value: bytes) -> KeyValueItem:
        """
        解析一行原始数据。

        异常:
            ParseError: 该行无法解码
        """


ParserLike = Union[KeyValueParser, Callable[[str, bytes], KeyValueItem]]
