"""
目标存储接口

定义迁移写入的目标操作，以及为所有键名添加固定前缀的装饰器。
"""

from abc import ABC, abstractmethod

from .exceptions import ConfigurationError


class Destination(ABC):
    """
    迁移目标。写入失败时抛出StoreWriteError。

    list_push按取出顺序逐个调用，最终列表顺序由具体实现决定并需注明。
    """

    @abstractmethod
    def set(self, key: str, value: bytes):
        pass

    @abstractmethod
    def hash_set(self, key: str, field: str, value: bytes):
        pass

    @abstractmethod
    def set_add(self, key: str, member: str):
        pass

    @abstractmethod
    def sorted_set_add(self, key: str, member: str, score: float):
        pass

    @abstractmethod
    def list_push(self, key: str, item: bytes):
        pass

    @abstractmethod
    def close(self):
        pass


class PrefixedDestination(Destination):
    """为键、哈希名、列表名、集合名和有序集合名添加前缀，字段和成员不变。"""

    def __init__(self, prefix: str, destination: Destination):
        if not prefix:
            raise ConfigurationError("无效的目标键前缀: 前缀不能为空")
        self.prefix = prefix
        self.destination = destination

    def prefixed_key(self, key: str) -> str:
        return self.prefix + key

    def set(self, key: str, value: bytes):
        self.destination.set(self.prefixed_key(key), value)

    def hash_set(self, key: str, field: str, value: bytes):
        self.destination.hash_set(self.prefixed_key(key), field, value)

    def set_add(self, key: str, member: str):
        self.destination.set_add(self.prefixed_key(key), member)

    def sorted_set_add(self, key: str, member: str, score: float):
        self.destination.sorted_set_add(self.prefixed_key(key), member, score)

    def list_push(self, key: str, item: bytes):
        self.destination.list_push(self.prefixed_key(key), item)

    def close(self):
        self.destination.close()


def new_prefixed_destination(prefix: str, destination: Destination) -> Destination:
    """创建带前缀的目标，前缀为空时抛出ConfigurationError。"""
    return PrefixedDestination(prefix, destination)
