"""
Redis Migrate工具的自定义异常。

为迁移过程中的不同错误条件定义特定的异常类型。
"""


class RedisMigrateError(Exception):
    """Redis Migrate工具的基础异常。"""
    pass


class ConfigurationError(RedisMigrateError):
    """配置无效时抛出。"""
    pass


class ConnectionError(RedisMigrateError):
    """Redis连接失败时抛出。"""
    pass


class StoreReadError(RedisMigrateError):
    """从源存储迭代或读取失败时抛出。"""
    pass


class StoreWriteError(RedisMigrateError):
    """写入目标存储失败时抛出。"""
    pass


class ParseError(RedisMigrateError):
    """原始行无法解析为类型化记录时抛出。"""
    pass


class PatternError(RedisMigrateError):
    """键过滤模式无效时抛出。"""
    pass


class TypeResolutionError(RedisMigrateError):
    """无法确定键类型时抛出。"""
    pass


class UnsupportedTypeError(RedisMigrateError):
    """键类型不在支持范围内时抛出。"""
    pass
