"""
SQLite有序键值存储

把磁盘上的SQLite表作为通用有序字节存储，按键升序逐行读取，
配合KeyValueSource和解析器使用。
"""

import logging
import re
import sqlite3
from typing import Tuple

from .exceptions import ConfigurationError, StoreReadError
from .models import KeyValueDB, KeyValueIterator
from .utils import to_text

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

END_OF_STREAM = ("", b"")


def _check_identifier(name: str, what: str) -> str:
    if not name or not _IDENTIFIER.match(name):
        raise ConfigurationError(f"无效的{what}名称: {name!r}")
    return name


def _value_bytes(value) -> bytes:
    # SQLite列是动态类型，INTEGER/REAL按其文本形式保存
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (int, float)):
        return str(value).encode('ascii')
    return bytes(value)


class SqliteKeyValueIterator(KeyValueIterator):

    def __init__(self, cursor: sqlite3.Cursor):
        self._cursor = cursor

    def next_row(self) -> Tuple[str, bytes]:
        try:
            row = self._cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreReadError(f"读取SQLite行失败: {e}") from e

        if row is None:
            return END_OF_STREAM

        key, value = row
        return to_text(key), _value_bytes(value)

    def close(self):
        self._cursor.close()


class SqliteKeyValueDB(KeyValueDB):
    """
    以SQLite表为源的有序键值数据库。

    参数:
        path: 数据库文件路径
        table: 表名
        key_column: 键列名
        value_column: 值列名
    """

    def __init__(self, path: str, table: str = "kv", key_column: str = "key", value_column: str = "value"):
        self.path = path
        self.table = _check_identifier(table, "表")
        self.key_column = _check_identifier(key_column, "键列")
        self.value_column = _check_identifier(value_column, "值列")
        try:
            self._conn = sqlite3.connect(path)
        except sqlite3.Error as e:
            raise StoreReadError(f"打开SQLite数据库失败 {path}: {e}") from e
        logger.info(f"已打开SQLite数据库: {path} (表: {table})")

    def iterator(self) -> KeyValueIterator:
        """
        按键升序返回所有行。

        NULL或空键的行会与流结束标记混淆，因此不参与迭代，只记录警告。
        """
        valid = f'"{self.key_column}" IS NOT NULL AND length("{self.key_column}") > 0'
        query = (f'SELECT "{self.key_column}", "{self.value_column}" '
                 f'FROM "{self.table}" WHERE {valid} ORDER BY "{self.key_column}"')
        try:
            skipped = self._conn.execute(
                f'SELECT count(*) FROM "{self.table}" WHERE NOT ({valid})'
            ).fetchone()[0]
            cursor = self._conn.execute(query)
        except sqlite3.Error as e:
            return _FailedIterator(StoreReadError(f"查询SQLite表 {self.table} 失败: {e}"))

        if skipped:
            logger.warning(f"SQLite表 {self.table} 中有 {skipped} 行的键为NULL或空，已跳过")
        return SqliteKeyValueIterator(cursor)

    def close(self):
        self._conn.close()


class _FailedIterator(KeyValueIterator):
    """查询无法执行时，在第一次读取时报告错误。"""

    def __init__(self, error: StoreReadError):
        self._error = error

    def next_row(self) -> Tuple[str, bytes]:
        raise self._error

    def close(self):
        pass
