"""
Tests for the SQLite ordered key-value store, against real temporary databases.
"""

import sqlite3

import pytest

from redis_migrate.engine import copy
from redis_migrate.exceptions import ConfigurationError, StoreReadError
from redis_migrate.kv_source import KeyValueSource
from redis_migrate.models import KeyValueItem
from redis_migrate.sqlite_store import SqliteKeyValueDB


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "store.db")
    conn = sqlite3.connect(path)
    conn.execute('CREATE TABLE kv ("key" TEXT, "value" BLOB)')
    conn.executemany('INSERT INTO kv VALUES (?, ?)', [
        ("c", b"set|m"),
        ("a", b"string|1"),
        ("b", b"hash|f|v"),
    ])
    conn.commit()
    conn.close()
    return path


def rows(db):
    it = db.iterator()
    result = []
    try:
        while True:
            key, value = it.next_row()
            if not key:
                return result
            result.append((key, value))
    finally:
        it.close()


class TestSqliteKeyValueDB:

    def test_rows_ordered_by_key(self, db_path):
        db = SqliteKeyValueDB(db_path)

        assert rows(db) == [("a", b"string|1"), ("b", b"hash|f|v"), ("c", b"set|m")]
        db.close()

    def test_sentinel_repeats_at_end(self, db_path):
        db = SqliteKeyValueDB(db_path)
        it = db.iterator()
        for _ in range(3):
            it.next_row()

        assert it.next_row() == ("", b"")
        assert it.next_row() == ("", b"")
        db.close()

    def test_blob_keys_and_text_values(self, tmp_path):
        path = str(tmp_path / "blob.db")
        conn = sqlite3.connect(path)
        conn.execute('CREATE TABLE data (k BLOB, v TEXT)')
        conn.execute('INSERT INTO data VALUES (?, ?)', (b"\xffkey", "text"))
        conn.commit()
        conn.close()

        db = SqliteKeyValueDB(path, table="data", key_column="k", value_column="v")

        assert rows(db) == [("\udcffkey", b"text")]
        db.close()

    def test_missing_table_reported_on_first_read(self, tmp_path):
        db = SqliteKeyValueDB(str(tmp_path / "empty.db"), table="missing")
        it = db.iterator()

        with pytest.raises(StoreReadError):
            it.next_row()
        db.close()

    @pytest.mark.parametrize("kwargs", [
        {"table": "kv; DROP TABLE kv"},
        {"key_column": ""},
        {"value_column": "1value"},
    ])
    def test_invalid_identifiers(self, db_path, kwargs):
        with pytest.raises(ConfigurationError):
            SqliteKeyValueDB(db_path, **kwargs)

    def test_copy_through_adapter(self, db_path, parser, destination, recorder):
        source = KeyValueSource(SqliteKeyValueDB(db_path), parser)

        copy(source, destination, recorder)
        source.close()

        assert destination.calls == [
            ('set', 'a', b'1'),
            ('hash_set', 'b', 'f', b'v'),
            ('set_add', 'c', 'm'),
        ]
        assert recorder.errors == []

    def test_missing_table_surfaces_as_iterator_error(self, tmp_path, parser, destination, recorder):
        source = KeyValueSource(SqliteKeyValueDB(str(tmp_path / "empty.db")), parser)

        copy(source, destination, recorder)
        source.close()

        assert recorder.error_messages() == ["iterator errors"]
        assert recorder.events[-1] == ('finish',)


class TestDynamicTyping:

    @pytest.fixture
    def typed_path(self, tmp_path):
        path = str(tmp_path / "typed.db")
        conn = sqlite3.connect(path)
        conn.execute('CREATE TABLE kv ("key" TEXT, "value")')
        conn.executemany('INSERT INTO kv VALUES (?, ?)', [
            ("counter", 5),
            ("ratio", 1.5),
            ("empty", None),
        ])
        conn.commit()
        conn.close()
        return path

    def test_numeric_values_keep_their_text_form(self, typed_path):
        db = SqliteKeyValueDB(typed_path)

        assert rows(db) == [("counter", b"5"), ("empty", b""), ("ratio", b"1.5")]
        db.close()

    def test_numeric_values_copied(self, typed_path, destination, recorder):
        source = KeyValueSource(SqliteKeyValueDB(typed_path), KeyValueItem.for_string)

        copy(source, destination, recorder)
        source.close()

        assert destination.calls == [
            ('set', 'counter', b'5'),
            ('set', 'empty', b''),
            ('set', 'ratio', b'1.5'),
        ]
        assert recorder.errors == []


class TestInvalidKeys:

    @pytest.fixture
    def keyed_path(self, tmp_path):
        path = str(tmp_path / "keys.db")
        conn = sqlite3.connect(path)
        conn.execute('CREATE TABLE kv ("key", "value" BLOB)')
        conn.executemany('INSERT INTO kv VALUES (?, ?)', [
            ("", b"string|x"),
            (None, b"string|x"),
            (b"", b"string|x"),
            ("a", b"string|1"),
            ("b", b"string|2"),
        ])
        conn.commit()
        conn.close()
        return path

    def test_empty_and_null_keys_skipped(self, keyed_path):
        db = SqliteKeyValueDB(keyed_path)

        assert rows(db) == [("a", b"string|1"), ("b", b"string|2")]
        db.close()

    def test_empty_key_does_not_end_copy(self, keyed_path, parser, destination, recorder):
        source = KeyValueSource(SqliteKeyValueDB(keyed_path), parser)

        copy(source, destination, recorder)
        source.close()

        assert destination.calls == [('set', 'a', b'1'), ('set', 'b', b'2')]
        assert recorder.errors == []
