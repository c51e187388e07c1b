"""
Tests for the command line interface.
"""

import logging
import sqlite3
from unittest.mock import MagicMock

import pytest
import redis
from click.testing import CliRunner

from redis_migrate import cli as cli_module
from redis_migrate.cli import cli


class FakeConnectionManager:
    def __init__(self, target_client, source_client=None):
        self.target_client = target_client
        self.source_client = source_client
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    def connect_target(self, config):
        return self.target_client

    def connect_source(self, config):
        return self.source_client

    def get_source_info(self):
        return {'redis_version': '7.2.0', 'role': 'master'}

    def get_target_info(self):
        return {'redis_version': '7.2.1', 'role': 'master'}


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def runner(monkeypatch):
    for name in ('MIGRATION_SOURCE_TYPE', 'MIGRATION_INCLUDES', 'MIGRATION_EXCLUDES',
                 'MIGRATION_PREFIX', 'MIGRATION_PARSER', 'MIGRATION_SQLITE_PATH'):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def target_client():
    return MagicMock(spec=redis.Redis)


@pytest.fixture
def manager(monkeypatch, target_client):
    manager = FakeConnectionManager(target_client, MagicMock(spec=redis.Redis))
    monkeypatch.setattr(cli_module, 'RedisConnectionManager', lambda: manager)
    return manager


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "store.db")
    conn = sqlite3.connect(path)
    conn.execute('CREATE TABLE kv ("key" TEXT, "value" BLOB)')
    conn.executemany('INSERT INTO kv VALUES (?, ?)', [
        ("cache:1", b"string|stale"),
        ("user:1", b"hash|name|alice"),
        ("user:1:tags", b"list|a"),
    ])
    conn.commit()
    conn.close()
    return path


def test_init_writes_sample(runner, tmp_path):
    output = tmp_path / "config.yaml"

    result = runner.invoke(cli, ['-q', 'init', '-o', str(output)])

    assert result.exit_code == 0
    assert "source_type: redis" in output.read_text()


def test_dry_run_shows_plan(runner):
    result = runner.invoke(cli, ['-q', 'migrate', '--dry-run', '-i', '^user:', '-e', 'tmp',
                                 '--prefix', 'ns:'])

    assert result.exit_code == 0
    assert "DRY RUN MODE" in result.output
    assert "Includes: ^user:" in result.output
    assert "Excludes: tmp" in result.output
    assert "Key Prefix: ns:" in result.output


def test_invalid_pattern_fails_before_connecting(runner, manager, target_client):
    result = runner.invoke(cli, ['-q', 'migrate', '-i', '(broken'])

    assert result.exit_code == 1
    assert "Invalid migration settings" in result.output
    target_client.set.assert_not_called()


def test_sqlite_requires_parser(runner, db_path):
    result = runner.invoke(cli, ['-q', 'migrate', '--source-type', 'sqlite', '--sqlite-path', db_path])

    assert result.exit_code == 1
    assert "parser" in result.output


def test_unknown_parser_path(runner, db_path):
    result = runner.invoke(cli, ['-q', 'migrate', '--source-type', 'sqlite', '--sqlite-path', db_path,
                                 '--parser', 'tests.nowhere:Parser'])

    assert result.exit_code == 1


def test_sqlite_migration(runner, manager, target_client, db_path):
    result = runner.invoke(cli, [
        '-q', 'migrate',
        '--source-type', 'sqlite',
        '--sqlite-path', db_path,
        '--parser', 'tests.doubles:PipeParser',
        '-i', '^user:',
        '-e', ':tags$',
        '--prefix', 'ns:',
    ])

    assert result.exit_code == 0, result.output
    target_client.hset.assert_called_once_with(b"ns:user:1", b"name", b"alice")
    target_client.set.assert_not_called()
    target_client.rpush.assert_not_called()
    assert "Keys: 1" in result.output
    assert "Errors: 0" in result.output
    assert manager.closed


def test_lines_recorder_output(runner, manager, target_client, db_path):
    result = runner.invoke(cli, [
        '-q', 'migrate',
        '--source-type', 'sqlite',
        '--sqlite-path', db_path,
        '--parser', 'tests.doubles:PipeParser',
        '--list-push', 'left',
        '--lines',
    ])

    assert result.exit_code == 0, result.output
    assert "start: string: cache:1\n" in result.output
    assert "start: hash: user:1->name\n" in result.output
    assert "start: list: user:1:tags->a\n" in result.output
    assert result.output.endswith("copy finished.\n")
    target_client.lpush.assert_called_once_with(b"user:1:tags", b"a")


def test_redis_migration(runner, manager, target_client):
    source_client = manager.source_client
    source_client.scan.return_value = (0, [b"greeting"])
    source_client.type.return_value = b"string"
    source_client.get.return_value = b"hello"

    result = runner.invoke(cli, ['-q', 'migrate', '--scan-count', '10'])

    assert result.exit_code == 0, result.output
    source_client.scan.assert_called_once_with(cursor=0, match="*", count=10)
    target_client.set.assert_called_once_with(b"greeting", b"hello")
    source_client.close.assert_called_once_with()


def test_info(runner, manager):
    result = runner.invoke(cli, ['-q', 'info'])

    assert result.exit_code == 0
    assert "=== Source Redis Info ===" in result.output
    assert "Redis Version: 7.2.1" in result.output
