"""
Redis Migrate工具的命令行界面。

从Redis服务器或SQLite有序键值表迁移数据到目标Redis服务器。
"""

import click
import sys
from typing import Optional

from .config import Config, MigrationSettings, setup_logging, create_sample_config, load_config
from .connection_manager import RedisConnectionManager
from .destination import Destination, new_prefixed_destination
from .engine import copy
from .exceptions import RedisMigrateError, ConfigurationError
from .kv_source import KeyValueSource
from .models import KeyValueParser, Source
from .pattern_source import compile_patterns, new_key_pattern_source
from .recorder import CopyRecorder, LoggingCopyRecorder, StdCopyRecorder
from .redis_store import RedisDestination, RedisSource
from .sqlite_store import SqliteKeyValueDB
from .utils import load_object


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='配置文件路径')
@click.option('--verbose', '-v', is_flag=True, help='启用详细日志')
@click.option('--quiet', '-q', is_flag=True, help='除错误外抑制输出')
@click.pass_context
def cli(ctx, config, verbose, quiet):
    """Redis Migrate - 按键类型把数据迁移到Redis。"""
    ctx.ensure_object(dict)

    try:
        if config:
            ctx.obj['config'] = Config.from_file(config)
        else:
            ctx.obj['config'] = load_config(use_env=True, create_default=True)
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if verbose:
        ctx.obj['config'].logging.level = 'DEBUG'
    elif quiet:
        ctx.obj['config'].logging.level = 'ERROR'
        ctx.obj['config'].logging.console = False

    setup_logging(ctx.obj['config'].logging)


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='redis-migrate-config.yaml',
              help='输出配置文件路径')
def init(output):
    """初始化示例配置文件。"""
    try:
        with open(output, 'w') as f:
            f.write(create_sample_config())

        click.echo(f"Sample configuration created at: {output}")
        click.echo("Please edit the configuration file to match your data stores.")

    except OSError as e:
        click.echo(f"Error creating configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--source-type', type=click.Choice(['redis', 'sqlite']), help='源存储类型')
@click.option('--include', '-i', 'includes', multiple=True, help='包含的键模式（正则，可重复）')
@click.option('--exclude', '-e', 'excludes', multiple=True, help='排除的键模式（正则，可重复）')
@click.option('--prefix', help='写入目标时添加的键前缀')
@click.option('--list-push', type=click.Choice(['right', 'left']),
              help='列表写入方向：right保持源顺序，left反转顺序')
@click.option('--scan-match', help='源Redis的SCAN MATCH模式')
@click.option('--scan-count', type=int, help='源Redis的SCAN COUNT参数')
@click.option('--sqlite-path', type=click.Path(), help='SQLite数据库文件路径')
@click.option('--sqlite-table', help='SQLite表名')
@click.option('--parser', help='解析器路径，例如 mypkg.parsers:LevelParser')
@click.option('--progress', is_flag=True, help='显示进度条')
@click.option('--lines', is_flag=True, help='逐行输出每个键的进度到标准输出')
@click.option('--dry-run', is_flag=True, help='显示将要迁移的内容而不实际执行')
@click.pass_context
def migrate(ctx, source_type, includes, excludes, prefix, list_push, scan_match, scan_count,
            sqlite_path, sqlite_table, parser, progress, lines, dry_run):
    """从源迁移数据到目标Redis实例。"""
    config = ctx.obj['config']
    settings = config.migration

    # 使用CLI选项覆盖配置
    if source_type:
        settings.source_type = source_type
    if includes:
        settings.includes = list(includes)
    if excludes:
        settings.excludes = list(excludes)
    if prefix is not None:
        settings.prefix = prefix
    if list_push:
        settings.list_push = list_push
    if scan_match:
        settings.scan_match = scan_match
    if scan_count:
        settings.scan_count = scan_count
    if sqlite_path:
        settings.sqlite_path = sqlite_path
    if sqlite_table:
        settings.sqlite_table = sqlite_table
    if parser:
        settings.parser = parser
    if progress:
        settings.show_progress = True

    # 在连接任何存储之前校验配置和模式
    try:
        settings.validate()
        compile_patterns(settings.includes)
        compile_patterns(settings.excludes)
        kv_parser = _load_parser(settings.parser) if settings.source_type == 'sqlite' else None
    except RedisMigrateError as e:
        click.echo(f"Invalid migration settings: {e}", err=True)
        sys.exit(1)

    if dry_run:
        click.echo("DRY RUN MODE - No actual migration will be performed")
        _show_migration_plan(config)
        return

    recorder: CopyRecorder
    if lines:
        recorder = StdCopyRecorder()
    else:
        recorder = LoggingCopyRecorder(show_progress=settings.show_progress)

    try:
        with RedisConnectionManager() as conn_manager:
            target_client = conn_manager.connect_target(config.target)
            source = _build_source(conn_manager, config, kv_parser)
            try:
                filtered = new_key_pattern_source(source, settings.includes, settings.excludes)
                destination = _build_destination(target_client, settings)

                click.echo(f"开始迁移，源: {settings.source_type}")
                copy(filtered, destination, recorder)
            finally:
                source.close()

    except RedisMigrateError as e:
        click.echo(f"Migration failed: {e}", err=True)
        sys.exit(1)

    if isinstance(recorder, LoggingCopyRecorder):
        _display_migration_results(recorder.stats)


@cli.command()
@click.pass_context
def info(ctx):
    """Show Redis instance information."""
    config = ctx.obj['config']

    try:
        with RedisConnectionManager() as conn_manager:
            conn_manager.connect_target(config.target)
            if config.migration.source_type == 'redis':
                conn_manager.connect_source(config.source)
                click.echo("=== Source Redis Info ===")
                _display_redis_info(conn_manager.get_source_info())
                click.echo("")

            click.echo("=== Target Redis Info ===")
            _display_redis_info(conn_manager.get_target_info())

    except RedisMigrateError as e:
        click.echo(f"Failed to get Redis info: {e}", err=True)
        sys.exit(1)


def _load_parser(path: Optional[str]) -> KeyValueParser:
    """加载解析器，类会被无参实例化。"""
    obj = load_object(path)
    if isinstance(obj, type):
        obj = obj()
    if not isinstance(obj, KeyValueParser) and not callable(obj):
        raise ConfigurationError(f"{path} 不是解析器或可调用对象")
    return obj


def _build_source(conn_manager: RedisConnectionManager, config: Config, parser) -> Source:
    """根据配置创建源。"""
    settings = config.migration
    if settings.source_type == 'sqlite':
        db = SqliteKeyValueDB(
            settings.sqlite_path,
            table=settings.sqlite_table,
            key_column=settings.sqlite_key_column,
            value_column=settings.sqlite_value_column
        )
        return KeyValueSource(db, parser)

    client = conn_manager.connect_source(config.source)
    return RedisSource(client, match=settings.scan_match, scan_count=settings.scan_count)


def _build_destination(client, settings: MigrationSettings) -> Destination:
    destination: Destination = RedisDestination(client, list_push=settings.list_push)
    if settings.prefix:
        destination = new_prefixed_destination(settings.prefix, destination)
    return destination


def _show_migration_plan(config: Config):
    """Show migration plan for dry run."""
    settings = config.migration
    click.echo(f"Source Type: {settings.source_type}")
    if settings.source_type == 'sqlite':
        click.echo(f"SQLite Path: {settings.sqlite_path}")
        click.echo(f"SQLite Table: {settings.sqlite_table}")
        click.echo(f"Parser: {settings.parser}")
    else:
        click.echo(f"Scan Match: {settings.scan_match}")
    click.echo(f"Includes: {', '.join(settings.includes) or 'All keys'}")
    click.echo(f"Excludes: {', '.join(settings.excludes) or 'None'}")
    click.echo(f"Key Prefix: {settings.prefix or 'None'}")
    click.echo(f"List Push: {settings.list_push}")


def _display_migration_results(stats: dict):
    """Display migration results."""
    click.echo("\n=== Migration Results ===")
    click.echo(f"Keys: {stats['keys']}")
    click.echo(f"Items: {stats['items']}")
    click.echo(f"Errors: {stats['errors']}")
    if stats.get('duration') is not None:
        click.echo(f"Duration: {stats['duration']:.2f} seconds")


def _display_redis_info(info: dict):
    """Display Redis instance information."""
    important_keys = [
        'redis_version', 'role', 'connected_clients', 'used_memory_human',
        'keyspace_hits', 'keyspace_misses', 'total_commands_processed'
    ]

    for key in important_keys:
        if key in info:
            click.echo(f"{key.replace('_', ' ').title()}: {info[key]}")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
