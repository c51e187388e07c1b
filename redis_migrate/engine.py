"""
复制引擎

逐个拉取源中的键，按类型读取值并写入目标。
任何单个键或子项的失败都只报告给记录器，不会中止整个复制。
"""

import logging
import time

from .destination import Destination
from .exceptions import RedisMigrateError, UnsupportedTypeError
from .models import KeyType, Source, SourceKey
from .recorder import CopyRecorder
from .utils import format_duration, to_text

logger = logging.getLogger(__name__)


def _copy_string(source: Source, destination: Destination, recorder: CopyRecorder,
                 key: SourceKey, context: dict):
    try:
        value = source.get_string(key)
    except Exception as e:
        recorder.on_error("get string key value failed", e, context)
        return

    recorder.on_key_start(KeyType.STRING, key.key)
    try:
        destination.set(key.key, value)
    except Exception as e:
        recorder.on_error("set string key value failed", e, context)


def _copy_hash(source: Source, destination: Destination, recorder: CopyRecorder,
               key: SourceKey, context: dict):
    try:
        items = source.get_hash_items(key)
    except Exception as e:
        recorder.on_error("get hash items failed", e, context)
        return

    for item in items:
        recorder.on_key_start(KeyType.HASH, key.key, item.field)
        try:
            destination.hash_set(key.key, item.field, item.value)
        except Exception as e:
            recorder.on_error("set hash item failed", e, dict(context, field=item.field))


def _copy_list(source: Source, destination: Destination, recorder: CopyRecorder,
               key: SourceKey, context: dict):
    try:
        items = source.get_list_items(key)
    except Exception as e:
        recorder.on_error("get list items failed", e, context)
        return

    # 按读取顺序逐个push，最终顺序由目标的push方向决定
    for item in items:
        text = to_text(item)
        recorder.on_key_start(KeyType.LIST, key.key, text)
        try:
            destination.list_push(key.key, item)
        except Exception as e:
            recorder.on_error("push list item failed", e, dict(context, item=text))


def _copy_set(source: Source, destination: Destination, recorder: CopyRecorder,
              key: SourceKey, context: dict):
    try:
        members = source.get_set_members(key)
    except Exception as e:
        recorder.on_error("get set members failed", e, context)
        return

    for member in members:
        recorder.on_key_start(KeyType.SET, key.key, member)
        try:
            destination.set_add(key.key, member)
        except Exception as e:
            recorder.on_error("add set member failed", e, dict(context, member=member))


def _copy_zset(source: Source, destination: Destination, recorder: CopyRecorder,
               key: SourceKey, context: dict):
    try:
        members = source.get_zset_members(key)
    except Exception as e:
        recorder.on_error("get zset members failed", e, context)
        return

    for member in members:
        recorder.on_key_start(KeyType.ZSET, key.key, member.member)
        try:
            destination.sorted_set_add(key.key, member.member, member.score)
        except Exception as e:
            recorder.on_error("add zset member failed", e,
                              dict(context, member=member.member, score=member.score))


def _copy_key(source: Source, destination: Destination, recorder: CopyRecorder, key: SourceKey):
    try:
        typ = key.resolve_type()
    except UnsupportedTypeError as e:
        # 源自身识别出无法迁移的类型（例如Redis stream）
        recorder.on_error("unsupported key type", e, {'key': key.key})
        return
    except Exception as e:
        recorder.on_error("retrieve key type failed", e, {'key': key.key})
        return

    if typ == KeyType.SKIP:
        return

    context = {'type': str(typ), 'key': key.key}
    try:
        if typ == KeyType.STRING:
            _copy_string(source, destination, recorder, key, context)
        elif typ == KeyType.HASH:
            _copy_hash(source, destination, recorder, key, context)
        elif typ == KeyType.LIST:
            _copy_list(source, destination, recorder, key, context)
        elif typ == KeyType.SET:
            _copy_set(source, destination, recorder, key, context)
        elif typ == KeyType.ZSET:
            _copy_zset(source, destination, recorder, key, context)
        else:
            raise UnsupportedTypeError(f"不支持的键类型 {typ!r}")
    except UnsupportedTypeError as e:
        recorder.on_error("unsupported key type", e, context)


def copy(source: Source, destination: Destination, recorder: CopyRecorder):
    """
    把源中的所有键复制到目标。

    尽力而为：类型解析、读取、写入失败都报告给记录器后继续处理下一个子项或键，
    迭代中抛出的RedisMigrateError（例如ParseError）同样只报告不重试。
    无论如何都会关闭源迭代器，并在最后调用一次recorder.on_finish()。

    参数:
        source: 类型化源（可以是过滤装饰器）
        destination: 写入目标
        recorder: 进度记录器
    """
    logger.info("开始复制")
    start_time = time.time()

    try:
        iterator = source.iterator()
    except Exception as e:
        recorder.on_error("open source iterator failed", e)
        recorder.on_finish()
        return

    try:
        while True:
            try:
                key = iterator.next_key()
            except RedisMigrateError as e:
                recorder.on_error("iterate next key failed", e)
                continue
            if key is None:
                break

            _copy_key(source, destination, recorder, key)

        if iterator.error is not None:
            recorder.on_error("iterator errors", iterator.error)
    finally:
        try:
            iterator.close()
        except Exception as e:
            recorder.on_error("close source iterator failed", e)
        logger.info(f"复制结束，耗时: {format_duration(time.time() - start_time)}")
        recorder.on_finish()
