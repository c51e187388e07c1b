"""
复制进度记录器

复制引擎在每个键、每个错误和结束时通知记录器。
记录器是每次失败的唯一审计记录，方法本身不应抛出异常。
"""

import logging
import sys
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, TextIO

from tqdm import tqdm

from .models import KeyType
from .utils import format_duration, sanitize_key_for_logging

logger = logging.getLogger(__name__)


class CopyRecorder(ABC):
    """复制过程的观察者。"""

    @abstractmethod
    def on_error(self, message: str, error: Optional[BaseException],
                 context: Optional[Mapping[str, Any]] = None):
        """记录一次失败，context为诊断所需的键值对。"""

    @abstractmethod
    def on_key_start(self, key_type: KeyType, key: str, item: Optional[str] = None):
        """开始处理一个键（或键中的一个子项）。"""

    @abstractmethod
    def on_finish(self):
        """复制结束，每次复制恰好调用一次且为最后一次调用。"""


def format_error(message: str, error: Optional[BaseException],
                 context: Optional[Mapping[str, Any]] = None) -> str:
    parts = [f"{message}: {error}"]
    for k, v in (context or {}).items():
        parts.append(f"{k}: {v}")
    return ", ".join(parts)


class StdCopyRecorder(CopyRecorder):
    """向文本流逐行输出进度，默认输出到标准输出。"""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout

    def _write(self, line: str):
        self.out.write(line)
        self.out.flush()

    def on_error(self, message, error, context=None):
        self._write(format_error(message, error, context) + "\n")

    def on_key_start(self, key_type, key, item=None):
        if item is None:
            self._write(f"start: {key_type}: {key}\n")
        else:
            self._write(f"start: {key_type}: {key}->{item}\n")

    def on_finish(self):
        self._write("copy finished.\n")


class LoggingCopyRecorder(CopyRecorder):
    """
    通过logging模块报告进度并统计结果。

    参数:
        show_progress: 是否显示tqdm进度条（每个子项前进一步）
    """

    def __init__(self, show_progress: bool = False):
        self.show_progress = show_progress
        self._pbar: Optional[tqdm] = None
        self._start = time.time()
        self._last_key: Optional[str] = None
        self.stats: Dict[str, Any] = {
            'keys': 0,
            'items': 0,
            'errors': 0,
            'start_time': datetime.now(),
            'end_time': None,
            'duration': None,
        }

    def on_error(self, message, error, context=None):
        self.stats['errors'] += 1
        logger.error(format_error(message, error, context))

    def on_key_start(self, key_type, key, item=None):
        # 同一个键的子项是连续到达的
        if key != self._last_key:
            self._last_key = key
            self.stats['keys'] += 1
        self.stats['items'] += 1

        if item is None:
            logger.debug(f"开始迁移 {key_type}: {sanitize_key_for_logging(key)}")
        else:
            logger.debug(f"开始迁移 {key_type}: {sanitize_key_for_logging(key)} -> "
                         f"{sanitize_key_for_logging(item)}")

        if self.show_progress:
            if self._pbar is None:
                self._pbar = tqdm(desc="Migrating items", unit="items")
            self._pbar.update(1)

    def on_finish(self):
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

        duration = time.time() - self._start
        self.stats['end_time'] = datetime.now()
        self.stats['duration'] = duration
        logger.info(f"复制完成，耗时: {format_duration(duration)}，"
                    f"键: {self.stats['keys']}，子项: {self.stats['items']}，"
                    f"错误: {self.stats['errors']}")
