# -*- coding: utf-8 -*-
"""
Helpers shared by the upload worker threads.

Workers print progress lines and bump the same statistics counters as the
main thread. The helpers below serialize both.
"""

import builtins
import contextlib
import threading

from .utils import is_debug_enabled

_console_lock = threading.Lock()
_builtin_print = builtins.print


def _thread_label():
    name = threading.current_thread().name
    if name == 'MainThread':
        return '[Main]'
    if name.startswith('Upload-'):
        return f'[{name}]'
    return f'[{name[:10]}]'


def locked_print(*args, **kwargs):
    """
    print() that holds a console lock, so lines from workers never interleave.

    In debug mode each non-empty line is tagged with the emitting thread:
    [Main] for the orchestrating thread, [Upload-N] for upload workers.
    """
    with _console_lock:
        if args and is_debug_enabled():
            _builtin_print(_thread_label(), *args, **kwargs)
        else:
            _builtin_print(*args, **kwargs)


@contextlib.contextmanager
def serialized_console():
    """
    Route print() through locked_print() for the duration of the block.

    Example:
        with serialized_console():
            with ThreadPoolExecutor(max_workers=4) as executor:
                ...
    """
    previous = builtins.print
    builtins.print = locked_print
    try:
        yield
    finally:
        builtins.print = previous


class ThreadSafeStatsWrapper:
    """
    Lock-protected view over a statistics dict (usually sync_stats.stats).

    Missing keys read as zero, so a wrapper over an empty dict can be handed to
    code that only increments counters.

    Example:
        from nuxeo_sync.monitoring import sync_stats
        stats = ThreadSafeStatsWrapper(sync_stats.stats)
        stats.increment('new_files')
        stats.add_bytes('bytes_uploaded', 2048)
    """

    def __init__(self, stats_dict):
        self._stats = stats_dict
        self._lock = threading.Lock()

    def __getitem__(self, key):
        with self._lock:
            return self._stats.get(key, 0)

    def get(self, key, default=None):
        with self._lock:
            return self._stats.get(key, default)

    def increment(self, key, value=1):
        """Add value (default 1) to a counter."""
        with self._lock:
            self._stats[key] = self._stats.get(key, 0) + value

    def add_bytes(self, key, bytes_count):
        """Add a transferred size to a byte counter; None (unknown size) is ignored."""
        if bytes_count is None:
            return
        self.increment(key, bytes_count)
