"""Tests for console serialization and shared statistics."""

import builtins
import threading

from nuxeo_sync.thread_utils import ThreadSafeStatsWrapper, locked_print, serialized_console


def test_serialized_console_restores_print():
    original = builtins.print
    with serialized_console():
        assert builtins.print is locked_print
    assert builtins.print is original


def test_debug_lines_carry_thread_label(monkeypatch, capsys):
    monkeypatch.setenv('DEBUG', 'true')

    def worker():
        locked_print('uploading')

    thread = threading.Thread(target=worker, name='Upload-3')
    thread.start()
    thread.join()
    locked_print('summary')

    assert capsys.readouterr().out.splitlines() == ['[Upload-3] uploading', '[Main] summary']


def test_plain_lines_without_debug(capsys):
    locked_print('done')
    assert capsys.readouterr().out == 'done\n'


def test_stats_counters_are_consistent_across_threads():
    stats = ThreadSafeStatsWrapper({})

    def bump():
        for _ in range(500):
            stats.increment('new_files')
            stats.add_bytes('bytes_uploaded', 2)

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert stats['new_files'] == 2000
    assert stats['bytes_uploaded'] == 4000
    assert stats['failed_files'] == 0


def test_unknown_size_is_ignored():
    stats = ThreadSafeStatsWrapper({})
    stats.add_bytes('bytes_uploaded', None)
    assert stats.get('bytes_uploaded') is None
