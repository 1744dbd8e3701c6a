import os
import threading
import time

from pulse.config import WatchConfig
from pulse.watcher.shared import TreeWalkFailed
from pulse.watcher.shared import WatchLimitExceeded
from pulse.watcher.stat import StatFileWatcher


POLL_INTERVAL = 0.5
MAX_TIMEOUT = 5.0


def make_watcher(path, max_files=100):
    return StatFileWatcher(WatchConfig(
        root_directory=path.strpath,
        file_extension_filters=frozenset(['.go']),
        poll_interval=POLL_INTERVAL,
        max_watched_files=max_files,
    ))


class Recorder(object):
    def __init__(self):
        self.changes = 0
        self.errors = []
        self.changed = threading.Event()
        self.failed = threading.Event()

    def on_change(self):
        self.changes += 1
        self.changed.set()

    def on_error(self, error):
        self.errors.append(error)
        self.failed.set()


def touch(path):
    future = time.time() + 2
    os.utime(path.strpath, (future, future))


def test_many_changes_produce_one_notification(tmpdir):
    files = [tmpdir.join('file%s.go' % i) for i in range(5)]
    for f in files:
        f.write('package main')
    recorder = Recorder()
    watcher = make_watcher(tmpdir)
    watcher.start_watching(recorder.on_change, recorder.on_error)
    try:
        time.sleep(0.1)
        for f in files:
            touch(f)
        assert recorder.changed.wait(MAX_TIMEOUT)
        # Another full interval with no changes emits nothing more.
        time.sleep(POLL_INTERVAL * 2)
    finally:
        watcher.stop()

    assert recorder.changes == 1
    assert recorder.errors == []


def test_no_changes_no_notifications(tmpdir):
    tmpdir.join('main.go').write('package main')
    recorder = Recorder()
    watcher = make_watcher(tmpdir)
    watcher.start_watching(recorder.on_change, recorder.on_error)
    try:
        time.sleep(POLL_INTERVAL * 2.5)
    finally:
        watcher.stop()

    assert recorder.changes == 0
    assert recorder.errors == []


def test_limit_is_reported_to_error_handler(tmpdir):
    for i in range(3):
        tmpdir.join('file%s.go' % i).write('package main')
    recorder = Recorder()
    watcher = make_watcher(tmpdir, max_files=2)
    watcher.start_watching(recorder.on_change, recorder.on_error)
    try:
        assert recorder.failed.wait(MAX_TIMEOUT)
    finally:
        watcher.stop()

    assert len(recorder.errors) == 1
    assert isinstance(recorder.errors[0], WatchLimitExceeded)


def test_vanished_root_is_reported_to_error_handler(tmpdir):
    root = tmpdir.mkdir('src')
    recorder = Recorder()
    watcher = make_watcher(root)
    watcher.start_watching(recorder.on_change, recorder.on_error)
    try:
        time.sleep(0.1)
        root.remove()
        assert recorder.failed.wait(MAX_TIMEOUT)
    finally:
        watcher.stop()

    assert isinstance(recorder.errors[0], TreeWalkFailed)
    assert recorder.changes == 0


def test_stop_returns_promptly(tmpdir):
    watcher = StatFileWatcher(WatchConfig(
        root_directory=tmpdir.strpath,
        file_extension_filters=frozenset(['.go']),
        poll_interval=3600.0,
        max_watched_files=100,
    ))
    watcher.start_watching(lambda: None, lambda error: None)
    time.sleep(0.1)

    start = time.time()
    watcher.stop()

    assert time.time() - start < 1.0
