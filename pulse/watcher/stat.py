import logging
import threading

from typing import Callable, Dict, Iterator, Optional, Set  # noqa

from pulse.config import WatchConfig  # noqa
from pulse.utils import OSUtils
from pulse.watcher.shared import TreeWalkFailed
from pulse.watcher.shared import Watcher
from pulse.watcher.shared import WatchLimitExceeded


LOGGER = logging.getLogger(__name__)


class StatFileObserver(object):
    """Finds new and modified files by walking a tree and comparing mtimes.

    The observer owns the fingerprint table (path -> last seen mtime) and
    is only ever driven from one thread.  Entries are never removed, so a
    renamed file leaves its old path behind with a stale mtime.
    """

    def __init__(self, watch_config, osutils=None):
        # type: (WatchConfig, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._osutils = osutils
        self._root = osutils.abspath(watch_config.root_directory)
        self._extensions = tuple(sorted(watch_config.file_extension_filters))
        self._interval = watch_config.poll_interval
        self._max_watched_files = watch_config.max_watched_files
        self._mtimes = {}  # type: Dict[str, int]

    def check(self):
        # type: () -> Set[str]
        """Walk the tree once and return the files that are new or newer.

        Raises ``WatchLimitExceeded`` when recording a new file would push
        the table past the watch limit, and ``TreeWalkFailed`` when a
        directory can't be listed or a file can't be stat'd.
        """
        updated = set()  # type: Set[str]
        for filepath in self._iter_watched_files():
            if self._check_file(filepath):
                updated.add(filepath)
        return updated

    def poll(self, stop_event):
        # type: (threading.Event) -> Iterator[Set[str]]
        """Yield the changed files once for every tick that had changes.

        The first walk records the baseline and yields nothing.  After
        that the tree is walked every poll interval until ``stop_event``
        is set.
        """
        self.check()
        while not stop_event.wait(self._interval):
            changed = self.check()
            if changed and not stop_event.is_set():
                yield changed

    def _iter_watched_files(self):
        # type: () -> Iterator[str]
        for dirpath, dirnames, filenames in self._osutils.walk(
                self._root, onerror=self._raise_walk_error):
            # Lexical order so the file that trips the limit is stable.
            dirnames.sort()
            for filename in sorted(filenames):
                filepath = self._osutils.joinpath(dirpath, filename)
                if filepath.endswith(self._extensions):
                    yield filepath

    def _raise_walk_error(self, error):
        # type: (OSError) -> None
        path = error.filename or self._root
        raise TreeWalkFailed(path, error.strerror or str(error)) from error

    def _check_file(self, path):
        # type: (str) -> bool
        try:
            new_mtime = self._osutils.mtime(path)
        except OSError as e:
            raise TreeWalkFailed(path, e.strerror or str(e)) from e
        old_mtime = self._mtimes.get(path)
        if old_mtime is None:
            if len(self._mtimes) >= self._max_watched_files:
                raise WatchLimitExceeded(self._max_watched_files, path)
        elif new_mtime <= old_mtime:
            return False
        self._mtimes[path] = new_mtime
        return True


class StatFileWatcher(Watcher):
    """Polls a directory tree from a background thread."""

    def __init__(self, watch_config, osutils=None):
        # type: (WatchConfig, Optional[OSUtils]) -> None
        self._watch_config = watch_config
        self._osutils = osutils
        self._stop_event = threading.Event()
        self._thread = None  # type: Optional[threading.Thread]

    def start_watching(self, handler, error_handler):
        # type: (Callable[[], None], Callable[[Exception], None]) -> None
        observer = StatFileObserver(self._watch_config, self._osutils)
        t = threading.Thread(target=self._run,
                             args=(handler, error_handler, observer,))
        t.daemon = True
        self._thread = t
        t.start()

    def stop(self):
        # type: () -> None
        self._stop_event.set()
        if self._thread is not None and \
                self._thread is not threading.current_thread():
            self._thread.join()
        LOGGER.info("Stopping file watcher...")

    def _run(self, handler, error_handler, observer):
        # type: (Callable[[], None], Callable[[Exception], None], StatFileObserver) -> None  # noqa
        try:
            for changed in observer.poll(self._stop_event):
                for filepath in sorted(changed):
                    LOGGER.info("File changed: %s", filepath)
                handler()
        except Exception as e:
            LOGGER.debug("File watcher stopped by error", exc_info=True)
            error_handler(e)
