from typing import Callable  # noqa


class WatchError(Exception):
    """Base class for errors that stop the change detector."""


class WatchLimitExceeded(WatchError):
    def __init__(self, limit, path):
        # type: (int, str) -> None
        super(WatchLimitExceeded, self).__init__(
            "Too many files to watch: %s exceeds the limit of %s "
            "watched files" % (path, limit))
        self.limit = limit
        self.path = path


class TreeWalkFailed(WatchError):
    def __init__(self, path, reason):
        # type: (str, str) -> None
        super(TreeWalkFailed, self).__init__(
            "Unable to scan %s: %s" % (path, reason))
        self.path = path
        self.reason = reason


class Watcher(object):
    def start_watching(self, handler, error_handler):
        # type: (Callable[[], None], Callable[[Exception], None]) -> None
        raise NotImplementedError('start_watching')

    def stop(self):
        # type: () -> None
        raise NotImplementedError('stop')
