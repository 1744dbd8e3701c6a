import os
import subprocess

from typing import Any, Callable, Iterator, List, Optional, Tuple  # noqa


class OSUtils(object):
    """Thin wrapper over the os and subprocess calls pulse makes.

    Components take an ``OSUtils`` in their constructor so tests can
    substitute a fake without touching the real filesystem or spawning
    processes.
    """

    def file_exists(self, filename):
        # type: (str) -> bool
        return os.path.isfile(filename)

    def get_file_contents(self, filename, binary=True, encoding='utf-8'):
        # type: (str, bool, str) -> Any
        if binary:
            mode = 'rb'
            encoding = None  # type: ignore
        else:
            mode = 'r'
        with open(filename, mode, encoding=encoding) as f:
            return f.read()

    def abspath(self, path):
        # type: (str) -> str
        return os.path.abspath(path)

    def joinpath(self, *args):
        # type: (str) -> str
        return os.path.join(*args)

    def walk(self, path, onerror=None):
        # type: (str, Optional[Callable[[OSError], None]]) -> Iterator[Tuple[str, List[str], List[str]]]  # noqa
        return os.walk(path, onerror=onerror)

    def mtime(self, path):
        # type: (str) -> int
        return os.lstat(path).st_mtime_ns

    def popen(self, command, stdin=None, stdout=None, stderr=None):
        # type: (List[str], Any, Any, Any) -> subprocess.Popen
        return subprocess.Popen(command, stdin=stdin, stdout=stdout,
                                stderr=stderr)
