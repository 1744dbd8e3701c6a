"""Lifecycle of the single child process pulse runs."""
import logging
import subprocess

from typing import List, Optional  # noqa

from pulse.utils import OSUtils


LOGGER = logging.getLogger(__name__)


class LaunchFailed(Exception):
    def __init__(self, command, reason):
        # type: (List[str], str) -> None
        super(LaunchFailed, self).__init__(
            "Error starting program %s: %s" % (' '.join(command), reason))
        self.command = command
        self.reason = reason


class ProcessSupervisor(object):
    """Owns at most one running child process.

    The child inherits pulse's stdout and stderr so its output shows up
    live; stdin is not connected.  Callers are expected to ``terminate``
    the current process before asking for a new ``launch``.
    """

    def __init__(self, osutils=None):
        # type: (Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._osutils = osutils
        self._process = None  # type: Optional[subprocess.Popen]

    @property
    def handle(self):
        # type: () -> Optional[subprocess.Popen]
        return self._process

    @property
    def is_running(self):
        # type: () -> bool
        return self._process is not None and self._process.poll() is None

    def launch(self, command):
        # type: (List[str]) -> subprocess.Popen
        if self._process is not None:
            raise LaunchFailed(command, "process %s is still being tracked"
                               % self._process.pid)
        try:
            process = self._osutils.popen(command, stdin=subprocess.DEVNULL)
        except OSError as e:
            raise LaunchFailed(command, e.strerror or str(e)) from e
        LOGGER.debug("Started process %s: %s", process.pid, ' '.join(command))
        self._process = process
        return process

    def terminate(self):
        # type: () -> None
        process = self._process
        if process is None:
            return
        LOGGER.info("Stopping previous process...")
        try:
            process.kill()
        except ProcessLookupError:
            # Exited between the returncode check in kill() and the signal.
            pass
        process.wait()
        LOGGER.debug("Process %s exited with %s", process.pid,
                     process.returncode)
        self._process = None

    def wait(self, timeout=None):
        # type: (Optional[float]) -> Optional[int]
        """Wait for the current process to exit and return its exit code.

        Returns ``None`` if no process is tracked.  The handle is released
        once the process has exited.  ``subprocess.TimeoutExpired`` is
        raised if ``timeout`` elapses first.
        """
        process = self._process
        if process is None:
            return None
        rc = process.wait(timeout)
        self._process = None
        return rc
