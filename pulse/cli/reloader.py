"""Rebuild and restart a program whenever its sources change.

How It Works
============

Three things happen concurrently while pulse runs:

* A watcher thread polls the watch directory.  Each poll interval in which
  at least one watched file changed produces one ``RebuildRequested`` event.
  If the watcher hits an error it can't recover from (too many files, a
  directory that can't be read) it produces a ``FatalError`` event and stops.
* A signal handler turns the first SIGINT/SIGTERM into a
  ``ShutdownRequested`` event.
* The ``Coordinator`` runs on the main thread and is the only consumer of
  the inbox all of these events are posted to.

The coordinator handles one event at a time and doesn't look at the inbox
again until the current event is fully handled.  A rebuild is "terminate
the running program, build, launch the new program", all done synchronously,
so there is never more than one build in flight.  Rebuild requests that
arrive during a build wait in the inbox and are handled in order.

A build or launch failure only ends that attempt; the coordinator keeps
waiting for the next change.  A fatal error or a shutdown request ends the
loop.  On the way out the running program is always terminated and the
watcher is always stopped, and any events still in the inbox are dropped.
The exit code is 0 for a shutdown request and 1 for a fatal error.
"""
import logging
import queue
import signal

from typing import Any, Dict, Optional, Sequence  # noqa

from pulse.builder import BuildAndRunSequencer  # noqa
from pulse.process import ProcessSupervisor  # noqa
from pulse.watcher.shared import Watcher  # noqa


LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1

STARTING = 'starting'
RUNNING = 'running'
DRAINING = 'draining'
TERMINATED = 'terminated'


class RebuildRequested(object):
    def __repr__(self):
        # type: () -> str
        return 'RebuildRequested()'


class FatalError(object):
    def __init__(self, cause):
        # type: (Exception) -> None
        self.cause = cause

    def __repr__(self):
        # type: () -> str
        return 'FatalError(%r)' % (self.cause,)


class ShutdownRequested(object):
    def __init__(self, signum=None):
        # type: (Optional[int]) -> None
        self.signum = signum

    def __repr__(self):
        # type: () -> str
        return 'ShutdownRequested(%r)' % (self.signum,)


class Restarter(object):
    """Change handler for the watcher: asks the coordinator to rebuild."""

    def __init__(self, inbox):
        # type: (queue.SimpleQueue) -> None
        self._inbox = inbox

    def __call__(self):
        # type: () -> None
        self._inbox.put(RebuildRequested())


class ErrorReporter(object):
    """Error handler for the watcher: hands the error to the coordinator."""

    def __init__(self, inbox):
        # type: (queue.SimpleQueue) -> None
        self._inbox = inbox

    def __call__(self, error):
        # type: (Exception) -> None
        self._inbox.put(FatalError(error))


class SignalListener(object):
    """Turns the first termination signal into a ``ShutdownRequested``.

    Must be installed from the main thread.  The handler does nothing but
    put an event on the inbox; ``SimpleQueue.put`` is safe to call from a
    signal handler, logging is not.
    """

    def __init__(self, inbox, signals=(signal.SIGINT, signal.SIGTERM)):
        # type: (queue.SimpleQueue, Sequence[int]) -> None
        self._inbox = inbox
        self._signals = signals
        self._previous = {}  # type: Dict[int, Any]
        self._received = False

    def install(self):
        # type: () -> None
        for signum in self._signals:
            self._previous[signum] = signal.signal(signum, self)

    def restore(self):
        # type: () -> None
        for signum, handler in self._previous.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._previous.clear()

    def __call__(self, signum, frame):
        # type: (int, Any) -> None
        if self._received:
            return
        self._received = True
        self._inbox.put(ShutdownRequested(signum))


def _signal_name(signum):
    # type: (Optional[int]) -> str
    if signum is None:
        return 'unknown'
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class Coordinator(object):
    """Serializes rebuilds, fatal errors and shutdown requests.

    ``main`` is the only consumer of the inbox.  Everything that touches
    the running process happens on the thread that calls ``main``.
    """

    def __init__(self, sequencer, supervisor, watcher, inbox=None):
        # type: (BuildAndRunSequencer, ProcessSupervisor, Watcher, Optional[queue.SimpleQueue]) -> None  # noqa
        if inbox is None:
            inbox = queue.SimpleQueue()
        self._sequencer = sequencer
        self._supervisor = supervisor
        self._watcher = watcher
        self._inbox = inbox
        self.state = STARTING

    @property
    def inbox(self):
        # type: () -> queue.SimpleQueue
        return self._inbox

    def main(self):
        # type: () -> int
        self._watcher.start_watching(Restarter(self._inbox),
                                     ErrorReporter(self._inbox))
        try:
            self._sequencer.build_and_run()
            self.state = RUNNING
            while True:
                event = self._inbox.get()
                rc = self._handle(event)
                if rc is not None:
                    return rc
        finally:
            self._drain()

    def _handle(self, event):
        # type: (Any) -> Optional[int]
        LOGGER.debug("Handling %r", event)
        if isinstance(event, RebuildRequested):
            self._supervisor.terminate()
            self._sequencer.build_and_run()
            return None
        if isinstance(event, FatalError):
            LOGGER.error("%s", event.cause)
            return EXIT_FATAL
        if isinstance(event, ShutdownRequested):
            LOGGER.info("Received signal: %s", _signal_name(event.signum))
            LOGGER.info("Shutting down...")
            return EXIT_OK
        raise TypeError("Unknown coordinator event: %r" % (event,))

    def _drain(self):
        # type: () -> None
        self.state = DRAINING
        try:
            self._supervisor.terminate()
        finally:
            self._watcher.stop()
            self._discard_pending()
            self.state = TERMINATED

    def _discard_pending(self):
        # type: () -> None
        discarded = 0
        while True:
            try:
                self._inbox.get_nowait()
            except queue.Empty:
                break
            discarded += 1
        if discarded:
            LOGGER.debug("Discarded %s pending event(s)", discarded)
