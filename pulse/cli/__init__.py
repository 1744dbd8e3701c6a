"""Command line interface for pulse.

``pulse`` builds the program once, runs it, and then rebuilds and restarts
it every time a watched source file changes.  Press Ctrl-C to stop.
"""
import argparse
import logging
import sys

from typing import List, Optional  # noqa

from pulse import __version__ as pulse_version
from pulse.builder import BuildAndRunSequencer
from pulse.cli.reloader import Coordinator
from pulse.cli.reloader import SignalListener
from pulse.config import Config  # noqa
from pulse.config import DEFAULT_CONFIG_PATH
from pulse.config import load_config
from pulse.process import ProcessSupervisor
from pulse.utils import OSUtils
from pulse.watcher.stat import StatFileWatcher


LOGGER = logging.getLogger(__name__)


def _parse_args(argv):
    # type: (List[str]) -> argparse.Namespace
    parser = argparse.ArgumentParser(
        prog='pulse',
        description="Rebuild and restart a program when its sources change.")
    parser.add_argument(
        '-v', '--version', action='store_true',
        help="Print version information and exit.")
    parser.add_argument(
        '-c', '--config', default=DEFAULT_CONFIG_PATH,
        help="Configuration file path (default: %(default)s).")
    parser.add_argument(
        '--debug', action='store_true',
        help="Print debug logs.")
    return parser.parse_args(argv)


def _configure_logging(debug):
    # type: (bool) -> None
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def run(config, osutils=None):
    # type: (Config, Optional[OSUtils]) -> int
    """Wire up the components for ``config`` and run until shutdown."""
    if osutils is None:
        osutils = OSUtils()
    supervisor = ProcessSupervisor(osutils)
    sequencer = BuildAndRunSequencer(config.build_spec(), supervisor, osutils)
    watcher = StatFileWatcher(config.watch_config(osutils), osutils)
    coordinator = Coordinator(sequencer, supervisor, watcher)
    listener = SignalListener(coordinator.inbox)
    listener.install()
    LOGGER.info("Watching for file changes...")
    try:
        return coordinator.main()
    finally:
        listener.restore()


def main(argv=None):
    # type: (Optional[List[str]]) -> int
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    if args.version:
        print("pulse v%s" % pulse_version)
        return 0
    _configure_logging(args.debug)
    LOGGER.info("pulse started")
    config = load_config(args.config)
    config.log_summary()
    return run(config)
