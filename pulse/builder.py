import logging

from typing import List, Optional  # noqa

from pulse.config import BuildSpec  # noqa
from pulse.process import LaunchFailed
from pulse.process import ProcessSupervisor  # noqa
from pulse.utils import OSUtils


LOGGER = logging.getLogger(__name__)


class BuildFailed(Exception):
    def __init__(self, command, reason):
        # type: (List[str], str) -> None
        super(BuildFailed, self).__init__(
            "Build failed (%s): %s" % (' '.join(command), reason))
        self.command = command
        self.reason = reason


class BuildAndRunSequencer(object):
    """Builds the artifact and, if that worked, launches it.

    Holds no state between calls.  The caller guarantees that calls never
    overlap and that any previous process was terminated beforehand.
    """

    def __init__(self, build_spec, supervisor, osutils=None):
        # type: (BuildSpec, ProcessSupervisor, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._build_spec = build_spec
        self._supervisor = supervisor
        self._osutils = osutils

    @property
    def build_command(self):
        # type: () -> List[str]
        return list(self._build_spec.build_command) + \
            list(self._build_spec.build_args)

    @property
    def run_command(self):
        # type: () -> List[str]
        return [self._osutils.joinpath('.', self._build_spec.artifact_path)]

    def build_and_run(self):
        # type: () -> bool
        """Build then launch.  Returns True if a process is now running.

        A failed build or launch is logged and ends this attempt only.
        """
        try:
            self.build()
        except BuildFailed as e:
            LOGGER.error("%s", e)
            return False
        LOGGER.info("Build successful")
        LOGGER.info("Running program...")
        try:
            self._supervisor.launch(self.run_command)
        except LaunchFailed as e:
            LOGGER.error("%s", e)
            return False
        LOGGER.info("Program is running...")
        return True

    def build(self):
        # type: () -> None
        command = self.build_command
        LOGGER.info("Building...")
        try:
            process = self._osutils.popen(command)
        except OSError as e:
            raise BuildFailed(command, e.strerror or str(e)) from e
        rc = process.wait()
        if rc != 0:
            raise BuildFailed(command, "exit status %s" % rc)
