import errno
import subprocess

import mock
import pytest

from pulse.process import LaunchFailed
from pulse.process import ProcessSupervisor
from pulse.utils import OSUtils


@pytest.fixture
def osutils():
    return mock.Mock(spec=OSUtils)


@pytest.fixture
def process():
    process = mock.Mock(spec=subprocess.Popen)
    process.pid = 1234
    process.returncode = None
    process.poll.return_value = None
    return process


def test_launch_tracks_process(osutils, process):
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)

    handle = supervisor.launch(['./app'])

    assert handle is process
    assert supervisor.handle is process
    assert supervisor.is_running
    osutils.popen.assert_called_once_with(['./app'],
                                          stdin=subprocess.DEVNULL)


def test_launch_failure_leaves_no_handle(osutils):
    osutils.popen.side_effect = OSError(
        errno.ENOENT, 'No such file or directory')
    supervisor = ProcessSupervisor(osutils)

    with pytest.raises(LaunchFailed) as excinfo:
        supervisor.launch(['./app'])

    assert 'No such file or directory' in str(excinfo.value)
    assert excinfo.value.command == ['./app']
    assert supervisor.handle is None
    assert not supervisor.is_running


def test_launch_refuses_second_process(osutils, process):
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)
    supervisor.launch(['./app'])

    with pytest.raises(LaunchFailed):
        supervisor.launch(['./app'])

    assert osutils.popen.call_count == 1
    assert supervisor.handle is process


def test_terminate_without_process_is_noop(osutils):
    supervisor = ProcessSupervisor(osutils)
    supervisor.terminate()
    assert supervisor.handle is None


def test_terminate_kills_and_reaps(osutils, process):
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)
    supervisor.launch(['./app'])

    supervisor.terminate()

    process.kill.assert_called_once_with()
    process.wait.assert_called_once_with()
    assert supervisor.handle is None


def test_terminate_twice_is_idempotent(osutils, process):
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)
    supervisor.launch(['./app'])

    supervisor.terminate()
    supervisor.terminate()

    assert process.kill.call_count == 1
    assert supervisor.handle is None


def test_terminate_ignores_already_exited(osutils, process):
    process.kill.side_effect = ProcessLookupError()
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)
    supervisor.launch(['./app'])

    supervisor.terminate()

    process.wait.assert_called_once_with()
    assert supervisor.handle is None


def test_can_launch_after_terminate(osutils, process):
    second = mock.Mock(spec=subprocess.Popen)
    second.pid = 5678
    osutils.popen.side_effect = [process, second]
    supervisor = ProcessSupervisor(osutils)

    supervisor.launch(['./app'])
    supervisor.terminate()
    supervisor.launch(['./app'])

    assert supervisor.handle is second


def test_wait_returns_exit_code_and_releases_handle(osutils, process):
    process.wait.return_value = 3
    osutils.popen.return_value = process
    supervisor = ProcessSupervisor(osutils)
    supervisor.launch(['./app'])

    assert supervisor.wait(timeout=5) == 3
    process.wait.assert_called_once_with(5)
    assert supervisor.handle is None


def test_wait_without_process_returns_none(osutils):
    assert ProcessSupervisor(osutils).wait() is None
