import os
import sys

import pytest


posix_only = pytest.mark.skipif(
    os.name != 'posix',
    reason="Spawns executable scripts as the build artifact")


@pytest.fixture
def python_command():
    def factory(source):
        return [sys.executable, '-c', source]
    return factory
