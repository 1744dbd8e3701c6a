"""Configuration for pulse.

Settings come from built in defaults overlaid with an optional JSON file
(``pulse.json`` by default).  Every value is validated when the ``Config``
is created: bad values are replaced by a default or clamped to the nearest
bound and a warning is logged, so loading configuration never fails.

The two structures the rest of pulse consumes are derived from a
``Config`` once at startup and never change afterwards:

* ``WatchConfig`` drives the change detector.
* ``BuildSpec`` drives the build-and-run sequencer.
"""
import json
import logging
import re

from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional, Tuple  # noqa

from pulse.utils import OSUtils


LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'pulse.json'

DEFAULT_WATCH_INTERVAL = '1s'
MIN_WATCH_INTERVAL = '500ms'
MAX_WATCH_INTERVAL = '1h'

DEFAULT_MAX_WATCHERS = 100
MIN_WATCHERS = 1
MAX_WATCHERS = 500

DEFAULTS = {
    'main_file': 'main.go',
    'binary_name': 'app',
    'watch_dir': '.',
    'watch_exts': ['.go', '.mod', '.sum'],
    'watch_interval': DEFAULT_WATCH_INTERVAL,
    'max_watchers': DEFAULT_MAX_WATCHERS,
    'build_command': ['go', 'build', '-o'],
}  # type: Dict[str, Any]


WatchConfig = NamedTuple('WatchConfig', [
    ('root_directory', str),
    ('file_extension_filters', FrozenSet[str]),
    ('poll_interval', float),
    ('max_watched_files', int),
])


BuildSpec = NamedTuple('BuildSpec', [
    ('build_command', Tuple[str, ...]),
    ('build_args', Tuple[str, ...]),
    ('artifact_path', str),
])


_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')


def parse_duration(text):
    # type: (str) -> float
    """Parse a Go style duration string into seconds.

    Accepts an optional sign followed by one or more number/unit pairs,
    e.g. ``"300ms"``, ``"1.5h"`` or ``"1m30s"``.  The bare string ``"0"``
    is zero.  Raises ``ValueError`` for anything else.
    """
    if not isinstance(text, str):
        raise ValueError('invalid duration: %r' % (text,))
    remaining = text
    sign = 1.0
    if remaining[:1] in ('-', '+'):
        if remaining[0] == '-':
            sign = -1.0
        remaining = remaining[1:]
    if remaining == '0':
        return 0.0
    if not remaining:
        raise ValueError('invalid duration: %r' % (text,))
    total = 0.0
    pos = 0
    while pos < len(remaining):
        match = _DURATION_PART.match(remaining, pos)
        if match is None:
            raise ValueError('invalid duration: %r' % (text,))
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def _validate_interval(value):
    # type: (Any) -> str
    if value is None or value == '':
        return DEFAULT_WATCH_INTERVAL
    try:
        seconds = parse_duration(value)
    except ValueError:
        LOGGER.warning("Invalid watch_interval %r, using default of %s",
                       value, DEFAULT_WATCH_INTERVAL)
        return DEFAULT_WATCH_INTERVAL
    if seconds < parse_duration(MIN_WATCH_INTERVAL):
        LOGGER.warning("Watch interval too short, using minimum of %s",
                       MIN_WATCH_INTERVAL)
        return MIN_WATCH_INTERVAL
    if seconds > parse_duration(MAX_WATCH_INTERVAL):
        LOGGER.warning("Watch interval too long, using maximum of %s",
                       MAX_WATCH_INTERVAL)
        return MAX_WATCH_INTERVAL
    return value


def _validate_max_watchers(value):
    # type: (Any) -> int
    if value is None or value == 0:
        return DEFAULT_MAX_WATCHERS
    if isinstance(value, bool) or not isinstance(value, int):
        LOGGER.warning("Invalid max_watchers %r, using default of %s",
                       value, DEFAULT_MAX_WATCHERS)
        return DEFAULT_MAX_WATCHERS
    if value < MIN_WATCHERS:
        LOGGER.warning("max_watchers must be at least %s, using default "
                       "of %s", MIN_WATCHERS, DEFAULT_MAX_WATCHERS)
        return DEFAULT_MAX_WATCHERS
    if value > MAX_WATCHERS:
        LOGGER.warning("max_watchers too large, using maximum of %s",
                       MAX_WATCHERS)
        return MAX_WATCHERS
    return value


def _validate_string(key, value):
    # type: (str, Any) -> str
    if value is None or value == '':
        return DEFAULTS[key]
    if not isinstance(value, str):
        LOGGER.warning("Invalid %s %r, using default of %r",
                       key, value, DEFAULTS[key])
        return DEFAULTS[key]
    return value


def _validate_string_list(key, value):
    # type: (str, Any) -> List[str]
    if value is None or value == []:
        return list(DEFAULTS[key])
    if not isinstance(value, list) or \
            not all(isinstance(v, str) and v for v in value):
        LOGGER.warning("Invalid %s %r, using default of %r",
                       key, value, DEFAULTS[key])
        return list(DEFAULTS[key])
    return list(value)


class Config(object):
    """Validated pulse settings.

    Use ``Config.create`` (or ``load_config``) rather than the constructor;
    the constructor assumes its input has already been validated.
    """

    def __init__(self, settings):
        # type: (Dict[str, Any]) -> None
        self._settings = settings

    @classmethod
    def create(cls, config_from_disk=None):
        # type: (Optional[Dict[str, Any]]) -> Config
        raw = config_from_disk or {}
        settings = {
            'main_file': _validate_string('main_file', raw.get('main_file')),
            'binary_name': _validate_string(
                'binary_name', raw.get('binary_name')),
            'watch_dir': _validate_string('watch_dir', raw.get('watch_dir')),
            'watch_exts': _validate_string_list(
                'watch_exts', raw.get('watch_exts')),
            'watch_interval': _validate_interval(raw.get('watch_interval')),
            'max_watchers': _validate_max_watchers(raw.get('max_watchers')),
            'build_command': _validate_string_list(
                'build_command', raw.get('build_command')),
        }
        return cls(settings)

    @property
    def main_file(self):
        # type: () -> str
        return self._settings['main_file']

    @property
    def binary_name(self):
        # type: () -> str
        return self._settings['binary_name']

    @property
    def watch_dir(self):
        # type: () -> str
        return self._settings['watch_dir']

    @property
    def watch_exts(self):
        # type: () -> List[str]
        return list(self._settings['watch_exts'])

    @property
    def watch_interval(self):
        # type: () -> str
        return self._settings['watch_interval']

    @property
    def poll_interval(self):
        # type: () -> float
        return parse_duration(self.watch_interval)

    @property
    def max_watchers(self):
        # type: () -> int
        return self._settings['max_watchers']

    @property
    def build_command(self):
        # type: () -> List[str]
        return list(self._settings['build_command'])

    def watch_config(self, osutils=None):
        # type: (Optional[OSUtils]) -> WatchConfig
        if osutils is None:
            osutils = OSUtils()
        return WatchConfig(
            root_directory=osutils.abspath(self.watch_dir),
            file_extension_filters=frozenset(self.watch_exts),
            poll_interval=self.poll_interval,
            max_watched_files=self.max_watchers,
        )

    def build_spec(self):
        # type: () -> BuildSpec
        return BuildSpec(
            build_command=tuple(self.build_command),
            build_args=(self.binary_name, self.main_file),
            artifact_path=self.binary_name,
        )

    def log_summary(self):
        # type: () -> None
        LOGGER.info("Configuration:")
        LOGGER.info("   Main file:      %s", self.main_file)
        LOGGER.info("   Binary name:    %s", self.binary_name)
        LOGGER.info("   Watch dir:      %s", self.watch_dir)
        LOGGER.info("   Watch exts:     %s", ', '.join(self.watch_exts))
        LOGGER.info("   Watch interval: %s", self.watch_interval)
        LOGGER.info("   Max watchers:   %s", self.max_watchers)


def load_config(config_path=DEFAULT_CONFIG_PATH, osutils=None):
    # type: (str, Optional[OSUtils]) -> Config
    """Load ``config_path`` over the defaults.

    A missing file means defaults.  A file that can't be read or isn't a
    JSON object is reported and the defaults are used instead.
    """
    if osutils is None:
        osutils = OSUtils()
    LOGGER.info("Loading configuration from: %s", config_path)
    if not osutils.file_exists(config_path):
        return Config.create()
    try:
        config_from_disk = json.loads(
            osutils.get_file_contents(config_path, binary=False))
    except (OSError, ValueError) as e:
        LOGGER.warning("Could not read config file: %s", e)
        LOGGER.warning("Using default configuration")
        return Config.create()
    if not isinstance(config_from_disk, dict):
        LOGGER.warning("Config file %s must contain a JSON object",
                       config_path)
        LOGGER.warning("Using default configuration")
        return Config.create()
    return Config.create(config_from_disk)
