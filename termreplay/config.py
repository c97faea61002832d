"""Configuration of a replay

A configuration is an immutable namedtuple holding the options listed in
DEFAULT_OPTIONS along with a few fields computed once from these options
(duration of a frame, height of the canvas and number of columns).

Options may be read from the [GLOBAL] section of an INI file:

    [GLOBAL]
    fps=25
    line_count=12
    renderer=gif
"""
import configparser
from collections import OrderedDict, namedtuple

RENDERER_NAMES = ('gif', 'svg', 'cast')

CONFIG_SECTION = 'GLOBAL'

DEFAULT_OPTIONS = OrderedDict([
    ('fps', 30),
    ('line_count', 20),
    ('cursor_blink_ms', 500),
    ('cursor_glyph', '█'),
    ('line_numbers', False),
    ('line_number_width', 3),
    ('typing_speed_ms', 50),
    ('quality', 10),
    ('repeat', 0),
    ('renderer', 'svg'),
    ('seed', 0),
    ('end_delay_ms', 2000),
    ('title', 'termreplay'),
    ('width', 800),
    ('font_size', 16),
    ('font_family', 'monospace'),
    ('font_path', None),
    ('line_height', 20),
    ('cell_width', 10),
    ('padding_x', 10),
    ('padding_y', 20),
    ('foreground', '#f0f0f0'),
    ('background', '#000000'),
    ('cast_command', 'agg {input} {output}'),
])

_COMPUTED_FIELDS = ['ms_per_frame', 'height', 'columns']

Config = namedtuple('Config', list(DEFAULT_OPTIONS) + _COMPUTED_FIELDS)
Config.__doc__ = 'Read-only configuration of a replay'
Config.fps.__doc__ = 'Number of frames recorded per second of simulated time'
Config.line_count.__doc__ = 'Number of lines visible on the screen'
Config.cursor_blink_ms.__doc__ = 'Blink interval of the cursor (0 disables blinking)'
Config.cursor_glyph.__doc__ = 'Character drawn as the cursor (empty string disables the cursor)'
Config.typing_speed_ms.__doc__ = 'Minimum delay between two typed characters'
Config.quality.__doc__ = 'GIF quality hint from 1 (best) to 30'
Config.repeat.__doc__ = 'GIF loop count (0 loops forever, -1 plays once)'
Config.ms_per_frame.__doc__ = 'Duration of a frame in milliseconds (computed)'
Config.height.__doc__ = 'Height of the canvas in pixels (computed)'
Config.columns.__doc__ = 'Number of character cells on a line (computed)'

# Options which must be integers and the minimum value they accept
_INTEGER_BOUNDS = {
    'line_count': 1,
    'cursor_blink_ms': 0,
    'line_number_width': 0,
    'typing_speed_ms': 0,
    'quality': 1,
    'repeat': -1,
    'end_delay_ms': 0,
    'width': 1,
    'font_size': 1,
    'line_height': 1,
    'cell_width': 1,
    'padding_x': 0,
    'padding_y': 0,
}

MAX_QUALITY = 30


class ConfigError(Exception):
    pass


def build_config(**options):
    """Return a Config made of the default options overridden by `options`

    Raise ConfigError if an option is unknown or has an invalid value
    """
    unknown_options = set(options) - set(DEFAULT_OPTIONS)
    if unknown_options:
        raise ConfigError('Unknown options: {}'
                          .format(', '.join(sorted(unknown_options))))

    values = OrderedDict(DEFAULT_OPTIONS)
    values.update(options)

    for name, minimum in _INTEGER_BOUNDS.items():
        value = values[name]
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ConfigError('Invalid value for option "{}": expected an integer '
                              'greater than or equal to {}, got {!r}'
                              .format(name, minimum, value))

    fps = values['fps']
    if isinstance(fps, bool) or not isinstance(fps, (int, float)) or fps <= 0:
        raise ConfigError('Invalid value for option "fps": expected a positive '
                          'number, got {!r}'.format(fps))

    if values['quality'] > MAX_QUALITY:
        raise ConfigError('Invalid value for option "quality": expected a value '
                          'between 1 and {}'.format(MAX_QUALITY))

    if values['renderer'] not in RENDERER_NAMES:
        raise ConfigError('Invalid value for option "renderer": expected one of {}'
                          .format(', '.join(RENDERER_NAMES)))

    if not isinstance(values['seed'], int) and values['seed'] is not None:
        raise ConfigError('Invalid value for option "seed": expected an integer')

    values['ms_per_frame'] = 1000 / fps
    values['height'] = 2 * values['padding_y'] + values['line_count'] * values['line_height']
    values['columns'] = values['width'] // values['cell_width']
    return Config(**values)


def parse_option(name, raw_value):
    """Convert the string `raw_value` to the type of the default value of
    option `name`"""
    if name not in DEFAULT_OPTIONS:
        raise ConfigError('Unknown option: "{}"'.format(name))

    default = DEFAULT_OPTIONS[name]
    boolean_states = configparser.ConfigParser.BOOLEAN_STATES
    try:
        if isinstance(default, bool):
            if raw_value.lower() not in boolean_states:
                raise ValueError('Not a boolean: {}'.format(raw_value))
            return boolean_states[raw_value.lower()]
        if name == 'fps':
            return float(raw_value) if '.' in raw_value else int(raw_value)
        if isinstance(default, int):
            return int(raw_value)
    except ValueError as exc:
        raise ConfigError('Invalid value for option "{}": {}'
                          .format(name, raw_value)) from exc

    return raw_value


def read_config(filename):
    """Return a mapping between option names and values read from the [GLOBAL]
    section of an INI configuration file"""
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with open(filename, 'r') as config_file:
            parser.read_file(config_file)
    except (OSError, configparser.Error) as exc:
        raise ConfigError('Unable to read configuration file "{}": {}'
                          .format(filename, exc)) from exc

    if not parser.has_section(CONFIG_SECTION):
        raise ConfigError('Missing [{}] section in configuration file "{}"'
                          .format(CONFIG_SECTION, filename))

    return {
        name: parse_option(name, raw_value)
        for name, raw_value in parser.items(CONFIG_SECTION)
    }
