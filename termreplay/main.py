"""Command line interface of termreplay"""

import argparse
import logging
import os
import sys
import tempfile
import time

import termreplay.config
import termreplay.replay
import termreplay.steps
import termreplay.term

logger = logging.getLogger('termreplay')

USAGE = """termreplay script [output_path] [-c CONFIG] [-r RENDERER] [-f FPS]
                  [-l LINES] [-s SEED] [-n] [--headless] [-v] [-h]

Replay a script of terminal interactions and record it as an animation
"""
EPILOG = ("The script is a JSON list of steps, for example "
          '[{"action": "type", "payload": "ls"}, {"action": "enter"}]')


def positive_integer(value):
    if value.isdigit() and int(value) >= 1:
        return int(value)
    raise ValueError('value must be an integer greater than 0')


def integer(value):
    return int(value)


def parse(args, renderers):
    """Parse command line arguments

    :param args: Arguments to parse
    :param renderers: Names of the available renderers
    :return: Parsed arguments
    """
    parser = argparse.ArgumentParser(prog='termreplay', usage=USAGE, epilog=EPILOG)
    parser.add_argument(
        'script',
        help='JSON file containing the list of steps to replay'
    )
    parser.add_argument(
        'output_path',
        nargs='?',
        help='optional filename of the animation. Its extension selects the '
             'renderer and is replaced if the renderer does not support it. If '
             'missing, the OUTPUT_PATH environment variable is used, otherwise a '
             'random path is automatically generated.',
        metavar='output_path'
    )
    parser.add_argument(
        '-c', '--config',
        help='INI configuration file (options of the [GLOBAL] section)',
        metavar='CONFIG'
    )
    parser.add_argument(
        '-r', '--renderer',
        help=('renderer used when the extension of output_path is not '
              'recognized ({})'.format(', '.join(renderers))),
        choices=renderers,
        metavar='RENDERER'
    )
    parser.add_argument(
        '-f', '--fps',
        type=positive_integer,
        help='number of frames per second of the animation',
        metavar='FPS'
    )
    parser.add_argument(
        '-l', '--line-count',
        type=positive_integer,
        help='number of lines visible on the screen',
        metavar='LINES'
    )
    parser.add_argument(
        '-s', '--seed',
        type=integer,
        help='seed of the pseudo-random typing speed',
        metavar='SEED'
    )
    parser.add_argument(
        '-n', '--line-numbers',
        action='store_true',
        default=None,
        help='display line numbers'
    )
    parser.add_argument(
        '--headless',
        action='store_true',
        help='replay as fast as possible without displaying the terminal'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='increase log messages verbosity'
    )
    return parser.parse_args(args)


def resolve_output_path(output_path, renderer):
    if output_path is None:
        output_path = os.environ.get('OUTPUT_PATH')
    if not output_path:
        _, output_path = tempfile.mkstemp(prefix='termreplay_',
                                          suffix='.{}'.format(renderer))
    return os.path.abspath(output_path)


def main(args=None, output_fileno=None):
    if args is None:
        args = sys.argv
    if output_fileno is None:
        output_fileno = sys.stdout.fileno()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)
    logger.handlers = [console_handler]
    logger.setLevel(logging.INFO)

    args = parse(args[1:], termreplay.config.RENDERER_NAMES)

    if args.verbose:
        _, log_filename = tempfile.mkstemp(prefix='termreplay_', suffix='.log')
        file_handler = logging.FileHandler(filename=log_filename, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.handlers.append(file_handler)
        logger.setLevel(logging.DEBUG)
        logger.info('Logging to {}'.format(log_filename))

    try:
        exit_code = _run(args, output_fileno)
    finally:
        for handler in logger.handlers:
            handler.close()
    return exit_code


def _run(args, output_fileno):
    options = {}
    command_line_options = {
        'renderer': args.renderer,
        'fps': args.fps,
        'line_count': args.line_count,
        'seed': args.seed,
        'line_numbers': args.line_numbers,
    }
    try:
        if args.config is not None:
            options.update(termreplay.config.read_config(args.config))
        options.update({name: value for name, value in command_line_options.items()
                        if value is not None})
        configuration = termreplay.config.build_config(**options)
        records = termreplay.steps.load_steps(args.script)
    except (termreplay.config.ConfigError, termreplay.steps.StepError) as exc:
        logger.error(str(exc))
        return termreplay.replay.EXIT_FAILURE

    output_path = resolve_output_path(args.output_path, configuration.renderer)

    if args.headless:
        preview = termreplay.term.NullPreview()
        sleep = None
    else:
        preview = termreplay.term.BoxPreview(output_fileno, configuration.columns,
                                             configuration.title)
        sleep = time.sleep

    exit_code, _ = termreplay.replay.simulate_steps(records, output_path,
                                                    configuration, preview, sleep)
    return exit_code
