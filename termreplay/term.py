"""Simulated terminal

This module exposes
    - the state of a replay session (`Session`) and its projection to a frame
    snapshot (`project`), the list of lines actually displayed on screen
    - the frame clock (`FrameClock`) which converts simulated delays to
    frames recorded in the session
    - the bridge used to run the commands typed during the session
    (`CommandProcess`)
    - live previews of the session (`NullPreview`, `BoxPreview`)

Recording frames never depends on the actual time spent running a replay: the
frame clock records every frame first, then optionally sleeps so that the live
preview is paced like a real terminal.
"""

import logging
import math
import os
import selectors
import subprocess

import pyte
from wcwidth import wcswidth

logger = logging.getLogger(__name__)


class CommandError(Exception):
    pass


class Session:
    """Mutable state of a replay"""
    def __init__(self, output_path, environment=None):
        self.buffer = ''
        self.pending_command = ''
        self.clipboard = ''
        self.frames = []
        self.output_path = output_path
        if environment is None:
            environment = dict(os.environ)
        self.environment = environment

    def lines(self):
        return self.buffer.split('\n')

    def type(self, text):
        """Append text typed by the user"""
        self.buffer += text
        self.pending_command += text

    def emit(self, text):
        """Append text output by a command"""
        self.buffer += text

    def delete(self, count):
        """Delete up to `count` characters at the end of the buffer and return
        the number of characters actually deleted"""
        count = min(count, len(self.buffer))
        if count:
            self.buffer = self.buffer[:-count]
            self.pending_command = self.pending_command[:max(0, len(self.pending_command) - count)]
        return count

    def submit(self):
        """Drain the pending command, append a line break and return the
        command stripped of surrounding whitespace"""
        command = self.pending_command.strip()
        self.pending_command = ''
        self.buffer += '\n'
        return command

    def clear(self):
        self.buffer = ''
        self.pending_command = ''


def cursor_visible(frame_count, config):
    if not config.cursor_glyph:
        return False
    if config.cursor_blink_ms == 0:
        return True
    blink_frames = round(config.cursor_blink_ms * config.fps / 1000)
    return frame_count % max(1, blink_frames) <= blink_frames / 2


def project(buffer, frame_count, config):
    """Return the frame snapshot of `buffer`: the tuple of lines displayed on
    the screen at frame number `frame_count`

    Only the last `config.line_count` lines of the buffer are displayed. The
    cursor is drawn at the end of the last line and line numbers are added
    to each line if enabled.
    """
    lines = buffer.split('\n')
    if cursor_visible(frame_count, config):
        lines[-1] += config.cursor_glyph

    first_line = max(0, len(lines) - config.line_count)
    visible_lines = lines[first_line:]
    if config.line_numbers:
        visible_lines = ['{:0{width}d} {}'.format(number, line,
                                                  width=config.line_number_width)
                         for number, line in enumerate(visible_lines, first_line + 1)]
    return tuple(visible_lines)


class FrameClock:
    """Convert simulated delays to frames recorded in a session

    :param config: Configuration of the replay
    :param sleep: Callable used for pacing the live preview (for example
    `time.sleep`), None to run the replay as fast as possible
    """
    def __init__(self, config, sleep=None):
        self.config = config
        self.sleep = sleep

    def frame_count(self, ms):
        """Number of frames elapsed in `ms` milliseconds"""
        # Equivalent to floor(ms / ms_per_frame) without rounding errors on
        # ms_per_frame
        return math.floor(ms * self.config.fps / 1000)

    def record(self, session):
        """Append a single frame to the session and return it"""
        frame = project(session.buffer, len(session.frames), self.config)
        session.frames.append(frame)
        return frame

    def advance(self, session, ms, pace=True):
        """Record the frames elapsed in `ms` milliseconds of simulated time
        and return their number

        If `pace` is True and the clock was given a sleep function, sleep for
        the same duration once the frames are recorded.
        """
        count = self.frame_count(ms)
        for _ in range(count):
            self.record(session)

        if pace and self.sleep is not None and ms > 0:
            self.sleep(ms / 1000)
        return count


class _PlainTextScreen(pyte.Screen):
    """Screen keeping track of printable text only

    Escape sequences are consumed by the pyte stream feeding the screen and
    only text, line feeds and tabulations make it to the output.
    """
    def __init__(self):
        super().__init__(80, 24)
        self.output = []

    def draw(self, data):
        self.output.append(data)

    def linefeed(self):
        self.output.append('\n')

    def tab(self):
        self.output.append('\t')

    def flush(self):
        text = ''.join(self.output)
        self.output = []
        return text


class CommandProcess:
    """Process running a command typed during the session

    The command is run by the shell with its standard input closed. Its
    standard output and error are captured (see `output`).

    :param command: Command line
    :param environment: Environment of the process (copied)
    """
    def __init__(self, command, environment):
        self.command = command
        try:
            self.process = subprocess.Popen(command,
                                            shell=True,
                                            env=dict(environment),
                                            stdin=subprocess.DEVNULL,
                                            stdout=subprocess.PIPE,
                                            stderr=subprocess.PIPE)
        except OSError as exc:
            raise CommandError('Unable to run command "{}": {}'.format(command, exc)) from exc

    def output(self, buffer_size=1024):
        """Yield text written by the process on its standard output and error
        until both are closed

        Escape sequences are removed from the text. A partial sequence at the
        end of a chunk is kept until the next chunk of the same stream.
        """
        streams = {}
        with selectors.DefaultSelector() as selector:
            for pipe in (self.process.stdout, self.process.stderr):
                screen = _PlainTextScreen()
                streams[pipe.fileno()] = (pyte.ByteStream(screen), screen)
                selector.register(pipe, selectors.EVENT_READ)

            try:
                while selector.get_map():
                    for key, _ in selector.select():
                        data = os.read(key.fd, buffer_size)
                        if not data:
                            selector.unregister(key.fileobj)
                            continue

                        stream, screen = streams[key.fd]
                        stream.feed(data)
                        text = screen.flush()
                        if text:
                            yield text
            finally:
                if self.process.poll() is None:
                    self.process.kill()
                self.process.stdout.close()
                self.process.stderr.close()

    def wait(self):
        """Wait for the process to exit and return its exit status

        Raise CommandError if the process was terminated by a signal
        """
        returncode = self.process.wait()
        if returncode < 0:
            raise CommandError('Command "{}" terminated by signal {}'
                               .format(self.command, -returncode))
        if returncode:
            logger.debug('Command "{}" exited with status {}'.format(self.command, returncode))
        return returncode


class NullPreview:
    """Live preview displaying nothing"""
    def set_content(self, text):
        pass

    def render(self):
        pass


class BoxPreview:
    """Live preview of the session drawn in a box on a terminal

    :param output_fileno: File descriptor of the terminal
    :param columns: Width of the inside of the box
    :param title: Title displayed on the top border
    """
    HOME = '\033[H\033[2J'

    def __init__(self, output_fileno, columns, title=''):
        self.output_fileno = output_fileno
        self.columns = columns
        self.title = title
        self.content = ''

    def set_content(self, text):
        self.content = text

    def _pad(self, line):
        width = wcswidth(line)
        if width < 0:
            width = len(line)
        return line + ' ' * max(0, self.columns - width)

    def render(self):
        title = ' {} '.format(self.title) if self.title else ''
        top = '┌' + title + '─' * max(0, self.columns - len(title)) + '┐'
        bottom = '└' + '─' * self.columns + '┘'
        lines = ['│{}│'.format(self._pad(line)) for line in self.content.split('\n')]
        data = '\r\n'.join([top] + lines + [bottom]) + '\r\n'
        data = (self.HOME + data).encode('utf-8')
        while data:
            n = os.write(self.output_fileno, data)
            data = data[n:]
