"""Replay of a script of terminal interactions

The interpreter executes steps one after the other, strictly in order. Each
step mutates the session and advances the frame clock, which records the
frames of the animation. Any failure stops the replay: the error is displayed
on the simulated terminal and the recording is finalized anyway so that the
resulting animation shows what went wrong.
"""
import logging
import random

from termreplay import anim, term
from termreplay.steps import (ClearStep, CopyStep, DeleteStep, EnterStep,
                              InvalidPayloadError, PasteStep, TypeStep,
                              UnknownActionError, WaitForOutputStep,
                              WaitTimeoutError, parse_step)

logger = logging.getLogger(__name__)

# Pause following an action (return, paste...) in milliseconds
ACTION_DELAY_MS = 1000

# Interval between two checks of the terminal content by waitForOutput
POLL_INTERVAL_MS = 1000

# Deleting characters is this many times faster than typing them
DELETE_SPEEDUP = 3

CLEAR_COMMAND = 'clear'

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class Interpreter:
    """Execute steps against a session

    :param session: Session mutated by the steps
    :param config: Configuration of the replay
    :param preview: Live preview mirroring the screen (set_content/render)
    :param sleep: Sleep function used for pacing the live preview, None to
    skip sleeping
    :param spawn: Callable returning a process for a command line and an
    environment (see `termreplay.term.CommandProcess`)
    """
    def __init__(self, session, config, preview=None, sleep=None, spawn=None):
        self.session = session
        self.config = config
        self.preview = preview if preview is not None else term.NullPreview()
        self.frame_clock = term.FrameClock(config, sleep)
        self.random = random.Random(config.seed)
        self.spawn = spawn if spawn is not None else term.CommandProcess

    def refresh(self):
        """Mirror the screen to the live preview"""
        lines = term.project(self.session.buffer, len(self.session.frames), self.config)
        self.preview.set_content('\n'.join(lines))
        self.preview.render()

    def advance(self, ms, pace=True):
        self.refresh()
        return self.frame_clock.advance(self.session, ms, pace)

    def _typing_delay(self):
        speed = self.config.typing_speed_ms
        return self.random.uniform(speed, 2 * speed)

    def type_text(self, text):
        for char in text:
            self.session.type(char)
            self.advance(self._typing_delay())

    def delete(self, count):
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidPayloadError('Invalid number of characters to delete: {!r}'
                                      .format(count))
        for _ in range(count):
            if not self.session.delete(1):
                break
            self.advance(self._typing_delay() / DELETE_SPEEDUP)

    def enter(self):
        command = self.session.submit()
        self.advance(ACTION_DELAY_MS)
        if command:
            self.execute_command(command)

    def execute_command(self, command):
        """Run `command` and display its output as it is produced

        Each chunk of output is shown during exactly one frame whatever the
        time the command took to produce it, so that recordings do not depend
        on the load of the machine.
        """
        logger.debug('Running command "{}"'.format(command))
        process = self.spawn(command, self.session.environment)
        for text in process.output():
            self.session.emit(text)
            self.refresh()
            self.frame_clock.record(self.session)

        process.wait()
        self.session.emit('\n')
        self.advance(ACTION_DELAY_MS)

    def paste(self):
        self.session.type(self.session.clipboard)
        self.advance(ACTION_DELAY_MS)

    def copy(self, start_line, start_pos, end_line, end_pos):
        """Copy text to the clipboard, from column `start_pos` of line
        `start_line` to column `end_pos` (excluded) of line `end_line`

        Lines are numbered from 1 and columns from 0.
        """
        lines = self.session.lines()[max(0, start_line - 1):max(0, end_line)]
        if lines:
            last = len(lines) - 1
            if end_line - start_line == last:
                lines[last] = lines[last][:end_pos]
            lines[0] = lines[0][start_pos:]
        self.session.clipboard = '\n'.join(lines)

    def clear(self):
        self.type_text(CLEAR_COMMAND)
        self.session.clear()
        self.advance(ACTION_DELAY_MS)

    def wait_for_output(self, text, timeout_ms):
        waited_ms = 0
        while text not in self.session.buffer:
            if waited_ms >= timeout_ms:
                raise WaitTimeoutError('Timeout waiting for output: "{}"'.format(text))
            self.advance(POLL_INTERVAL_MS)
            waited_ms += POLL_INTERVAL_MS

    def execute(self, step):
        """Execute a single step"""
        if isinstance(step, TypeStep):
            self.type_text(step.text)
        elif isinstance(step, DeleteStep):
            self.delete(step.count)
        elif isinstance(step, EnterStep):
            self.enter()
        elif isinstance(step, PasteStep):
            self.paste()
        elif isinstance(step, CopyStep):
            self.copy(step.start_line, step.start_pos, step.end_line, step.end_pos)
        elif isinstance(step, ClearStep):
            self.clear()
        elif isinstance(step, WaitForOutputStep):
            self.wait_for_output(step.text, step.timeout_ms)
        else:
            raise UnknownActionError('Unknown step: {!r}'.format(step))

    def abort(self, message):
        """Display an error on the terminal and record it"""
        logger.error('ERROR: {}'.format(message))
        self.session.emit('\nERROR: {}'.format(message))
        self.refresh()
        self.frame_clock.record(self.session)

    def run(self, records):
        """Execute step records in order and return the exit code of the
        replay

        The replay stops at the first error, which is displayed on the
        terminal (exit code 1), or when interrupted with Control-C (exit code
        0). In both cases the frames recorded so far are kept.
        """
        try:
            for record in records:
                self.execute(parse_step(record))
        except KeyboardInterrupt:
            logger.info('Replay interrupted')
        except Exception as exc:  # pylint: disable=broad-except
            self.abort(str(exc) or type(exc).__name__)
            return EXIT_FAILURE
        return EXIT_SUCCESS


def simulate_steps(records, output_path, config, preview=None, sleep=None,
                   spawn=None, environment=None):
    """Replay step records and render the animation

    :param records: Sequence of step records (see `termreplay.steps`)
    :param output_path: Requested path of the animation
    :param config: Configuration of the replay
    :param preview: Live preview of the terminal
    :param sleep: Sleep function used for pacing the live preview
    :param spawn: Factory of processes for running commands
    :param environment: Environment of the commands (defaults to a copy of
    the environment of the current process)
    :return: Tuple made of the exit code of the replay and the path of the
    animation (None if rendering failed)
    """
    session = term.Session(output_path, environment)
    interpreter = Interpreter(session, config, preview, sleep, spawn)
    logger.info('Replay started')
    exit_code = interpreter.run(records)

    # Hold the last frame before looping
    interpreter.frame_clock.advance(session, config.end_delay_ms, pace=False)

    try:
        renderer = anim.select_renderer(session.output_path, config.renderer)
        file_path = renderer.render(session.frames, config)
    except anim.RendererError as exc:
        logger.error('Rendering failed: {}'.format(exc))
        return EXIT_FAILURE, None

    logger.info("Recording saved as '{}' ({} frames)".format(file_path, len(session.frames)))
    return exit_code, file_path
