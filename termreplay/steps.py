"""Steps of a replay script

A script is a JSON list of records such as:

    [
        {"action": "type", "payload": "echo hello"},
        {"action": "enter"},
        {"action": "waitForOutput", "payload": "hello", "timeoutMs": 2000}
    ]

Each record is converted to one of the seven step types defined below by
`parse_step`. Parsing is done one record at a time by the interpreter so that
the steps preceding an invalid record are still replayed.
"""
import json
import numbers
from collections import namedtuple

DEFAULT_WAIT_TIMEOUT_MS = 5000


class StepError(Exception):
    pass


class UnknownActionError(StepError):
    pass


class InvalidPayloadError(StepError):
    pass


class WaitTimeoutError(StepError):
    pass


TypeStep = namedtuple('TypeStep', ['text'])
TypeStep.__doc__ = 'Type text character by character'

DeleteStep = namedtuple('DeleteStep', ['count'])
DeleteStep.__doc__ = 'Delete the last characters of the terminal'

EnterStep = namedtuple('EnterStep', [])
EnterStep.__doc__ = 'Press return and run the command typed so far'

PasteStep = namedtuple('PasteStep', [])
PasteStep.__doc__ = 'Paste the content of the internal clipboard'

CopyStep = namedtuple('CopyStep', ['start_line', 'start_pos', 'end_line', 'end_pos'])
CopyStep.__doc__ = 'Copy a span of the terminal to the internal clipboard'
CopyStep.start_line.__doc__ = 'First line of the span (1-indexed)'
CopyStep.start_pos.__doc__ = 'Column where the span starts on the first line'
CopyStep.end_line.__doc__ = 'Last line of the span (1-indexed, inclusive)'
CopyStep.end_pos.__doc__ = 'Column where the span ends on the last line (exclusive)'

ClearStep = namedtuple('ClearStep', [])
ClearStep.__doc__ = 'Clear the terminal'

WaitForOutputStep = namedtuple('WaitForOutputStep', ['text', 'timeout_ms'])
WaitForOutputStep.__doc__ = 'Wait until text is displayed on the terminal'

STEP_TYPES = (TypeStep, DeleteStep, EnterStep, PasteStep, CopyStep, ClearStep,
              WaitForOutputStep)

_COPY_FIELDS = ['startLine', 'startPos', 'endLine', 'endPos']


def _is_number(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _type_step(record):
    payload = record.get('payload')
    if payload is None:
        raise InvalidPayloadError('Missing text to type: {}'.format(json.dumps(record)))
    return TypeStep(str(payload))


def _delete_step(record):
    count = record.get('payload')
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise InvalidPayloadError('Faulty payload (expected a non-negative '
                                  'integer): {}'.format(json.dumps(record)))
    return DeleteStep(count)


def _copy_step(record):
    payload = record.get('payload')
    if not isinstance(payload, dict) or \
            not all(_is_number(payload.get(field)) for field in _COPY_FIELDS):
        raise InvalidPayloadError('Faulty payload (expected {}): {}'
                                  .format(', '.join(_COPY_FIELDS), json.dumps(record)))
    return CopyStep(*(int(payload[field]) for field in _COPY_FIELDS))


def _wait_for_output_step(record):
    text = record.get('payload')
    if text is None:
        raise InvalidPayloadError('Missing text to wait for: {}'.format(json.dumps(record)))

    timeout_ms = record.get('timeoutMs', record.get('timeout', DEFAULT_WAIT_TIMEOUT_MS))
    if not _is_number(timeout_ms) or timeout_ms < 0:
        raise InvalidPayloadError('Faulty timeout (expected a non-negative '
                                  'number): {}'.format(json.dumps(record)))
    return WaitForOutputStep(str(text), timeout_ms)


_PARSERS = {
    'type': _type_step,
    'delete': _delete_step,
    'enter': lambda _: EnterStep(),
    'paste': lambda _: PasteStep(),
    'copy': _copy_step,
    'clear': lambda _: ClearStep(),
    'waitForOutput': _wait_for_output_step,
}

ACTIONS = tuple(_PARSERS)


def parse_step(record):
    """Convert a step record to an instance of one of STEP_TYPES

    Raise UnknownActionError if the action of the record is not one of ACTIONS
    and InvalidPayloadError if its payload does not suit the action
    """
    if not isinstance(record, dict):
        raise InvalidPayloadError('Invalid step (expected an object): {!r}'.format(record))

    action = record.get('action')
    try:
        parser = _PARSERS[action]
    except (KeyError, TypeError):
        raise UnknownActionError('Unknown action: {}'.format(action)) from None

    return parser(record)


def load_steps(filename):
    """Return the list of step records contained in a JSON script

    Records are returned as is, see `parse_step` for their validation
    """
    try:
        with open(filename, 'r') as script_file:
            records = json.load(script_file)
    except (OSError, json.JSONDecodeError) as exc:
        raise StepError('Unable to read script "{}": {}'.format(filename, exc)) from exc

    if not isinstance(records, list):
        raise StepError('Invalid script "{}": expected a list of steps'.format(filename))

    return records
