"""asciicast records

This module provides classes to read and write asciicast v2 records, the
recording format used by `termreplay.anim.CastRenderer`. The format is
documented here:
    https://github.com/asciinema/asciinema/blob/develop/doc/asciicast-v2.md
"""
import abc
import json
from collections import namedtuple


class AsciiCastError(Exception):
    pass


class AsciiCastV2Record(abc.ABC):
    """Generic Asciicast v2 record format"""
    @abc.abstractmethod
    def to_json_line(self):
        raise NotImplementedError

    @classmethod
    def from_json_line(cls, line):
        """Raise AsciiCastError if line is not a valid asciicast v2 record"""
        try:
            json_dict = json.loads(line)
        except json.JSONDecodeError as exc:
            raise AsciiCastError from exc
        if isinstance(json_dict, dict):
            return AsciiCastV2Header.from_json_line(line)
        if isinstance(json_dict, list):
            return AsciiCastV2Event.from_json_line(line)
        truncated_line = line if len(line) < 20 else '{}...'.format(line[:20])
        raise AsciiCastError('Unknown record type: "{}"'.format(truncated_line))


def read_records(filename):
    """Yield asciicast v2 records from the file

    Raise AsciiCastError if a record is invalid"""
    with open(filename, 'r') as cast_file:
        for line in cast_file:
            if line.strip():
                yield AsciiCastV2Record.from_json_line(line)


_AsciiCastV2Header = namedtuple('AsciiCastV2Header', ['version', 'width', 'height', 'title'])


class AsciiCastV2Header(AsciiCastV2Record, _AsciiCastV2Header):
    """Header record

    version: Version of the asciicast file format
    width: Number of columns of the terminal
    height: Number of lines of the terminal
    title: Title of the recording
    """
    types = {
        'version': int,
        'width': int,
        'height': int,
        'title': (type(None), str),
    }

    def __new__(cls, version, width, height, title=None):
        self = super(AsciiCastV2Header, cls).__new__(cls, version, width, height, title)
        for attr_name in cls._fields:
            attr = self.__getattribute__(attr_name)
            if not isinstance(attr, cls.types[attr_name]):
                raise AsciiCastError('Invalid type for attribute {}: {} (expected one of {})'
                                     .format(attr_name, type(attr), cls.types[attr_name]))
        if version != 2:
            raise AsciiCastError('Only asciicast v2 format is supported')
        return self

    def to_json_line(self):
        attributes = self._asdict()
        if attributes['title'] is None:
            del attributes['title']

        return json.dumps(attributes, ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line):
        attributes = json.loads(line)
        filtered_attributes = {attr: attributes.get(attr) for attr in AsciiCastV2Header._fields}
        return cls(**filtered_attributes)


_AsciiCastV2Event = namedtuple('AsciiCastV2Event', ['time', 'event_type', 'event_data'])


class AsciiCastV2Event(AsciiCastV2Record, _AsciiCastV2Event):
    """Event record

    time: Time elapsed since the beginning of the recording in seconds
    event_type: Type 'o' for data written to the terminal
    event_data: Data written to the terminal
    """
    types = {
        'time': (int, float),
        'event_type': (str,),
        'event_data': (str,),
    }

    def __new__(cls, *args, **kwargs):
        self = super(AsciiCastV2Event, cls).__new__(cls, *args, **kwargs)
        for attr_name in AsciiCastV2Event._fields:
            attr = self.__getattribute__(attr_name)
            if not isinstance(attr, cls.types[attr_name]):
                raise AsciiCastError('Invalid type for attribute {}: {} (expected one of {})'
                                     .format(attr_name, type(attr), cls.types[attr_name]))
        return self

    def to_json_line(self):
        attributes = [self.time, self.event_type, self.event_data]
        return json.dumps(attributes, ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line):
        try:
            time, event_type, event_data = json.loads(line)
        except (json.JSONDecodeError, ValueError) as exc:
            raise AsciiCastError from exc

        return cls(time, event_type, event_data)
