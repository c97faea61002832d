import os
import tempfile
import unittest

from termreplay.asciicast import (AsciiCastError, AsciiCastV2Event, AsciiCastV2Header,
                                  AsciiCastV2Record, read_records)


class TestAsciicast(unittest.TestCase):
    def test_AsciiCastV2Header(self):
        with self.subTest(case='invalid version'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Header.from_json_line("""{"version": "x", "width": 80, "height": 20}""")

        with self.subTest(case='unsupported version'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Header.from_json_line("""{"version": 1, "width": 80, "height": 20}""")

        with self.subTest(case='invalid width'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Header.from_json_line("""{"version": 2, "width": "x", "height": 20}""")

        with self.subTest(case='invalid title'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Header(2, 80, 20, title=12)

    def test_AsciiCastV2Event(self):
        with self.subTest(case='invalid time'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Event.from_json_line("""["x", "o", "ls"]""")

        with self.subTest(case='invalid event type'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Event.from_json_line("""[2.0, 123, "ls"]""")

        with self.subTest(case='missing event data'):
            with self.assertRaises(AsciiCastError):
                AsciiCastV2Event.from_json_line("""[2.0, "o"]""")

    def test_AsciiCastV2Record(self):
        test_cases = [
            'not json',
            '"a string"',
            '42',
        ]
        for line in test_cases:
            with self.subTest(case=line):
                with self.assertRaises(AsciiCastError):
                    AsciiCastV2Record.from_json_line(line)

    cast_lines = [
        # Header: no title
        """{"version": 2, "width": 80, "height": 20}""",
        # Header: title
        """{"version": 2, "width": 80, "height": 20, "title": "termreplay"}""",
        # Event: Non printable characters
        """[0.0, "o", "\\u001b[2J\\u001b[Hls\\r\\nfile"]""",
        # Event: Unicode characters
        """[1.146397, "o", "❤ ☀ ☆ ☂ ☻ ♞ ☯ ☭ ☢ € →"]""",
        # Event: time is an integer and not a float
        """[2, "o", "\\r\\n"]""",
    ]

    cast_records = [
        AsciiCastV2Header(2, 80, 20),
        AsciiCastV2Header(2, 80, 20, 'termreplay'),
        AsciiCastV2Event(0.0, 'o', '\u001b[2J\u001b[Hls\r\nfile'),
        AsciiCastV2Event(1.146397, 'o', '❤ ☀ ☆ ☂ ☻ ♞ ☯ ☭ ☢ € →'),
        AsciiCastV2Event(2, 'o', '\r\n'),
    ]

    def test_from_json(self):
        test_cases = zip(TestAsciicast.cast_lines, TestAsciicast.cast_records)
        for index, (line, record) in enumerate(test_cases):
            with self.subTest(case='line #{}'.format(index)):
                self.assertEqual(record, AsciiCastV2Record.from_json_line(line))

    def test_to_json(self):
        test_cases = zip(TestAsciicast.cast_lines, TestAsciicast.cast_records)
        for index, (line, record) in enumerate(test_cases):
            with self.subTest(case='line #{}'.format(index)):
                self.assertEqual(record.to_json_line(), line)

    def test_read_records(self):
        fd, filename = tempfile.mkstemp(prefix='termreplay_', suffix='.cast')
        with os.fdopen(fd, 'w') as cast_file:
            cast_file.write('\n'.join(TestAsciicast.cast_lines[1:]) + '\n\n')

        try:
            records = list(read_records(filename))
        finally:
            os.remove(filename)
        self.assertEqual(records, TestAsciicast.cast_records[1:])
