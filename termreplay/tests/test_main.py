import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

import termreplay.main

CONFIG = """[GLOBAL]
fps=10
line_count=5
cursor_glyph=
end_delay_ms=0
renderer=svg
"""


class TestMain(unittest.TestCase):
    test_cases = [
        ['script.json'],
        ['script.json', 'output.gif'],
        ['script.json', '--verbose'],
        ['script.json', '--headless', '-v'],
        ['script.json', '-c', 'config.ini'],
        ['script.json', '--renderer', 'cast'],
        ['script.json', '-r', 'gif', '-f', '24', '-l', '10', '-s', '-3', '-n'],
        ['script.json', 'output.svg', '--fps', '15', '--line-count', '30',
         '--seed', '7', '--line-numbers', '--config', 'config.ini', '--headless'],
    ]

    failure_test_cases = [
        [],
        ['script.json', '-r', 'mp4'],
        ['script.json', '-f', '0'],
        ['script.json', '-f', 'fast'],
        ['script.json', '-l', '-1'],
        ['script.json', '-s', 'abc'],
        ['script.json', 'output.svg', 'extra'],
    ]

    def setUp(self):
        self.directory = tempfile.mkdtemp(prefix='termreplay_')

    def tearDown(self):
        shutil.rmtree(self.directory)

    def write_file(self, filename, content):
        path = os.path.join(self.directory, filename)
        with open(path, 'w') as output_file:
            output_file.write(content)
        return path

    def write_script(self, records):
        return self.write_file('script.json', json.dumps(records))

    def test_parse(self):
        renderers = termreplay.config.RENDERER_NAMES
        for args in self.test_cases:
            with self.subTest(case=args):
                termreplay.main.parse(args, renderers)

        parsed_args = termreplay.main.parse(['script.json'], renderers)
        self.assertIsNone(parsed_args.output_path)
        self.assertIsNone(parsed_args.fps)
        self.assertIsNone(parsed_args.line_numbers)
        self.assertFalse(parsed_args.headless)

        parsed_args = termreplay.main.parse(self.test_cases[-1], renderers)
        self.assertEqual(parsed_args.output_path, 'output.svg')
        self.assertEqual(parsed_args.fps, 15)
        self.assertEqual(parsed_args.line_count, 30)
        self.assertEqual(parsed_args.seed, 7)
        self.assertTrue(parsed_args.line_numbers)
        self.assertTrue(parsed_args.headless)

    def test_parse_failure(self):
        for args in self.failure_test_cases:
            with self.subTest(case=args):
                with self.assertRaises(SystemExit):
                    termreplay.main.parse(args, termreplay.config.RENDERER_NAMES)

    def test_resolve_output_path(self):
        with self.subTest(case='argument'):
            with patch.dict(os.environ, {'OUTPUT_PATH': 'from_environment.gif'}):
                path = termreplay.main.resolve_output_path('demo.svg', 'svg')
            self.assertEqual(path, os.path.abspath('demo.svg'))

        with self.subTest(case='environment'):
            with patch.dict(os.environ, {'OUTPUT_PATH': 'from_environment.gif'}):
                path = termreplay.main.resolve_output_path(None, 'svg')
            self.assertEqual(path, os.path.abspath('from_environment.gif'))

        with self.subTest(case='temporary file'):
            with patch.dict(os.environ, clear=True):
                path = termreplay.main.resolve_output_path(None, 'cast')
            self.assertTrue(os.path.isabs(path))
            self.assertTrue(path.endswith('.cast'))
            os.remove(path)

    def test_main(self):
        script = self.write_script([
            {'action': 'type', 'payload': 'echo hello'},
            {'action': 'enter'},
        ])
        config = self.write_file('config.ini', CONFIG)
        output_path = os.path.join(self.directory, 'demo.svg')

        with self.subTest(case='headless'):
            args = ['termreplay', script, output_path, '-c', config, '--headless']
            self.assertEqual(termreplay.main.main(args), 0)
            with open(output_path) as svg_file:
                self.assertIn('hello', svg_file.read())

        with self.subTest(case='output path from environment'):
            environment_path = os.path.join(self.directory, 'environment.svg')
            args = ['termreplay', script, '-c', config, '--headless']
            with patch.dict(os.environ, {'OUTPUT_PATH': environment_path}):
                self.assertEqual(termreplay.main.main(args), 0)
            self.assertTrue(os.path.isfile(environment_path))

        with self.subTest(case='renderer from command line'):
            args = ['termreplay', script, os.path.join(self.directory, 'demo'),
                    '-c', config, '-r', 'gif', '-f', '5', '--headless', '--verbose']
            self.assertEqual(termreplay.main.main(args), 0)
            self.assertTrue(os.path.isfile(os.path.join(self.directory, 'demo.gif')))

    def test_main_preview(self):
        script = self.write_script([{'action': 'type', 'payload': 'a'}])
        config = self.write_file('config.ini', CONFIG)
        output_path = os.path.join(self.directory, 'demo.svg')

        with open(os.devnull, 'wb') as devnull:
            args = ['termreplay', script, output_path, '-c', config]
            exit_code = termreplay.main.main(args, devnull.fileno())
        self.assertEqual(exit_code, 0)
        self.assertTrue(os.path.isfile(output_path))

    def test_main_failure(self):
        config = self.write_file('config.ini', CONFIG)
        output_path = os.path.join(self.directory, 'demo.svg')

        with self.subTest(case='invalid script'):
            script = self.write_file('script.json', '{"action": ')
            args = ['termreplay', script, output_path, '-c', config, '--headless']
            self.assertEqual(termreplay.main.main(args), 1)
            self.assertFalse(os.path.exists(output_path))

        with self.subTest(case='invalid configuration'):
            script = self.write_script([{'action': 'enter'}])
            invalid_config = self.write_file('invalid.ini', CONFIG + 'quality=99\n')
            args = ['termreplay', script, output_path, '-c', invalid_config, '--headless']
            self.assertEqual(termreplay.main.main(args), 1)

        with self.subTest(case='unknown action'):
            script = self.write_script([
                {'action': 'type', 'payload': 'ls'},
                {'action': 'teleport'},
            ])
            args = ['termreplay', script, output_path, '-c', config, '--headless']
            self.assertEqual(termreplay.main.main(args), 1)
            with open(output_path) as svg_file:
                self.assertIn('ERROR: Unknown action: teleport', svg_file.read())
