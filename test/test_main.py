#!/usr/bin/env python3
import io
import unittest
from contextlib import redirect_stderr, redirect_stdout

from downstream import ROCKETCHAT_TEMPLATE

import main
from gawa.constants import VERSION_STRING


class TestMain(unittest.TestCase):
    def test_version_flag(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main.main(['--version']), 0)
        self.assertEqual(out.getvalue().strip(), VERSION_STRING)

    def test_missing_target_url(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = main.main(['--target-url', '', '--post-template', ROCKETCHAT_TEMPLATE])
        self.assertEqual(code, 2)
        self.assertIn('Must specify HTTP URL', err.getvalue())

    def test_broken_template(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = main.main(['--target-url', 'http://127.0.0.1:9/', '--post-template', '/nonexistent.j2'])
        self.assertEqual(code, 1)

    def test_split_addr(self):
        self.assertEqual(main.split_addr('localhost:9097'), ('localhost', 9097))
        self.assertEqual(main.split_addr(':8080'), ('0.0.0.0', 8080))
        self.assertEqual(main.split_addr('[::1]:9097'), ('::1', 9097))


if __name__ == '__main__':
    unittest.main()
