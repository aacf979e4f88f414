"""Tests for graphcore/plugins.py."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from graphcore.cli_errors import NotFoundError
from graphcore.plugins import execute_plugin, find_plugin, list_plugins, plugin_executable_name


def _touch(directory: str, name: str, mode: int = 0o755) -> str:
    path = Path(directory) / name
    path.write_text("#!/bin/sh\nexit 0\n")
    os.chmod(path, mode)
    return str(path)


class TestPlugins(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.dir_a = os.path.join(self._td.name, "a")
        self.dir_b = os.path.join(self._td.name, "b")
        os.makedirs(self.dir_a)
        os.makedirs(self.dir_b)
        self.path_env = os.pathsep.join([self.dir_a, "", self.dir_b, os.path.join(self._td.name, "missing")])

    def tearDown(self):
        self._td.cleanup()

    def test_executable_name(self):
        self.assertEqual(plugin_executable_name("todo"), "m365-todo")

    def test_list_plugins_sorted_unique_executable_only(self):
        _touch(self.dir_a, "m365-zeta")
        _touch(self.dir_a, "m365-alpha")
        _touch(self.dir_b, "m365-alpha")
        _touch(self.dir_b, "m365-notexec", mode=0o644)
        _touch(self.dir_b, "other-tool")
        _touch(self.dir_b, "m365-")
        os.makedirs(os.path.join(self.dir_b, "m365-dir"))
        self.assertEqual(list_plugins(self.path_env), ["alpha", "zeta"])

    def test_list_plugins_empty(self):
        self.assertEqual(list_plugins(self.path_env), [])

    def test_find_plugin(self):
        expected = _touch(self.dir_b, "m365-todo")
        self.assertEqual(find_plugin("todo", self.path_env), expected)

    def test_find_plugin_missing(self):
        with self.assertRaises(NotFoundError) as ctx:
            find_plugin("nope", self.path_env)
        self.assertIn("m365-nope", str(ctx.exception))

    @patch("graphcore.plugins.subprocess.run")
    def test_execute_plugin_returns_exit_code(self, mock_run):
        path = _touch(self.dir_a, "m365-todo")
        mock_run.return_value = MagicMock(returncode=3)
        self.assertEqual(execute_plugin("todo", ["list", "--all"], self.path_env), 3)
        mock_run.assert_called_once_with([path, "list", "--all"], check=False)


if __name__ == "__main__":
    unittest.main()
