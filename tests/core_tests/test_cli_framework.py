"""Tests for CLI framework components."""
from __future__ import annotations

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout

from graphcore.cli_errors import (
    AuthError,
    CLIError,
    ConfigError,
    ExitCode,
    GraphAPIError,
    NetworkError,
    NotFoundError,
    UsageError,
    handle_error,
)
from graphcore.cli_framework import CLIApp
from graphcore.cli_output import OutputFormat


class TestExitCodes(unittest.TestCase):
    """Test exit code definitions."""

    def test_exit_codes_are_integers(self):
        self.assertEqual(ExitCode.SUCCESS, 0)
        self.assertEqual(ExitCode.ERROR, 1)
        self.assertEqual(ExitCode.USAGE, 2)
        self.assertEqual(ExitCode.INTERRUPTED, 130)

    def test_error_types_have_correct_codes(self):
        self.assertEqual(ConfigError("test").code, ExitCode.CONFIG_ERROR)
        self.assertEqual(AuthError("test").code, ExitCode.AUTH_ERROR)
        self.assertEqual(NetworkError("test").code, ExitCode.NETWORK_ERROR)
        self.assertEqual(NotFoundError("test").code, ExitCode.NOT_FOUND)
        self.assertEqual(UsageError("test").code, ExitCode.USAGE)

    def test_graph_api_error_codes(self):
        self.assertEqual(GraphAPIError(403, "x").code, ExitCode.PERMISSION_DENIED)
        self.assertEqual(GraphAPIError(500, "x").code, ExitCode.ERROR)
        self.assertEqual(str(GraphAPIError(500, "boom")), "API request failed with status 500: boom")


class TestHandleError(unittest.TestCase):
    def test_cli_error_with_hint(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = handle_error(ConfigError("missing", hint="run config set"))
        self.assertEqual(code, ExitCode.CONFIG_ERROR)
        self.assertIn("Error: missing", err.getvalue())
        self.assertIn("Hint: run config set", err.getvalue())

    def test_unexpected_error(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = handle_error(RuntimeError("bad"))
        self.assertEqual(code, ExitCode.ERROR)


def build_app():
    app = CLIApp("demo", "Demo app", version="1.0")
    seen = {}

    @app.command("hello", help="Say hello", aliases=["hi"])
    @app.argument("--name", default="world")
    def cmd_hello(args):
        seen["args"] = args
        args._output.print(f"hello {args.name}")
        return 0

    group = app.group("things", help="Things")

    @group.command("fail", help="Always fails")
    def cmd_fail(args):
        raise UsageError("nope")

    @group.command("crash", help="Unexpected error")
    def cmd_crash(args):
        raise RuntimeError("kaboom")

    return app, seen


class TestCLIApp(unittest.TestCase):
    def test_runs_command_with_arguments(self):
        app, seen = build_app()
        out = io.StringIO()
        with redirect_stdout(out):
            code = app.run(["hello", "--name", "graph"])
        self.assertEqual(code, 0)
        self.assertEqual(out.getvalue(), "hello graph\n")
        self.assertEqual(seen["args"].output, OutputFormat.TEXT.value)

    def test_alias(self):
        app, _ = build_app()
        with redirect_stdout(io.StringIO()):
            self.assertEqual(app.run(["hi"]), 0)

    def test_common_args_after_subcommand(self):
        app, seen = build_app()
        with redirect_stdout(io.StringIO()):
            app.run(["hello", "--json", "-q"])
        self.assertEqual(seen["args"].output, "json")
        self.assertTrue(seen["args"].quiet)
        self.assertFalse(seen["args"].markdown)

    def test_cli_error_exit_code(self):
        app, _ = build_app()
        with redirect_stderr(io.StringIO()) as err:
            code = app.run(["things", "fail"])
        self.assertEqual(code, ExitCode.USAGE)
        self.assertIn("Error: nope", err.getvalue())

    def test_unexpected_error_exit_code(self):
        app, _ = build_app()
        with redirect_stderr(io.StringIO()):
            self.assertEqual(app.run(["things", "crash"]), ExitCode.ERROR)

    def test_no_command_prints_help(self):
        app, _ = build_app()
        out = io.StringIO()
        with redirect_stdout(out):
            code = app.run([])
        self.assertEqual(code, ExitCode.USAGE)
        self.assertIn("Demo app", out.getvalue())

    def test_group_without_subcommand(self):
        app, _ = build_app()
        with redirect_stdout(io.StringIO()):
            self.assertEqual(app.run(["things"]), ExitCode.USAGE)

    def test_command_names(self):
        app, _ = build_app()
        self.assertEqual(sorted(app.command_names()), ["hello", "hi", "things"])

    def test_version(self):
        app, _ = build_app()
        with redirect_stdout(io.StringIO()) as out:
            with self.assertRaises(SystemExit):
                app.run(["--version"])
        self.assertIn("demo 1.0", out.getvalue())

    def test_cli_error_is_exception(self):
        self.assertTrue(issubclass(UsageError, CLIError))


if __name__ == "__main__":
    unittest.main()
