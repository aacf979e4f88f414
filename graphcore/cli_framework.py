"""CLI application framework.

Provides a declarative way to build CLI applications with:
- Command registration via decorators
- Automatic argument parsing
- Consistent error handling
- Output formatting
- Common arguments on every command (--verbose, --quiet, --output, --json, --markdown)
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
)

from .cli_errors import CLIError, ExitCode, handle_error
from .cli_output import OutputConfig, OutputFormat, OutputWriter


CommandFunc = Callable[[argparse.Namespace], int]

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass
class Argument:
    """Definition of a CLI argument."""
    name_or_flags: tuple
    kwargs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandDef:
    """Definition of a CLI command."""
    name: str
    func: CommandFunc
    help: str = ""
    description: str = ""
    arguments: List[Argument] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


class CLIApp:
    """Base class for CLI applications.

    Example usage:
        app = CLIApp("m365", "Microsoft 365 CLI")

        @app.command("whoami", help="Show the signed-in user")
        @app.argument("--field", help="Only print this field")
        def cmd_whoami(args):
            args._output.print_data({"field": args.field})
            return 0

        if __name__ == "__main__":
            app.main()
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        *,
        version: Optional[str] = None,
        epilog: Optional[str] = None,
        add_common_args: bool = True,
    ):
        self.name = name
        self.description = description
        self.version = version
        self.epilog = epilog
        self.add_common_args = add_common_args

        self._commands: Dict[str, CommandDef] = {}
        self._groups: Dict[str, "CommandGroup"] = {}
        self._parser: Optional[argparse.ArgumentParser] = None
        self._pending_arguments: List[Argument] = []

    def command(
        self,
        name: str,
        *,
        help: str = "",
        description: str = "",
        aliases: Optional[List[str]] = None,
    ) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to register a top-level command."""
        def decorator(func: CommandFunc) -> CommandFunc:
            arguments = list(reversed(self._pending_arguments))
            self._pending_arguments.clear()
            self._commands[name] = CommandDef(
                name=name,
                func=func,
                help=help,
                description=description or help,
                arguments=arguments,
                aliases=aliases or [],
            )
            return func
        return decorator

    def argument(
        self,
        *name_or_flags: str,
        **kwargs: Any,
    ) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to add an argument to the next command.

        Must be used BELOW the @command decorator (decorators apply bottom-up).
        """
        def decorator(func: CommandFunc) -> CommandFunc:
            self._pending_arguments.append(Argument(name_or_flags, kwargs))
            return func
        return decorator

    def group(
        self,
        name: str,
        *,
        help: str = "",
        description: str = "",
    ) -> "CommandGroup":
        """Create a command group for nested commands."""
        group = CommandGroup(self, name, help=help, description=description)
        self._groups[name] = group
        return group

    def command_names(self) -> List[str]:
        """Top-level command and group names, including aliases."""
        names: List[str] = list(self._groups)
        for cmd_def in self._commands.values():
            names.append(cmd_def.name)
            names.extend(cmd_def.aliases)
        return names

    def build_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser."""
        parser = argparse.ArgumentParser(
            prog=self.name,
            description=self.description,
            epilog=self.epilog,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        if self.version:
            parser.add_argument(
                "--version", "-V",
                action="version",
                version=f"%(prog)s {self.version}",
            )

        if self._commands or self._groups:
            subparsers = parser.add_subparsers(dest="command", metavar="<command>")

            for group_name, group in self._groups.items():
                group_parser = subparsers.add_parser(
                    group_name,
                    help=group.help,
                    description=group.description,
                )
                group._build_subparsers(group_parser)

            for cmd_def in self._commands.values():
                cmd_parser = subparsers.add_parser(
                    cmd_def.name,
                    help=cmd_def.help,
                    description=cmd_def.description,
                    aliases=cmd_def.aliases,
                )
                self._add_command_arguments(cmd_parser, cmd_def)
                cmd_parser.set_defaults(_cmd_func=cmd_def.func)

        self._parser = parser
        return parser

    def _add_common_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add common arguments to a command parser."""
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose output (debug logging)",
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )
        parser.add_argument(
            "--output", "-o",
            choices=[f.value for f in OutputFormat],
            default=OutputFormat.TEXT.value,
            help="Output format (default: text)",
        )
        parser.add_argument(
            "--json",
            dest="output",
            action="store_const",
            const=OutputFormat.JSON.value,
            help="Shorthand for --output json",
        )
        parser.add_argument(
            "--markdown",
            action="store_true",
            help="Convert HTML bodies to Markdown (no-op for commands without bodies)",
        )

    def _add_command_arguments(
        self,
        parser: argparse.ArgumentParser,
        cmd_def: CommandDef,
    ) -> None:
        """Add common and command-specific arguments to the parser."""
        if self.add_common_args:
            self._add_common_arguments(parser)
        for arg in cmd_def.arguments:
            parser.add_argument(*arg.name_or_flags, **arg.kwargs)

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Run the CLI application and return the exit code."""
        parser = self._parser
        if parser is None:
            parser = self.build_parser()
        args = parser.parse_args(argv)

        verbose = getattr(args, "verbose", False)
        configure_logging(verbose)

        output_config = OutputConfig(
            format=OutputFormat(getattr(args, "output", None) or OutputFormat.TEXT.value),
            quiet=getattr(args, "quiet", False),
        )
        args._output = OutputWriter(output_config)

        cmd_func = getattr(args, "_cmd_func", None)
        if cmd_func is None:
            parser.print_help()
            return ExitCode.USAGE

        try:
            return int(cmd_func(args) or 0)
        except CLIError as e:
            return handle_error(e, verbose=verbose)
        except KeyboardInterrupt:
            print("\nInterrupted.", file=sys.stderr)
            return ExitCode.INTERRUPTED
        except Exception as e:
            return handle_error(e, verbose=verbose)

    def main(self, argv: Optional[Sequence[str]] = None) -> None:
        """Run the CLI and exit with the return code."""
        sys.exit(self.run(argv))


class CommandGroup:
    """A group of related commands (e.g., "mail" containing "list", "get", "send")."""

    def __init__(
        self,
        app: CLIApp,
        name: str,
        *,
        help: str = "",
        description: str = "",
    ):
        self.app = app
        self.name = name
        self.help = help
        self.description = description or help
        self._commands: Dict[str, CommandDef] = {}

    def command(
        self,
        name: str,
        *,
        help: str = "",
        description: str = "",
        aliases: Optional[List[str]] = None,
    ) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to register a command in this group."""
        def decorator(func: CommandFunc) -> CommandFunc:
            arguments = list(reversed(self.app._pending_arguments))
            self.app._pending_arguments.clear()
            self._commands[name] = CommandDef(
                name=name,
                func=func,
                help=help,
                description=description or help,
                arguments=arguments,
                aliases=aliases or [],
            )
            return func
        return decorator

    def argument(
        self,
        *name_or_flags: str,
        **kwargs: Any,
    ) -> Callable[[CommandFunc], CommandFunc]:
        """Decorator to add an argument. Delegates to app."""
        return self.app.argument(*name_or_flags, **kwargs)

    def _build_subparsers(self, parser: argparse.ArgumentParser) -> None:
        """Build subparsers for this group's commands."""
        subparsers = parser.add_subparsers(dest=f"{self.name}_cmd", metavar="<subcommand>")

        for cmd_name, cmd_def in self._commands.items():
            cmd_parser = subparsers.add_parser(
                cmd_name,
                help=cmd_def.help,
                description=cmd_def.description,
                aliases=cmd_def.aliases,
            )
            self.app._add_command_arguments(cmd_parser, cmd_def)
            cmd_parser.set_defaults(_cmd_func=cmd_def.func)
