#!/usr/bin/env python3
"""
tasksync - Main entry point

This module provides the Command base class and manages the command lifecycle.
"""
import argparse
import sys
import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict

logger = logging.getLogger(__name__)


class Command(ABC):
    """
    Base class for all commands.

    Commands follow a lifecycle:
    1. init() - Initialize resources
    2. run() - Execute the command
    3. cleanup() - Release resources
    """

    def __init__(self, args: Optional[argparse.Namespace] = None):
        """
        Args:
            args: Parsed command-line arguments (None if not yet parsed)
        """
        self.args = args
        self._initialized = False
        self._cleaned_up = False

    @classmethod
    def get_name(cls) -> str:
        """Command name used on the command line ("ServerCommand" -> "server")."""
        return cls.__name__.replace("Command", "").lower()

    @classmethod
    def get_description(cls) -> str:
        return cls.__doc__ or f"{cls.__name__} command"

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add command-specific arguments to the parser."""
        pass

    def init(self) -> None:
        """Called before run(). Override to set up resources."""
        if self._initialized:
            return
        self._initialized = True
        logger.debug(f"Initialized {self.__class__.__name__}")

    @abstractmethod
    def run(self) -> int:
        """
        Execute the command.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        pass

    def cleanup(self) -> None:
        """Called after run(), even if run() raised."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        logger.debug(f"Cleaned up {self.__class__.__name__}")

    def __enter__(self):
        self.init()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False


_COMMANDS: Dict[str, type] = {}


def register_command(command_class: type) -> None:
    """Register a command class."""
    _COMMANDS[command_class.get_name()] = command_class


def get_command(name: str) -> Optional[type]:
    """Get a registered command class by name."""
    return _COMMANDS.get(name)


def list_commands() -> Dict[str, type]:
    """List all registered commands."""
    return _COMMANDS.copy()


def _register_builtin_commands() -> None:
    # Imported here because the command modules import Command from this module
    from tasksync.commands.cli import CLICommand
    from tasksync.commands.initialize import InitializeCommand
    from tasksync.commands.server import ServerCommand

    for command_class in (ServerCommand, CLICommand, InitializeCommand):
        register_command(command_class)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasksync",
        description="tasksync - task list with a local SQLite store and two-way sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run", metavar="COMMAND")

    _register_builtin_commands()
    for name, cmd_class in _COMMANDS.items():
        subparser = subparsers.add_parser(
            name,
            help=cmd_class.get_description(),
            description=cmd_class.get_description(),
        )
        cmd_class.add_arguments(subparser)
    return parser


def main(argv=None):
    """Main entry point for the tasksync package."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    cmd_class = get_command(args.command)
    if not cmd_class:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        cmd = cmd_class(args)
        with cmd:
            return cmd.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
