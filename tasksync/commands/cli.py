"""
CLI command - Run the click task-list interface.
"""
import argparse
import logging

from tasksync.__main__ import Command

logger = logging.getLogger(__name__)


class CLICommand(Command):
    """Run the task-list CLI (same as the `tasks` script)."""

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument(
            "cli_args",
            nargs=argparse.REMAINDER,
            help="Arguments to pass to the CLI tool"
        )

    def run(self) -> int:
        from tasksync.cli import cli

        click_args = getattr(self.args, "cli_args", None) or []
        try:
            cli.main(args=click_args, prog_name="tasksync cli")
            return 0
        except SystemExit as e:
            return e.code if e.code is not None else 0
