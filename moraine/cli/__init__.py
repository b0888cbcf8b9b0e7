"""CLI for Moraine stacks."""

from moraine.cli.main import cli

__all__ = ["cli"]
