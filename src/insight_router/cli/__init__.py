"""CLI module for insight-router.

This module provides the command-line interface.
"""

from __future__ import annotations

from collections.abc import Sequence

from .commands import cmd_analyze, cmd_batch, cmd_capabilities, cmd_init, cmd_quick
from .parser import build_parser, print_banner


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point.

    Args:
        argv: Optional sequence of CLI arguments (without the program name).

    Returns:
        Process exit code. 0 for success.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        print_banner()
        parser.print_help()
        return 0

    handlers = {
        "analyze": cmd_analyze,
        "quick": cmd_quick,
        "batch": cmd_batch,
        "capabilities": cmd_capabilities,
        "init": cmd_init,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


__all__ = [
    "main",
    "build_parser",
    "print_banner",
    "cmd_analyze",
    "cmd_batch",
    "cmd_capabilities",
    "cmd_init",
    "cmd_quick",
]
