"""CLI argument parser and banner display."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.panel import Panel

from .. import __version__
from ..orchestration import SelectionStrategy

STRATEGY_CHOICES = [strategy.value for strategy in SelectionStrategy]


def print_banner(console: Console | None = None) -> None:
    """Print a short banner with the version."""
    console = console or Console()
    panel = Panel(
        f"[bold]insight-router[/bold] [green]v{__version__}[/]\n"
        "Scenario-aware routing of free-text analysis.",
        title="[bold white]insight-router[/]",
        border_style="blue",
        expand=False,
    )
    console.print(panel)


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to a YAML or JSON configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "-m",
        "--model",
        action="append",
        default=[],
        metavar="PROVIDER=MODEL",
        help="Back a provider with a pydantic-ai model, e.g. openai=openai:gpt-4o (repeatable)",
    )
    parser.add_argument(
        "-s",
        "--strategy",
        choices=STRATEGY_CHOICES,
        default=None,
        help="Selection strategy (default: derived from preferences)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw result as JSON",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="insight-router",
        description="insight-router - route free-text analysis to the right AI providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze one thought with offline stand-in providers
  insight-router analyze "为什么计划总是执行不下去？"

  # Use a real model for one provider
  insight-router analyze "..." -m openai=openai:gpt-4o

  # Estimate scenario and provider without calling anything
  insight-router quick "整理一下今天的笔记"

  # Process a file with one item per line
  insight-router batch notes.txt -c config.yaml

  # Generate default config
  insight-router init -o config.yaml
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Show program's version number and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Run the full pipeline on a text")
    analyze_parser.add_argument("text", help="Text to analyze")
    _add_config_arguments(analyze_parser)

    quick_parser = subparsers.add_parser(
        "quick", help="Estimate scenario and provider without calling providers"
    )
    quick_parser.add_argument("text", help="Text to classify")
    quick_parser.add_argument("-c", "--config", default=None, help="Configuration file")
    quick_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    batch_parser = subparsers.add_parser("batch", help="Process a file, one item per line")
    batch_parser.add_argument("file", help="Input file (UTF-8, blank lines ignored)")
    _add_config_arguments(batch_parser)

    caps_parser = subparsers.add_parser("capabilities", help="List the capability table")
    caps_parser.add_argument("-c", "--config", default=None, help="Configuration file")
    caps_parser.add_argument("--scenario", default=None, help="Only show one scenario")

    init_parser = subparsers.add_parser("init", help="Generate default configuration")
    init_parser.add_argument(
        "-o",
        "--output",
        default="config.yaml",
        help="Output config file path (default: config.yaml)",
    )
    init_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite an existing file",
    )

    return parser
