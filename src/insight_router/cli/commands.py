"""CLI command handlers."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core import ProviderModelConfig, RouterConfig, get_logger, setup_logging
from ..exceptions import InsightRouterError
from ..orchestration import (
    KeywordAnalysisProvider,
    OrchestrationResult,
    Orchestrator,
    Scenario,
    WorkItem,
)

logger = get_logger("cli")

console = Console()


def load_config(path: str | None) -> RouterConfig:
    """Load configuration from a file, or defaults when no path is given."""
    if not path:
        return RouterConfig()
    config_path = Path(path)
    if config_path.suffix.lower() == ".json":
        return RouterConfig.from_json(config_path)
    return RouterConfig.from_yaml(config_path)


def parse_model_bindings(values: list[str]) -> list[ProviderModelConfig]:
    """Parse ``PROVIDER=MODEL`` arguments."""
    bindings = []
    for value in values:
        provider_id, sep, model = value.partition("=")
        if not sep or not provider_id or not model:
            raise ValueError(f"Expected PROVIDER=MODEL, got: {value}")
        bindings.append(ProviderModelConfig(provider_id=provider_id.strip(), model=model.strip()))
    return bindings


def build_orchestrator(args: argparse.Namespace) -> Orchestrator:
    """Create an orchestrator from CLI arguments.

    Providers without a configured model get an offline keyword stand-in so
    the pipeline can run without credentials.
    """
    config = load_config(getattr(args, "config", None))
    if getattr(args, "debug", False):
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    config.providers.extend(parse_model_bindings(getattr(args, "model", []) or []))

    orchestrator = Orchestrator(config)
    for provider_id in orchestrator.registry.providers():
        if provider_id not in orchestrator.providers:
            orchestrator.register_provider(KeywordAnalysisProvider(provider_id))
    default_provider = orchestrator.registry.default_provider
    if default_provider not in orchestrator.providers:
        orchestrator.register_provider(KeywordAnalysisProvider(default_provider))
    return orchestrator


def render_result(result: OrchestrationResult) -> None:
    """Print one orchestration result."""
    insight = result.synthesized
    header = (
        f"[bold]Scenario:[/bold] {result.scenario.value} "
        f"([cyan]{result.detection_confidence:.2f}[/])\n"
        f"[bold]Strategy:[/bold] {result.strategy.value if result.strategy else '-'}\n"
        f"[bold]Providers:[/bold] {', '.join(result.selected_providers) or '-'}"
    )
    console.print(Panel(header, title=f"[bold]{result.item_id}[/]", border_style="blue"))

    table = Table(title="Provider results")
    table.add_column("Provider", style="cyan")
    table.add_column("Status")
    table.add_column("Confidence", justify="right")
    table.add_column("Time (ms)", justify="right")
    for task_result in result.results:
        status = "[green]ok[/]" if task_result.ok else f"[red]{task_result.error}[/]"
        table.add_row(
            task_result.provider_id,
            status,
            f"{task_result.confidence:.2f}",
            f"{task_result.response_time_ms:.0f}",
        )
    console.print(table)

    style = "red" if insight.degraded else "green"
    lines = [f"[bold]{insight.primary_insight}[/bold]"]
    lines.extend(f"  - {text}" for text in insight.supporting_insights)
    if insight.actionable_advice:
        lines.append("\n[bold]Advice:[/bold]")
        lines.extend(f"  - {text}" for text in insight.actionable_advice)
    if insight.related_concepts:
        lines.append(f"\n[bold]Related:[/bold] {', '.join(insight.related_concepts)}")
    console.print(
        Panel("\n".join(lines), title=f"Insight ({insight.confidence:.2f})", border_style=style)
    )

    for recommendation in result.recommendations:
        console.print(f"[yellow]![/] {recommendation}")


def cmd_analyze(args: argparse.Namespace) -> int:
    """Handle analyze command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    try:
        orchestrator = build_orchestrator(args)
    except (InsightRouterError, ValueError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 1

    result = asyncio.run(
        orchestrator.process_one(WorkItem(content=args.text), strategy=args.strategy)
    )

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        render_result(result)
    return 0 if result.error is None else 1


def cmd_quick(args: argparse.Namespace) -> int:
    """Handle quick command."""
    try:
        orchestrator = Orchestrator(load_config(args.config))
    except (InsightRouterError, ValueError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 1

    quick = orchestrator.quick_analysis(args.text)

    if args.json:
        print(quick.model_dump_json(indent=2))
    else:
        console.print(
            f"[bold]Scenario:[/bold] {quick.scenario.value}  "
            f"[bold]Provider:[/bold] {quick.provider_id}  "
            f"[bold]Confidence:[/bold] {quick.confidence:.2f}"
        )
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Handle batch command."""
    input_path = Path(args.file)
    if not input_path.exists():
        console.print(f"[red]Error:[/] Input file not found: {input_path}")
        return 1

    lines = [line.strip() for line in input_path.read_text(encoding="utf-8").splitlines()]
    items = [
        WorkItem(id=f"line_{index}", content=line) for index, line in enumerate(lines, 1) if line
    ]
    if not items:
        console.print("[yellow]No items to process.[/]")
        return 0

    try:
        orchestrator = build_orchestrator(args)
    except (InsightRouterError, ValueError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 1

    results = asyncio.run(orchestrator.process_batch(items, strategy=args.strategy))

    if args.json:
        payload = {item_id: result.model_dump(mode="json") for item_id, result in results.items()}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    table = Table(title=f"Batch results ({len(results)} items)")
    table.add_column("Item", style="cyan")
    table.add_column("Scenario")
    table.add_column("Providers")
    table.add_column("Success", justify="right")
    table.add_column("Insight")
    for item in items:
        result = results[item.id]
        table.add_row(
            item.id,
            result.scenario.value,
            ", ".join(result.selected_providers),
            f"{result.performance.success_rate:.0%}",
            result.synthesized.primary_insight,
        )
    console.print(table)
    return 0


def cmd_capabilities(args: argparse.Namespace) -> int:
    """Handle capabilities command."""
    try:
        scenario = Scenario(args.scenario) if args.scenario else None
        orchestrator = Orchestrator(load_config(args.config))
    except (InsightRouterError, ValueError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/] {escape(str(exc))}")
        return 1

    rows = (
        orchestrator.registry.for_scenario(scenario) if scenario else orchestrator.registry.all()
    )

    table = Table(title="Capabilities")
    table.add_column("Scenario", style="cyan")
    table.add_column("Provider")
    table.add_column("Speed")
    table.add_column("Quality")
    table.add_column("Cost")
    table.add_column("Reliability", justify="right")
    for row in rows:
        table.add_row(
            row.scenario.value,
            row.provider_id,
            row.speed.value,
            row.quality.value,
            row.cost.value,
            f"{row.reliability:.2f}",
        )
    console.print(table)
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Handle init command."""
    output_path = Path(args.output)

    if output_path.exists() and not args.force:
        console.print(f"[red]Error:[/] {output_path} already exists (use --force to overwrite)")
        return 1

    RouterConfig().to_yaml(output_path)

    console.print(f"[green]✓[/] Configuration file created: {output_path}")
    console.print("\nNext steps:")
    console.print(f"1. Edit {output_path} and add provider models under 'providers'")
    console.print(f'2. Run: insight-router analyze "..." -c {output_path}')
    return 0
