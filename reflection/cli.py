"""CLI for the Reflection correlation engine.

Commands for:
- Listing metrics in a series snapshot
- Finding correlations across all metric pairs
- Inspecting the aligned samples behind one relationship
- Generating prioritized suggestions
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click
import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from reflection.correlation import CorrelationEngine, CorrelationScan

console = Console()


def configure_logging(level: str) -> None:
    """Route structlog output to stderr, filtered at `level`."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


# ============================================================================
# Rich Formatting Helpers
# ============================================================================


def format_significance_badge(significance: str) -> Text:
    """Format significance bucket as colored badge."""
    colors = {
        "strong": "green bold",
        "moderate": "yellow",
        "weak": "blue",
        "none": "white",
    }
    color = colors.get(significance.lower(), "white")
    return Text(significance.upper(), style=color)


def format_priority(priority: int) -> str:
    """Format priority as a five-star bar."""
    return "[magenta]" + "★" * priority + "[/magenta]" + "☆" * (5 - priority)


def format_coefficient(value: float) -> str:
    """Format coefficient with a direction color."""
    color = "green" if value > 0 else "red"
    return f"[{color}]{value:+.2f}[/{color}]"


# ============================================================================
# Shared Helpers
# ============================================================================


def _load_engine(ctx: click.Context, data_file: Path) -> CorrelationEngine:
    """Build an engine over a series snapshot using the configured thresholds."""
    from reflection.config import (
        get_engine_config,
        get_metric_definitions,
        load_engine_config,
    )
    from reflection.correlation import CorrelationEngine
    from reflection.providers import load_series_file

    config_path: Path = ctx.obj["config_path"]
    config = load_engine_config(config_path) if config_path.exists() else {}
    catalog = load_series_file(data_file, get_metric_definitions(config))
    return CorrelationEngine(catalog, get_engine_config(config))


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value else None


def _window_text(scan: CorrelationScan) -> str:
    return f"{scan.date_range.start.isoformat()} → {scan.date_range.end.isoformat()}"


data_argument = click.argument(
    "data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
days_option = click.option(
    "--days", "-n", type=int, default=None, help="Window length in days"
)
today_option = click.option(
    "--today",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last day of the window (YYYY-MM-DD)",
)
format_option = click.option(
    "--format", "-f", type=click.Choice(["text", "json"]), default="text"
)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to engine configuration file",
)
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING)")
@click.pass_context
def main(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """Reflection - find relationships in your personal data."""
    from reflection.config import Settings

    settings = Settings()
    configure_logging(log_level or settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config or settings.config_path
    ctx.obj["settings"] = settings


@main.command()
@data_argument
@click.pass_context
def metrics(ctx: click.Context, data_file: Path) -> None:
    """List metrics available in a series snapshot."""
    engine = _load_engine(ctx, data_file)

    table = Table(title="Available Metrics")
    table.add_column("Key")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Unit")

    for metric in sorted(engine.list_available_metrics(), key=lambda m: m.key):
        table.add_row(metric.key, metric.name, metric.category.value, metric.unit or "-")

    console.print(table)


@main.command()
@data_argument
@days_option
@today_option
@format_option
@click.option("--diagnostics", is_flag=True, help="Show pairs that failed to load")
@click.option("--cache", "use_cache", is_flag=True, help="Use the Redis result cache")
@click.pass_context
def analyze(
    ctx: click.Context,
    data_file: Path,
    days: int | None,
    today: datetime | None,
    format: str,
    diagnostics: bool,
    use_cache: bool,
) -> None:
    """Find significant correlations between all metric pairs.

    Examples:

        reflection analyze data.yaml              # Last 30 days

        reflection analyze data.yaml -n 90 -f json
    """
    engine = _load_engine(ctx, data_file)

    if use_cache:
        from reflection.cache import CorrelationCache

        settings = ctx.obj["settings"]

        async def _scan() -> CorrelationScan:
            cache = CorrelationCache(settings.redis_url, settings.cache_ttl_seconds)
            await cache.connect()
            try:
                return await engine.scan_async(
                    minimum_days=days, today=_as_date(today), cache=cache
                )
            finally:
                await cache.close()

        scan = asyncio.run(_scan())
    else:
        scan = engine.scan(minimum_days=days, today=_as_date(today))

    if format == "json":
        click.echo(
            json.dumps(
                {
                    "window_start": scan.date_range.start.isoformat(),
                    "window_end": scan.date_range.end.isoformat(),
                    "pairs_evaluated": scan.pairs_evaluated,
                    "results": [r.model_dump(mode="json") for r in scan.results],
                    "failures": [
                        {"metric_x": f.metric_x, "metric_y": f.metric_y, "error": f.error}
                        for f in scan.failures
                    ],
                },
                indent=2,
            )
        )
    else:
        _display_scan(scan, diagnostics)

    if scan.all_failed:
        ctx.exit(1)


def _print_unavailable(message: str) -> None:
    """Print the data-source error banner."""
    console.print(
        Panel(
            f"[red]{message} Check that your data sources are available.[/red]",
            title="Error",
        )
    )


def _display_scan(scan: CorrelationScan, diagnostics: bool) -> None:
    """Render scan results as a table."""
    if scan.all_failed:
        _print_unavailable("Could not read any metric data.")
    elif not scan.results:
        console.print(f"[yellow]Not enough data to find correlations ({_window_text(scan)}).[/yellow]")
    else:
        table = Table(title=f"Correlations ({_window_text(scan)})")
        table.add_column("#")
        table.add_column("Metrics")
        table.add_column("r")
        table.add_column("Confidence")
        table.add_column("Days")
        table.add_column("Lag")
        table.add_column("Significance")

        for idx, result in enumerate(scan.results, start=1):
            table.add_row(
                str(idx),
                f"{result.metric_x.name} ↔ {result.metric_y.name}",
                format_coefficient(result.correlation_coefficient),
                f"{result.confidence_score:.0%}",
                str(result.sample_size),
                f"{result.lag_days}d",
                format_significance_badge(result.significance.value),
            )
        console.print(table)

    if diagnostics and scan.failures:
        console.print()
        failure_table = Table(title="Pair Failures")
        failure_table.add_column("Pair")
        failure_table.add_column("Error")
        for failure in scan.failures:
            failure_table.add_row(f"{failure.metric_x} ↔ {failure.metric_y}", failure.error)
        console.print(failure_table)


@main.command()
@data_argument
@click.argument("metric_x")
@click.argument("metric_y")
@days_option
@today_option
@format_option
@click.pass_context
def relationship(
    ctx: click.Context,
    data_file: Path,
    metric_x: str,
    metric_y: str,
    days: int | None,
    today: datetime | None,
    format: str,
) -> None:
    """Show the aligned daily values behind one metric pair."""
    from reflection.correlation import ProviderUnavailableError

    engine = _load_engine(ctx, data_file)

    try:
        x = engine.catalog.get(metric_x)
        y = engine.catalog.get(metric_y)
    except KeyError as e:
        raise click.BadParameter(f"Unknown metric: {e.args[0]}") from e

    try:
        detail = engine.analyze_relationship(x, y, days, today=_as_date(today))
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    except ProviderUnavailableError as e:
        _print_unavailable(f"Could not read data for {e.metric_key}.")
        ctx.exit(1)

    if detail is None:
        if format == "json":
            click.echo("null")
        else:
            console.print(f"[yellow]Not enough data for {x.name} ↔ {y.name}.[/yellow]")
        return

    if format == "json":
        click.echo(
            json.dumps(
                {
                    "metric_x": detail.metric_x.key,
                    "metric_y": detail.metric_y.key,
                    "lag_days": detail.lag_days,
                    "coefficient": detail.score.coefficient,
                    "confidence": detail.score.confidence,
                    "points": [
                        {"date": p.date.isoformat(), "x": p.value_x, "y": p.value_y}
                        for p in detail.points
                    ],
                },
                indent=2,
            )
        )
        return

    console.print(
        f"[bold]{detail.metric_x.label()} → {detail.metric_y.label()}[/bold]  "
        f"r={format_coefficient(detail.score.coefficient)}  "
        f"lag={detail.lag_days}d  n={detail.sample_size}"
    )
    table = Table()
    table.add_column("Date")
    table.add_column(detail.metric_x.name)
    table.add_column(detail.metric_y.name)
    for point in detail.points:
        table.add_row(point.date.isoformat(), f"{point.value_x:g}", f"{point.value_y:g}")
    console.print(table)


@main.command()
@data_argument
@days_option
@today_option
@format_option
@click.pass_context
def suggest(
    ctx: click.Context,
    data_file: Path,
    days: int | None,
    today: datetime | None,
    format: str,
) -> None:
    """Generate prioritized suggestions from significant correlations."""
    from reflection.correlation import SuggestionGenerator

    engine = _load_engine(ctx, data_file)
    scan = engine.scan(minimum_days=days, today=_as_date(today))
    generator = SuggestionGenerator(engine.config.large_sample_days)
    suggestions = generator.generate_suggestions(scan.results)

    if format == "json":
        click.echo(json.dumps([s.model_dump(mode="json") for s in suggestions], indent=2))
    elif not suggestions:
        console.print("[yellow]No suggestions yet - keep tracking to build up data.[/yellow]")
    else:
        for suggestion in suggestions:
            console.print(
                Panel(
                    f"{suggestion.insight}\n\n"
                    f"[bold]Try:[/bold] {suggestion.suggested_change}\n"
                    f"[dim]{suggestion.expected_impact}[/dim]",
                    title=format_priority(suggestion.priority),
                    title_align="left",
                )
            )

    if scan.all_failed:
        ctx.exit(1)


@main.command()
@click.option("--format", "-f", type=click.Choice(["text", "json"]), default="text")
def version(format: str) -> None:
    """Show version information."""
    import platform

    from reflection import __version__

    info = {
        "version": __version__,
        "python": sys.version.split()[0],
        "platform": platform.system(),
    }

    if format == "json":
        click.echo(json.dumps(info, indent=2))
    else:
        console.print(f"[bold]Reflection[/bold] v{info['version']}")
        console.print(f"  Python: {info['python']}")
        console.print(f"  Platform: {info['platform']}")


if __name__ == "__main__":
    main()
