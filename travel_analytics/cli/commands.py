"""CLI commands for the travel analytics engine."""

import asyncio
import json
from typing import Any, Dict, List

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..analysis.decision_matrix import MATRIX_TEMPLATES
from ..exceptions import AnalyticsError
from ..models.data_models import (
    BiasFinding,
    DecisionMatrixResult,
    LocationComparisonResult,
    PatternAnalysisResult,
)
from ..orchestrator.main import AnalyticsOrchestrator
from ..utils.config import Config
from ..utils.logging import setup_logging

console = Console()

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "green"}
STATUS_STYLES = {"completed": "green", "failed": "red", "cancelled": "yellow", "pending": "dim"}


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config-file', type=click.Path(), help='Configuration (.env) file path')
@click.option('--log-file', type=click.Path(), help='Also write logs to this file')
@click.pass_context
def cli(ctx, debug, config_file, log_file):
    """Travel decision and behavior analytics."""
    ctx.ensure_object(dict)

    config = Config(config_file)
    log_level = "DEBUG" if debug else config.log_level
    setup_logging(log_level=log_level, log_file=log_file, console_output=debug)

    ctx.obj['config'] = config
    ctx.obj['orchestrator'] = AnalyticsOrchestrator(config)


def load_json(path: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}")


def split_history(document: Dict[str, Any], user_id: str):
    """Accept either ``{"user_id", "activity"}`` or a bare activity document."""
    if "activity" in document:
        return document.get("user_id", user_id), document["activity"]
    return user_id, document


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Print the raw result as JSON')
@click.pass_context
def matrix(ctx, file, as_json):
    """Evaluate a decision matrix described in FILE."""
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']
    try:
        result = orchestrator.create_decision_matrix(load_json(file))
    except AnalyticsError as e:
        raise click.ClickException(e.message)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
        return
    display_matrix_result(result)


@cli.command()
@click.argument('matrix_type', type=click.Choice(sorted(MATRIX_TEMPLATES)))
@click.pass_context
def templates(ctx, matrix_type):
    """List the predefined criteria sets for MATRIX_TYPE."""
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']

    for template in orchestrator.get_matrix_templates(matrix_type):
        table = Table(title=f"{template.name} ({template.category})")
        table.add_column("Criterion", style="cyan")
        table.add_column("Weight", style="green", justify="right")
        table.add_column("Scale")
        table.add_column("Description")
        for key, criterion in template.criteria.items():
            table.add_row(key, f"{criterion.weight:.2f}", criterion.scale.value, criterion.description or "")
        console.print(table)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def compare(ctx, file):
    """Compare the locations described in FILE.

    FILE holds ``{"locations": [...], "criteria": {"cost": 0.5, ...}}``.
    """
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']
    document = load_json(file)
    try:
        result = orchestrator.compare_locations(
            document.get("locations", []),
            document.get("criteria", {}),
            document.get("name"),
        )
    except AnalyticsError as e:
        raise click.ClickException(e.message)

    display_comparison(result)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--user-id', default='cli-user', help='User the history belongs to')
@click.pass_context
def patterns(ctx, file, user_id):
    """Detect behavior patterns in the history stored in FILE."""
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']
    user_id, activity = split_history(load_json(file), user_id)
    try:
        result = orchestrator.analyze_patterns(user_id, activity)
    except AnalyticsError as e:
        raise click.ClickException(e.message)

    display_patterns(result)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--all', 'include_all', is_flag=True, help='Include low-confidence findings')
@click.pass_context
def biases(ctx, file, include_all):
    """Detect cognitive biases in the history stored in FILE."""
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']
    _, activity = split_history(load_json(file), 'cli-user')
    try:
        findings = orchestrator.detect_biases(activity, include_low_confidence=include_all)
    except AnalyticsError as e:
        raise click.ClickException(e.message)

    display_biases(findings)


@cli.command(name='run-jobs')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--timeout', default=60.0, help='Seconds to wait for the queue to drain')
@click.pass_context
def run_jobs(ctx, file, timeout):
    """Submit the jobs listed in FILE and report their outcome.

    FILE holds a list of ``{"user_id", "job_type", "payload", "priority"}``.
    """
    orchestrator: AnalyticsOrchestrator = ctx.obj['orchestrator']
    entries = load_json(file)
    if not isinstance(entries, list):
        raise click.ClickException("Job file must contain a list of jobs")

    async def run_batch():
        job_ids = []
        async with orchestrator:
            for entry in entries:
                try:
                    job_id = await orchestrator.submit_job(
                        entry.get("user_id", "cli-user"),
                        entry.get("job_type", ""),
                        entry.get("payload", {}),
                        entry.get("priority", "medium"),
                    )
                except AnalyticsError as e:
                    console.print(f"[red]Rejected {entry.get('job_type')}: {e.message}[/red]")
                    continue
                job_ids.append(job_id)

            try:
                await orchestrator.drain(timeout)
            except asyncio.TimeoutError:
                raise click.ClickException(f"Jobs still running after {timeout}s") from None

            finished = [await orchestrator.get_job_status(job_id) for job_id in job_ids]
            for job_id in job_ids:
                await orchestrator.discard_job(job_id)
            return finished

    jobs = asyncio.run(run_batch())

    table = Table(title="Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Error")
    for job in jobs:
        style = STATUS_STYLES.get(job.status.value, "white")
        table.add_row(
            job.id[:8],
            job.job_type.value,
            job.priority.value,
            f"[{style}]{job.status.value}[/{style}]",
            job.error or "",
        )
    console.print(table)

    metrics = orchestrator.get_metrics()
    console.print(
        f"Completed: {metrics.completed_jobs}  Failed: {metrics.failed_jobs}  "
        f"Average time: {metrics.average_processing_time:.3f}s"
    )

    workers = Table(title="Workers")
    workers.add_column("Worker", style="cyan")
    workers.add_column("Processed", justify="right")
    workers.add_column("Failed", justify="right")
    for stats in orchestrator.get_worker_stats():
        if stats["processed"] or stats["failed"]:
            workers.add_row(stats["name"], str(stats["processed"]), str(stats["failed"]))
    console.print(workers)


def display_matrix_result(result: DecisionMatrixResult):
    """Display an evaluated decision matrix."""
    table = Table(title=result.name)
    table.add_column("Rank", justify="right")
    table.add_column("Alternative", style="cyan")
    table.add_column("Score", style="green", justify="right")

    for position, alternative_id in result.rankings.items():
        alternative = result.alternatives.get(alternative_id)
        label = alternative.name if alternative else alternative_id
        table.add_row(position, label, f"{result.scores[alternative_id]['total']:.3f}")
    console.print(table)

    recommendation = result.recommendation
    console.print(Panel(
        "\n".join(recommendation.reasoning),
        title=f"Recommendation (confidence {recommendation.confidence:.0%})",
        border_style="blue",
    ))


def display_comparison(result: LocationComparisonResult):
    """Display a location comparison."""
    table = Table(title=result.comparison_name)
    table.add_column("Rank", justify="right")
    table.add_column("Location", style="cyan")
    table.add_column("Score", style="green", justify="right")
    table.add_column("Strengths")
    table.add_column("Weaknesses")

    for position, location_id in result.rankings.items():
        table.add_row(
            position,
            location_id,
            f"{result.scores[location_id]['total']:.3f}",
            ", ".join(result.strengths.get(location_id, [])),
            ", ".join(result.weaknesses.get(location_id, [])),
        )
    console.print(table)

    for location_id, recommendation in result.recommendations.items():
        console.print(f"{location_id}: {recommendation}")


def display_patterns(result: PatternAnalysisResult):
    """Display accepted behavior patterns."""
    if not result.patterns:
        console.print("[yellow]Not enough history to establish any pattern[/yellow]")
    else:
        table = Table(title="Behavior Patterns")
        table.add_column("Type", style="cyan")
        table.add_column("Category")
        table.add_column("Confidence", justify="right")
        table.add_column("Significance", justify="right")
        for pattern in result.patterns:
            table.add_row(
                pattern.pattern_type.value,
                pattern.category,
                f"{pattern.confidence:.2f}",
                f"{pattern.significance:.2f}",
            )
        console.print(table)

    console.print(f"Overall reliability: {result.profile.overall_reliability:.2f}")
    for recommendation in result.recommendations:
        console.print(f"• {recommendation}")


def display_biases(findings: List[BiasFinding]):
    """Display bias findings."""
    if not findings:
        console.print("[green]No confident bias findings[/green]")
        return

    table = Table(title="Cognitive Biases")
    table.add_column("Bias", style="cyan")
    table.add_column("Severity")
    table.add_column("Confidence", justify="right")
    table.add_column("Description")
    for finding in findings:
        style = SEVERITY_STYLES.get(finding.severity.value, "white")
        table.add_row(
            finding.bias_type.value,
            f"[{style}]{finding.severity.value}[/{style}]",
            f"{finding.confidence:.2f}",
            finding.description,
        )
    console.print(table)
