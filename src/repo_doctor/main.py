"""repo-doctor CLI - repository health checker.

Usage:
    repo-doctor analyze [--path <repo>] [options]
    repo-doctor analyze --format json --output health.json
    repo-doctor scan --path ../other-repo
    repo-doctor report --input health.json --format markdown
"""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .analyzer import RepositoryAnalyzer, RepositoryError
from .format import format_days_ago, pluralize
from .logging_config import setup_logging
from .models import AnalysisOptions, Priority, RepositoryHealth, ReportFormatError, Severity
from .report import generate_json_report, generate_markdown_report, load_report, write_report
from .scanner import AnalysisCancelled

console = Console()
err_console = Console(stderr=True)

RULE = "─" * 60
PREVIEW_LIMIT = 5


def _run_analysis(options: AnalysisOptions, quiet: bool) -> RepositoryHealth:
    """Run the analyzer behind a spinner, mapping failures to CLI errors."""
    analyzer = RepositoryAnalyzer(options)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
            disable=quiet,
        ) as progress:
            progress.add_task("Analyzing repository...", total=None)
            return analyzer.analyze()
    except RepositoryError as e:
        raise click.ClickException(f"{e.reason}: {e.path}")
    except (KeyboardInterrupt, AnalysisCancelled):
        analyzer.cancel()
        err_console.print("[yellow]Analysis cancelled[/]")
        raise click.Abort()


def _emit(content: str, output: str | None) -> None:
    """Print a rendered report or save it to a file."""
    if output:
        path = write_report(content, output)
        err_console.print(f"[green]Report saved to:[/] {path}")
    else:
        click.echo(content)


@click.group(context_settings={"auto_envvar_prefix": "REPO_DOCTOR"})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
def cli(verbose: bool, quiet: bool):
    """repo-doctor - repository health checker.

    Scores a local git repository on commit activity, file composition,
    branch hygiene and exposed secrets. Nothing leaves your machine.
    """
    setup_logging(verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--path", "-p", default=".", help="Path to repository")
@click.option("--format", "-f", "fmt", type=click.Choice(["terminal", "json", "markdown"]), default="terminal", help="Output format")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Output file path (json/markdown)")
@click.option("--skip-security", is_flag=True, help="Skip security scanning")
@click.option("--skip-files", is_flag=True, help="Skip file analysis")
@click.option("--deep/--no-deep", default=True, show_default=True, help="Inspect recent commits for the largest change")
@click.option("--max-file-size", type=click.IntRange(min=1), default=10, show_default=True, help="Max file size in MB before a file is flagged as large")
@click.option("--stale-branch-days", type=click.IntRange(min=1), default=90, show_default=True, help="Days without commits before a branch is stale")
def analyze(
    path: str,
    fmt: str,
    output: str | None,
    skip_security: bool,
    skip_files: bool,
    deep: bool,
    max_file_size: int,
    stale_branch_days: int,
):
    """Analyze repository health and generate a report.

    Exits with status 1 when critical issues are found.

    Examples:

        repo-doctor analyze

        repo-doctor analyze -p ../service --format markdown -o HEALTH.md

        repo-doctor analyze --skip-files --stale-branch-days 30
    """
    options = AnalysisOptions(
        path=path,
        deep=deep,
        skip_security=skip_security,
        skip_files=skip_files,
        max_file_size_mb=max_file_size,
        stale_branch_days=stale_branch_days,
    )
    health = _run_analysis(options, quiet=fmt != "terminal")

    if fmt == "json":
        _emit(generate_json_report(health), output)
    elif fmt == "markdown":
        _emit(generate_markdown_report(health), output)
    else:
        _print_health_report(health)

    sys.exit(1 if health.has_critical_issues else 0)


@cli.command()
@click.option("--path", "-p", default=".", help="Path to repository")
def scan(path: str):
    """Quick security scan for secrets and sensitive files.

    Exits with status 1 when anything is found.
    """
    options = AnalysisOptions(path=path, skip_files=True, skip_security=False)
    health = _run_analysis(options, quiet=False)
    security = health.metrics.security

    if security.total_issues == 0:
        console.print("[green]✓ No security issues detected[/]")
        sys.exit(0)

    console.print(f"\n[bold yellow]Found {pluralize(security.total_issues, 'security issue')}:[/]\n")

    if security.potential_secrets:
        console.print(f"[bold red]Potential Secrets ({len(security.potential_secrets)}):[/]")
        for finding in security.potential_secrets:
            console.print(f"  [dim]•[/] {finding.type} [dim]in {finding.file}:{finding.line}[/]")
        console.print()

    if security.sensitive_files:
        console.print(f"[bold yellow]Sensitive Files ({len(security.sensitive_files)}):[/]")
        for file in security.sensitive_files:
            console.print(f"  [dim]•[/] {file}")
        console.print()

    if security.exposed_keys:
        console.print(f"[bold red]Exposed Keys ({len(security.exposed_keys)}):[/]")
        for finding in security.exposed_keys:
            console.print(f"  [dim]•[/] {finding.type} [dim]in {finding.file}:{finding.line}[/]")
        console.print()

    sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_path", required=True, type=click.Path(exists=True, dir_okay=False), help="JSON file from a previous analysis")
@click.option("--format", "-f", "fmt", type=click.Choice(["terminal", "markdown"]), default="terminal", help="Output format")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Output file path (markdown)")
def report(input_path: str, fmt: str, output: str | None):
    """Generate a report from a previous JSON analysis."""
    try:
        health = load_report(input_path)
    except (OSError, ReportFormatError) as e:
        raise click.ClickException(f"Failed to load report: {e}")

    if fmt == "markdown":
        _emit(generate_markdown_report(health), output)
    else:
        _print_health_report(health)


@cli.command()
def version():
    """Show version information."""
    console.print(f"repo-doctor v{__version__}")
    console.print("Repository health checker for local git repositories")


# --- Terminal rendering ---


def _metrics_table() -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key")
    table.add_column("Value", style="cyan")
    return table


def _section(title: str) -> None:
    console.print(f"[bold yellow]{title}[/]")
    console.print(RULE, style="dim")


def _print_health_report(health: RepositoryHealth) -> None:
    """Print the full health report to the terminal."""
    _print_header(health)
    _print_basic_metrics(health)
    _print_commit_metrics(health)
    _print_file_metrics(health)
    _print_security_metrics(health)
    _print_branch_metrics(health)
    if health.issues:
        _print_issues(health)
    if health.recommendations:
        _print_recommendations(health)
    console.print("═" * 60, style="dim")
    console.print("[dim]Generated by[/] [bold cyan]repo-doctor[/]")


def _print_header(health: RepositoryHealth) -> None:
    color = health.grade.color
    filled = health.score // 5
    bar = f"[green]{'█' * filled}[/][dim]{'░' * (20 - filled)}[/]"
    console.print()
    console.print(Panel.fit(
        f"Overall Health Score: [bold {color}] {health.grade.value} [/]\n"
        f"[{bar}] [dim]{health.score}/100[/]",
        title="[bold cyan]Repository Health Report[/]",
        subtitle=health.repository or None,
        border_style="cyan",
    ))
    console.print()


def _print_basic_metrics(health: RepositoryHealth) -> None:
    basic = health.metrics.basic
    _section("📊 Basic Metrics")
    table = _metrics_table()
    table.add_row("Total Commits", f"{basic.total_commits:,}")
    table.add_row("Total Branches", str(basic.total_branches))
    table.add_row("Total Files", f"{basic.total_files:,}")
    table.add_row("Contributors", str(basic.contributors))
    table.add_row("Repository Age", basic.repository_age)
    table.add_row("Last Commit", basic.last_commit_date)
    console.print(table)
    console.print()


def _print_commit_metrics(health: RepositoryHealth) -> None:
    commits = health.metrics.commits
    _section("📝 Commit Activity")
    table = _metrics_table()
    table.add_row("Average Commits/Day", f"{commits.average_commits_per_day:g}")
    table.add_row("Commit Frequency", commits.commit_frequency)
    table.add_row("Commit Pattern", commits.commit_pattern)
    largest = commits.largest_commit
    if largest.hash:
        table.add_row("Largest Commit", f"{largest.hash} ({largest.files} files, {largest.date})")
    console.print(table)
    console.print()


def _print_file_metrics(health: RepositoryHealth) -> None:
    files = health.metrics.files
    _section("📁 File Analysis")
    table = _metrics_table()
    table.add_row("Total Size", files.total_size)
    table.add_row("Binary Files", str(files.binary_files))
    console.print(table)

    if files.large_files:
        console.print("\n  [yellow]Large Files:[/]")
        for large in files.large_files[:PREVIEW_LIMIT]:
            console.print(f"  [dim]•[/] {large.path} [dim]({large.size})[/]")

    top_types = sorted(files.file_types.items(), key=lambda x: -x[1])[:PREVIEW_LIMIT]
    if top_types:
        console.print("\n  [yellow]Top File Types:[/]")
        for ext, count in top_types:
            console.print(f"  [dim]•[/] {ext} [dim]({pluralize(count, 'file')})[/]")
    console.print()


def _print_findings(label: str, style: str, items: list[str]) -> None:
    console.print(f"  [{style}]⚠  {label}[/]")
    for item in items[:3]:
        console.print(f"     [dim]•[/] {item}")
    if len(items) > 3:
        console.print(f"     [dim]... and {len(items) - 3} more[/]")


def _print_security_metrics(health: RepositoryHealth) -> None:
    security = health.metrics.security
    _section("🔒 Security Scan")

    if security.total_issues == 0:
        console.print("  [green]✓ No security issues detected[/]\n")
        return

    if security.potential_secrets:
        _print_findings(
            pluralize(len(security.potential_secrets), "potential secret"),
            "red",
            [f"{f.type} [dim]in {f.file}:{f.line}[/]" for f in security.potential_secrets],
        )
    if security.exposed_keys:
        _print_findings(
            pluralize(len(security.exposed_keys), "exposed key"),
            "red",
            [f"{f.type} [dim]in {f.file}:{f.line}[/]" for f in security.exposed_keys],
        )
    if security.sensitive_files:
        _print_findings(
            pluralize(len(security.sensitive_files), "sensitive file"),
            "yellow",
            list(security.sensitive_files),
        )
    console.print()


def _print_branch_metrics(health: RepositoryHealth) -> None:
    branches = health.metrics.branches
    _section("🌿 Branch Analysis")
    table = _metrics_table()
    table.add_row("Total Branches", str(branches.total_branches))
    table.add_row("Active Branches", f"[green]{branches.active_branches}[/]")
    table.add_row("Stale Branches", f"[yellow]{branches.stale_branch_count}[/]")
    table.add_row("Default Branch", branches.default_branch)
    console.print(table)

    if branches.stale_branches:
        console.print("\n  [yellow]Stale Branches:[/]")
        for branch in branches.stale_branches[:PREVIEW_LIMIT]:
            console.print(f"  [dim]•[/] {branch.name} [dim](last commit {format_days_ago(branch.days_old)})[/]")
        if branches.stale_branch_count > PREVIEW_LIMIT:
            console.print(f"  [dim]... and {branches.stale_branch_count - PREVIEW_LIMIT} more[/]")
    console.print()


def _print_issues(health: RepositoryHealth) -> None:
    console.print("[bold red]⚠️  Issues Found[/]")
    console.print(RULE, style="dim")

    sections = (
        (Severity.CRITICAL, "Critical", "red", "✗"),
        (Severity.WARNING, "Warnings", "yellow", "!"),
        (Severity.INFO, "Info", "blue", "ℹ"),
    )
    for severity, heading, style, marker in sections:
        group = health.issues_by_severity(severity)
        if not group:
            continue
        console.print(f"\n  [bold {style}]{heading} ({len(group)}):[/]")
        for issue in group:
            console.print(f"  [{style}]{marker}[/] {issue.message}")
            if issue.details:
                console.print(f"    [dim]{issue.details}[/]")
    console.print()


def _print_recommendations(health: RepositoryHealth) -> None:
    console.print("[bold green]💡 Recommendations[/]")
    console.print(RULE, style="dim")

    labels = {
        Priority.HIGH: "[red]HIGH[/]",
        Priority.MEDIUM: "[yellow]MED[/]",
        Priority.LOW: "[blue]LOW[/]",
    }
    for i, rec in enumerate(health.recommendations, 1):
        console.print(f"\n  {i}. [bold]{rec.title}[/] \\[{labels[rec.priority]}]")
        console.print(f"     [dim]{rec.description}[/]")
        console.print(f"     [cyan]→ {rec.action}[/]")
    console.print()


if __name__ == "__main__":
    cli()
