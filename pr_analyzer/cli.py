"""Command-line interface for PR Analyzer."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from pr_analyzer import __version__
from pr_analyzer.agents.runner import analyze_pull_request
from pr_analyzer.analysis.diff_parser import ParseError, parse_diff
from pr_analyzer.analysis.pull_request import (
    PullRequest,
    PullRequestMetadata,
    build_pull_request,
    mock_pull_request,
)
from pr_analyzer.config import (
    ConfigError,
    ProjectConfig,
    load_project_config,
    resolve_github_token,
    settings,
)
from pr_analyzer.github.client import GitHubClient, GitHubError
from pr_analyzer.github.diff_fetcher import DiffFetcher, parse_pr_url
from pr_analyzer.observability.logging import setup_logging
from pr_analyzer.review.formatter import (
    format_report_json,
    format_report_markdown,
    print_report,
)
from pr_analyzer.review.schemas import Report

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def _error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {message}", highlight=False)


def _pull_request_from_file(path: Path) -> PullRequest:
    """Build a pull request from a local diff file; totals come from the diff."""
    diff_text = path.read_text(encoding="utf-8")
    files = parse_diff(diff_text)
    metadata = PullRequestMetadata(
        number=0,
        title=path.name,
        author="local",
        files_changed=len(files),
        additions=sum(f.additions for f in files),
        deletions=sum(f.deletions for f in files),
    )
    return build_pull_request(metadata, diff_text)


async def _fetch_pull_request(pr_url: str, config: ProjectConfig) -> PullRequest:
    parsed = parse_pr_url(pr_url)
    client = GitHubClient(
        token=resolve_github_token(config),
        api_url=settings.GITHUB_API_URL,
        timeout=settings.GITHUB_TIMEOUT_SECONDS,
    )
    return await DiffFetcher(client).fetch_pull_request(parsed)


def _write_report(report: Report, fmt: str, output: Optional[Path]) -> None:
    """Render the report to stdout or a file."""
    if fmt == "text":
        if output is None:
            print_report(report)
            return
        with output.open("w", encoding="utf-8") as f:
            print_report(report, Console(file=f, force_terminal=False, no_color=True, width=100))
        return

    rendered = format_report_json(report) if fmt == "json" else format_report_markdown(report)
    if output is None:
        click.echo(rendered, nl=False)
    else:
        output.write_text(rendered, encoding="utf-8")


@click.command()
@click.version_option(version=__version__, prog_name="pr-analyzer")
@click.argument("pr_url", required=False)
@click.option("--mock", is_flag=True, help="Analyze the bundled sample PR (no GitHub access needed).")
@click.option(
    "--diff-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Analyze a local unified diff file.",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report to a file instead of the terminal.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["text", "markdown", "json"]),
    default=None,
    help="Report format (default: text on the terminal, markdown for files).",
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the project config file (default: .pr-analyzer.toml).",
)
@click.option("--timeout", type=float, default=None, help="Analysis time limit in seconds.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    pr_url: Optional[str],
    mock: bool,
    diff_file: Optional[Path],
    output: Optional[Path],
    fmt: Optional[str],
    config_path: Optional[Path],
    timeout: Optional[float],
    verbose: bool,
):
    """Assess the risk of a GitHub pull request.

    PR_URL has the form https://github.com/OWNER/REPO/pull/NUMBER.
    """
    setup_logging(settings, level="DEBUG" if verbose else None)

    sources = sum([pr_url is not None, mock, diff_file is not None])
    if sources != 1:
        raise click.UsageError("Provide exactly one of PR_URL, --mock or --diff-file.")

    if fmt is None:
        fmt = "text" if output is None else "markdown"
    if timeout is None:
        timeout = settings.ANALYSIS_TIMEOUT_SECONDS

    try:
        config = load_project_config(config_path)
    except ConfigError as e:
        _error(str(e))
        sys.exit(1)

    try:
        if mock:
            logger.info("Using mock PR data")
            pr = mock_pull_request()
        elif diff_file is not None:
            pr = _pull_request_from_file(diff_file)
        else:
            pr = asyncio.run(_fetch_pull_request(pr_url, config))
    except ParseError as e:
        _error(f"Failed to parse diff: {e}")
        sys.exit(1)
    except (GitHubError, ValueError, OSError) as e:
        _error(f"Failed to load pull request: {e}")
        sys.exit(1)

    try:
        report = asyncio.run(analyze_pull_request(pr, config=config, timeout=timeout))
    except asyncio.TimeoutError:
        _error(f"Analysis timed out after {timeout} seconds")
        sys.exit(1)

    _write_report(report, fmt, output)
    if output is not None:
        err_console.print(f"[green]✓[/green] Report written to {output}", highlight=False)

    if report.overall_risk is None:
        _error("No analyzer completed; no risk assessment available")
        sys.exit(1)


if __name__ == "__main__":
    main()
