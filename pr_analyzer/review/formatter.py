"""
Formatters for analysis reports.

Renders a Report as markdown (for files and PR comments), JSON (for
tooling) or colored terminal output via rich.
"""

import json
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule

from pr_analyzer.review.schemas import (
    AnalysisResult,
    DegradedResult,
    Finding,
    Report,
    RiskLevel,
)


UNAVAILABLE = "UNAVAILABLE"
NO_ANALYZER_COMPLETED = "UNAVAILABLE (no analyzer completed)"

# Visual indicators per risk level
RISK_EMOJI = {
    RiskLevel.LOW: "🟢",
    RiskLevel.MEDIUM: "🟡",
    RiskLevel.HIGH: "🔴",
}

RISK_STYLE = {
    RiskLevel.LOW: "bold green",
    RiskLevel.MEDIUM: "bold yellow",
    RiskLevel.HIGH: "bold red",
}


def overall_label(report: Report) -> str:
    """Overall risk as displayed, distinguishing 'no result' from LOW."""
    if report.overall_risk is None:
        return NO_ANALYZER_COMPLETED
    return str(report.overall_risk)


def _finding_suffix(finding: Finding) -> str:
    return f" ({finding.location})" if finding.location else ""


def format_report_markdown(report: Report) -> str:
    """
    Format a report as markdown.

    Args:
        report: Report to format

    Returns:
        Markdown document
    """
    parts = []

    parts.append(f'# PR #{report.pr_number}: "{report.pr_title}"')
    parts.append("")
    parts.append(
        f"**Author:** {report.author} | **Files changed:** {report.files_changed} | "
        f"**+{report.additions} -{report.deletions}**"
    )
    parts.append("")

    for outcome in report.outcomes.values():
        parts.append(f"## {outcome.title}")
        parts.append("")

        if isinstance(outcome, DegradedResult):
            parts.append(f"**Risk Level: {UNAVAILABLE}**")
            parts.append("")
            parts.append(f"> ⚠️ Analyzer failed ({outcome.error_type}): {outcome.reason}")
            parts.append("")
            continue

        emoji = RISK_EMOJI.get(outcome.risk_level, "")
        parts.append(f"**Risk Level: {emoji} {outcome.risk_level}**")
        parts.append("")

        if not outcome.findings:
            parts.append("No findings.")
        else:
            for finding in outcome.findings:
                location = f" (`{finding.location}`)" if finding.location else ""
                parts.append(f"- **{finding.severity}** {finding.message}{location}")
        parts.append("")

    parts.append("---")
    parts.append("")
    if report.overall_risk is None:
        parts.append(f"## Overall Risk: {NO_ANALYZER_COMPLETED}")
    else:
        parts.append(f"## Overall Risk: {RISK_EMOJI[report.overall_risk]} {report.overall_risk}")

    if report.degraded:
        names = ", ".join(d.analyzer_name for d in report.degraded)
        parts.append("")
        parts.append(f"*Partial report: {len(report.degraded)} analyzer(s) unavailable ({names}).*")

    return "\n".join(parts) + "\n"


def format_report_json(report: Report) -> str:
    """
    Format a report as JSON.

    Outcomes keep their report order; overall_risk is null when no
    analyzer completed.
    """
    data = report.model_dump(mode="json")
    data["complete"] = report.is_complete
    return json.dumps(data, indent=2)


def print_report(report: Report, console: Optional[Console] = None) -> None:
    """
    Print a report to the terminal with colors.

    Args:
        report: Report to print
        console: Rich console (defaults to stdout)
    """
    console = console or Console()

    console.print()
    console.print(f'[bold]PR #{report.pr_number}:[/bold] "{escape(report.pr_title)}"')
    console.print(
        f"Author: {escape(report.author)} | Files changed: {report.files_changed} | "
        f"[green]+{report.additions}[/green] [red]-{report.deletions}[/red]"
    )
    console.print()

    for outcome in report.outcomes.values():
        console.print(Rule(f"[bold]{escape(outcome.title)}[/bold]", style="cyan"))
        if isinstance(outcome, DegradedResult):
            _print_degraded(console, outcome)
        else:
            _print_result(console, outcome)
        console.print()

    if report.overall_risk is None:
        overall = f"[bold red]{NO_ANALYZER_COMPLETED}[/bold red]"
        border = "red"
    else:
        style = RISK_STYLE[report.overall_risk]
        overall = f"[{style}]{report.overall_risk}[/{style}]"
        border = style.split()[-1]

    console.print(Panel(f"Overall Risk: {overall}", border_style=border, expand=False))
    if report.degraded:
        console.print(
            f"[yellow]![/yellow] Partial report: {len(report.degraded)} analyzer(s) unavailable"
        )
    console.print()


def _print_result(console: Console, result: AnalysisResult) -> None:
    style = RISK_STYLE[result.risk_level]
    console.print(f"Risk Level: [{style}]{result.risk_level}[/{style}]")
    if not result.findings:
        console.print("  [dim]No findings.[/dim]")
        return
    for finding in result.findings:
        finding_style = RISK_STYLE[finding.severity].split()[-1]
        console.print(
            f"  [{finding_style}]•[/{finding_style}] "
            f"{escape(finding.message)}{escape(_finding_suffix(finding))}"
        )


def _print_degraded(console: Console, outcome: DegradedResult) -> None:
    console.print(f"Risk Level: [bold magenta]{UNAVAILABLE}[/bold magenta]")
    console.print(f"  [red]✗[/red] Analyzer failed ({escape(outcome.error_type)}): {escape(outcome.reason)}")
