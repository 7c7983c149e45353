"""Tests for the command-line interface."""

import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from pr_analyzer import __version__
from pr_analyzer.analysis.pull_request import mock_pull_request
from pr_analyzer.cli import main
from pr_analyzer.review.report import build_report
from pr_analyzer.review.schemas import DegradedResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run in an empty directory and restore root logging afterwards."""
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestSources:
    def test_no_source(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 2
        assert "exactly one of" in result.output

    def test_two_sources(self, runner, tmp_path, simple_diff):
        diff_path = tmp_path / "change.diff"
        diff_path.write_text(simple_diff, encoding="utf-8")
        result = runner.invoke(main, ["--mock", "--diff-file", str(diff_path)])
        assert result.exit_code == 2

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestMockRun:
    def test_terminal_output(self, runner):
        result = runner.invoke(main, ["--mock"])
        assert result.exit_code == 0, result.output
        assert 'PR #42: "Add OAuth2 login flow"' in result.output
        assert "Security Risk Assessment" in result.output
        assert "Overall Risk: HIGH" in result.output

    def test_markdown_file(self, runner, tmp_path):
        out = tmp_path / "report.md"
        result = runner.invoke(main, ["--mock", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Report written to" in result.output

        markdown = out.read_text(encoding="utf-8")
        assert markdown.startswith('# PR #42: "Add OAuth2 login flow"')
        assert "## Overall Risk: 🔴 HIGH" in markdown

    def test_json_file(self, runner, tmp_path):
        out = tmp_path / "report.json"
        result = runner.invoke(main, ["--mock", "--format", "json", "-o", str(out)])
        assert result.exit_code == 0, result.output

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["pr_number"] == 42
        assert data["overall_risk"] == "high"
        assert data["complete"] is True

    def test_text_file_has_no_color_codes(self, runner, tmp_path):
        out = tmp_path / "report.txt"
        result = runner.invoke(main, ["--mock", "--format", "text", "-o", str(out)])
        assert result.exit_code == 0, result.output
        text = out.read_text(encoding="utf-8")
        assert "Overall Risk: HIGH" in text
        assert "\x1b[" not in text


class TestDiffFile:
    def test_local_diff(self, runner, tmp_path, simple_diff):
        diff_path = tmp_path / "change.diff"
        diff_path.write_text(simple_diff, encoding="utf-8")
        out = tmp_path / "report.json"

        result = runner.invoke(main, ["--diff-file", str(diff_path), "--format", "json", "-o", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["pr_number"] == 0
        assert data["pr_title"] == "change.diff"
        assert (data["files_changed"], data["additions"], data["deletions"]) == (1, 1, 0)

    def test_malformed_diff(self, runner, tmp_path):
        diff_path = tmp_path / "broken.diff"
        diff_path.write_text("@@ -1,2 +1,2 @@\n+x\n", encoding="utf-8")

        result = runner.invoke(main, ["--diff-file", str(diff_path)])

        assert result.exit_code == 1
        assert "Failed to parse diff" in result.output

    def test_missing_diff_file(self, runner):
        result = runner.invoke(main, ["--diff-file", "does-not-exist.diff"])
        assert result.exit_code == 2


class TestFailures:
    def test_invalid_pr_url(self, runner):
        result = runner.invoke(main, ["https://example.com/not/a/pr"])
        assert result.exit_code == 1
        assert "Failed to load pull request" in result.output

    def test_missing_config_file(self, runner):
        result = runner.invoke(main, ["--mock", "--config", "missing.toml"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_config_file(self, runner, tmp_path):
        config_path = tmp_path / "bad.toml"
        config_path.write_text('[style]\ndirection = "sideways"\n', encoding="utf-8")
        result = runner.invoke(main, ["--mock", "--config", str(config_path)])
        assert result.exit_code == 1

    def test_timeout(self, runner):
        with patch("pr_analyzer.cli.analyze_pull_request", AsyncMock(side_effect=asyncio.TimeoutError())):
            result = runner.invoke(main, ["--mock", "--timeout", "0.5"])
        assert result.exit_code == 1
        assert "timed out after 0.5 seconds" in result.output

    def test_timeout_on_large_diff(self, runner, tmp_path):
        count = 60_000
        diff_path = tmp_path / "large.diff"
        diff_path.write_text(
            "--- /dev/null\n"
            "+++ b/src/big.rs\n"
            f"@@ -0,0 +1,{count} @@\n"
            + "+    let total = items.iter().map(|item| item.price).sum::<u64>();\n" * count,
            encoding="utf-8",
        )

        result = runner.invoke(main, ["--diff-file", str(diff_path), "--timeout", "0.05"])

        assert result.exit_code == 1
        assert "timed out after 0.05 seconds" in result.output

    def test_no_analyzer_completed(self, runner, tmp_path):
        pr = mock_pull_request()
        report = build_report(pr, [
            DegradedResult(analyzer_name="security", title="Security", error_type="RuntimeError", reason="boom"),
        ])
        out = tmp_path / "report.md"

        with patch("pr_analyzer.cli.analyze_pull_request", AsyncMock(return_value=report)):
            result = runner.invoke(main, ["--mock", "-o", str(out)])

        assert result.exit_code == 1
        assert "UNAVAILABLE (no analyzer completed)" in out.read_text(encoding="utf-8")


class TestConfiguration:
    def test_project_config_file_is_applied(self, runner, tmp_path):
        (tmp_path / ".pr-analyzer.toml").write_text(
            '[style]\nmax_line_length = 20\n', encoding="utf-8"
        )
        out = tmp_path / "report.json"

        result = runner.invoke(main, ["--mock", "--format", "json", "-o", str(out)])

        assert result.exit_code == 0, result.output
        style = json.loads(out.read_text(encoding="utf-8"))["outcomes"]["style"]
        assert any(f["rule_id"] == "line-length" for f in style["findings"])
