"""Shared test fixtures for PR Analyzer."""

from typing import List, Optional

import pytest

from pr_analyzer.analysis.diff_parser import DiffFile, DiffLine, FileStatus, Hunk, LineType
from pr_analyzer.analysis.pull_request import PullRequest


SIMPLE_DIFF = """\
diff --git a/src/lib.rs b/src/lib.rs
index 1111111..2222222 100644
--- a/src/lib.rs
+++ b/src/lib.rs
@@ -1,3 +1,4 @@
 fn a() {}
+fn b() {}
 fn c() {}
 fn d() {}
"""


def _added_file(path: str, lines: List[str], status: FileStatus) -> DiffFile:
    hunk = Hunk(
        old_start=0 if status is FileStatus.ADDED else 1,
        old_count=0,
        new_start=1,
        new_count=len(lines),
        lines=tuple(
            DiffLine(LineType.ADDITION, content, new_lineno=i + 1)
            for i, content in enumerate(lines)
        ),
    )
    return DiffFile(path=path, status=status, hunks=(hunk,) if lines else ())


@pytest.fixture
def added_file():
    """Factory for a DiffFile consisting of added lines only."""
    def factory(path: str, lines: List[str], status: FileStatus = FileStatus.MODIFIED) -> DiffFile:
        return _added_file(path, lines, status)
    return factory


@pytest.fixture
def make_pr():
    """Factory for a PullRequest; declared totals default to the parsed ones."""
    def factory(
        files: Optional[List[DiffFile]] = None,
        files_changed: Optional[int] = None,
        additions: Optional[int] = None,
        deletions: Optional[int] = None,
        number: int = 1,
    ) -> PullRequest:
        files = files or []
        return PullRequest(
            number=number,
            title="Test PR",
            author="tester",
            files_changed=len(files) if files_changed is None else files_changed,
            additions=sum(f.additions for f in files) if additions is None else additions,
            deletions=sum(f.deletions for f in files) if deletions is None else deletions,
            files=tuple(files),
        )
    return factory


@pytest.fixture
def empty_pr(make_pr) -> PullRequest:
    return make_pr()


@pytest.fixture
def simple_diff() -> str:
    return SIMPLE_DIFF
