"""Tests for the unified diff parser."""

import pytest

from pr_analyzer.analysis.diff_parser import (
    DiffParser,
    FileStatus,
    LineType,
    ParseError,
    parse_diff,
)
from pr_analyzer.analysis.pull_request import load_mock_diff


class TestParseBasics:
    def test_empty_input(self):
        assert parse_diff("") == []
        assert parse_diff("   \n\n") == []

    def test_single_hunk(self, simple_diff):
        files = parse_diff(simple_diff)
        assert len(files) == 1
        f = files[0]
        assert f.path == "src/lib.rs"
        assert f.status is FileStatus.MODIFIED
        assert f.old_path is None
        assert f.language == "rust"
        assert len(f.hunks) == 1

        hunk = f.hunks[0]
        assert (hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count) == (1, 3, 1, 4)
        assert [line.line_type for line in hunk.lines] == [
            LineType.CONTEXT, LineType.ADDITION, LineType.CONTEXT, LineType.CONTEXT,
        ]
        assert hunk.lines[1].content == "fn b() {}"
        assert hunk.lines[1].raw == "+fn b() {}"
        assert f.additions == 1
        assert f.deletions == 0

    def test_hunk_counts_match_header(self, simple_diff):
        for f in parse_diff(simple_diff):
            for hunk in f.hunks:
                old = sum(1 for l in hunk.lines if l.line_type is not LineType.ADDITION)
                new = sum(1 for l in hunk.lines if l.line_type is not LineType.DELETION)
                assert old == hunk.old_count
                assert new == hunk.new_count

    def test_line_numbers(self):
        diff = (
            "--- a/x.py\n"
            "+++ b/x.py\n"
            "@@ -10,3 +10,3 @@ def handler():\n"
            " a = 1\n"
            "-b = 2\n"
            "+b = 3\n"
            " c = 4\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert hunk.section == "def handler():"
        context, deleted, added, last = hunk.lines
        assert (context.old_lineno, context.new_lineno) == (10, 10)
        assert (deleted.old_lineno, deleted.new_lineno) == (11, None)
        assert (added.old_lineno, added.new_lineno) == (None, 11)
        assert (last.old_lineno, last.new_lineno) == (12, 12)

    def test_omitted_count_defaults_to_one(self):
        diff = (
            "--- a/one.txt\n"
            "+++ b/one.txt\n"
            "@@ -1 +1 @@\n"
            "-old\n"
            "+new\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert hunk.old_count == 1
        assert hunk.new_count == 1

    def test_preamble_is_ignored(self, simple_diff):
        text = "From 1234 Mon Sep 17 00:00:00 2001\nSubject: [PATCH] add b\n\n" + simple_diff
        assert [f.path for f in parse_diff(text)] == ["src/lib.rs"]

    def test_parser_class_and_function_agree(self, simple_diff):
        assert DiffParser().parse(simple_diff) == parse_diff(simple_diff)


class TestMultipleHunksAndFiles:
    def test_multiple_hunks_without_separators(self):
        diff = (
            "diff --git a/a.txt b/a.txt\n"
            "--- a/a.txt\n"
            "+++ b/a.txt\n"
            "@@ -1,2 +1,2 @@\n"
            "-one\n"
            "+ONE\n"
            " two\n"
            "@@ -10,2 +10,3 @@\n"
            " ten\n"
            "+ten and a half\n"
            " eleven\n"
        )
        f = parse_diff(diff)[0]
        assert len(f.hunks) == 2
        assert f.hunks[1].old_start == 10
        assert f.additions == 2
        assert f.deletions == 1

    def test_consecutive_files_preserve_order(self):
        diff = (
            "diff --git a/b.py b/b.py\n"
            "--- a/b.py\n"
            "+++ b/b.py\n"
            "@@ -1 +1 @@\n"
            "-x\n"
            "+y\n"
            "diff --git a/a.py b/a.py\n"
            "--- a/a.py\n"
            "+++ b/a.py\n"
            "@@ -1 +1 @@\n"
            "-x\n"
            "+y\n"
        )
        assert [f.path for f in parse_diff(diff)] == ["b.py", "a.py"]

    def test_plain_unified_diff_with_timestamps(self):
        diff = (
            "--- a/old.txt\t2024-01-01 10:00:00.000000000 +0000\n"
            "+++ b/old.txt\t2024-01-02 10:00:00.000000000 +0000\n"
            "@@ -1 +1,2 @@\n"
            " keep\n"
            "+added\n"
            "--- a/other.txt\n"
            "+++ b/other.txt\n"
            "@@ -1 +1 @@\n"
            "-gone\n"
            "+here\n"
        )
        files = parse_diff(diff)
        assert [f.path for f in files] == ["old.txt", "other.txt"]

    def test_pure_addition_and_pure_deletion(self):
        diff = (
            "diff --git a/new.py b/new.py\n"
            "new file mode 100644\n"
            "index 0000000..1234567\n"
            "--- /dev/null\n"
            "+++ b/new.py\n"
            "@@ -0,0 +1,2 @@\n"
            "+a = 1\n"
            "+b = 2\n"
            "diff --git a/old.py b/old.py\n"
            "deleted file mode 100644\n"
            "index 1234567..0000000\n"
            "--- a/old.py\n"
            "+++ /dev/null\n"
            "@@ -1,2 +0,0 @@\n"
            "-a = 1\n"
            "-b = 2\n"
        )
        added, deleted = parse_diff(diff)
        assert added.status is FileStatus.ADDED
        assert added.path == "new.py"
        assert added.additions == 2
        assert deleted.status is FileStatus.DELETED
        assert deleted.path == "old.py"
        assert deleted.deletions == 2

    def test_mock_fixture_parses(self):
        files = parse_diff(load_mock_diff())
        by_path = {f.path: f for f in files}
        assert len(files) == 6
        assert by_path["src/auth/oauth.rs"].status is FileStatus.ADDED
        assert by_path["assets/logo.png"].status is FileStatus.BINARY
        assert by_path["src/auth/session.rs"].status is FileStatus.RENAMED
        assert sum(f.additions for f in files) == 36
        assert sum(f.deletions for f in files) == 2


class TestStatusClassification:
    def test_pure_rename(self):
        diff = (
            "diff --git a/old/name.rs b/new/name.rs\n"
            "similarity index 100%\n"
            "rename from old/name.rs\n"
            "rename to new/name.rs\n"
        )
        f = parse_diff(diff)[0]
        assert f.status is FileStatus.RENAMED
        assert f.path == "new/name.rs"
        assert f.old_path == "old/name.rs"
        assert f.hunks == ()

    def test_rename_with_changes(self):
        diff = (
            "diff --git a/a.py b/b.py\n"
            "similarity index 90%\n"
            "rename from a.py\n"
            "rename to b.py\n"
            "--- a/a.py\n"
            "+++ b/b.py\n"
            "@@ -1 +1 @@\n"
            "-x = 1\n"
            "+x = 2\n"
        )
        f = parse_diff(diff)[0]
        assert f.status is FileStatus.RENAMED
        assert f.old_path == "a.py"
        assert f.additions == 1

    def test_copy(self):
        diff = (
            "diff --git a/src/a.c b/src/b.c\n"
            "similarity index 100%\n"
            "copy from src/a.c\n"
            "copy to src/b.c\n"
        )
        f = parse_diff(diff)[0]
        assert f.status is FileStatus.COPIED
        assert f.old_path == "src/a.c"
        assert f.path == "src/b.c"

    def test_binary(self):
        diff = (
            "diff --git a/img.png b/img.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/img.png and b/img.png differ\n"
        )
        f = parse_diff(diff)[0]
        assert f.status is FileStatus.BINARY
        assert f.is_binary
        assert f.hunks == ()

    def test_git_binary_patch_payload_is_skipped(self):
        diff = (
            "diff --git a/data.bin b/data.bin\n"
            "index 1111111..2222222 100644\n"
            "GIT binary patch\n"
            "literal 12\n"
            "Tc${NkU|?WiU|?WiU|>)z\n"
            "\n"
            "literal 0\n"
            "HcmV?d00001\n"
            "\n"
        )
        f = parse_diff(diff)[0]
        assert f.status is FileStatus.BINARY

    def test_old_path_only_for_renames(self, simple_diff):
        assert parse_diff(simple_diff)[0].old_path is None

    def test_quoted_paths(self):
        diff = (
            'diff --git "a/dir/caf\\303\\251.txt" "b/dir/caf\\303\\251.txt"\n'
            "new file mode 100644\n"
            "--- /dev/null\n"
            '+++ "b/dir/caf\\303\\251.txt"\n'
            "@@ -0,0 +1 @@\n"
            "+hello\n"
        )
        f = parse_diff(diff)[0]
        assert f.path == "dir/café.txt"
        assert f.status is FileStatus.ADDED

    def test_paths_with_spaces(self):
        diff = (
            "diff --git a/my file.txt b/my file.txt\n"
            "--- a/my file.txt\n"
            "+++ b/my file.txt\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )
        assert parse_diff(diff)[0].path == "my file.txt"


class TestLineHandling:
    def test_no_newline_marker_attaches_to_previous_line(self):
        diff = (
            "--- a/f.txt\n"
            "+++ b/f.txt\n"
            "@@ -1 +1 @@\n"
            "-old\n"
            "\\ No newline at end of file\n"
            "+new\n"
            "\\ No newline at end of file\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert len(hunk.lines) == 2
        assert hunk.lines[0].no_newline_at_eof
        assert hunk.lines[1].no_newline_at_eof

    def test_no_newline_marker_not_counted(self):
        diff = (
            "--- a/f.txt\n"
            "+++ b/f.txt\n"
            "@@ -1,2 +1,2 @@\n"
            " keep\n"
            "-old\n"
            "\\ No newline at end of file\n"
            "+new\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert [l.no_newline_at_eof for l in hunk.lines] == [False, True, False]

    def test_empty_line_inside_hunk_is_context(self):
        diff = (
            "--- a/f.py\n"
            "+++ b/f.py\n"
            "@@ -1,3 +1,4 @@\n"
            " a = 1\n"
            "\n"
            "+b = 2\n"
            " c = 3\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert hunk.lines[1].line_type is LineType.CONTEXT
        assert hunk.lines[1].content == ""

    def test_crlf_headers(self):
        diff = (
            "diff --git a/w.txt b/w.txt\r\n"
            "index 1111111..2222222 100644\r\n"
            "--- a/w.txt\r\n"
            "+++ b/w.txt\r\n"
            "@@ -1 +1 @@\r\n"
            "-a\r\n"
            "+b\r\n"
        )
        f = parse_diff(diff)[0]
        assert f.path == "w.txt"
        assert f.hunks[0].lines[1].content == "b\r"

    def test_deletion_line_looking_like_header(self):
        diff = (
            "--- a/notes.md\n"
            "+++ b/notes.md\n"
            "@@ -1,2 +1 @@\n"
            "--- a heading rule\n"
            " text\n"
        )
        hunk = parse_diff(diff)[0].hunks[0]
        assert hunk.lines[0].line_type is LineType.DELETION
        assert hunk.lines[0].content == "-- a heading rule"


class TestParseErrors:
    def test_too_few_lines(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -1,3 +1,4 @@\n"
            "+only one\n"
        )
        with pytest.raises(ParseError) as exc:
            parse_diff(diff)
        assert exc.value.file_path == "f.rs"
        assert exc.value.hunk_header == "@@ -1,3 +1,4 @@"

    def test_header_arrives_while_hunk_open(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -1,3 +1,4 @@\n"
            "+only one\n"
            "diff --git a/g.rs b/g.rs\n"
        )
        with pytest.raises(ParseError) as exc:
            parse_diff(diff)
        assert "mismatch" in exc.value.reason
        assert exc.value.line_number == 5

    def test_too_many_lines(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
            "+c\n"
        )
        with pytest.raises(ParseError) as exc:
            parse_diff(diff)
        assert "more lines than declared" in exc.value.reason

    def test_too_many_additions_while_open(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -1,2 +1,1 @@\n"
            "+a\n"
            "+b\n"
        )
        with pytest.raises(ParseError):
            parse_diff(diff)

    def test_malformed_hunk_header_names_file(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -x,1 +1 @@\n"
            "+a\n"
        )
        with pytest.raises(ParseError) as exc:
            parse_diff(diff)
        assert exc.value.file_path == "f.rs"
        assert exc.value.hunk_header == "@@ -x,1 +1 @@"
        assert "f.rs" in str(exc.value)

    def test_hunk_before_file_header(self):
        with pytest.raises(ParseError) as exc:
            parse_diff("@@ -1 +1 @@\n-a\n+b\n")
        assert exc.value.line_number == 1

    def test_minus_header_without_plus(self):
        diff = (
            "diff --git a/f.rs b/f.rs\n"
            "--- a/f.rs\n"
            "@@ -1 +1 @@\n"
        )
        with pytest.raises(ParseError):
            parse_diff(diff)

    def test_truncated_after_path_headers(self):
        diff = (
            "diff --git a/f.rs b/f.rs\n"
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
        )
        with pytest.raises(ParseError) as exc:
            parse_diff(diff)
        assert "without any hunk" in exc.value.reason

    def test_orphan_no_newline_marker(self):
        diff = (
            "--- a/f.rs\n"
            "+++ b/f.rs\n"
            "@@ -1 +1 @@\n"
            "\\ No newline at end of file\n"
            "-a\n"
            "+b\n"
        )
        with pytest.raises(ParseError):
            parse_diff(diff)

    def test_malformed_git_header(self):
        with pytest.raises(ParseError):
            parse_diff("diff --git onlyonepath\n")
