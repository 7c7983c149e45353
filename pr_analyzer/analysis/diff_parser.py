"""
Diff parser module.

Parses unified diff format into a validated structural model:
- File sections with old/new paths and change status
- Hunks with their declared ranges and tagged lines
- "No newline at end of file" markers, attached to the preceding line

Hunk line counts are checked against the hunk header while reading.
A mismatch is a ParseError; the parser never truncates or pads.
"""

import re
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Raised when diff text is structurally malformed."""

    def __init__(
        self,
        reason: str,
        file_path: Optional[str] = None,
        hunk_header: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        self.reason = reason
        self.file_path = file_path
        self.hunk_header = hunk_header
        self.line_number = line_number

        location = []
        if file_path:
            location.append(f"file {file_path}")
        if hunk_header:
            location.append(f"hunk '{hunk_header}'")
        if line_number is not None:
            location.append(f"diff line {line_number}")

        message = f"{reason} ({', '.join(location)})" if location else reason
        super().__init__(message)


class LineType(Enum):
    """Type of a line within a hunk, keyed by its leading marker."""
    ADDITION = "+"
    DELETION = "-"
    CONTEXT = " "


class FileStatus(Enum):
    """Change status of a file in a diff."""
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    BINARY = "binary"


@dataclass(frozen=True)
class DiffLine:
    """A single line of a hunk, with its marker preserved."""
    line_type: LineType
    content: str
    old_lineno: Optional[int] = None
    new_lineno: Optional[int] = None
    no_newline_at_eof: bool = False

    @property
    def raw(self) -> str:
        """The line as it appeared in the diff."""
        return self.line_type.value + self.content

    @property
    def is_addition(self) -> bool:
        return self.line_type is LineType.ADDITION

    @property
    def is_deletion(self) -> bool:
        return self.line_type is LineType.DELETION


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of changes, with the ranges declared in its header."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: Tuple[DiffLine, ...] = ()
    section: str = ""

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"

    @property
    def additions(self) -> int:
        return sum(1 for line in self.lines if line.line_type is LineType.ADDITION)

    @property
    def deletions(self) -> int:
        return sum(1 for line in self.lines if line.line_type is LineType.DELETION)


@dataclass(frozen=True)
class DiffFile:
    """All changes to a single file."""
    path: str
    status: FileStatus
    hunks: Tuple[Hunk, ...] = ()
    # Set only for renamed and copied files
    old_path: Optional[str] = None
    language: Optional[str] = None

    @property
    def additions(self) -> int:
        return sum(hunk.additions for hunk in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(hunk.deletions for hunk in self.hunks)

    @property
    def is_binary(self) -> bool:
        return self.status is FileStatus.BINARY

    @property
    def is_new(self) -> bool:
        return self.status is FileStatus.ADDED

    def added_lines(self) -> Iterator[DiffLine]:
        """Iterate over added lines across all hunks."""
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.line_type is LineType.ADDITION:
                    yield line


_DEV_NULL = "/dev/null"

_ESCAPES = {
    "n": b"\n",
    "t": b"\t",
    "r": b"\r",
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "v": b"\v",
    '"': b'"',
    "\\": b"\\",
}


def _unquote(path: str) -> str:
    """Decode a C-style quoted path as emitted by git for unusual names."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            octal = body[i + 1:i + 4]
            if re.fullmatch(r"[0-7]{3}", octal):
                out.append(int(octal, 8))
                i += 4
                continue
            nxt = body[i + 1]
            out += _ESCAPES.get(nxt, nxt.encode("utf-8"))
            i += 2
            continue
        out += ch.encode("utf-8")
        i += 1
    return out.decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


@dataclass
class _HunkBuilder:
    """Mutable hunk state while its body is being read."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    section: str
    line_number: int
    lines: List[DiffLine] = field(default_factory=list)
    old_seen: int = 0
    new_seen: int = 0

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"

    @property
    def is_open(self) -> bool:
        return self.old_seen < self.old_count or self.new_seen < self.new_count

    def build(self) -> Hunk:
        return Hunk(
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            lines=tuple(self.lines),
            section=self.section,
        )


@dataclass
class _FileBuilder:
    """Mutable file-section state while its headers and hunks are being read."""
    line_number: int
    git_old: Optional[str] = None
    git_new: Optional[str] = None
    minus_path: Optional[str] = None
    plus_path: Optional[str] = None
    has_path_headers: bool = False
    rename_from: Optional[str] = None
    rename_to: Optional[str] = None
    copy_from: Optional[str] = None
    copy_to: Optional[str] = None
    new_file: bool = False
    deleted_file: bool = False
    binary: bool = False
    hunks: List[_HunkBuilder] = field(default_factory=list)

    @property
    def display_path(self) -> str:
        return (
            self.rename_to or self.copy_to
            or (self.plus_path if self.plus_path != _DEV_NULL else None)
            or self.git_new
            or (self.minus_path if self.minus_path != _DEV_NULL else None)
            or self.git_old
            or "<unknown>"
        )


class DiffParser:
    """
    Parses unified diff format.

    Accepts git-style diffs (``diff --git`` sections with extended headers)
    as well as plain ``---``/``+++`` unified diffs.
    """

    GIT_HEADER_PREFIX = "diff --git "
    HUNK_HEADER_PATTERN = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$')
    QUOTED_PAIR_PATTERN = re.compile(r'^("(?:[^"\\]|\\.)*"|\S+) ("(?:[^"\\]|\\.)*"|\S+)$')
    PREFIXED_PAIR_PATTERN = re.compile(r'^(a/.+) (b/.+)$')
    BINARY_PATTERN = re.compile(r'^Binary files .* differ$')

    LANGUAGE_MAP = {
        "py": "python",
        "js": "javascript",
        "ts": "typescript",
        "jsx": "javascript",
        "tsx": "typescript",
        "java": "java",
        "go": "go",
        "rs": "rust",
        "cpp": "cpp",
        "c": "c",
        "h": "c",
        "hpp": "cpp",
        "cs": "csharp",
        "rb": "ruby",
        "php": "php",
        "swift": "swift",
        "kt": "kotlin",
        "sql": "sql",
        "sh": "shell",
        "yaml": "yaml",
        "yml": "yaml",
        "toml": "toml",
        "json": "json",
        "html": "html",
        "css": "css",
        "md": "markdown",
    }

    def parse(self, unified_diff: str) -> List[DiffFile]:
        """
        Parse unified diff into structured format.

        Args:
            unified_diff: Unified diff string

        Returns:
            List[DiffFile]: Parsed files, in the order they appear

        Raises:
            ParseError: If the diff is structurally malformed
        """
        if not unified_diff or not unified_diff.strip():
            return []

        lines = unified_diff.split("\n")
        if lines[-1] == "":
            lines.pop()

        files: List[DiffFile] = []
        current_file: Optional[_FileBuilder] = None
        current_hunk: Optional[_HunkBuilder] = None
        in_binary_patch = False

        i = 0
        while i < len(lines):
            line = lines[i]
            line_number = i + 1

            # Hunk body: everything until the declared counts are satisfied
            if current_hunk is not None and current_hunk.is_open:
                self._read_hunk_line(current_file, current_hunk, line, line_number)
                i += 1
                continue

            header = line.rstrip("\r")

            # Start of a new git file section
            if header.startswith(self.GIT_HEADER_PREFIX):
                if current_file is not None:
                    files.append(self._build_file(current_file))
                current_file = self._start_git_file(header, line_number)
                current_hunk = None
                in_binary_patch = False

            # Old/new path header pair
            elif header.startswith("--- ") and self._next_is_plus_header(lines, i):
                if current_file is None or current_file.has_path_headers or current_file.hunks:
                    # Plain unified diff without a git header
                    if current_file is not None:
                        files.append(self._build_file(current_file))
                    current_file = _FileBuilder(line_number=line_number)
                    current_hunk = None
                    in_binary_patch = False
                current_file.minus_path = self._parse_path_header(header[4:], "a/")
                current_file.plus_path = self._parse_path_header(lines[i + 1].rstrip("\r")[4:], "b/")
                current_file.has_path_headers = True
                i += 2
                continue

            # Hunk header
            elif header.startswith("@@"):
                if current_file is None:
                    raise ParseError("hunk header outside of a file section", line_number=line_number)
                if current_file.binary:
                    raise ParseError(
                        "hunk header in a binary file section",
                        file_path=current_file.display_path,
                        line_number=line_number,
                    )
                current_hunk = self._start_hunk(current_file, header, line_number)
                current_file.hunks.append(current_hunk)

            # Preamble before the first file (e.g. patch e-mail headers)
            elif current_file is None:
                pass

            elif in_binary_patch:
                pass

            # Lines after a completed hunk
            elif current_file.hunks:
                self._read_after_hunk(current_file, line, line_number)

            # Extended header lines
            else:
                in_binary_patch = self._read_extended_header(current_file, header, line_number)

            i += 1

        if current_hunk is not None and current_hunk.is_open:
            raise ParseError(
                "unexpected end of input: "
                + self._count_summary(current_hunk),
                file_path=current_file.display_path,
                hunk_header=current_hunk.header,
                line_number=len(lines),
            )

        if current_file is not None:
            files.append(self._build_file(current_file))

        logger.debug(
            "Parsed diff",
            extra={
                "files": len(files),
                "hunks": sum(len(f.hunks) for f in files),
            }
        )

        return files

    def _start_git_file(self, header: str, line_number: int) -> _FileBuilder:
        """Create a file section from a ``diff --git`` header."""
        paths = self._split_git_paths(header[len(self.GIT_HEADER_PREFIX):])
        if paths is None:
            raise ParseError(
                f"malformed file header: {header!r}",
                line_number=line_number,
            )
        old, new = paths
        return _FileBuilder(
            line_number=line_number,
            git_old=_strip_prefix(old, "a/"),
            git_new=_strip_prefix(new, "b/"),
        )

    def _split_git_paths(self, rest: str) -> Optional[Tuple[str, str]]:
        """Split the path part of a ``diff --git`` header into old and new paths."""
        rest = rest.strip()

        match = self.QUOTED_PAIR_PATTERN.match(rest)
        if match:
            return _unquote(match.group(1)), _unquote(match.group(2))

        # Paths with spaces: for non-renames both halves name the same file
        if len(rest) % 2 == 1:
            half = len(rest) // 2
            old, new = rest[:half], rest[half + 1:]
            if rest[half] == " " and _strip_prefix(old, "a/") == _strip_prefix(new, "b/"):
                return old, new

        match = self.PREFIXED_PAIR_PATTERN.match(rest)
        if match:
            return match.group(1), match.group(2)

        return None

    @staticmethod
    def _next_is_plus_header(lines: List[str], i: int) -> bool:
        return i + 1 < len(lines) and lines[i + 1].startswith("+++ ")

    @staticmethod
    def _parse_path_header(value: str, prefix: str) -> str:
        """Extract a path from a ``---``/``+++`` header value."""
        # Plain diffs may append a tab-separated timestamp
        path = value.split("\t", 1)[0].strip()
        path = _unquote(path)
        if path == _DEV_NULL:
            return _DEV_NULL
        return _strip_prefix(path, prefix)

    def _read_extended_header(self, current_file: _FileBuilder, header: str, line_number: int) -> bool:
        """
        Apply one git extended header line to the current file.

        Returns:
            bool: True if a binary patch payload follows
        """
        if header.startswith("new file mode"):
            current_file.new_file = True
        elif header.startswith("deleted file mode"):
            current_file.deleted_file = True
        elif header.startswith("rename from "):
            current_file.rename_from = _unquote(header[len("rename from "):])
        elif header.startswith("rename to "):
            current_file.rename_to = _unquote(header[len("rename to "):])
        elif header.startswith("copy from "):
            current_file.copy_from = _unquote(header[len("copy from "):])
        elif header.startswith("copy to "):
            current_file.copy_to = _unquote(header[len("copy to "):])
        elif self.BINARY_PATTERN.match(header):
            current_file.binary = True
        elif header.startswith("GIT binary patch"):
            current_file.binary = True
            return True
        elif header.startswith("--- "):
            raise ParseError(
                "malformed file header: '---' line not followed by '+++'",
                file_path=current_file.display_path,
                line_number=line_number,
            )
        elif header.startswith("+++ "):
            raise ParseError(
                "malformed file header: '+++' line without preceding '---'",
                file_path=current_file.display_path,
                line_number=line_number,
            )
        # index, mode and similarity lines carry nothing we model
        return False

    def _start_hunk(self, current_file: _FileBuilder, header: str, line_number: int) -> _HunkBuilder:
        """Parse a hunk header and open a new hunk."""
        match = self.HUNK_HEADER_PATTERN.match(header)
        if not match:
            raise ParseError(
                "malformed hunk header",
                file_path=current_file.display_path,
                hunk_header=header,
                line_number=line_number,
            )

        old_start = int(match.group(1))
        old_count = int(match.group(2)) if match.group(2) is not None else 1
        new_start = int(match.group(3))
        new_count = int(match.group(4)) if match.group(4) is not None else 1

        return _HunkBuilder(
            old_start=old_start,
            old_count=old_count,
            new_start=new_start,
            new_count=new_count,
            section=match.group(5).strip(),
            line_number=line_number,
        )

    def _read_hunk_line(
        self,
        current_file: _FileBuilder,
        hunk: _HunkBuilder,
        line: str,
        line_number: int,
    ) -> None:
        """Append one body line to an open hunk, enforcing the declared counts."""
        if line.startswith("\\"):
            self._mark_no_newline(current_file, hunk, line_number)
            return

        # Some transports strip the single space of empty context lines
        marker = line[:1] or " "
        content = line[1:]

        if marker not in ("+", "-", " "):
            raise ParseError(
                "line count mismatch: hunk ended early, " + self._count_summary(hunk),
                file_path=current_file.display_path,
                hunk_header=hunk.header,
                line_number=line_number,
            )

        takes_old = marker in ("-", " ")
        takes_new = marker in ("+", " ")
        if (takes_old and hunk.old_seen >= hunk.old_count) or (takes_new and hunk.new_seen >= hunk.new_count):
            raise ParseError(
                "line count mismatch: more lines than declared, " + self._count_summary(hunk),
                file_path=current_file.display_path,
                hunk_header=hunk.header,
                line_number=line_number,
            )

        old_lineno = hunk.old_start + hunk.old_seen if takes_old else None
        new_lineno = hunk.new_start + hunk.new_seen if takes_new else None
        if takes_old:
            hunk.old_seen += 1
        if takes_new:
            hunk.new_seen += 1

        hunk.lines.append(DiffLine(
            line_type=LineType(marker),
            content=content,
            old_lineno=old_lineno,
            new_lineno=new_lineno,
        ))

    def _read_after_hunk(self, current_file: _FileBuilder, line: str, line_number: int) -> None:
        """Handle a line that follows a completed hunk within the same file."""
        last_hunk = current_file.hunks[-1]

        if line.startswith("\\"):
            self._mark_no_newline(current_file, last_hunk, line_number)
        elif line[:1] in ("+", "-", " "):
            raise ParseError(
                "line count mismatch: more lines than declared, " + self._count_summary(last_hunk),
                file_path=current_file.display_path,
                hunk_header=last_hunk.header,
                line_number=line_number,
            )
        # Blank separator lines between sections are ignored

    @staticmethod
    def _mark_no_newline(current_file: _FileBuilder, hunk: _HunkBuilder, line_number: int) -> None:
        """Attach a 'No newline at end of file' marker to the preceding line."""
        if not hunk.lines:
            raise ParseError(
                "'No newline at end of file' marker without a preceding line",
                file_path=current_file.display_path,
                hunk_header=hunk.header,
                line_number=line_number,
            )
        hunk.lines[-1] = replace(hunk.lines[-1], no_newline_at_eof=True)

    @staticmethod
    def _count_summary(hunk: _HunkBuilder) -> str:
        return (
            f"header declares {hunk.old_count} old / {hunk.new_count} new lines, "
            f"found {hunk.old_seen} old / {hunk.new_seen} new"
        )

    def _build_file(self, builder: _FileBuilder) -> DiffFile:
        """Freeze a finished file section into a DiffFile."""
        if builder.has_path_headers and not builder.hunks and not builder.binary:
            raise ParseError(
                "unexpected end of file section: path headers without any hunk",
                file_path=builder.display_path,
                line_number=builder.line_number,
            )

        old_path = builder.rename_from or builder.copy_from
        if old_path is None:
            old_path = builder.minus_path if builder.minus_path not in (None, _DEV_NULL) else builder.git_old

        new_path = builder.rename_to or builder.copy_to
        if new_path is None:
            new_path = builder.plus_path if builder.plus_path not in (None, _DEV_NULL) else builder.git_new

        if builder.rename_from or builder.rename_to:
            status = FileStatus.RENAMED
        elif builder.copy_from or builder.copy_to:
            status = FileStatus.COPIED
        elif builder.new_file or builder.minus_path == _DEV_NULL:
            status = FileStatus.ADDED
        elif builder.deleted_file or builder.plus_path == _DEV_NULL:
            status = FileStatus.DELETED
        elif builder.binary:
            status = FileStatus.BINARY
        else:
            status = FileStatus.MODIFIED

        if status is FileStatus.DELETED:
            path = old_path or new_path
        else:
            path = new_path or old_path

        if not path:
            raise ParseError("file section without a path", line_number=builder.line_number)

        return DiffFile(
            path=path,
            status=status,
            hunks=tuple(hunk.build() for hunk in builder.hunks),
            old_path=old_path if status in (FileStatus.RENAMED, FileStatus.COPIED) else None,
            language=self._detect_language(path),
        )


    def _detect_language(self, filename: str) -> Optional[str]:
        """
        Detect programming language from filename.

        Args:
            filename: File name or path

        Returns:
            Optional[str]: Detected language, or None
        """
        basename = filename.rsplit("/", 1)[-1]
        if "." not in basename:
            return None

        extension = basename.rsplit(".", 1)[-1].lower()
        return self.LANGUAGE_MAP.get(extension)

def parse_diff(unified_diff: str) -> List[DiffFile]:
    """
    Parse unified diff text into DiffFile records.

    Convenience wrapper around DiffParser().parse().
    """
    return DiffParser().parse(unified_diff)
