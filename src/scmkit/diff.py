"""
Unified diff / patch parser.

Turns the raw ``.patch``/``.diff`` text served by the providers into one
``Change`` record per file section. Accepts ``git format-patch`` output
(mail headers, diffstat and the ``-- `` signature trailer) as well as plain
``git diff`` and ``diff -u`` output.
"""

import logging
import re
from dataclasses import dataclass, field

from .models import Change

logger = logging.getLogger(__name__)

HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

DEV_NULL = "/dev/null"


@dataclass
class _Section:
    """Mutable accumulator for one file section."""

    path: str = ""
    previous_path: str = ""
    added: bool = False
    renamed: bool = False
    deleted: bool = False
    binary: bool = False
    additions: int = 0
    deletions: int = 0
    hunks: int = 0
    lines: list[str] = field(default_factory=list)

    def to_change(self) -> Change:
        return Change(
            path=self.path,
            previous_path=self.previous_path,
            added=self.added,
            renamed=self.renamed,
            deleted=self.deleted,
            binary=self.binary,
            additions=self.additions,
            deletions=self.deletions,
            changes=self.additions + self.deletions,
            patch="\n".join(self.lines) + "\n" if self.lines else "",
        )


def _unquote(path: str) -> str:
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return path[1:-1]
    return path


def _strip_prefix(path: str) -> str:
    """Drop the ``a/``/``b/`` prefix and any trailing timestamp."""
    path = _unquote(path.split("\t", 1)[0].rstrip())
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


def _split_git_header(rest: str) -> tuple[str, str]:
    """
    Split the ``a/old b/new`` part of a ``diff --git`` line.

    Paths may contain spaces; when both sides name the same file the
    line is split symmetrically, otherwise at the first `` b/``.
    """
    rest = rest.strip()
    half = (len(rest) - 1) // 2
    old, new = rest[:half], rest[half + 1 :]
    if old.startswith("a/") and new.startswith("b/") and old[2:] == new[2:]:
        return old[2:], new[2:]

    index = rest.find(" b/")
    if index == -1:
        index = rest.find(' "b/')
    if index == -1:
        return _strip_prefix(rest), _strip_prefix(rest)
    return _strip_prefix(rest[:index]), _strip_prefix(rest[index + 1 :])


def _apply_header(section: _Section, line: str) -> None:
    """Update ``section`` from an extended git header line."""
    if line.startswith("new file mode"):
        section.added = True
    elif line.startswith("deleted file mode"):
        section.deleted = True
    elif line.startswith("rename from "):
        section.renamed = True
        section.previous_path = _unquote(line[len("rename from ") :])
    elif line.startswith("rename to "):
        section.renamed = True
        section.path = _unquote(line[len("rename to ") :])
    elif line.startswith("copy from "):
        section.previous_path = _unquote(line[len("copy from ") :])
    elif line.startswith("copy to "):
        section.path = _unquote(line[len("copy to ") :])
    elif line.startswith("--- "):
        old = _strip_prefix(line[4:])
        if old == DEV_NULL:
            section.added = True
        elif not section.path:
            section.path = old
    elif line.startswith("+++ "):
        new = _strip_prefix(line[4:])
        if new == DEV_NULL:
            section.deleted = True
        else:
            section.path = new
    elif line.startswith("Binary files ") or line.startswith("GIT binary patch"):
        section.binary = True


def parse_patch(text: str | bytes) -> list[Change]:
    """
    Parse patch text into per-file ``Change`` records.

    Sections are returned in the order they appear. Hunk bodies are bounded
    by the line counts in their ``@@`` headers, so commit messages, diffstats
    and signature trailers are never counted as changed lines.

    Args:
        text: Raw patch or diff text

    Returns:
        List of Change objects, one per file section
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    lines = text.splitlines()
    git_style = any(line.startswith("diff --git ") for line in lines)

    sections: list[_Section] = []
    current: _Section | None = None
    old_left = new_left = 0

    for index, line in enumerate(lines):
        if current is not None and (old_left > 0 or new_left > 0):
            if line.startswith("+"):
                current.additions += 1
                new_left -= 1
            elif line.startswith("-"):
                current.deletions += 1
                old_left -= 1
            elif not line.startswith("\\"):
                old_left -= 1
                new_left -= 1
            current.lines.append(line)
            continue

        if line.startswith("\\") and current is not None and current.hunks:
            # "\ No newline at end of file" after the final hunk line
            current.lines.append(line)
            continue

        if line.startswith("diff --git "):
            old, new = _split_git_header(line[len("diff --git ") :])
            current = _Section(path=new or old)
            sections.append(current)
            continue

        if (
            not git_style
            and line.startswith("--- ")
            and index + 1 < len(lines)
            and lines[index + 1].startswith("+++ ")
        ):
            current = _Section()
            sections.append(current)

        if current is None:
            continue

        match = HUNK_HEADER.match(line)
        if match:
            old_left = int(match.group(2)) if match.group(2) is not None else 1
            new_left = int(match.group(4)) if match.group(4) is not None else 1
            current.hunks += 1
            current.lines.append(line)
            continue

        _apply_header(current, line)

    if old_left > 0 or new_left > 0:
        logger.warning("Patch text ended inside a hunk; counts may be incomplete")
    return [section.to_change() for section in sections]
