from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

import structlog

from hunkview.models import Hunk, Line, PatchFile

logger = structlog.get_logger(__name__)

_DIFF_GIT_RE = re.compile(r'^diff --git ("?[a-z]/.+?"?) ("?[a-z]/.+"?)$')
_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")


class PatchParseError(ValueError):
    """Raised by the strict parser when the diff text cannot be understood."""

    def __init__(self, message: str, line_number: int) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


@dataclass(slots=True)
class _FileSection:
    old_file_name: str | None = None
    new_file_name: str | None = None
    has_file_header: bool = False
    hunks: list[Hunk] = field(default_factory=list)

    def build(self) -> PatchFile:
        return PatchFile(
            old_file_name=self.old_file_name,
            new_file_name=self.new_file_name,
            hunks=tuple(self.hunks),
        )


def _normalize_name(value: str) -> str:
    name = value.split("\t", 1)[0].strip()
    if name.startswith('"') and name.endswith('"') and len(name) >= 2:
        name = name[1:-1]
    return name


def format_hunk_header(old_start: int, old_lines: int, new_start: int, new_lines: int) -> str:
    return f"@@ -{old_start},{old_lines} +{new_start},{new_lines} @@"


def _mark_missing_newline(parsed_lines: list[Line]) -> None:
    if parsed_lines:
        parsed_lines[-1] = replace(parsed_lines[-1], missing_newline=True)


def _parse_hunk(lines: list[str], start: int) -> tuple[Hunk, int]:
    header_line = lines[start]
    match = _HUNK_RE.match(header_line)
    if not match:
        raise PatchParseError(f"Invalid hunk header: {header_line!r}", start + 1)

    old_start = int(match.group(1))
    old_count = int(match.group(2)) if match.group(2) is not None else 1
    new_start = int(match.group(3))
    new_count = int(match.group(4)) if match.group(4) is not None else 1
    section = match.group(5).strip()

    old_line = old_start
    new_line = new_start
    remaining_old = old_count
    remaining_new = new_count
    parsed_lines: list[Line] = []

    idx = start + 1
    while remaining_old > 0 or remaining_new > 0:
        if idx >= len(lines):
            raise PatchParseError(
                f"Truncated hunk {header_line!r}: input ended early", start + 1
            )
        line = lines[idx]
        if line.startswith("\\"):
            _mark_missing_newline(parsed_lines)
            idx += 1
            continue
        if line.startswith("@@") or line.startswith("diff --git "):
            raise PatchParseError(
                f"Truncated hunk {header_line!r}: next section began early", idx + 1
            )

        if line.startswith("+"):
            if remaining_new == 0:
                raise PatchParseError("Added line count did not match", idx + 1)
            parsed_lines.append(
                Line(type="addition", content=line[1:], new_line_number=new_line)
            )
            new_line += 1
            remaining_new -= 1
        elif line.startswith("-"):
            if remaining_old == 0:
                raise PatchParseError("Removed line count did not match", idx + 1)
            parsed_lines.append(
                Line(type="deletion", content=line[1:], old_line_number=old_line)
            )
            old_line += 1
            remaining_old -= 1
        else:
            if remaining_old == 0 or remaining_new == 0:
                raise PatchParseError("Context line count did not match", idx + 1)
            # Some tools strip the leading space of blank context lines.
            content = line[1:] if line.startswith(" ") else line
            parsed_lines.append(
                Line(
                    type="context",
                    content=content,
                    old_line_number=old_line,
                    new_line_number=new_line,
                )
            )
            old_line += 1
            new_line += 1
            remaining_old -= 1
            remaining_new -= 1
        idx += 1

    if idx < len(lines) and lines[idx].startswith("\\"):
        _mark_missing_newline(parsed_lines)
        idx += 1

    hunk = Hunk(
        header=format_hunk_header(old_start, old_count, new_start, new_count),
        old_start=old_start,
        old_lines=old_count,
        new_start=new_start,
        new_lines=new_count,
        lines=tuple(parsed_lines),
        section=section,
    )
    return hunk, idx


def parse_patch_strict(patch_text: str) -> list[PatchFile]:
    """Parse unified-diff text into one ``PatchFile`` per file section.

    Raises ``PatchParseError`` when a hunk header is malformed or a hunk body
    disagrees with the counts in its header.
    """
    if not patch_text.strip():
        return []

    # Only "\n" ends a line; a "\r" or form feed is part of the content.
    lines = patch_text.split("\n")
    if lines[-1] == "":
        lines.pop()
    files: list[PatchFile] = []
    current: _FileSection | None = None

    idx = 0
    while idx < len(lines):
        line = lines[idx]

        if line.startswith("diff --git "):
            if current is not None:
                files.append(current.build())
            current = _FileSection()
            match = _DIFF_GIT_RE.match(line.rstrip("\r"))
            if match:
                current.old_file_name = _normalize_name(match.group(1))
                current.new_file_name = _normalize_name(match.group(2))
            idx += 1
            continue

        if (
            line.startswith("--- ")
            and idx + 1 < len(lines)
            and lines[idx + 1].startswith("+++ ")
        ):
            if current is None or current.hunks or current.has_file_header:
                if current is not None:
                    files.append(current.build())
                current = _FileSection()
            current.old_file_name = _normalize_name(line.removeprefix("--- "))
            current.new_file_name = _normalize_name(lines[idx + 1].removeprefix("+++ "))
            current.has_file_header = True
            idx += 2
            continue

        if line.startswith("@@"):
            if current is None:
                current = _FileSection()
            hunk, idx = _parse_hunk(lines, idx)
            current.hunks.append(hunk)
            continue

        if current is not None and line[:1] in ("+", "-", " "):
            raise PatchParseError(f"Unknown line outside any hunk: {line!r}", idx + 1)
        # index, mode and similar extended header lines carry nothing we render
        idx += 1

    if current is not None:
        files.append(current.build())
    return files


def parse_patch(patch_text: str) -> list[PatchFile]:
    """Fail-soft variant of ``parse_patch_strict``: malformed input yields ``[]``."""
    try:
        return parse_patch_strict(patch_text)
    except PatchParseError as exc:
        logger.debug("patch_parse_failed", error=str(exc), line=exc.line_number)
        return []


def file_header_lines(patch_file: PatchFile) -> list[Line]:
    return [
        Line(type="header", content=f"--- {patch_file.old_label}"),
        Line(type="header", content=f"+++ {patch_file.new_label}"),
    ]
