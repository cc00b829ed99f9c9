from __future__ import annotations

from collections.abc import Iterable

from hunkview.diff_parser import format_hunk_header
from hunkview.models import Hunk, Line

_LINE_PREFIX_BY_TYPE = {"addition": "+", "deletion": "-", "context": " "}
_NO_NEWLINE_MARKER = "\\ No newline at end of file"


def line_prefix(line: Line) -> str:
    return _LINE_PREFIX_BY_TYPE.get(line.type, " ")


def _serialize_lines(lines: Iterable[Line]) -> list[str]:
    rendered: list[str] = []
    for line in lines:
        if line.type == "header":
            continue
        rendered.append(line_prefix(line) + line.content + "\n")
        if line.missing_newline:
            rendered.append(_NO_NEWLINE_MARKER + "\n")
    return rendered


def serialize_hunk(hunk: Hunk) -> str:
    """Turn a parsed hunk back into unified-diff text, header included."""
    header = format_hunk_header(
        hunk.old_start, hunk.old_lines, hunk.new_start, hunk.new_lines
    )
    return header + "\n" + "".join(_serialize_lines(hunk.lines))


def serialize_hunks(hunks: Iterable[Hunk]) -> str:
    return "\n".join(serialize_hunk(hunk) for hunk in hunks)


def build_hunk_patch(file_path: str, hunk_patch: str) -> str:
    """Wrap serialized hunk text in file headers, as ``git apply`` expects it."""
    return (
        f"diff --git a/{file_path} b/{file_path}\n"
        f"--- a/{file_path}\n"
        f"+++ b/{file_path}\n"
        + hunk_patch
    )
