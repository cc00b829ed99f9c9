from __future__ import annotations

from importlib import resources
from typing import Any, Sequence

from jinja2 import Environment

from hunkview.models import Hunk, Line, PatchFile
from hunkview.projection import to_split_rows
from hunkview.serializer import line_prefix
from hunkview.staging import StagingState

_LINE_CLASS_BY_TYPE = {
    "addition": "line-add",
    "deletion": "line-del",
    "header": "line-header",
}


def _line_number(value: int | None) -> str:
    return "" if value is None else str(value)


def _hunk_range(start: int, count: int, prefix: str) -> str:
    span = max(count, 1)
    end = start + span - 1
    if end == start:
        return f"{prefix}{start}"
    return f"{prefix}{start}-{end}"


def _cell(line: Line | None, side: str) -> dict[str, str]:
    if line is None:
        return {"class_name": "cell-empty", "number": "", "symbol": "", "content": ""}
    number = line.old_line_number if side == "old" else line.new_line_number
    return {
        "class_name": _LINE_CLASS_BY_TYPE.get(line.type, ""),
        "number": _line_number(number),
        "symbol": line_prefix(line),
        "content": line.content,
    }


def _unified_rows(hunk: Hunk) -> list[dict[str, str]]:
    return [
        {
            "class_name": _LINE_CLASS_BY_TYPE.get(line.type, ""),
            "old_no": _line_number(line.old_line_number),
            "new_no": _line_number(line.new_line_number),
            "symbol": line_prefix(line),
            "content": line.content,
        }
        for line in hunk.lines
    ]


def _split_rows(hunk: Hunk) -> list[dict[str, dict[str, str]]]:
    return [
        {"left": _cell(row.left, "old"), "right": _cell(row.right, "new")}
        for row in to_split_rows(hunk)
    ]


def _hunk_state(staging_state: StagingState | None, hunk_index: int) -> tuple[str, str | None]:
    if staging_state is None:
        return "idle", None
    error = staging_state.errors.get(hunk_index)
    if staging_state.staging_hunk == hunk_index:
        return "staging", error
    if hunk_index in staging_state.staged_hunks:
        return "staged", error
    return "idle", error


_TEMPLATE_ENV = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


_TEMPLATE_TEXT = resources.files("hunkview").joinpath("templates/diff.html.j2").read_text(encoding="utf-8")
_TEMPLATE = _TEMPLATE_ENV.from_string(_TEMPLATE_TEXT)


def render_html(
    patch_files: Sequence[PatchFile],
    *,
    title: str,
    mode: str = "unified",
    staging_state: StagingState | None = None,
    max_expanded_lines: int = 120,
    collapse_large_hunks: bool = True,
) -> str:
    """Render parsed files as a static HTML page in unified or split layout.

    ``staging_state`` applies to the first file, matching a single diff view.
    """
    if mode not in ("unified", "split"):
        raise ValueError(f"Unknown view mode: {mode!r}")

    files_render: list[dict[str, Any]] = []
    for file_index, patch_file in enumerate(patch_files, start=1):
        file_anchor_id = f"file-{file_index}"
        path_parts = [part for part in patch_file.path.split("/") if part]
        file_view: dict[str, Any] = {
            "anchor_id": file_anchor_id,
            "path": patch_file.path,
            "file_name": path_parts[-1] if path_parts else patch_file.path,
            "file_dir": "/".join(path_parts[:-1]),
            "status": patch_file.status,
            "old_label": patch_file.old_label,
            "new_label": patch_file.new_label,
            "additions": patch_file.additions,
            "deletions": patch_file.deletions,
            "hunks": [],
        }

        file_state = staging_state if file_index == 1 else None
        for hunk_index, hunk in enumerate(patch_file.hunks):
            status, error = _hunk_state(file_state, hunk_index)
            new_range = _hunk_range(hunk.new_start, hunk.new_lines, "+")
            old_range = _hunk_range(hunk.old_start, hunk.old_lines, "-")
            file_view["hunks"].append(
                {
                    "anchor_id": f"{file_anchor_id}-hunk-{hunk_index}",
                    "index": hunk_index,
                    "header": hunk.header,
                    "section": hunk.section,
                    "summary_label": f"Change {new_range} (from {old_range})",
                    "is_open": not (collapse_large_hunks and len(hunk.lines) > max_expanded_lines),
                    "added_lines": hunk.additions,
                    "removed_lines": hunk.deletions,
                    "status": status,
                    "error": error,
                    "rows": _split_rows(hunk) if mode == "split" else _unified_rows(hunk),
                }
            )

        files_render.append(file_view)

    return _TEMPLATE.render(
        title=title,
        mode=mode,
        files_changed=len(files_render),
        additions=sum(patch_file.additions for patch_file in patch_files),
        deletions=sum(patch_file.deletions for patch_file in patch_files),
        files_render=files_render,
    )
