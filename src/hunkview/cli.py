from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from hunkview.diff_parser import PatchParseError, parse_patch_strict
from hunkview.git_backend import GitApplyStager, GitCommandError, git_diff
from hunkview.logging import configure_logging
from hunkview.models import Line, PatchFile
from hunkview.projection import ProjectionCache, change_indices
from hunkview.renderer import render_html
from hunkview.serializer import line_prefix, serialize_hunk, serialize_hunks
from hunkview.settings import settings
from hunkview.staging import HunkStagingController
from hunkview.util import read_patch_text, write_text

_DEFAULT_TITLE = "Diff Preview"
_SPLIT_COLUMN_WIDTH = 60


def _collect_patch_text(args: argparse.Namespace, *, staged: bool | None = None) -> str:
    if args.patch_file is not None:
        return read_patch_text(args.patch_file)
    if args.git is not None:
        try:
            return asyncio.run(
                git_diff(
                    args.git,
                    args.path,
                    staged=args.staged if staged is None else staged,
                )
            )
        except (GitCommandError, OSError) as exc:
            raise SystemExit(f"Could not read diff from git: {exc}") from exc
    raise SystemExit("Provide a diff with --patch-file or --git.")


def _strict_cache() -> ProjectionCache:
    return ProjectionCache(parser=parse_patch_strict)


def _parse_or_exit(cache: ProjectionCache, patch_text: str) -> list[PatchFile]:
    try:
        return cache.parse(patch_text)
    except PatchParseError as exc:
        raise SystemExit(f"Could not parse diff: {exc}") from exc


def _select_file(files: list[PatchFile], file_index: int) -> PatchFile:
    if not 0 <= file_index < len(files):
        raise SystemExit(f"No file at index {file_index}; the diff has {len(files)}.")
    return files[file_index]


def _number(value: int | None, width: int = 5) -> str:
    return ("" if value is None else str(value)).rjust(width)


def _format_unified_line(line: Line) -> str:
    if line.type == "header":
        return line.content
    return (
        f"{_number(line.old_line_number)} {_number(line.new_line_number)} "
        f"{line_prefix(line)}{line.content}"
    )


def _format_split_cell(line: Line | None, number: int | None) -> str:
    if line is None:
        return " " * (_SPLIT_COLUMN_WIDTH + 7)
    text = f"{line_prefix(line)}{line.content}"
    if len(text) > _SPLIT_COLUMN_WIDTH:
        text = text[: _SPLIT_COLUMN_WIDTH - 1] + "…"
    return f"{_number(number)} {text.ljust(_SPLIT_COLUMN_WIDTH)} "


def _render_text(
    cache: ProjectionCache, patch_text: str, file_index: int, patch_file: PatchFile, mode: str
) -> list[str]:
    if mode == "unified":
        unified = cache.unified(patch_text, file_index)
        rendered = [_format_unified_line(entry.line) for entry in unified]
        rendered.append(f"({len(change_indices(unified))} changed lines)")
        return rendered

    rendered = [f"--- {patch_file.old_label}", f"+++ {patch_file.new_label}"]
    for hunk_index, hunk in enumerate(patch_file.hunks):
        rendered.append(hunk.header)
        for row in cache.split(patch_text, file_index, hunk_index):
            left_number = row.left.old_line_number if row.left is not None else None
            right_number = row.right.new_line_number if row.right is not None else None
            rendered.append(
                (
                    _format_split_cell(row.left, left_number)
                    + "| "
                    + _format_split_cell(row.right, right_number)
                ).rstrip()
            )
    return rendered


def _render_cmd(args: argparse.Namespace) -> int:
    files = _parse_or_exit(_strict_cache(), _collect_patch_text(args))
    html = render_html(
        files,
        title=args.title,
        mode=args.mode,
        max_expanded_lines=args.max_expanded_lines,
        collapse_large_hunks=True,
    )
    write_text(args.output, html)
    additions = sum(patch_file.additions for patch_file in files)
    deletions = sum(patch_file.deletions for patch_file in files)
    print(f"Rendered {len(files)} files, +{additions} / -{deletions} ({args.mode} view)")
    print(f"Wrote {args.output}")
    return 0


def _show_cmd(args: argparse.Namespace) -> int:
    cache = _strict_cache()
    patch_text = _collect_patch_text(args)
    files = _parse_or_exit(cache, patch_text)
    if not files:
        print("No changes.")
        return 0
    for file_index, patch_file in enumerate(files):
        for text in _render_text(cache, patch_text, file_index, patch_file, args.mode):
            print(text)
    return 0


def _stats_cmd(args: argparse.Namespace) -> int:
    files = _parse_or_exit(_strict_cache(), _collect_patch_text(args))
    for patch_file in files:
        print(
            f"{patch_file.status:<9} {patch_file.path}  "
            f"+{patch_file.additions} / -{patch_file.deletions}  "
            f"({len(patch_file.hunks)} hunks)"
        )
    additions = sum(patch_file.additions for patch_file in files)
    deletions = sum(patch_file.deletions for patch_file in files)
    print(f"{len(files)} files changed, +{additions} / -{deletions}")
    return 0


def _dump_cmd(args: argparse.Namespace) -> int:
    files = _parse_or_exit(_strict_cache(), _collect_patch_text(args))
    payload = {"files": [patch_file.to_dict() for patch_file in files]}
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def _show_hunk_cmd(args: argparse.Namespace) -> int:
    files = _parse_or_exit(_strict_cache(), _collect_patch_text(args))
    patch_file = _select_file(files, args.file_index)
    if not 0 <= args.hunk_index < len(patch_file.hunks):
        raise SystemExit(
            f"No hunk at index {args.hunk_index}; {patch_file.path} has "
            f"{len(patch_file.hunks)}."
        )
    sys.stdout.write(serialize_hunk(patch_file.hunks[args.hunk_index]))
    return 0


def _copy_cmd(args: argparse.Namespace) -> int:
    files = _parse_or_exit(_strict_cache(), _collect_patch_text(args))
    patch_file = _select_file(files, args.file_index)
    sys.stdout.write(serialize_hunks(patch_file.hunks))
    return 0


def _staging_cmd(args: argparse.Namespace) -> int:
    if args.git is None or not args.path:
        raise SystemExit(f"{args.command} needs --git REPO and --path FILE.")
    unstaging = args.command == "unstage"
    patch_text = _collect_patch_text(args, staged=unstaging)
    controller = HunkStagingController(
        args.path,
        GitApplyStager(args.git),
        patch_text,
        staged=unstaging,
    )
    if unstaging:
        outcome = asyncio.run(controller.unstage(args.hunk_index))
    else:
        outcome = asyncio.run(controller.stage(args.hunk_index))
    controller.close()

    if not outcome.ok:
        print(f"Could not {args.command} hunk {args.hunk_index}: {outcome.reason}", file=sys.stderr)
        return 1
    print(f"{'Unstaged' if unstaging else 'Staged'} hunk {args.hunk_index} of {args.path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hunkview",
        description="Render unified diffs as unified or split views and stage single hunks.",
    )
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--patch-file", type=Path, help="Read unified diff from file ('-' for stdin)."
    )
    source_group.add_argument(
        "--git", type=Path, metavar="REPO", help="Read the diff from the git repository at REPO."
    )
    parser.add_argument("--path", help="Limit the git diff to this file.")
    parser.add_argument(
        "--staged", action="store_true", help="Use the staged (index) diff with --git."
    )
    parser.add_argument(
        "--mode",
        choices=["unified", "split"],
        default=settings.view_mode(),
        help="Diff layout (default from HUNKVIEW_VIEW_MODE).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("hunkview.html"),
        help="Where to write the HTML preview.",
    )
    parser.add_argument("--title", default=_DEFAULT_TITLE, help="HTML page title.")
    parser.add_argument(
        "--max-expanded-lines",
        type=int,
        default=settings.max_expanded_lines(),
        help="Collapse hunks longer than this many lines.",
    )
    parser.add_argument("--log-level", help="Override HUNKVIEW_LOG_LEVEL.")
    subparsers = parser.add_subparsers(dest="command")

    show_parser = subparsers.add_parser("show", help="Print the diff as text.")
    show_parser.set_defaults(func=_show_cmd)

    stats_parser = subparsers.add_parser("stats", help="Print per-file change counts.")
    stats_parser.set_defaults(func=_stats_cmd)

    dump_parser = subparsers.add_parser("dump", help="Print the parsed line model as JSON.")
    dump_parser.set_defaults(func=_dump_cmd)

    show_hunk_parser = subparsers.add_parser(
        "show-hunk", help="Print one hunk re-serialized as unified-diff text."
    )
    show_hunk_parser.add_argument("file_index", type=int)
    show_hunk_parser.add_argument("hunk_index", type=int)
    show_hunk_parser.set_defaults(func=_show_hunk_cmd)

    copy_parser = subparsers.add_parser(
        "copy", help="Print every hunk of one file as copyable unified-diff text."
    )
    copy_parser.add_argument("file_index", type=int, nargs="?", default=0)
    copy_parser.set_defaults(func=_copy_cmd)

    stage_parser = subparsers.add_parser(
        "stage", help="Stage one hunk of --path in the --git repository."
    )
    stage_parser.add_argument("hunk_index", type=int)
    stage_parser.set_defaults(func=_staging_cmd)

    unstage_parser = subparsers.add_parser(
        "unstage", help="Unstage one hunk of --path in the --git repository."
    )
    unstage_parser.add_argument("hunk_index", type=int)
    unstage_parser.set_defaults(func=_staging_cmd)

    parser.set_defaults(func=_render_cmd)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
