"""Unified and split projections of parsed hunks.

Both projections are pure functions of the parsed model. ``ProjectionCache``
memoizes them per input text so views can re-read freely.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Collection, Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Callable

from hunkview.diff_parser import file_header_lines, parse_patch
from hunkview.models import Hunk, Line, PatchFile
from hunkview.settings import settings
from hunkview.util import hash_text


@dataclass(frozen=True, slots=True)
class UnifiedLine:
    line: Line
    hunk_index: int | None = None
    staged: bool = False


@dataclass(frozen=True, slots=True)
class SplitRow:
    left: Line | None
    right: Line | None

    @property
    def is_modified_pair(self) -> bool:
        return (
            self.left is not None
            and self.right is not None
            and self.left.type == "deletion"
            and self.right.type == "addition"
        )


def _hunk_header_line(hunk: Hunk) -> Line:
    return Line(type="header", content=hunk.header)


def to_unified_lines(
    hunks: Sequence[Hunk], staged_hunks: Collection[int] | None = None
) -> list[UnifiedLine]:
    staged = staged_hunks or ()
    unified: list[UnifiedLine] = []
    for hunk_index, hunk in enumerate(hunks):
        is_staged = hunk_index in staged
        unified.append(
            UnifiedLine(_hunk_header_line(hunk), hunk_index=hunk_index, staged=is_staged)
        )
        for line in hunk.lines:
            unified.append(UnifiedLine(line, hunk_index=hunk_index, staged=is_staged))
    return unified


def to_unified_file_lines(
    patch_file: PatchFile, staged_hunks: Collection[int] | None = None
) -> list[UnifiedLine]:
    header = [UnifiedLine(line) for line in file_header_lines(patch_file)]
    return header + to_unified_lines(patch_file.hunks, staged_hunks)


def to_split_columns(hunk: Hunk) -> tuple[list[Line | None], list[Line | None]]:
    """Pair a hunk's lines into equal-length old/new columns.

    A deletion directly followed by an addition shares a row; any other
    deletion or addition gets an empty cell (``None``) on the opposite side.
    """
    left: list[Line | None] = []
    right: list[Line | None] = []
    lines = hunk.lines

    i = 0
    while i < len(lines):
        line = lines[i]
        if line.type == "context":
            left.append(line)
            right.append(line)
            i += 1
        elif line.type == "deletion":
            following = lines[i + 1] if i + 1 < len(lines) else None
            if following is not None and following.type == "addition":
                left.append(line)
                right.append(following)
                i += 2
            else:
                left.append(line)
                right.append(None)
                i += 1
        elif line.type == "addition":
            left.append(None)
            right.append(line)
            i += 1
        else:
            i += 1

    return left, right


def to_split_rows(hunk: Hunk) -> list[SplitRow]:
    left, right = to_split_columns(hunk)
    return [SplitRow(old, new) for old, new in zip(left, right)]


def change_indices(unified_lines: Sequence[UnifiedLine]) -> list[int]:
    return [
        index
        for index, entry in enumerate(unified_lines)
        if entry.line.type in ("addition", "deletion")
    ]


class ProjectionCache:
    """LRU memo of parse results and projections keyed by the input text hash."""

    def __init__(
        self,
        max_entries: int | None = None,
        *,
        parser: Callable[[str], list[PatchFile]] = parse_patch,
    ) -> None:
        self.max_entries = max_entries or settings.cache_size()
        self.parser = parser
        self._entries: OrderedDict[tuple[Hashable, ...], Any] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def _lookup(self, key: tuple[Hashable, ...], compute: Callable[[], Any]) -> Any:
        if key in self._entries:
            self._entries.move_to_end(key)
            return self._entries[key]
        value = compute()
        self._entries[key] = value
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return value

    def parse(self, patch_text: str) -> list[PatchFile]:
        key = (hash_text(patch_text), "parse")
        return list(self._lookup(key, lambda: tuple(self.parser(patch_text))))

    def unified(self, patch_text: str, file_index: int = 0) -> list[UnifiedLine]:
        def compute() -> tuple[UnifiedLine, ...]:
            files = self.parse(patch_text)
            if file_index >= len(files):
                return ()
            return tuple(to_unified_file_lines(files[file_index]))

        key = (hash_text(patch_text), "unified", file_index)
        return list(self._lookup(key, compute))

    def split(
        self, patch_text: str, file_index: int = 0, hunk_index: int = 0
    ) -> list[SplitRow]:
        def compute() -> tuple[SplitRow, ...]:
            files = self.parse(patch_text)
            if file_index >= len(files):
                return ()
            hunks = files[file_index].hunks
            if hunk_index >= len(hunks):
                return ()
            return tuple(to_split_rows(hunks[hunk_index]))

        key = (hash_text(patch_text), "split", file_index, hunk_index)
        return list(self._lookup(key, compute))
