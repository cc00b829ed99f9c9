from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

LineType = Literal["addition", "deletion", "context", "header"]

_DEFAULT_OLD_NAME = "a"
_DEFAULT_NEW_NAME = "b"
_NULL_PATH = "/dev/null"


def _strip_side_prefix(name: str, prefix: str) -> str:
    if name.startswith(prefix):
        return name[len(prefix) :]
    return name


@dataclass(frozen=True, slots=True)
class Line:
    type: LineType
    content: str
    old_line_number: int | None = None
    new_line_number: int | None = None
    missing_newline: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Hunk:
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: tuple[Line, ...] = ()
    section: str = ""

    @property
    def additions(self) -> int:
        return sum(1 for line in self.lines if line.type == "addition")

    @property
    def deletions(self) -> int:
        return sum(1 for line in self.lines if line.type == "deletion")

    def to_dict(self) -> dict[str, object]:
        return {
            "header": self.header,
            "old_start": self.old_start,
            "old_lines": self.old_lines,
            "new_start": self.new_start,
            "new_lines": self.new_lines,
            "section": self.section,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True, slots=True)
class PatchFile:
    old_file_name: str | None = None
    new_file_name: str | None = None
    hunks: tuple[Hunk, ...] = ()

    @property
    def old_label(self) -> str:
        return self.old_file_name or _DEFAULT_OLD_NAME

    @property
    def new_label(self) -> str:
        return self.new_file_name or _DEFAULT_NEW_NAME

    @property
    def path(self) -> str:
        if self.new_file_name and self.new_file_name != _NULL_PATH:
            return _strip_side_prefix(self.new_file_name, "b/")
        if self.old_file_name and self.old_file_name != _NULL_PATH:
            return _strip_side_prefix(self.old_file_name, "a/")
        return "unknown"

    @property
    def status(self) -> str:
        if self.old_file_name == _NULL_PATH:
            return "added"
        if self.new_file_name == _NULL_PATH:
            return "deleted"
        old_path = _strip_side_prefix(self.old_file_name or "", "a/")
        new_path = _strip_side_prefix(self.new_file_name or "", "b/")
        if old_path and new_path and old_path != new_path:
            return "renamed"
        return "modified"

    @property
    def additions(self) -> int:
        return sum(hunk.additions for hunk in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(hunk.deletions for hunk in self.hunks)

    def to_dict(self) -> dict[str, object]:
        return {
            "old_file_name": self.old_file_name,
            "new_file_name": self.new_file_name,
            "path": self.path,
            "status": self.status,
            "additions": self.additions,
            "deletions": self.deletions,
            "hunks": [hunk.to_dict() for hunk in self.hunks],
        }
