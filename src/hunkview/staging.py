"""Per-view hunk staging state and the stage/unstage request guard.

One ``HunkStagingController`` belongs to one open diff view. It owns the
``StagingState`` for that view and forwards stage/unstage intents to a
``StagingCollaborator`` (the component that actually touches the index), one
request at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Literal, Protocol

import structlog

from hunkview.diff_parser import parse_patch
from hunkview.models import PatchFile
from hunkview.serializer import serialize_hunk

logger = structlog.get_logger(__name__)

OutcomeStatus = Literal["success", "failure", "rejected"]
HunkStatus = Literal["idle", "staging", "staged"]
Action = Literal["stage", "unstage"]


@dataclass(frozen=True, slots=True)
class StagingOutcome:
    status: OutcomeStatus
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls) -> StagingOutcome:
        return cls("success")

    @classmethod
    def failure(cls, reason: str) -> StagingOutcome:
        return cls("failure", reason)

    @classmethod
    def rejected(cls, reason: str) -> StagingOutcome:
        return cls("rejected", reason)


class StagingCollaborator(Protocol):
    async def stage_hunk(self, file_path: str, hunk_patch: str) -> StagingOutcome: ...

    async def unstage_hunk(self, file_path: str, hunk_patch: str) -> StagingOutcome: ...


@dataclass(slots=True)
class StagingState:
    staged_hunks: set[int] = field(default_factory=set)
    staging_hunk: int | None = None
    hovered_hunk: int | None = None
    errors: dict[int, str] = field(default_factory=dict)


class HunkStagingController:
    def __init__(
        self,
        file_path: str,
        collaborator: StagingCollaborator,
        patch_text: str = "",
        *,
        staged: bool = False,
        on_hunk_staged: Callable[[int, Action], None] | None = None,
    ) -> None:
        self.file_path = file_path
        self.staged = staged
        self.collaborator = collaborator
        self.on_hunk_staged = on_hunk_staged
        self.state = StagingState()
        self.patch_file = PatchFile()
        self.closed = False
        self._generation = 0
        self._in_flight = False
        self.load(patch_text)

    def load(self, patch_text: str) -> None:
        """Re-parse the diff; hunk indices change meaning, so state starts over."""
        self.patch_file = self._select_file(parse_patch(patch_text))
        self.state = StagingState()
        if self.staged:
            # Viewing the index diff: every hunk shown is already staged.
            self.state.staged_hunks = set(range(len(self.patch_file.hunks)))
        self._generation += 1

    def _select_file(self, files: list[PatchFile]) -> PatchFile:
        for patch_file in files:
            if patch_file.path == self.file_path:
                return patch_file
        if len(files) == 1:
            return files[0]
        if files:
            logger.warning(
                "patch_file_not_found",
                file=self.file_path,
                files=[patch_file.path for patch_file in files],
            )
        return PatchFile()

    @property
    def busy(self) -> bool:
        # A reload clears staging_hunk but the earlier call may still be pending.
        return self._in_flight or self.state.staging_hunk is not None

    def status(self, index: int) -> HunkStatus:
        if self.state.staging_hunk == index:
            return "staging"
        if index in self.state.staged_hunks:
            return "staged"
        return "idle"

    def is_interactive(self, index: int) -> bool:
        """Whether the row for ``index`` should show enabled stage/unstage controls."""
        return not self.closed and not self.busy and self.state.hovered_hunk == index

    def hover(self, index: int | None) -> None:
        self.state.hovered_hunk = index

    def dismiss_error(self, index: int) -> None:
        self.state.errors.pop(index, None)

    def close(self) -> None:
        self.closed = True

    def _rejection(self, action: Action, index: int) -> str | None:
        if self.closed:
            return "diff view is closed"
        if self.busy:
            return "another hunk operation is still in flight"
        if not 0 <= index < len(self.patch_file.hunks):
            return f"no hunk at index {index}"
        if action == "stage" and index in self.state.staged_hunks:
            return f"hunk {index} is already staged"
        if action == "unstage" and index not in self.state.staged_hunks:
            return f"hunk {index} is not staged"
        return None

    async def stage(self, index: int) -> StagingOutcome:
        return await self._run("stage", index)

    async def unstage(self, index: int) -> StagingOutcome:
        return await self._run("unstage", index)

    async def _run(self, action: Action, index: int) -> StagingOutcome:
        reason = self._rejection(action, index)
        if reason is not None:
            logger.debug(
                "hunk_request_rejected",
                action=action,
                file=self.file_path,
                hunk=index,
                reason=reason,
            )
            return StagingOutcome.rejected(reason)

        generation = self._generation
        hunk_patch = serialize_hunk(self.patch_file.hunks[index])
        self.state.staging_hunk = index
        self.state.errors.pop(index, None)
        self._in_flight = True

        try:
            if action == "stage":
                outcome = await self.collaborator.stage_hunk(self.file_path, hunk_patch)
            else:
                outcome = await self.collaborator.unstage_hunk(self.file_path, hunk_patch)
        except Exception as exc:
            logger.exception(
                "hunk_collaborator_error", action=action, file=self.file_path, hunk=index
            )
            outcome = StagingOutcome.failure(str(exc) or type(exc).__name__)
        finally:
            self._in_flight = False
            if generation == self._generation:
                self.state.staging_hunk = None

        if self.closed or generation != self._generation:
            logger.debug(
                "hunk_result_discarded", action=action, file=self.file_path, hunk=index
            )
            return outcome

        if not outcome.ok:
            self.state.errors[index] = outcome.reason or f"{action} failed"
            logger.warning(
                "hunk_stage_failed",
                action=action,
                file=self.file_path,
                hunk=index,
                reason=outcome.reason,
            )
            return outcome

        if action == "stage":
            self.state.staged_hunks.add(index)
        else:
            self.state.staged_hunks.discard(index)
        logger.info("hunk_staged", action=action, file=self.file_path, hunk=index)
        if self.on_hunk_staged is not None:
            self.on_hunk_staged(index, action)
        return outcome
