"""Staging collaborator backed by ``git apply --cached``."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from hunkview.serializer import build_hunk_patch
from hunkview.staging import StagingOutcome

logger = structlog.get_logger(__name__)


class GitCommandError(RuntimeError):
    pass


async def _run_git(
    repo_path: Path, args: list[str], *, stdin_text: str | None = None
) -> tuple[int, str, str]:
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(repo_path),
        stdin=asyncio.subprocess.PIPE if stdin_text is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate(
        stdin_text.encode("utf-8") if stdin_text is not None else None
    )
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


async def git_diff(repo_path: Path, file_path: str | None = None, *, staged: bool = False) -> str:
    args = ["diff", "--no-color", "--no-ext-diff"]
    if staged:
        args.append("--cached")
    if file_path:
        args.extend(["--", file_path])
    returncode, stdout, stderr = await _run_git(repo_path, args)
    if returncode != 0:
        raise GitCommandError(stderr.strip() or f"git command failed: {' '.join(args)}")
    return stdout


class GitApplyStager:
    """Apply single-hunk patches to the index of the repository at ``repo_path``."""

    def __init__(self, repo_path: Path) -> None:
        self.repo_path = repo_path

    async def _apply(self, file_path: str, hunk_patch: str, *, reverse: bool) -> StagingOutcome:
        args = ["apply", "--cached", "--whitespace=nowarn"]
        if reverse:
            args.append("--reverse")
        args.append("-")
        patch = build_hunk_patch(file_path, hunk_patch)
        try:
            returncode, _, stderr = await _run_git(self.repo_path, args, stdin_text=patch)
        except OSError as exc:
            return StagingOutcome.failure(f"could not run git: {exc}")
        if returncode != 0:
            reason = stderr.strip() or f"git apply exited with {returncode}"
            logger.debug("git_apply_failed", file=file_path, reverse=reverse, reason=reason)
            return StagingOutcome.failure(reason)
        return StagingOutcome.success()

    async def stage_hunk(self, file_path: str, hunk_patch: str) -> StagingOutcome:
        return await self._apply(file_path, hunk_patch, reverse=False)

    async def unstage_hunk(self, file_path: str, hunk_patch: str) -> StagingOutcome:
        return await self._apply(file_path, hunk_patch, reverse=True)
