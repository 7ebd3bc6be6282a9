"""Run the verification toolchain and guard against an uncommitted diff.

Generators and formatters in the verify chain may rewrite tracked files. Any
resulting modification is reported; it is fatal only in strict (CI) mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from releasekeeper.application.ports.gateways import EventSink, NullEventSink, ToolRunner, VersionControl
from releasekeeper.domain.errors import DirtyWorktreeError, ToolFailureError
from releasekeeper.domain.reason_codes import REASON_CODE_NONE, WARN_DIRTY_WORKTREE


@dataclass(frozen=True)
class VerifyResult:
    commands_run: int
    changed_paths: tuple[str, ...]
    reason_code: str

    @property
    def clean(self) -> bool:
        return not self.changed_paths


def is_ci_env(env: Mapping[str, str]) -> bool:
    val = str(env.get("CI", "")).strip().lower()
    return bool(val) and val not in {"0", "false", "no", "off"}


def verify_worktree(
    runner: ToolRunner,
    vcs: VersionControl,
    *,
    commands: Sequence[Sequence[str]],
    strict: bool,
    events: EventSink | None = None,
) -> VerifyResult:
    events = events or NullEventSink()
    for argv in commands:
        events.info(f"Running {' '.join(argv)}")
        result = runner.run(argv)
        if not result.ok:
            raise ToolFailureError(argv, result.exit_code, result.stderr.strip())

    changed = tuple(vcs.changed_paths())
    if not changed:
        events.success("Working tree is clean")
        return VerifyResult(commands_run=len(commands), changed_paths=(), reason_code=REASON_CODE_NONE)

    events.warning("New file modification detected in the Git working tree. Please check in before commit.")
    for path in changed:
        events.warning(f"  {path}")
    events.record("verify.dirty", {"changed_paths": list(changed), "strict": strict})
    if strict:
        raise DirtyWorktreeError(changed)
    return VerifyResult(commands_run=len(commands), changed_paths=changed, reason_code=WARN_DIRTY_WORKTREE)
