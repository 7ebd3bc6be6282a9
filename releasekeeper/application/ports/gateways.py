"""Application ports for promotion and hardening use cases.

This module defines pure contracts. Concrete adapters (git, ginkgo,
subprocess) are bound by ``releasekeeper.infrastructure.wiring``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from releasekeeper.domain.models import HarnessMode, HarnessOutcome, Tag


class VersionControl(Protocol):
    def current_commit(self) -> str: ...

    def resolve_commit(self, ref: str) -> str:
        """Resolve a ref (sha, branch, HEAD) to the full commit id.

        Must raise InvalidPromotionRequestError when ``ref`` names no commit.
        """
        ...

    def exact_tag(self, commit: str) -> str | None:
        """Return the tag pointing exactly at ``commit``, or None."""
        ...

    def latest_tag(self) -> str | None: ...

    def describe(self) -> str: ...

    def remote_tag_commit(self, name: str) -> str | None:
        """Return the commit ``name`` is bound to on the remote, or None."""
        ...

    def publish_tag(self, tag: Tag) -> None:
        """Create ``tag`` locally if needed and push it.

        Must raise TagConflictError when the remote rejects the name because
        it is bound elsewhere, PublishError on any other transport failure.
        """
        ...

    def changed_paths(self) -> list[str]: ...


class TestHarness(Protocol):
    def run(self, mode: HarnessMode, *, seed: int) -> HarnessOutcome: ...


@dataclass(frozen=True)
class ToolResult:
    argv: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ToolRunner(Protocol):
    def run(self, argv: Sequence[str], *, capture: bool = False) -> ToolResult: ...


class EventSink(Protocol):
    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def record(self, event: str, payload: Mapping[str, Any]) -> None: ...


class NullEventSink:
    """Event sink that drops everything; the default for library callers."""

    def info(self, message: str) -> None:
        return None

    def success(self, message: str) -> None:
        return None

    def warning(self, message: str) -> None:
        return None

    def error(self, message: str) -> None:
        return None

    def record(self, event: str, payload: Mapping[str, Any]) -> None:
        return None
