"""Pytest configuration and in-memory collaborators for releasekeeper tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

import pytest

from releasekeeper.application.ports.gateways import ToolResult
from releasekeeper.domain.errors import PublishError, TagConflictError
from releasekeeper.domain.models import HarnessMode, HarnessOutcome, Tag, same_commit

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

SAMPLE_PROFILE = (
    "mode: set\n"
    "github.com/acme/widget/pkg/a.go:10.2,12.16 2 1\n"
    "github.com/acme/widget/pkg/a.go:14.2,15.10 1 0\n"
    "github.com/acme/widget/pkg/b.go:3.30,5.2 3 1\n"
)


class FakeVersionControl:
    def __init__(
        self,
        *,
        head: str = "abc123",
        exact_tags: Mapping[str, str] | None = None,
        latest: str | None = None,
        remote: Mapping[str, str] | None = None,
        publish_error: Exception | None = None,
        changed: Sequence[str] = (),
        refs: Mapping[str, str] | None = None,
    ) -> None:
        self.head = head
        self.exact_tags = dict(exact_tags or {})
        self.latest = latest
        self.remote = dict(remote or {})
        self.publish_error = publish_error
        self.changed = list(changed)
        self.refs = dict(refs or {})
        self.published: list[Tag] = []

    def current_commit(self) -> str:
        return self.head

    def resolve_commit(self, ref: str) -> str:
        return self.refs.get(ref, ref)

    def exact_tag(self, commit: str) -> str | None:
        return self.exact_tags.get(commit)

    def latest_tag(self) -> str | None:
        return self.latest

    def describe(self) -> str:
        return self.latest or self.head

    def remote_tag_commit(self, name: str) -> str | None:
        return self.remote.get(name)

    def publish_tag(self, tag: Tag) -> None:
        if self.publish_error is not None:
            raise self.publish_error
        bound = self.remote.get(tag.name)
        if bound is not None and not same_commit(bound, tag.commit):
            raise TagConflictError(tag.name, requested_commit=tag.commit, bound_commit=bound)
        self.remote[tag.name] = tag.commit
        self.published.append(tag)

    def changed_paths(self) -> list[str]:
        return list(self.changed)


class ScriptedHarness:
    """Harness returning a scripted sequence of exit codes."""

    def __init__(self, exit_codes: Sequence[int], *, coverage: Path | None = None) -> None:
        self.exit_codes = list(exit_codes)
        self.coverage = coverage
        self.calls: list[tuple[HarnessMode, int]] = []

    def run(self, mode: HarnessMode, *, seed: int) -> HarnessOutcome:
        if len(self.calls) >= len(self.exit_codes):
            raise AssertionError(f"harness invoked more than the scripted {len(self.exit_codes)} times")
        code = self.exit_codes[len(self.calls)]
        self.calls.append((mode, seed))
        artifact = self.coverage if mode.coverage else None
        return HarnessOutcome(exit_code=code, coverage_artifact=artifact)


class RecordingEvents:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []
        self.records: list[tuple[str, dict[str, Any]]] = []

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def success(self, message: str) -> None:
        self.lines.append(("success", message))

    def warning(self, message: str) -> None:
        self.lines.append(("warning", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def record(self, event: str, payload: Mapping[str, Any]) -> None:
        self.records.append((event, dict(payload)))

    def events(self) -> list[str]:
        return [name for name, _ in self.records]


class FakeToolRunner:
    def __init__(self, results: Mapping[tuple[str, ...], ToolResult] | None = None) -> None:
        self.results = dict(results or {})
        self.calls: list[tuple[str, ...]] = []

    def run(self, argv: Sequence[str], *, capture: bool = False) -> ToolResult:
        key = tuple(argv)
        self.calls.append(key)
        return self.results.get(key, ToolResult(argv=key, exit_code=0))


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW


@pytest.fixture
def coverage_file(tmp_path: Path) -> Path:
    path = tmp_path / "coverage.out"
    path.write_text(SAMPLE_PROFILE, encoding="utf-8")
    return path


@pytest.fixture
def publish_failure() -> PublishError:
    return PublishError("remote hung up unexpectedly")


@pytest.fixture(autouse=True)
def _isolate_release_env(monkeypatch: pytest.MonkeyPatch):
    """Keep host CI/config variables from leaking into tests."""

    for key in (
        "CI",
        "RELEASEKEEPER_CONFIG",
        "RELEASEKEEPER_EVENT_LOG",
        "CLOUD_PROVIDER",
        "K8S_VERSION",
        "KUBEBUILDER_ASSETS",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
