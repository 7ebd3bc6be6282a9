"""Composition root: build concrete collaborators from the effective config."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from releasekeeper.application.use_cases.coverage_report import CoverageReporter
from releasekeeper.application.use_cases.flake_hardening import FlakeHardener
from releasekeeper.application.use_cases.release_config import ReleaseConfig
from releasekeeper.application.use_cases.snapshot_promotion import SnapshotPromoter
from releasekeeper.application.use_cases.stable_promotion import StablePromoter
from releasekeeper.domain.errors import ToolFailureError
from releasekeeper.infrastructure.event_log import EventLog
from releasekeeper.infrastructure.fs_atomic import atomic_write_text
from releasekeeper.infrastructure.ginkgo_harness import GinkgoHarness
from releasekeeper.infrastructure.git_client import GitVersionControl
from releasekeeper.infrastructure.tool_runner import SubprocessToolRunner


@dataclass
class Components:
    config: ReleaseConfig
    repo_root: Path
    events: EventLog
    vcs: GitVersionControl
    runner: SubprocessToolRunner

    def snapshot_promoter(self) -> SnapshotPromoter:
        return SnapshotPromoter(self.vcs, config=self.config.promotion, events=self.events)

    def stable_promoter(self) -> StablePromoter:
        return StablePromoter(self.vcs, events=self.events)

    def flake_hardener(self) -> FlakeHardener:
        harness = GinkgoHarness(self.config.harness, repo_root=self.repo_root, version=self._describe_or_none())
        return FlakeHardener(
            harness,
            events=self.events,
            cumulative_coverage=self.config.hardening.cumulative_coverage,
            write_text=atomic_write_text,
        )

    def coverage_reporter(self) -> CoverageReporter:
        html_path = self.repo_root / self.config.hardening.coverage_html
        return CoverageReporter(html_path, events=self.events, write_text=atomic_write_text)

    def _describe_or_none(self) -> str | None:
        try:
            return self.vcs.describe()
        except ToolFailureError:
            return None


def build_components(config: ReleaseConfig, *, repo_root: Path, command: str, quiet: bool = False) -> Components:
    event_path: Path | None = None
    if config.event_log:
        event_path = Path(config.event_log).expanduser()
        if not event_path.is_absolute():
            event_path = repo_root / event_path
    promotion = config.promotion
    return Components(
        config=config,
        repo_root=repo_root,
        events=EventLog(path=event_path, command=command, quiet=quiet),
        vcs=GitVersionControl(
            repo_root,
            remote=promotion.remote,
            annotated=promotion.annotated,
            message_template=promotion.message_template,
            base_tag_match=promotion.base_tag_match,
            base_tag_exclude=promotion.base_tag_exclude,
        ),
        runner=SubprocessToolRunner(cwd=repo_root),
    )
