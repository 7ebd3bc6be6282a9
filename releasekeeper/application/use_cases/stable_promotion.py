"""Stable promotion of an operator-tagged commit.

Stable promotion never invents a version: the commit must already carry an
exact tag, and that tag string is republished unchanged under the stable
channel.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from releasekeeper.application.ports.gateways import EventSink, NullEventSink, VersionControl
from releasekeeper.application.use_cases.snapshot_promotion import utc_now
from releasekeeper.application.use_cases.tag_publication import publish_tag_once
from releasekeeper.domain.models import PromotionRequest, Tag
from releasekeeper.domain.tag_resolution import normalize_commit, resolve_tag


class StablePromoter:
    def __init__(
        self,
        vcs: VersionControl,
        *,
        events: EventSink | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._vcs = vcs
        self._events = events or NullEventSink()
        self._now = now

    def promote_stable(self, commit: str, *, dry_run: bool = False) -> Tag:
        commit = self._vcs.resolve_commit(normalize_commit(commit))
        exact = self._vcs.exact_tag(commit)
        # Raises UntaggedCommitError before any publish side effect.
        name = resolve_tag(PromotionRequest(channel="stable", commit=commit), exact_tag=exact)
        tag = Tag(name=name, commit=commit, channel="stable", created_at=self._now())
        self._events.info(f"Commit {commit} is tagged {name}; promoting to stable")
        return publish_tag_once(self._vcs, tag, events=self._events, dry_run=dry_run)
