"""Snapshot and nightly promotion.

A snapshot tag is ``<base version>-<short commit>``; the nightly variant is
``<commit>-<YYYYMMDD>``. Promoting the same commit twice is a no-op success.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from releasekeeper.application.ports.gateways import EventSink, NullEventSink, VersionControl
from releasekeeper.application.use_cases.release_config import PromotionConfig
from releasekeeper.application.use_cases.tag_publication import publish_tag_once
from releasekeeper.domain.models import PromotionRequest, Tag
from releasekeeper.domain.tag_resolution import normalize_commit, resolve_tag

FALLBACK_BASE_VERSION = "v0.0.0"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class SnapshotPromoter:
    def __init__(
        self,
        vcs: VersionControl,
        *,
        config: PromotionConfig | None = None,
        events: EventSink | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._vcs = vcs
        self._config = config or PromotionConfig()
        self._events = events or NullEventSink()
        self._now = now

    def base_version(self) -> str:
        """Configured base version, else the latest release tag, else v0.0.0."""

        configured = self._config.base_version.strip()
        if configured:
            return configured
        return (self._vcs.latest_tag() or "").strip() or FALLBACK_BASE_VERSION

    def promote(self, commit: str, date: str | None = None, *, dry_run: bool = False) -> Tag:
        commit = self._vcs.resolve_commit(normalize_commit(commit))
        if date is None:
            request = PromotionRequest(channel="snapshot", commit=commit)
            name = resolve_tag(
                request,
                base_version=self.base_version(),
                short_length=self._config.short_commit_length,
            )
        else:
            request = PromotionRequest(channel="nightly", commit=commit, source_ref=date)
            name = resolve_tag(request)

        tag = Tag(name=name, commit=commit, channel=request.channel, created_at=self._now())
        self._events.info(f"Resolved {request.channel} tag {name} for {commit}")
        return publish_tag_once(self._vcs, tag, events=self._events, dry_run=dry_run)
