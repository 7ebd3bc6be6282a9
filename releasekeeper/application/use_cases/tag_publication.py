"""Idempotent create-if-absent publication of a tag to the remote namespace.

Atomicity is delegated to the version-control remote. This step only decides
between three outcomes before pushing:

- absent              -> publish
- bound to our commit -> no-op success
- bound elsewhere     -> TagConflictError (never overwritten)
"""

from __future__ import annotations

from releasekeeper.application.ports.gateways import EventSink, VersionControl
from releasekeeper.domain.errors import TagConflictError
from releasekeeper.domain.models import Tag, same_commit


def publish_tag_once(vcs: VersionControl, tag: Tag, *, events: EventSink, dry_run: bool = False) -> Tag:
    bound = vcs.remote_tag_commit(tag.name)
    if bound is not None:
        if same_commit(bound, tag.commit):
            events.info(f"Tag {tag.name} already published at {tag.commit}; nothing to do")
            events.record("tag.noop", tag.to_dict())
            return tag
        raise TagConflictError(tag.name, requested_commit=tag.commit, bound_commit=bound)

    if dry_run:
        events.info(f"[DRY-RUN] Would publish {tag.channel} tag {tag.name} at {tag.commit}")
        events.record("tag.dry_run", tag.to_dict())
        return tag

    vcs.publish_tag(tag)
    events.success(f"Published {tag.channel} tag {tag.name} at {tag.commit}")
    events.record("tag.published", tag.to_dict())
    return tag
