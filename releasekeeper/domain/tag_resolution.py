"""Pure tag-name resolution for snapshot, nightly and stable channels.

The resolver performs no I/O. Dates and exact-tag lookups are supplied by the
caller so the same inputs always yield the same tag name.
"""

from __future__ import annotations

from datetime import datetime
import re

from releasekeeper.domain.errors import InvalidPromotionRequestError, UntaggedCommitError
from releasekeeper.domain.models import CHANNELS, PromotionRequest

DEFAULT_SHORT_LENGTH = 7

_COMMIT_RE = re.compile(r"^[0-9A-Za-z]+$")
_NIGHTLY_DATE_RE = re.compile(r"^\d{8}$")


def normalize_commit(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidPromotionRequestError(f"commit must be a string, got {type(value).__name__}")
    commit = value.strip()
    if not commit or not _COMMIT_RE.match(commit):
        raise InvalidPromotionRequestError(f"invalid commit identifier: {value!r}")
    return commit


def short_commit(commit: str, length: int = DEFAULT_SHORT_LENGTH) -> str:
    if length < 1:
        raise InvalidPromotionRequestError(f"short commit length must be >= 1, got {length}")
    return commit[:length]


def validate_nightly_date(value: str | None) -> str:
    token = (value or "").strip()
    if not _NIGHTLY_DATE_RE.match(token):
        raise InvalidPromotionRequestError(f"nightly date must be YYYYMMDD, got {value!r}")
    try:
        datetime.strptime(token, "%Y%m%d")
    except ValueError:
        raise InvalidPromotionRequestError(f"nightly date is not a calendar date: {value!r}") from None
    return token


def resolve_tag(
    request: PromotionRequest,
    *,
    base_version: str = "",
    exact_tag: str | None = None,
    short_length: int = DEFAULT_SHORT_LENGTH,
) -> str:
    """Return the tag name for ``request``.

    snapshot -> ``<base_version>-<short commit>``
    nightly  -> ``<commit>-<YYYYMMDD>``
    stable   -> ``exact_tag`` unchanged; ``UntaggedCommitError`` when absent
    """

    if request.channel not in CHANNELS:
        raise InvalidPromotionRequestError(f"unknown channel: {request.channel!r}")
    commit = normalize_commit(request.commit)

    if request.channel == "snapshot":
        base = base_version.strip()
        if not base:
            raise InvalidPromotionRequestError("snapshot promotion requires a base version")
        return f"{base}-{short_commit(commit, short_length)}"

    if request.channel == "nightly":
        return f"{commit}-{validate_nightly_date(request.source_ref)}"

    found = (exact_tag if exact_tag is not None else request.source_ref) or ""
    if not found.strip():
        raise UntaggedCommitError(commit)
    return found.strip()
