"""Canonical release-keeper reason-code registry.

Every domain error carries one of these codes; the CLI prints it next to the
message and the event log records it verbatim.
"""

from __future__ import annotations

from typing import Final

# Sentinel used when an operation finished without a blocking reason.
REASON_CODE_NONE: Final[str] = "none"

# Input and configuration.
BLOCKED_INVALID_PROMOTION_REQUEST: Final[str] = "BLOCKED-INVALID-PROMOTION-REQUEST"
BLOCKED_CONFIG_INVALID: Final[str] = "BLOCKED-CONFIG-INVALID"

# Promotion guards.
BLOCKED_UNTAGGED_COMMIT: Final[str] = "BLOCKED-UNTAGGED-COMMIT"
BLOCKED_TAG_CONFLICT: Final[str] = "BLOCKED-TAG-CONFLICT"
BLOCKED_PUBLISH_FAILED: Final[str] = "BLOCKED-PUBLISH-FAILED"

# Hardening and reporting.
BLOCKED_TEST_ITERATION_FAILED: Final[str] = "BLOCKED-TEST-ITERATION-FAILED"
BLOCKED_ARTIFACT_FORMAT: Final[str] = "BLOCKED-ARTIFACT-FORMAT"

# Verification gates.
BLOCKED_DIRTY_WORKTREE: Final[str] = "BLOCKED-DIRTY-WORKTREE"
BLOCKED_LICENSE_VIOLATION: Final[str] = "BLOCKED-LICENSE-VIOLATION"
BLOCKED_TOOL_FAILED: Final[str] = "BLOCKED-TOOL-FAILED"

# Warning reason codes.
WARN_DIRTY_WORKTREE: Final[str] = "WARN-DIRTY-WORKTREE"

CANONICAL_REASON_CODES: Final[tuple[str, ...]] = (
    BLOCKED_INVALID_PROMOTION_REQUEST,
    BLOCKED_CONFIG_INVALID,
    BLOCKED_UNTAGGED_COMMIT,
    BLOCKED_TAG_CONFLICT,
    BLOCKED_PUBLISH_FAILED,
    BLOCKED_TEST_ITERATION_FAILED,
    BLOCKED_ARTIFACT_FORMAT,
    BLOCKED_DIRTY_WORKTREE,
    BLOCKED_LICENSE_VIOLATION,
    BLOCKED_TOOL_FAILED,
    WARN_DIRTY_WORKTREE,
)


def is_registered_reason_code(reason_code: str) -> bool:
    return reason_code == REASON_CODE_NONE or reason_code in CANONICAL_REASON_CODES
