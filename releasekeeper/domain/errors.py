"""Error taxonomy for promotion and hardening.

Every error is terminal for the current invocation. Nothing in this package
retries; the CLI turns an error into its ``exit_code`` and the calling CI layer
decides whether to run the whole invocation again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from releasekeeper.domain import reason_codes

if TYPE_CHECKING:
    from releasekeeper.domain.models import HardenResult


class ReleaseKeeperError(Exception):
    """Base class carrying a reason code and the process exit code."""

    reason_code: str = reason_codes.REASON_CODE_NONE
    exit_code: int = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {
            "error": type(self).__name__,
            "reason_code": self.reason_code,
            "exit_code": self.exit_code,
            "message": self.message,
        }


class InvalidPromotionRequestError(ReleaseKeeperError):
    reason_code = reason_codes.BLOCKED_INVALID_PROMOTION_REQUEST
    exit_code = 2


class ConfigError(ReleaseKeeperError):
    """Raised when release configuration is missing or invalid."""

    reason_code = reason_codes.BLOCKED_CONFIG_INVALID
    exit_code = 2


class UntaggedCommitError(ReleaseKeeperError):
    """Stable promotion requested on a commit without an exact tag."""

    reason_code = reason_codes.BLOCKED_UNTAGGED_COMMIT
    exit_code = 3

    def __init__(self, commit: str, message: str = "current commit is not tagged") -> None:
        super().__init__(f"{message}: {commit}" if commit else message)
        self.commit = commit


class TagConflictError(ReleaseKeeperError):
    """Tag name already bound to a different commit in the remote namespace."""

    reason_code = reason_codes.BLOCKED_TAG_CONFLICT
    exit_code = 3

    def __init__(self, tag_name: str, *, requested_commit: str, bound_commit: str | None) -> None:
        bound = bound_commit or "<unknown>"
        super().__init__(
            f"tag {tag_name} is already bound to {bound}, refusing to rebind it to {requested_commit}"
        )
        self.tag_name = tag_name
        self.requested_commit = requested_commit
        self.bound_commit = bound_commit


class PublishError(ReleaseKeeperError):
    """Transport or auth failure while talking to the version-control remote."""

    reason_code = reason_codes.BLOCKED_PUBLISH_FAILED
    exit_code = 4


class TestIterationFailure(ReleaseKeeperError):
    """A harness iteration failed; the hardening loop stopped at ``iteration``."""

    __test__ = False  # not a pytest test class
    reason_code = reason_codes.BLOCKED_TEST_ITERATION_FAILED

    def __init__(self, iteration: int, harness_exit_code: int, result: "HardenResult | None" = None) -> None:
        super().__init__(f"test iteration {iteration} failed with exit code {harness_exit_code}")
        self.iteration = iteration
        self.harness_exit_code = harness_exit_code
        self.result = result
        self.exit_code = harness_exit_code if harness_exit_code != 0 else 1


class ArtifactFormatError(ReleaseKeeperError):
    """Coverage artifact is missing, empty, truncated or otherwise malformed."""

    reason_code = reason_codes.BLOCKED_ARTIFACT_FORMAT
    exit_code = 5


class DirtyWorktreeError(ReleaseKeeperError):
    reason_code = reason_codes.BLOCKED_DIRTY_WORKTREE
    exit_code = 3

    def __init__(self, changed_paths: Sequence[str]) -> None:
        super().__init__(
            "New file modification detected in the Git working tree. Please check in before commit."
        )
        self.changed_paths = tuple(changed_paths)


class LicenseViolationError(ReleaseKeeperError):
    reason_code = reason_codes.BLOCKED_LICENSE_VIOLATION
    exit_code = 3

    def __init__(self, violations: Sequence[str]) -> None:
        listing = "; ".join(violations)
        super().__init__(f"{len(violations)} dependency license(s) outside the allow-list: {listing}")
        self.violations = tuple(violations)


class ToolFailureError(ReleaseKeeperError):
    """An external tool (linter, module tidy, license scanner) exited nonzero."""

    reason_code = reason_codes.BLOCKED_TOOL_FAILED

    def __init__(self, argv: Sequence[str], tool_exit_code: int, detail: str = "") -> None:
        command = " ".join(argv)
        message = f"{command} exited with {tool_exit_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.argv = tuple(argv)
        self.tool_exit_code = tool_exit_code
        self.exit_code = tool_exit_code if tool_exit_code > 0 else 4
