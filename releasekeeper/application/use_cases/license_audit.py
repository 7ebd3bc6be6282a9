from __future__ import annotations

from typing import Sequence

from releasekeeper.application.ports.gateways import EventSink, NullEventSink, ToolRunner
from releasekeeper.domain.errors import LicenseViolationError, ToolFailureError
from releasekeeper.domain.license_policy import find_disallowed_licenses


def audit_licenses(
    runner: ToolRunner,
    *,
    command: Sequence[str],
    allowed: Sequence[str],
    events: EventSink | None = None,
) -> int:
    """Scan dependency licenses; return the number of dependencies checked."""

    events = events or NullEventSink()
    result = runner.run(command, capture=True)
    if not result.ok:
        raise ToolFailureError(command, result.exit_code, result.stderr.strip())

    violations = find_disallowed_licenses(result.stdout, allowed)
    checked = len([line for line in result.stdout.splitlines() if line.strip()])
    if violations:
        events.record("licenses.violations", {"violations": violations, "checked": checked})
        raise LicenseViolationError(violations)
    events.success(f"{checked} dependency licenses within the allow-list")
    return checked
