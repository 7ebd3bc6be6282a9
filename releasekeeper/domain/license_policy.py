from __future__ import annotations

from typing import Iterable

DEFAULT_ALLOWED_LICENSES: tuple[str, ...] = (
    "MIT",
    "Apache-2.0",
    "BSD-3-Clause",
    "BSD-2-Clause",
    "ISC",
    "MPL-2.0",
)


def find_disallowed_licenses(report: str, allowed: Iterable[str] = DEFAULT_ALLOWED_LICENSES) -> list[str]:
    """Return report lines that mention none of the allowed license tokens.

    The report is the ``module,url,license`` CSV produced by the license
    scanner. Matching is by substring so that ``Apache-2.0`` also accepts
    ``Apache-2.0 WITH LLVM-exception``.
    """

    tokens = tuple(token for token in (t.strip() for t in allowed) if token)
    violations: list[str] = []
    for raw in report.splitlines():
        line = raw.strip()
        if not line:
            continue
        if not any(token in line for token in tokens):
            violations.append(line)
    return violations
