from __future__ import annotations

import os
from pathlib import Path
import subprocess
from typing import Mapping, Sequence

from releasekeeper.application.ports.gateways import ToolResult
from releasekeeper.domain.errors import ToolFailureError


class SubprocessToolRunner:
    """Blocking subprocess adapter for fire-and-forget external tools."""

    def __init__(self, *, cwd: Path, env: Mapping[str, str] | None = None) -> None:
        self._cwd = cwd
        self._env = dict(env) if env is not None else None

    def _environment(self) -> dict[str, str]:
        merged = os.environ.copy()
        if self._env:
            merged.update(self._env)
        return merged

    def run(self, argv: Sequence[str], *, capture: bool = False) -> ToolResult:
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(self._cwd),
                env=self._environment(),
                text=True,
                capture_output=capture,
                check=False,
            )
        except FileNotFoundError:
            raise ToolFailureError(argv, 127, "command not found") from None
        except OSError as exc:
            raise ToolFailureError(argv, 126, str(exc)) from exc
        return ToolResult(
            argv=tuple(argv),
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
