"""Operator-facing status output plus an optional JSONL event trail.

Status lines go to stdout (errors and warnings to stderr). When an event log
path is configured every ``record`` call appends one canonical-JSON line with
the invocation's run id and a UTC timestamp, so CI can archive what was
tagged and which iteration seeds ran.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sys
from typing import Any, Callable, Mapping, TextIO
import uuid

from releasekeeper.domain.canonical_json import canonical_json_text


def eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class EventLog:
    def __init__(
        self,
        *,
        path: Path | None = None,
        command: str = "",
        quiet: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        clock: Callable[[], str] = _utc_timestamp,
    ) -> None:
        self.path = path
        self.command = command
        self.run_id = uuid.uuid4().hex[:16]
        self._quiet = quiet
        self._stdout = stdout
        self._stderr = stderr
        self._clock = clock

    def _out(self, line: str) -> None:
        if not self._quiet:
            print(line, file=self._stdout or sys.stdout)

    def _err(self, line: str) -> None:
        print(line, file=self._stderr or sys.stderr)

    def info(self, message: str) -> None:
        self._out(f"ℹ️  {message}")

    def success(self, message: str) -> None:
        self._out(f"✅ {message}")

    def warning(self, message: str) -> None:
        self._err(f"⚠️  {message}")

    def error(self, message: str) -> None:
        self._err(f"❌ {message}")

    def record(self, event: str, payload: Mapping[str, Any]) -> None:
        if self.path is None:
            return
        entry = {
            "event": event,
            "run_id": self.run_id,
            "command": self.command,
            "timestamp": self._clock(),
            "payload": dict(payload),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(canonical_json_text(entry) + "\n")
