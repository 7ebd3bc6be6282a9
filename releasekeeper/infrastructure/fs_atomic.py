"""Atomic file writes for reports and merged coverage artifacts."""

from __future__ import annotations

import os
from pathlib import Path
import tempfile


def fsync_dir(path: Path) -> None:
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write_text(path: Path, text: str, newline_lf: bool = True) -> None:
    """Write ``text`` to a sibling temp file and rename it over ``path``.

    Readers see either the previous content or the complete new content.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    payload = text.replace("\r\n", "\n") if newline_lf else text
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="\n" if newline_lf else None,
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)
        os.replace(str(temp_path), str(path))
        fsync_dir(path.parent)
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)
