"""Coverage artifact model (Go coverprofile text format).

    mode: set|count|atomic
    <file>:<startLine>.<startCol>,<endLine>.<endCol> <numStatements> <count>

Duplicate blocks (the same package instrumented by several test binaries)
are folded on parse the same way profiles are merged across runs: ``set``
keeps the max, ``count``/``atomic`` sum.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Iterable

from releasekeeper.domain.errors import ArtifactFormatError

COVERAGE_MODES: tuple[str, ...] = ("set", "count", "atomic")

_MODE_RE = re.compile(r"^mode:\s*(\S+)\s*$")
_BLOCK_RE = re.compile(r"^(.+):(\d+)\.(\d+),(\d+)\.(\d+) (\d+) (\d+)$")

BlockKey = tuple[str, int, int, int, int]


@dataclass(frozen=True)
class CoverageBlock:
    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    statements: int
    count: int

    @property
    def key(self) -> BlockKey:
        return (self.file, self.start_line, self.start_col, self.end_line, self.end_col)

    def to_line(self) -> str:
        return (
            f"{self.file}:{self.start_line}.{self.start_col},{self.end_line}.{self.end_col} "
            f"{self.statements} {self.count}"
        )


@dataclass(frozen=True)
class CoverageProfile:
    mode: str
    blocks: tuple[CoverageBlock, ...]


@dataclass(frozen=True)
class FileCoverage:
    file: str
    statements: int
    covered: int

    @property
    def percent(self) -> float:
        if self.statements == 0:
            return 0.0
        return 100.0 * self.covered / self.statements


def _combine_counts(mode: str, left: int, right: int) -> int:
    if mode == "set":
        return max(left, right)
    return left + right


def _fold_blocks(mode: str, blocks: Iterable[CoverageBlock], *, source: str) -> tuple[CoverageBlock, ...]:
    folded: dict[BlockKey, CoverageBlock] = {}
    for block in blocks:
        existing = folded.get(block.key)
        if existing is None:
            folded[block.key] = block
            continue
        if existing.statements != block.statements:
            raise ArtifactFormatError(
                f"{source}: inconsistent statement count for block {block.to_line()!r}"
            )
        folded[block.key] = CoverageBlock(
            *block.key,
            statements=block.statements,
            count=_combine_counts(mode, existing.count, block.count),
        )
    return tuple(sorted(folded.values(), key=lambda b: b.key))


def parse_coverage_profile(text: str, *, source: str = "<memory>") -> CoverageProfile:
    lines = text.replace("\r\n", "\n").split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        raise ArtifactFormatError(f"{source}: coverage artifact is empty")

    mode_match = _MODE_RE.match(lines[0].strip())
    if mode_match is None:
        raise ArtifactFormatError(f"{source}: missing 'mode:' header")
    mode = mode_match.group(1)
    if mode not in COVERAGE_MODES:
        raise ArtifactFormatError(f"{source}: unsupported coverage mode {mode!r}")

    blocks: list[CoverageBlock] = []
    for lineno, raw in enumerate(lines[1:], start=2):
        line = raw.strip()
        if not line:
            continue
        match = _BLOCK_RE.match(line)
        if match is None:
            raise ArtifactFormatError(f"{source}:{lineno}: malformed coverage line {line!r}")
        file_name, sl, sc, el, ec, stmts, count = match.groups()
        blocks.append(
            CoverageBlock(
                file=file_name,
                start_line=int(sl),
                start_col=int(sc),
                end_line=int(el),
                end_col=int(ec),
                statements=int(stmts),
                count=int(count),
            )
        )
    return CoverageProfile(mode=mode, blocks=_fold_blocks(mode, blocks, source=source))


def load_coverage_profile(path: Path) -> CoverageProfile:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ArtifactFormatError(f"coverage artifact not found: {path}") from None
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactFormatError(f"coverage artifact unreadable: {path}: {exc}") from exc
    return parse_coverage_profile(text, source=str(path))


def merge_profiles(left: CoverageProfile, right: CoverageProfile) -> CoverageProfile:
    if left.mode != right.mode:
        raise ArtifactFormatError(f"cannot merge coverage modes {left.mode!r} and {right.mode!r}")
    return CoverageProfile(
        mode=left.mode,
        blocks=_fold_blocks(left.mode, (*left.blocks, *right.blocks), source="merge"),
    )


def format_coverage_profile(profile: CoverageProfile) -> str:
    body = [f"mode: {profile.mode}"]
    body.extend(block.to_line() for block in profile.blocks)
    return "\n".join(body) + "\n"


def summarize_by_file(profile: CoverageProfile) -> tuple[FileCoverage, ...]:
    totals: dict[str, list[int]] = {}
    for block in profile.blocks:
        entry = totals.setdefault(block.file, [0, 0])
        entry[0] += block.statements
        if block.count > 0:
            entry[1] += block.statements
    return tuple(
        FileCoverage(file=name, statements=stmts, covered=covered)
        for name, (stmts, covered) in sorted(totals.items())
    )
