"""Render a coverage artifact into a human-readable HTML report."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from pathlib import Path
from typing import Any, Callable

from releasekeeper.application.ports.gateways import EventSink, NullEventSink
from releasekeeper.domain.coverage_profile import (
    CoverageProfile,
    FileCoverage,
    load_coverage_profile,
    summarize_by_file,
)


@dataclass(frozen=True)
class CoverageReport:
    html_path: Path
    mode: str
    total_statements: int
    covered_statements: int
    files: tuple[FileCoverage, ...]

    @property
    def percent(self) -> float:
        if self.total_statements == 0:
            return 0.0
        return 100.0 * self.covered_statements / self.total_statements

    def to_dict(self) -> dict[str, Any]:
        return {
            "html_path": str(self.html_path),
            "mode": self.mode,
            "total_statements": self.total_statements,
            "covered_statements": self.covered_statements,
            "percent": round(self.percent, 1),
            "files": len(self.files),
        }


def format_summary_lines(report: CoverageReport) -> list[str]:
    width = max([len(item.file) for item in report.files] + [len("total")])
    lines = [f"{item.file:<{width}}  {item.percent:5.1f}%  ({item.covered}/{item.statements})" for item in report.files]
    lines.append(
        f"{'total':<{width}}  {report.percent:5.1f}%  ({report.covered_statements}/{report.total_statements})"
    )
    return lines


def render_html(profile: CoverageProfile, files: tuple[FileCoverage, ...], *, title: str) -> str:
    total = sum(item.statements for item in files)
    covered = sum(item.covered for item in files)
    percent = 100.0 * covered / total if total else 0.0

    rows = []
    for item in files:
        rows.append(
            "<tr><td>{file}</td><td>{covered}/{stmts}</td><td>{pct:.1f}%</td></tr>".format(
                file=escape(item.file), covered=item.covered, stmts=item.statements, pct=item.percent
            )
        )
    uncovered = [
        "<li>{file}:{sl}.{sc}-{el}.{ec} ({stmts} stmt)</li>".format(
            file=escape(block.file),
            sl=block.start_line,
            sc=block.start_col,
            el=block.end_line,
            ec=block.end_col,
            stmts=block.statements,
        )
        for block in profile.blocks
        if block.count == 0
    ]
    return "\n".join(
        [
            "<!DOCTYPE html>",
            "<html><head><meta charset=\"utf-8\"><title>{}</title></head><body>".format(escape(title)),
            "<h1>{}</h1>".format(escape(title)),
            "<p>mode: {} &middot; total: {:.1f}% ({}/{} statements)</p>".format(
                escape(profile.mode), percent, covered, total
            ),
            "<table><thead><tr><th>file</th><th>statements</th><th>coverage</th></tr></thead><tbody>",
            *rows,
            "</tbody></table>",
            "<h2>Uncovered blocks</h2>",
            "<ul>",
            *uncovered,
            "</ul>",
            "</body></html>",
            "",
        ]
    )


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


class CoverageReporter:
    def __init__(
        self,
        html_path: Path,
        *,
        events: EventSink | None = None,
        write_text: Callable[[Path, str], None] = _write_text,
    ) -> None:
        self._html_path = html_path
        self._events = events or NullEventSink()
        self._write_text = write_text

    def render(self, artifact: Path) -> CoverageReport:
        profile = load_coverage_profile(artifact)
        files = summarize_by_file(profile)
        self._write_text(self._html_path, render_html(profile, files, title=f"Coverage: {artifact.name}"))
        report = CoverageReport(
            html_path=self._html_path,
            mode=profile.mode,
            total_statements=sum(item.statements for item in files),
            covered_statements=sum(item.covered for item in files),
            files=files,
        )
        self._events.success(f"Coverage report written to {self._html_path} ({report.percent:.1f}%)")
        self._events.record("coverage.rendered", report.to_dict())
        return report
