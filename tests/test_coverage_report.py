from __future__ import annotations

from pathlib import Path

import pytest

from conftest import SAMPLE_PROFILE
from releasekeeper.application.use_cases.coverage_report import CoverageReporter, format_summary_lines
from releasekeeper.domain.coverage_profile import (
    format_coverage_profile,
    load_coverage_profile,
    merge_profiles,
    parse_coverage_profile,
    summarize_by_file,
)
from releasekeeper.domain.errors import ArtifactFormatError


@pytest.mark.coverage
class TestCoverageProfile:
    def test_parses_blocks_and_mode(self):
        profile = parse_coverage_profile(SAMPLE_PROFILE)
        assert profile.mode == "set"
        assert len(profile.blocks) == 3
        first = profile.blocks[0]
        assert (first.file, first.start_line, first.start_col, first.end_line, first.end_col) == (
            "github.com/acme/widget/pkg/a.go",
            10,
            2,
            12,
            16,
        )

    def test_summary_per_file(self):
        summary = {item.file: item for item in summarize_by_file(parse_coverage_profile(SAMPLE_PROFILE))}
        a = summary["github.com/acme/widget/pkg/a.go"]
        assert (a.statements, a.covered) == (3, 2)
        assert summary["github.com/acme/widget/pkg/b.go"].percent == pytest.approx(100.0)

    def test_duplicate_blocks_fold_in_count_mode(self):
        text = "mode: count\npkg/x.go:1.1,2.2 4 3\npkg/x.go:1.1,2.2 4 5\n"
        profile = parse_coverage_profile(text)
        assert len(profile.blocks) == 1
        assert profile.blocks[0].count == 8

    def test_merge_set_mode_takes_max(self):
        left = parse_coverage_profile("mode: set\npkg/x.go:1.1,2.2 4 0\n")
        right = parse_coverage_profile("mode: set\npkg/x.go:1.1,2.2 4 1\npkg/y.go:3.1,4.2 1 0\n")
        merged = merge_profiles(left, right)
        assert [b.count for b in merged.blocks] == [1, 0]

    def test_merge_rejects_mode_mismatch(self):
        left = parse_coverage_profile("mode: set\n")
        right = parse_coverage_profile("mode: atomic\n")
        with pytest.raises(ArtifactFormatError):
            merge_profiles(left, right)

    def test_format_is_parseable(self):
        profile = parse_coverage_profile(SAMPLE_PROFILE)
        assert parse_coverage_profile(format_coverage_profile(profile)) == profile

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n\n",
            "pkg/x.go:1.1,2.2 4 3\n",
            "mode: bogus\npkg/x.go:1.1,2.2 4 3\n",
            "mode: set\npkg/x.go:1.1,2.2 4\n",
            "mode: set\npkg/x.go:1.1,2.",
            "mode: set\nnot a coverage line\n",
        ],
    )
    def test_malformed_profiles_raise(self, text: str):
        with pytest.raises(ArtifactFormatError):
            parse_coverage_profile(text)

    def test_inconsistent_duplicate_statement_counts_raise(self):
        with pytest.raises(ArtifactFormatError):
            parse_coverage_profile("mode: set\npkg/x.go:1.1,2.2 4 1\npkg/x.go:1.1,2.2 5 1\n")

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(ArtifactFormatError):
            load_coverage_profile(tmp_path / "absent.out")

    def test_binary_garbage_raises(self, tmp_path: Path):
        path = tmp_path / "coverage.out"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(ArtifactFormatError):
            load_coverage_profile(path)


@pytest.mark.coverage
class TestCoverageReporter:
    def test_render_writes_html_and_summarizes(self, coverage_file: Path, tmp_path: Path, events):
        html = tmp_path / "out" / "coverage.html"
        html.parent.mkdir()
        report = CoverageReporter(html, events=events).render(coverage_file)
        assert report.html_path == html
        assert report.total_statements == 6
        assert report.covered_statements == 5
        assert report.percent == pytest.approx(500 / 6)
        text = html.read_text(encoding="utf-8")
        assert "github.com/acme/widget/pkg/a.go" in text
        assert "14.2-15.10" in text
        assert events.events() == ["coverage.rendered"]

    def test_render_truncated_artifact_fails_without_writing(self, tmp_path: Path):
        artifact = tmp_path / "coverage.out"
        artifact.write_text(SAMPLE_PROFILE[: SAMPLE_PROFILE.rindex(" ")], encoding="utf-8")
        html = tmp_path / "coverage.html"
        with pytest.raises(ArtifactFormatError):
            CoverageReporter(html).render(artifact)
        assert not html.exists()

    def test_render_escapes_file_names(self, tmp_path: Path):
        artifact = tmp_path / "coverage.out"
        artifact.write_text("mode: set\npkg/<b>.go:1.1,2.2 1 1\n", encoding="utf-8")
        html = tmp_path / "coverage.html"
        CoverageReporter(html).render(artifact)
        assert "pkg/&lt;b&gt;.go" in html.read_text(encoding="utf-8")

    def test_summary_lines_end_with_total(self, coverage_file: Path, tmp_path: Path):
        report = CoverageReporter(tmp_path / "coverage.html").render(coverage_file)
        lines = format_summary_lines(report)
        assert len(lines) == 3
        assert lines[-1].startswith("total")
        assert "(5/6)" in lines[-1]
