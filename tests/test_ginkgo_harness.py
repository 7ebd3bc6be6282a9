from __future__ import annotations

import os
from pathlib import Path
import sys

import pytest

from releasekeeper.application.use_cases.release_config import HarnessConfig
from releasekeeper.domain.errors import ToolFailureError
from releasekeeper.domain.models import PLAIN, RANDOM_DELAY, RANDOMIZED_RACE, STRONGER
from releasekeeper.infrastructure.ginkgo_harness import GinkgoHarness, build_goflags
from releasekeeper.infrastructure.tool_runner import SubprocessToolRunner

# Stand-in harness: writes the profile when asked for coverage, exits with $HARNESS_EXIT.
FAKE_GINKGO = (
    "import os, sys\n"
    "args = sys.argv[1:]\n"
    "if '-cover' in args:\n"
    "    name = [a for a in args if a.startswith('-coverprofile=')][0].split('=', 1)[1]\n"
    "    open(name, 'w').write('mode: set\\npkg/x.go:1.1,2.2 1 1\\n')\n"
    "sys.exit(int(os.environ.get('HARNESS_EXIT', '0')))\n"
)


def _harness(tmp_path: Path, *, env=None, version=None, **overrides) -> GinkgoHarness:
    config = HarnessConfig(**{"cloud_provider": "aws", "kubebuilder_assets": "/opt/kb", **overrides})
    return GinkgoHarness(config, repo_root=tmp_path, version=version, env=env or {})


@pytest.mark.hardening
class TestHarnessArgv:
    def test_plain_mode_only_adds_seed_and_provider_tag(self, tmp_path: Path):
        argv = _harness(tmp_path).build_argv(PLAIN, seed=7)
        assert argv == ["ginkgo", "-r", "-tags=aws", "--seed=7"]

    def test_randomized_race_mode(self, tmp_path: Path):
        argv = _harness(tmp_path).build_argv(RANDOMIZED_RACE, seed=1)
        assert "--randomizeAllSpecs" in argv
        assert "--randomizeSuites" in argv
        assert "-race" in argv
        assert "-cover" not in argv

    def test_stronger_mode_adds_coverage_flags(self, tmp_path: Path):
        argv = _harness(tmp_path).build_argv(STRONGER, seed=1)
        assert argv[2:6] == [
            "-cover",
            "-coverprofile=coverage.out",
            "-outputdir=.",
            "-coverpkg=./pkg/...",
        ]

    def test_random_delay_mode_joins_build_tags(self, tmp_path: Path):
        argv = _harness(tmp_path).build_argv(RANDOM_DELAY, seed=1)
        assert "-tags=aws,random_test_delay" in argv
        assert "--randomizeAllSpecs" not in argv

    def test_no_tags_flag_without_provider_or_build_tags(self, tmp_path: Path):
        argv = _harness(tmp_path, cloud_provider="").build_argv(PLAIN, seed=3)
        assert argv == ["ginkgo", "-r", "--seed=3"]


@pytest.mark.hardening
class TestHarnessEnvironment:
    def test_env_carries_versions_and_provider(self, tmp_path: Path):
        env = _harness(tmp_path, env={"PATH": "/bin"}, version="v0.5.0-3-gabc").build_env()
        assert env["PATH"] == "/bin"
        assert env["K8S_VERSION"] == "1.22.x"
        assert env["KUBEBUILDER_ASSETS"] == "/opt/kb"
        assert env["CLOUD_PROVIDER"] == "aws"
        assert env["GOFLAGS"] == "-ldflags=-X=github.com/aws/karpenter/pkg/utils/project.Version=v0.5.0-3-gabc"

    def test_kubebuilder_assets_expands_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        env = _harness(tmp_path, kubebuilder_assets="~/.kubebuilder/bin").build_env()
        assert env["KUBEBUILDER_ASSETS"] == os.path.join(str(tmp_path), ".kubebuilder/bin")

    def test_goflags_omitted_without_version(self, tmp_path: Path):
        assert "GOFLAGS" not in _harness(tmp_path).build_env()
        assert build_goflags(version="v1", version_symbol="") == ""


@pytest.mark.hardening
class TestHarnessRun:
    def _runnable(self, tmp_path: Path, exit_code: int = 0) -> GinkgoHarness:
        return _harness(
            tmp_path,
            env={"HARNESS_EXIT": str(exit_code)},
            command=(sys.executable, "-c", FAKE_GINKGO),
        )

    def test_coverage_run_reports_artifact(self, tmp_path: Path):
        harness = self._runnable(tmp_path)
        outcome = harness.run(STRONGER, seed=11)
        assert outcome.passed
        assert outcome.coverage_artifact == harness.coverage_artifact
        assert outcome.coverage_artifact.read_text(encoding="utf-8").startswith("mode: set")

    def test_exit_code_is_propagated(self, tmp_path: Path):
        outcome = self._runnable(tmp_path, exit_code=3).run(RANDOMIZED_RACE, seed=11)
        assert outcome.exit_code == 3
        assert not outcome.passed
        assert outcome.coverage_artifact is None

    def test_stale_artifact_is_not_reported(self, tmp_path: Path):
        harness = _harness(tmp_path, env={}, command=(sys.executable, "-c", "pass"))
        harness.coverage_artifact.write_text("mode: set\n", encoding="utf-8")
        outcome = harness.run(STRONGER, seed=11)
        assert outcome.coverage_artifact is None
        assert not harness.coverage_artifact.exists()

    def test_missing_executable_is_tool_failure(self, tmp_path: Path):
        harness = _harness(tmp_path, command=(str(tmp_path / "no-such-ginkgo"),))
        with pytest.raises(ToolFailureError) as excinfo:
            harness.run(PLAIN, seed=1)
        assert excinfo.value.exit_code == 127


class TestSubprocessToolRunner:
    def test_captures_output_and_exit_code(self, tmp_path: Path):
        runner = SubprocessToolRunner(cwd=tmp_path, env={"GREETING": "hi"})
        result = runner.run(
            [sys.executable, "-c", "import os, sys; print(os.environ['GREETING']); sys.exit(2)"],
            capture=True,
        )
        assert result.exit_code == 2
        assert not result.ok
        assert result.stdout.strip() == "hi"

    def test_missing_command_is_tool_failure(self, tmp_path: Path):
        with pytest.raises(ToolFailureError) as excinfo:
            SubprocessToolRunner(cwd=tmp_path).run([str(tmp_path / "nope")])
        assert excinfo.value.exit_code == 127
