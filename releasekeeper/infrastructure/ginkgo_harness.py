"""ginkgo CLI adapter for the TestHarness port.

Harness output streams straight to the console; only the exit code and the
coverage profile path come back. Timeouts are left to ginkgo itself.
"""

from __future__ import annotations

import os
from pathlib import Path
import subprocess
from typing import Mapping

from releasekeeper.application.use_cases.release_config import HarnessConfig
from releasekeeper.domain.errors import ToolFailureError
from releasekeeper.domain.models import HarnessMode, HarnessOutcome


def build_goflags(*, version: str | None, version_symbol: str) -> str:
    """GOFLAGS value injecting the describe-version into the binary under test."""

    if not version or not version_symbol:
        return ""
    return f"-ldflags=-X={version_symbol}={version}"


class GinkgoHarness:
    def __init__(
        self,
        config: HarnessConfig,
        *,
        repo_root: Path,
        version: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._repo_root = repo_root
        self._version = version
        self._base_env = dict(os.environ if env is None else env)

    @property
    def coverage_artifact(self) -> Path:
        return self._repo_root / self._config.output_dir / self._config.coverage_profile

    def build_argv(self, mode: HarnessMode, *, seed: int) -> list[str]:
        argv = list(self._config.command)
        if mode.coverage:
            argv += [
                "-cover",
                f"-coverprofile={self._config.coverage_profile}",
                f"-outputdir={self._config.output_dir}",
                f"-coverpkg={self._config.cover_packages}",
            ]
        if mode.randomize:
            argv += ["--randomizeAllSpecs", "--randomizeSuites"]
        if mode.race:
            argv.append("-race")
        tags = [t for t in (self._config.cloud_provider, *mode.build_tags) if t]
        if tags:
            argv.append(f"-tags={','.join(tags)}")
        argv.append(f"--seed={seed}")
        return argv

    def build_env(self) -> dict[str, str]:
        env = dict(self._base_env)
        env["K8S_VERSION"] = self._config.k8s_version
        env["KUBEBUILDER_ASSETS"] = os.path.expanduser(self._config.kubebuilder_assets)
        if self._config.cloud_provider:
            env["CLOUD_PROVIDER"] = self._config.cloud_provider
        goflags = build_goflags(version=self._version, version_symbol=self._config.version_symbol)
        if goflags:
            env["GOFLAGS"] = goflags
        return env

    def run(self, mode: HarnessMode, *, seed: int) -> HarnessOutcome:
        artifact = self.coverage_artifact
        if mode.coverage:
            # A leftover profile from an earlier run must not pass for this one.
            artifact.unlink(missing_ok=True)
        argv = self.build_argv(mode, seed=seed)
        try:
            completed = subprocess.run(argv, cwd=str(self._repo_root), env=self.build_env(), check=False)
        except FileNotFoundError:
            raise ToolFailureError(argv, 127, "test harness executable not found") from None
        produced = artifact if mode.coverage and artifact.exists() else None
        return HarnessOutcome(exit_code=completed.returncode, coverage_artifact=produced)
