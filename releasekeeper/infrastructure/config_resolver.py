"""Resolve which release config file applies to an invocation.

Precedence: explicit ``--config`` > ``RELEASEKEEPER_CONFIG`` > repo-local
``releasekeeper.yaml`` > built-in defaults. An explicitly named file that does
not exist is an error, never a silent fallback.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from releasekeeper.application.use_cases.release_config import (
    CONFIG_FILE_NAME,
    ReleaseConfig,
    load_release_config,
)
from releasekeeper.domain.errors import ConfigError

CONFIG_ENV_VAR = "RELEASEKEEPER_CONFIG"


def resolve_config_path(*, explicit: Path | None, repo_root: Path, env: Mapping[str, str]) -> Path | None:
    if explicit is not None:
        candidate = explicit if explicit.is_absolute() else repo_root / explicit
        if not candidate.exists():
            raise ConfigError(f"release config missing: {candidate}")
        return candidate

    raw = str(env.get(CONFIG_ENV_VAR, "")).strip()
    if raw:
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = repo_root / candidate
        if not candidate.exists():
            raise ConfigError(f"{CONFIG_ENV_VAR} points to a missing file: {candidate}")
        return candidate

    repo_local = repo_root / CONFIG_FILE_NAME
    if repo_local.exists():
        return repo_local
    return None


def load_effective_config(
    *,
    explicit: Path | None,
    repo_root: Path,
    env: Mapping[str, str] | None = None,
) -> ReleaseConfig:
    env = os.environ if env is None else env
    path = resolve_config_path(explicit=explicit, repo_root=repo_root, env=env)
    return load_release_config(path).with_environment(env)
