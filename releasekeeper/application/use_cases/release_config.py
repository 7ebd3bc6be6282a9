"""Release configuration loader.

Settings for promotion, hardening, the test harness and the verification gates
come from one YAML document (``releasekeeper.yaml``). Missing sections fall
back to defaults. A present but invalid document fails closed with
``ConfigError``; it is never silently replaced by defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from releasekeeper.domain.errors import ConfigError
from releasekeeper.domain.hardening_state_machine import validate_max_attempts
from releasekeeper.domain.license_policy import DEFAULT_ALLOWED_LICENSES

CONFIG_FILE_NAME = "releasekeeper.yaml"


@dataclass(frozen=True)
class PromotionConfig:
    base_version: str = ""
    short_commit_length: int = 7
    remote: str = "origin"
    annotated: bool = True
    message_template: str = "{channel} release {name}"
    base_tag_match: str = "v[0-9]*"
    base_tag_exclude: str = "*-*"


@dataclass(frozen=True)
class HardeningConfig:
    max_attempts: int = 5
    coverage_runs: int = 1
    random_delay_pass: bool = True
    random_delay_tag: str = "random_test_delay"
    cumulative_coverage: bool = False
    coverage_html: str = "coverage.html"


@dataclass(frozen=True)
class HarnessConfig:
    command: tuple[str, ...] = ("ginkgo", "-r")
    cover_packages: str = "./pkg/..."
    coverage_profile: str = "coverage.out"
    output_dir: str = "."
    cloud_provider: str = ""
    k8s_version: str = "1.22.x"
    kubebuilder_assets: str = "~/.kubebuilder/bin"
    version_symbol: str = "github.com/aws/karpenter/pkg/utils/project.Version"


@dataclass(frozen=True)
class VerifyConfig:
    commands: tuple[tuple[str, ...], ...] = (
        ("go", "mod", "tidy"),
        ("go", "mod", "download"),
        ("golangci-lint", "run"),
    )


@dataclass(frozen=True)
class LicenseConfig:
    command: tuple[str, ...] = ("go-licenses", "csv", "./...")
    allowed: tuple[str, ...] = DEFAULT_ALLOWED_LICENSES


@dataclass(frozen=True)
class ReleaseConfig:
    promotion: PromotionConfig = field(default_factory=PromotionConfig)
    hardening: HardeningConfig = field(default_factory=HardeningConfig)
    harness: HarnessConfig = field(default_factory=HarnessConfig)
    verify: VerifyConfig = field(default_factory=VerifyConfig)
    licenses: LicenseConfig = field(default_factory=LicenseConfig)
    event_log: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReleaseConfig":
        promotion_data = _section(data, "promotion")
        promotion = PromotionConfig(
            base_version=_str(promotion_data, "base_version", ""),
            short_commit_length=_int(promotion_data, "short_commit_length", 7, minimum=1),
            remote=_str(promotion_data, "remote", "origin") or "origin",
            annotated=_bool(promotion_data, "annotated", True),
            message_template=_str(promotion_data, "message_template", "{channel} release {name}"),
            base_tag_match=_str(promotion_data, "base_tag_match", "v[0-9]*"),
            base_tag_exclude=_str(promotion_data, "base_tag_exclude", "*-*"),
        )

        hardening_data = _section(data, "hardening")
        max_attempts = _int(hardening_data, "max_attempts", 5, minimum=1)
        hardening = HardeningConfig(
            max_attempts=validate_max_attempts(max_attempts),
            coverage_runs=_int(hardening_data, "coverage_runs", 1, minimum=1),
            random_delay_pass=_bool(hardening_data, "random_delay_pass", True),
            random_delay_tag=_str(hardening_data, "random_delay_tag", "random_test_delay"),
            cumulative_coverage=_bool(hardening_data, "cumulative_coverage", False),
            coverage_html=_str(hardening_data, "coverage_html", "coverage.html"),
        )

        defaults = HarnessConfig()
        harness_data = _section(data, "harness")
        harness = HarnessConfig(
            command=_argv(harness_data, "command", defaults.command),
            cover_packages=_str(harness_data, "cover_packages", defaults.cover_packages),
            coverage_profile=_str(harness_data, "coverage_profile", defaults.coverage_profile),
            output_dir=_str(harness_data, "output_dir", defaults.output_dir),
            cloud_provider=_str(harness_data, "cloud_provider", defaults.cloud_provider),
            k8s_version=_str(harness_data, "k8s_version", defaults.k8s_version),
            kubebuilder_assets=_str(harness_data, "kubebuilder_assets", defaults.kubebuilder_assets),
            version_symbol=_str(harness_data, "version_symbol", defaults.version_symbol),
        )

        verify_data = _section(data, "verify")
        verify_commands = verify_data.get("commands", None)
        if verify_commands is None:
            verify = VerifyConfig()
        else:
            if not isinstance(verify_commands, list):
                raise ConfigError("verify.commands must be a list of argv lists")
            commands = tuple(_argv({"verify.commands": item}, "verify.commands", ()) for item in verify_commands)
            if not all(commands):
                raise ConfigError("verify.commands entries must not be empty")
            verify = VerifyConfig(commands=commands)

        license_data = _section(data, "licenses")
        allowed = license_data.get("allowed", None)
        if allowed is not None and (
            not isinstance(allowed, list) or not all(isinstance(item, str) and item.strip() for item in allowed)
        ):
            raise ConfigError("licenses.allowed must be a list of non-empty strings")
        licenses = LicenseConfig(
            command=_argv(license_data, "command", LicenseConfig().command),
            allowed=tuple(allowed) if allowed is not None else DEFAULT_ALLOWED_LICENSES,
        )

        return cls(
            promotion=promotion,
            hardening=hardening,
            harness=harness,
            verify=verify,
            licenses=licenses,
            event_log=_str(data, "event_log", ""),
        )

    def with_environment(self, env: Mapping[str, str]) -> "ReleaseConfig":
        """Apply harness pass-through variables (CLOUD_PROVIDER, K8S_VERSION, KUBEBUILDER_ASSETS)."""

        overrides: dict[str, str] = {}
        for key, attr in (
            ("CLOUD_PROVIDER", "cloud_provider"),
            ("K8S_VERSION", "k8s_version"),
            ("KUBEBUILDER_ASSETS", "kubebuilder_assets"),
        ):
            value = str(env.get(key, "")).strip()
            if value:
                overrides[attr] = value
        event_log = str(env.get("RELEASEKEEPER_EVENT_LOG", "")).strip() or self.event_log
        return replace(self, harness=replace(self.harness, **overrides), event_log=event_log)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key, None)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section '{key}' must be a mapping")
    return value


def _str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigError(f"config key '{key}' must be a string")
    return str(value).strip()


def _int(data: Mapping[str, Any], key: str, default: int, *, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"config key '{key}' must be an integer")
    if value < minimum:
        raise ConfigError(f"config key '{key}' must be >= {minimum}, got {value}")
    return value


def _bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"config key '{key}' must be true or false")
    return value


def _argv(data: Mapping[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = data.get(key, None)
    if value is None:
        return default
    if isinstance(value, str):
        parts = value.split()
    elif isinstance(value, list) and all(isinstance(item, str) for item in value):
        parts = [item for item in value]
    else:
        raise ConfigError(f"config key '{key}' must be a command string or a list of strings")
    if not parts:
        raise ConfigError(f"config key '{key}' must not be empty")
    return tuple(parts)


def load_release_config(path: Path | None) -> ReleaseConfig:
    """Load configuration from ``path``; ``None`` means built-in defaults."""

    if path is None:
        return ReleaseConfig()
    if not path.exists():
        raise ConfigError(f"release config missing: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"release config not parseable: {path}: {exc}") from exc
    if data is None:
        return ReleaseConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"release config must be a mapping at top level: {path}")
    return ReleaseConfig.from_dict(data)
