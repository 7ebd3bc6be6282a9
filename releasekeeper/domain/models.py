from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Union

Channel = Literal["snapshot", "nightly", "stable"]
IterationOutcome = Literal["pass", "fail"]

CHANNELS: tuple[str, ...] = ("snapshot", "nightly", "stable")


def same_commit(left: str, right: str) -> bool:
    """Prefix-tolerant commit comparison (short hash vs full hash)."""

    a = left.strip().lower()
    b = right.strip().lower()
    if not a or not b:
        return False
    return a.startswith(b) or b.startswith(a)


@dataclass(frozen=True)
class Tag:
    name: str
    commit: str
    channel: Channel
    # A re-run that finds the tag already published returns an equal Tag.
    created_at: datetime = field(compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "commit": self.commit,
            "channel": self.channel,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class PromotionRequest:
    """Ephemeral input for one promotion.

    ``source_ref`` is the ``YYYYMMDD`` date for nightly and the exact tag for
    stable; snapshot ignores it.
    """

    channel: Channel
    commit: str
    source_ref: str | None = None


@dataclass(frozen=True)
class HarnessMode:
    randomize: bool = False
    race: bool = False
    coverage: bool = False
    build_tags: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        parts = [
            name
            for name, enabled in (("randomized", self.randomize), ("race", self.race), ("coverage", self.coverage))
            if enabled
        ]
        parts.extend(f"tag:{tag}" for tag in self.build_tags)
        return "+".join(parts) or "plain"


PLAIN = HarnessMode()
RANDOMIZED_RACE = HarnessMode(randomize=True, race=True)
STRONGER = HarnessMode(randomize=True, race=True, coverage=True)
RANDOM_DELAY = HarnessMode(race=True, build_tags=("random_test_delay",))


@dataclass(frozen=True)
class HarnessOutcome:
    exit_code: int
    coverage_artifact: Path | None = None

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class TestIteration:
    __test__ = False  # not a pytest test class

    index: int
    seed: int
    race_detection: bool
    outcome: IterationOutcome
    exit_code: int
    coverage_artifact: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "seed": self.seed,
            "race_detection": self.race_detection,
            "outcome": self.outcome,
            "exit_code": self.exit_code,
            "coverage_artifact": str(self.coverage_artifact) if self.coverage_artifact else None,
        }


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    iteration: int


@dataclass(frozen=True)
class Failed:
    iteration: int
    exit_code: int = 1


@dataclass(frozen=True)
class Succeeded:
    attempts: int


HardenState = Union[Idle, Running, Failed, Succeeded]


@dataclass(frozen=True)
class HardenResult:
    state: HardenState
    attempts: int
    iterations: tuple[TestIteration, ...] = field(default_factory=tuple)
    final_coverage: Path | None = None

    @property
    def succeeded(self) -> bool:
        return isinstance(self.state, Succeeded)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": type(self.state).__name__,
            "attempts": self.attempts,
            "final_coverage": str(self.final_coverage) if self.final_coverage else None,
            "iterations": [item.to_dict() for item in self.iterations],
        }
