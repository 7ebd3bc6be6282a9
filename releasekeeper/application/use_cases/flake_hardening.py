"""Fail-fast flake hardening.

The harness is run up to ``max_attempts`` times, strictly one after another,
with randomized spec order and race detection. The first failing iteration
stops the loop: a flake seen once is rejected, not averaged away.

Coverage: by default only the artifact of the last successful iteration is
kept. With ``cumulative_coverage`` the artifacts of every passing iteration
are merged into one profile instead.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import random
from typing import Callable

from releasekeeper.application.ports.gateways import EventSink, NullEventSink, TestHarness
from releasekeeper.application.use_cases.coverage_report import CoverageReport, CoverageReporter
from releasekeeper.domain.coverage_profile import (
    CoverageProfile,
    format_coverage_profile,
    load_coverage_profile,
    merge_profiles,
)
from releasekeeper.domain.errors import ArtifactFormatError, TestIterationFailure
from releasekeeper.domain.hardening_state_machine import advance, start
from releasekeeper.domain.models import (
    RANDOMIZED_RACE,
    STRONGER,
    Failed,
    HardenResult,
    HarnessMode,
    Idle,
    Running,
    Succeeded,
    TestIteration,
)

_SEED_RANDOM = random.SystemRandom()


def random_seed() -> int:
    return _SEED_RANDOM.randrange(1, 2**31)


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def merged_artifact_path(artifact: Path) -> Path:
    return artifact.with_name(f"{artifact.stem}.merged{artifact.suffix or '.out'}")


class FlakeHardener:
    def __init__(
        self,
        harness: TestHarness,
        *,
        events: EventSink | None = None,
        seed_source: Callable[[], int] = random_seed,
        cumulative_coverage: bool = False,
        write_text: Callable[[Path, str], None] = _write_text,
    ) -> None:
        self._harness = harness
        self._events = events or NullEventSink()
        self._seed_source = seed_source
        self._cumulative = cumulative_coverage
        self._write_text = write_text

    def run_iteration(self, index: int, mode: HarnessMode) -> TestIteration:
        seed = self._seed_source()
        self._events.info(f"Iteration {index} ({mode.label}, seed {seed})")
        outcome = self._harness.run(mode, seed=seed)
        iteration = TestIteration(
            index=index,
            seed=seed,
            race_detection=mode.race,
            outcome="pass" if outcome.passed else "fail",
            exit_code=outcome.exit_code,
            coverage_artifact=outcome.coverage_artifact,
        )
        event = "iteration.passed" if outcome.passed else "iteration.failed"
        self._events.record(event, {"mode": mode.label, **iteration.to_dict()})
        return iteration

    def harden(self, max_attempts: int, mode: HarnessMode) -> HardenResult:
        state = start(Idle(), max_attempts=max_attempts)
        iterations: list[TestIteration] = []
        final_coverage: Path | None = None
        accumulated: CoverageProfile | None = None

        while isinstance(state, Running):
            iteration = self.run_iteration(state.iteration, mode)
            iterations.append(iteration)
            state = advance(
                state,
                passed=iteration.outcome == "pass",
                exit_code=iteration.exit_code,
                max_attempts=max_attempts,
            )
            if isinstance(state, Failed):
                result = HardenResult(
                    state=state,
                    attempts=iteration.index,
                    iterations=tuple(iterations),
                    final_coverage=final_coverage,
                )
                self._events.error(
                    f"Iteration {iteration.index}/{max_attempts} failed (exit {iteration.exit_code}, seed {iteration.seed})"
                )
                raise TestIterationFailure(iteration.index, iteration.exit_code, result)

            self._events.success(f"Iteration {iteration.index}/{max_attempts} passed")
            if mode.coverage and iteration.coverage_artifact is not None:
                if self._cumulative:
                    accumulated, final_coverage = self._accumulate(accumulated, iteration.coverage_artifact)
                else:
                    final_coverage = iteration.coverage_artifact

        if not isinstance(state, Succeeded):
            raise ValueError(f"hardening loop ended in non-terminal state {state!r}")
        result = HardenResult(
            state=state,
            attempts=state.attempts,
            iterations=tuple(iterations),
            final_coverage=final_coverage,
        )
        self._events.record("harden.succeeded", {"mode": mode.label, **result.to_dict()})
        return result

    def _accumulate(self, accumulated: CoverageProfile | None, artifact: Path) -> tuple[CoverageProfile, Path]:
        profile = load_coverage_profile(artifact)
        merged = profile if accumulated is None else merge_profiles(accumulated, profile)
        target = merged_artifact_path(artifact)
        self._write_text(target, format_coverage_profile(merged))
        return merged, target


def run_deflake(
    hardener: FlakeHardener,
    *,
    max_attempts: int,
    random_delay_pass: bool = True,
    random_delay_tag: str = "random_test_delay",
) -> HardenResult:
    """Repeated randomized+race loop, then one race run with injected test delays."""

    result = hardener.harden(max_attempts, RANDOMIZED_RACE)
    if not random_delay_pass:
        return result

    delay_mode = HarnessMode(race=True, build_tags=(random_delay_tag,))
    iteration = hardener.run_iteration(max_attempts + 1, delay_mode)
    if iteration.outcome == "fail":
        failed = replace(
            result,
            state=Failed(iteration=iteration.index, exit_code=iteration.exit_code or 1),
            iterations=(*result.iterations, iteration),
        )
        raise TestIterationFailure(iteration.index, iteration.exit_code, failed)
    return result


def run_strongertests(hardener: FlakeHardener, *, runs: int = 1) -> HardenResult:
    """Randomized race runs with coverage; merged across runs when the hardener accumulates."""

    return hardener.harden(runs, STRONGER)


def run_battletest(
    hardener: FlakeHardener, reporter: CoverageReporter, *, runs: int = 1
) -> tuple[HardenResult, CoverageReport]:
    result = run_strongertests(hardener, runs=runs)
    if result.final_coverage is None:
        raise ArtifactFormatError("harness reported success but produced no coverage artifact")
    return result, reporter.render(result.final_coverage)
