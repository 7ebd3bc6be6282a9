"""Deterministic state machine for the fail-fast hardening loop.

Idle -> Running(1) -> Running(i+1) | Failed(i) | Succeeded(N)

Transitions are pure: given the current state and one iteration outcome they
return the next state, so the loop can be exercised with scripted outcomes.
"""

from __future__ import annotations

from releasekeeper.domain.errors import ConfigError
from releasekeeper.domain.models import Failed, HardenState, Idle, Running, Succeeded


def validate_max_attempts(max_attempts: int) -> int:
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ConfigError(f"max attempts must be a positive integer, got {max_attempts!r}")
    return max_attempts


def is_terminal(state: HardenState) -> bool:
    return isinstance(state, (Failed, Succeeded))


def start(state: HardenState, *, max_attempts: int) -> HardenState:
    validate_max_attempts(max_attempts)
    if not isinstance(state, Idle):
        raise ValueError(f"cannot start hardening from {state!r}")
    return Running(1)


def advance(state: HardenState, *, passed: bool, exit_code: int, max_attempts: int) -> HardenState:
    """Apply one iteration outcome to a ``Running`` state."""

    validate_max_attempts(max_attempts)
    if not isinstance(state, Running):
        raise ValueError(f"cannot advance hardening from {state!r}")
    if not passed:
        return Failed(iteration=state.iteration, exit_code=exit_code if exit_code != 0 else 1)
    if state.iteration >= max_attempts:
        return Succeeded(attempts=state.iteration)
    return Running(state.iteration + 1)
