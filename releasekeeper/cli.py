#!/usr/bin/env python3
"""Release-tag promotion and flake hardening.

Usage:
    releasekeeper snapshot [--dry-run]
    releasekeeper nightly [COMMIT] [YYYYMMDD] [--dry-run]
    releasekeeper stablerelease [--dry-run]
    releasekeeper deflake [--attempts N]
    releasekeeper battletest [--runs N]
    releasekeeper strongertests [--runs N]
    releasekeeper verify [--strict]
    releasekeeper licenses
    releasekeeper version

Every failure is terminal: the process exits nonzero with the error's exit
code (for test failures, the failing iteration's exit code) and nothing is
retried.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import datetime, timezone
import os
from pathlib import Path
import sys
from typing import Callable, Mapping

from releasekeeper.application.use_cases.coverage_report import format_summary_lines
from releasekeeper.application.use_cases.flake_hardening import run_battletest, run_deflake, run_strongertests
from releasekeeper.application.use_cases.license_audit import audit_licenses
from releasekeeper.application.use_cases.verify_worktree import is_ci_env, verify_worktree
from releasekeeper.domain.errors import ReleaseKeeperError
from releasekeeper.infrastructure.config_resolver import load_effective_config
from releasekeeper.infrastructure.event_log import eprint
from releasekeeper.infrastructure.wiring import Components, build_components


def today_yyyymmdd() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d")


def _cmd_snapshot(args: argparse.Namespace, c: Components) -> int:
    tag = c.snapshot_promoter().promote(c.vcs.current_commit(), dry_run=args.dry_run)
    print(tag.name)
    return 0


def _cmd_nightly(args: argparse.Namespace, c: Components) -> int:
    commit = args.commit or c.vcs.current_commit()
    date = args.date or today_yyyymmdd()
    tag = c.snapshot_promoter().promote(commit, date, dry_run=args.dry_run)
    print(tag.name)
    return 0


def _cmd_stablerelease(args: argparse.Namespace, c: Components) -> int:
    tag = c.stable_promoter().promote_stable(c.vcs.current_commit(), dry_run=args.dry_run)
    print(tag.name)
    return 0


def _cmd_deflake(args: argparse.Namespace, c: Components) -> int:
    hardening = c.config.hardening
    attempts = args.attempts if args.attempts is not None else hardening.max_attempts
    result = run_deflake(
        c.flake_hardener(),
        max_attempts=attempts,
        random_delay_pass=hardening.random_delay_pass and not args.no_random_delay,
        random_delay_tag=hardening.random_delay_tag,
    )
    c.events.success(f"No flakes in {result.attempts} randomized race runs")
    return 0


def _coverage_runs(args: argparse.Namespace, c: Components) -> int:
    return args.runs if args.runs is not None else c.config.hardening.coverage_runs


def _cmd_battletest(args: argparse.Namespace, c: Components) -> int:
    _, report = run_battletest(c.flake_hardener(), c.coverage_reporter(), runs=_coverage_runs(args, c))
    for line in format_summary_lines(report):
        print(line)
    return 0


def _cmd_strongertests(args: argparse.Namespace, c: Components) -> int:
    result = run_strongertests(c.flake_hardener(), runs=_coverage_runs(args, c))
    if result.final_coverage is not None:
        c.events.info(f"Coverage profile: {result.final_coverage}")
    return 0


def _cmd_verify(args: argparse.Namespace, c: Components) -> int:
    strict = args.strict or is_ci_env(os.environ)
    verify_worktree(c.runner, c.vcs, commands=c.config.verify.commands, strict=strict, events=c.events)
    return 0


def _cmd_licenses(args: argparse.Namespace, c: Components) -> int:
    audit_licenses(c.runner, command=c.config.licenses.command, allowed=c.config.licenses.allowed, events=c.events)
    return 0


def _cmd_version(args: argparse.Namespace, c: Components) -> int:
    print(c.vcs.describe())
    return 0


COMMANDS: Mapping[str, Callable[[argparse.Namespace, Components], int]] = {
    "snapshot": _cmd_snapshot,
    "nightly": _cmd_nightly,
    "stablerelease": _cmd_stablerelease,
    "deflake": _cmd_deflake,
    "battletest": _cmd_battletest,
    "strongertests": _cmd_strongertests,
    "verify": _cmd_verify,
    "licenses": _cmd_licenses,
    "version": _cmd_version,
}


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="releasekeeper", description="Promote release tags and harden test suites against flakes.")
    ap.add_argument("--config", type=Path, default=None, help="Release config YAML (default: $RELEASEKEEPER_CONFIG or ./releasekeeper.yaml)")
    ap.add_argument("--repo", type=Path, default=Path("."), help="Repository root (default: current directory)")
    ap.add_argument("--quiet", action="store_true", help="Only print results and errors.")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("snapshot", help="Tag the current commit as <base version>-<short commit>.")
    p.add_argument("--dry-run", action="store_true", help="Resolve and check the tag without publishing it.")

    p = sub.add_parser("nightly", help="Tag a commit as <commit>-<YYYYMMDD>.")
    p.add_argument("commit", nargs="?", default=None, help="Commit to tag (default: HEAD)")
    p.add_argument("date", nargs="?", default=None, help="Date as YYYYMMDD (default: today, UTC)")
    p.add_argument("--dry-run", action="store_true", help="Resolve and check the tag without publishing it.")

    p = sub.add_parser("stablerelease", help="Republish the exact tag of the current commit as a stable release.")
    p.add_argument("--dry-run", action="store_true", help="Resolve and check the tag without publishing it.")

    p = sub.add_parser("deflake", help="Run randomized race tests repeatedly; stop at the first failure.")
    p.add_argument("--attempts", type=_positive_int, default=None, help="Iterations (default: hardening.max_attempts)")
    p.add_argument("--no-random-delay", action="store_true", help="Skip the trailing random-test-delay run.")

    p = sub.add_parser("battletest", help="Randomized race runs with coverage, then render the coverage report.")
    p.add_argument("--runs", type=_positive_int, default=None, help="Coverage runs (default: hardening.coverage_runs)")
    p = sub.add_parser("strongertests", help="Randomized race runs with coverage instrumentation.")
    p.add_argument("--runs", type=_positive_int, default=None, help="Coverage runs (default: hardening.coverage_runs)")

    p = sub.add_parser("verify", help="Run the verify toolchain and check for uncommitted changes.")
    p.add_argument("--strict", action="store_true", help="Fail on a dirty working tree (implied when CI is set).")

    sub.add_parser("licenses", help="Check dependency licenses against the allow-list.")
    sub.add_parser("version", help="Print git describe version of the repository.")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    repo_root = args.repo.resolve()
    components: Components | None = None
    try:
        config = load_effective_config(explicit=args.config, repo_root=repo_root)
        if args.command == "deflake" and args.attempts is not None:
            config = replace(config, hardening=replace(config.hardening, max_attempts=args.attempts))
        components = build_components(config, repo_root=repo_root, command=args.command, quiet=args.quiet)
        return COMMANDS[args.command](args, components)
    except ReleaseKeeperError as exc:
        eprint(f"❌ {exc.message} ({exc.reason_code})")
        if components is not None:
            components.events.record("error", exc.to_dict())
        return exc.exit_code


def main_entry() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    main_entry()
