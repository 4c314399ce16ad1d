"""
matching_service.py: size-bucket formation, iteration controller and engine entry point

Usage:
  python matching_service.py --participants pool.csv --out teams.csv \
      --unmatched-out unmatched.csv --log-level detailed

Flags:
  --flexible-size          allow members whose preferred size is within one of the team size
  --relaxed-availability   accept candidates compatible with at least one member
  --single-pass            run one formation pass instead of the iterative controller
  --diagnostics PATH       write the unmatched-participant diagnostics as CSV
"""

import argparse
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models import (
    VALID_TEAM_SIZES,
    EducationLevel,
    InputError,
    InvariantViolation,
    IterationRecord,
    MatchingResult,
    Participant,
    Team,
    TeamPreference,
    availability_compatible,
)
from result_aggregator import generate_statistics
from team_builder import (
    CATEGORY_MIXED,
    CATEGORY_PG_ONLY,
    CATEGORY_UG_ONLY,
    MatchingProfile,
    build_one_team,
    make_profile,
    sort_for_anchor,
)
from utils import percentage, read_csv_norm

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger("matching_service")

LOG_LEVELS = {"minimal": 0, "detailed": 1, "verbose": 2}
CATEGORY_IMPOSSIBLE = "impossible"
FORMATION_CATEGORIES = (CATEGORY_UG_ONLY, CATEGORY_PG_ONLY, CATEGORY_MIXED)
SMALL_REMAINDER = 4
ENGINE_LOGGERS = ("matching_service", "team_builder", "scoring", "constraints")


@dataclass
class MatchingOptions:
    strict_team_size_matching: bool = True
    strict_availability_matching: bool = True
    use_iterative_matching: bool = True
    max_iterations: Optional[int] = None
    min_participants_per_iteration: int = 2
    max_consecutive_failures: int = 8
    min_team_compatibility: Optional[float] = None
    deadline_seconds: Optional[float] = None
    log_level: str = "detailed"

    def validate(self):
        if self.log_level not in LOG_LEVELS:
            raise InputError(f"log_level must be one of {sorted(LOG_LEVELS)}, got {self.log_level!r}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise InputError("max_iterations must be at least 1")
        if self.min_participants_per_iteration < 0:
            raise InputError("min_participants_per_iteration must not be negative")
        if self.max_consecutive_failures < 1:
            raise InputError("max_consecutive_failures must be at least 1")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise InputError("deadline_seconds must be positive")

    def profile(self) -> MatchingProfile:
        return make_profile(
            strict_team_size=self.strict_team_size_matching,
            strict_availability=self.strict_availability_matching,
            min_team_compatibility=self.min_team_compatibility,
        )


def _verbosity(log_level: str) -> int:
    return LOG_LEVELS.get(log_level, 1)


@contextmanager
def engine_log_level(log_level: str):
    """Lower the engine loggers to DEBUG while a verbose run is in progress."""
    if _verbosity(log_level) < 2:
        yield
        return
    loggers = [logging.getLogger(name) for name in ENGINE_LOGGERS]
    previous = [lg.level for lg in loggers]
    for lg in loggers:
        lg.setLevel(logging.DEBUG)
    try:
        yield
    finally:
        for lg, level in zip(loggers, previous):
            lg.setLevel(level)


# -------- reading participants --------

def read_participants(csv_path: str) -> List[Participant]:
    rows = read_csv_norm(csv_path)
    out = []
    for i, r in enumerate(rows, start=2):
        try:
            out.append(Participant.from_record(r))
        except InputError as exc:
            raise InputError(f"{csv_path} row {i}: {exc}") from exc
    return out


def validate_participants(participants: Iterable[Participant]) -> List[Participant]:
    if participants is None:
        raise InputError("participants must be a list")
    pool = list(participants)
    if not pool:
        raise InputError("participant pool is empty")
    seen = set()
    for p in pool:
        if not isinstance(p, Participant):
            raise InputError(f"expected Participant, got {type(p).__name__}")
        if p.id in seen:
            raise InputError(f"duplicate participant id {p.id!r}")
        seen.add(p.id)
    return pool


# -------- size-bucket formation --------

def partition_by_team_preference(pool: Sequence[Participant]) -> Dict[str, List[Participant]]:
    groups: Dict[str, List[Participant]] = {
        CATEGORY_UG_ONLY: [],
        CATEGORY_PG_ONLY: [],
        CATEGORY_MIXED: [],
        CATEGORY_IMPOSSIBLE: [],
    }
    for p in pool:
        level = p.education_level
        if p.team_preference is TeamPreference.EITHER:
            groups[CATEGORY_MIXED].append(p)
        elif p.team_preference is TeamPreference.UG_ONLY:
            groups[CATEGORY_UG_ONLY if level is EducationLevel.UG else CATEGORY_IMPOSSIBLE].append(p)
        else:
            groups[CATEGORY_PG_ONLY if level is EducationLevel.PG else CATEGORY_IMPOSSIBLE].append(p)
    return groups


def _drain(pool: List[Participant], size: int, profile: MatchingProfile, category: str,
           teams: List[Team], verbosity: int) -> List[Participant]:
    while True:
        team = build_one_team(pool, size, profile, category, team_id=f"{category}-{len(teams) + 1}")
        if team is None:
            return pool
        teams.append(team)
        if verbosity >= 2:
            logger.info("formed %s team of %d: %s (score %.2f)",
                        category, size, ", ".join(team.member_ids), team.compatibility_score)
        taken = set(team.member_ids)
        pool = [p for p in pool if p.id not in taken]


def form_teams_by_size(pool: Sequence[Participant], profile: MatchingProfile, category: str = CATEGORY_MIXED,
                       log_level: str = "detailed") -> Tuple[List[Team], List[Participant]]:
    """
    Form as many teams as possible from one composition category.

    The pool is sorted once into anchor order, split by preferred team size and each
    bucket is drained in `profile.bucket_order`. Returns the teams and the leftovers
    in anchor order.
    """
    verbosity = _verbosity(log_level)
    ordered = sort_for_anchor(pool)
    teams: List[Team] = []

    for size in profile.bucket_order:
        bucket = [p for p in ordered if p.preferred_team_size == size]
        if verbosity >= 2:
            logger.info("%s bucket %d: %d participants", category, size, len(bucket))
        _drain(bucket, size, profile, category, teams, verbosity)

    matched = {pid for t in teams for pid in t.member_ids}
    leftovers = [p for p in ordered if p.id not in matched]

    if profile.flexible_sweep and leftovers:
        for size in profile.bucket_order:
            near = [p for p in leftovers if abs(p.preferred_team_size - size) <= 1]
            before = len(teams)
            _drain(near, size, profile, category, teams, verbosity)
            if len(teams) > before:
                matched = {pid for t in teams for pid in t.member_ids}
                leftovers = [p for p in leftovers if p.id not in matched]

    return teams, leftovers


def run_matching_pass(participants: Sequence[Participant], profile: MatchingProfile,
                      log_level: str = "detailed") -> Tuple[List[Team], List[Participant]]:
    groups = partition_by_team_preference(participants)
    if groups[CATEGORY_IMPOSSIBLE] and _verbosity(log_level) >= 1:
        logger.info("%d participants hold contradictory preferences: %s",
                    len(groups[CATEGORY_IMPOSSIBLE]), ", ".join(p.id for p in groups[CATEGORY_IMPOSSIBLE]))

    teams: List[Team] = []
    for category in FORMATION_CATEGORIES:
        formed, _ = form_teams_by_size(groups[category], profile, category, log_level)
        teams.extend(formed)

    matched = {pid for t in teams for pid in t.member_ids}
    unmatched = [p for p in participants if p.id not in matched]
    return teams, unmatched


# -------- iteration controller --------

def _stop_reason(remaining: int, iteration: int, failures: int, max_iterations: int,
                 min_participants: int, max_failures: int, deadline_at: Optional[float]) -> Optional[str]:
    if remaining == 0:
        return "converged"
    if remaining < min_participants:
        return "below_minimum"
    if iteration >= max_iterations:
        return "max_iterations"
    # only a remainder smaller than a full team is given up on
    if failures >= max_failures and remaining < SMALL_REMAINDER:
        return "stagnated"
    if deadline_at is not None and time.monotonic() >= deadline_at:
        return "deadline"
    return None


def run_iterative(participants: Sequence[Participant], profile: MatchingProfile,
                  max_iterations: Optional[int] = None, min_participants_per_iteration: int = 2,
                  max_consecutive_failures: int = 8, deadline_seconds: Optional[float] = None,
                  log_level: str = "detailed") -> MatchingResult:
    pool = list(participants)
    limit = max_iterations if max_iterations is not None else max(10, len(pool))
    deadline_at = time.monotonic() + deadline_seconds if deadline_seconds else None
    verbosity = _verbosity(log_level)

    remaining = pool
    all_teams: List[Team] = []
    history: List[IterationRecord] = []
    iteration = 0
    failures = 0

    while True:
        reason = _stop_reason(len(remaining), iteration, failures, limit,
                              min_participants_per_iteration, max_consecutive_failures, deadline_at)
        if reason:
            break
        iteration += 1
        processed = len(remaining)
        teams, unmatched = run_matching_pass(remaining, profile, log_level)
        stamped = [t.with_id(f"team-{len(all_teams) + i + 1}-iter{iteration}") for i, t in enumerate(teams)]
        matched = processed - len(unmatched)

        history.append(IterationRecord(
            iteration=iteration,
            participants_processed=processed,
            teams_formed=len(stamped),
            participants_matched=matched,
            remaining_unmatched=len(unmatched),
            efficiency=percentage(matched, processed),
        ))
        if verbosity >= 1:
            logger.info("iteration %d: %d processed, %d teams, %d matched, %d remaining",
                        iteration, processed, len(stamped), matched, len(unmatched))

        all_teams.extend(stamped)
        remaining = unmatched
        failures = 0 if stamped else failures + 1

    if reason == "deadline":
        logger.warning("deadline reached after %d iterations; returning partial result", iteration)
    elif verbosity >= 1:
        logger.info("iterative matching stopped (%s) after %d iterations", reason, iteration)

    return MatchingResult(
        teams=all_teams,
        unmatched=list(remaining),
        statistics=generate_statistics(all_teams, remaining),
        iterations=iteration,
        iteration_history=history,
        stop_reason=reason,
    )


# -------- invariants --------

def verify_result(pool: Sequence[Participant], result: MatchingResult, options: MatchingOptions):
    input_ids = [p.id for p in pool]
    output_ids = [pid for t in result.teams for pid in t.member_ids] + [p.id for p in result.unmatched]
    if len(output_ids) != len(set(output_ids)):
        raise InvariantViolation("a participant was placed more than once")
    if set(output_ids) != set(input_ids):
        raise InvariantViolation("result does not partition the input participants")

    for team in result.teams:
        if team.team_size not in VALID_TEAM_SIZES:
            raise InvariantViolation(f"{team.id}: invalid team size {team.team_size}")
        levels = {m.education_level for m in team.members}
        for m in team.members:
            if options.strict_team_size_matching and m.preferred_team_size != team.team_size:
                raise InvariantViolation(f"{team.id}: {m.id} prefers size {m.preferred_team_size}")
            if m.team_preference is TeamPreference.UG_ONLY and levels != {EducationLevel.UG}:
                raise InvariantViolation(f"{team.id}: {m.id} asked for undergraduates only")
            if m.team_preference is TeamPreference.PG_ONLY and levels != {EducationLevel.PG}:
                raise InvariantViolation(f"{team.id}: {m.id} asked for postgraduates only")
        if options.strict_availability_matching:
            for a, b in combinations(team.members, 2):
                if not availability_compatible(a.availability, b.availability):
                    raise InvariantViolation(f"{team.id}: {a.id} and {b.id} have incompatible availability")


# -------- entry point --------

def match_participants(participants: Iterable[Participant], options: Optional[MatchingOptions] = None) -> MatchingResult:
    options = options or MatchingOptions()
    options.validate()
    pool = validate_participants(participants)
    profile = options.profile()

    with engine_log_level(options.log_level):
        if options.use_iterative_matching:
            result = run_iterative(
                pool,
                profile,
                max_iterations=options.max_iterations,
                min_participants_per_iteration=options.min_participants_per_iteration,
                max_consecutive_failures=options.max_consecutive_failures,
                deadline_seconds=options.deadline_seconds,
                log_level=options.log_level,
            )
        else:
            teams, unmatched = run_matching_pass(pool, profile, options.log_level)
            teams = [t.with_id(f"team-{i}-iter1") for i, t in enumerate(teams, start=1)]
            result = MatchingResult(teams=teams, unmatched=unmatched,
                                    statistics=generate_statistics(teams, unmatched))

    verify_result(pool, result, options)
    stats = result.statistics
    logger.info("matched %d of %d participants into %d teams (%.2f%%) using %s profile",
                result.matched_count, stats.total_participants, stats.teams_formed,
                stats.matching_efficiency, profile.name)
    return result


def main():
    from export_results import diagnostics_frame, write_results
    from unmatched_analysis import analyze_unmatched

    ap = argparse.ArgumentParser(description="Form case-competition teams from a normalised participant CSV")
    ap.add_argument("--participants", required=True)
    ap.add_argument("--out", default="teams.csv")
    ap.add_argument("--unmatched-out")
    ap.add_argument("--diagnostics")
    ap.add_argument("--flexible-size", action="store_true")
    ap.add_argument("--relaxed-availability", action="store_true")
    ap.add_argument("--single-pass", action="store_true")
    ap.add_argument("--max-iterations", type=int)
    ap.add_argument("--min-participants", type=int, default=2)
    ap.add_argument("--min-team-score", type=float)
    ap.add_argument("--deadline", type=float, help="wall-clock limit in seconds")
    ap.add_argument("--log-level", choices=sorted(LOG_LEVELS), default="detailed")
    args = ap.parse_args()

    options = MatchingOptions(
        strict_team_size_matching=not args.flexible_size,
        strict_availability_matching=not args.relaxed_availability,
        use_iterative_matching=not args.single_pass,
        max_iterations=args.max_iterations,
        min_participants_per_iteration=args.min_participants,
        min_team_compatibility=args.min_team_score,
        deadline_seconds=args.deadline,
        log_level=args.log_level,
    )
    result = match_participants(read_participants(args.participants), options)
    write_results(result, args.out, args.unmatched_out)
    if args.diagnostics:
        diagnostics_frame(analyze_unmatched(result)).to_csv(args.diagnostics, index=False)

    print(f"Wrote {len(result.teams)} teams to {args.out} "
          f"({result.statistics.matching_efficiency}% matched)")


if __name__ == "__main__":
    main()
