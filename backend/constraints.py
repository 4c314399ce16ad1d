"""
constraints.py: hard-constraint filters for team formation

A filter takes (team, candidates, target_size) and returns the candidates that may
join, in their original order. Filters are grouped into stages with a strict variant
and an optional relaxed fallback; the pipeline itself is just a tuple of stages, so the
absolute-strict and flexible profiles differ only in the table they use.
"""

import logging
from functools import partial
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from models import (
    EducationLevel,
    InvariantViolation,
    Participant,
    Role,
    Skill,
    TeamPreference,
    availability_compatible,
)

logger = logging.getLogger("constraints")

Filter = Callable[[Sequence[Participant], Sequence[Participant], int], List[Participant]]

CONFLICTING_ROLES = (Role.TEAM_LEAD, Role.DESIGNER, Role.PRESENTER)
STRICT_ROLE_CAP = 2
RELAXED_ROLE_CAP = 3

SKILL_ARCHETYPES = {
    "strategist": frozenset({Skill.IDEATION, Skill.MARKETS, Skill.COORDINATION}),
    "analyst": frozenset({Skill.RESEARCH, Skill.MODELING, Skill.TECHNICAL}),
    "communicator": frozenset({Skill.PITCHING, Skill.STORYTELLING}),
    "designer": frozenset({Skill.DESIGN, Skill.PRODUCT}),
}
STRICT_MIN_ARCHETYPES = 2
RELAXED_MIN_ARCHETYPES = 1


class FilterStage(NamedTuple):
    name: str
    strict: Filter
    relaxed: Optional[Filter] = None


# -------- team size --------

def filter_exact_team_size(team, candidates, target_size):
    return [c for c in candidates if c.preferred_team_size == target_size]


def filter_team_size_within_one(team, candidates, target_size):
    return [c for c in candidates if abs(c.preferred_team_size - target_size) <= 1]


# -------- team composition --------

def team_preference_of(team: Sequence[Participant]) -> Optional[TeamPreference]:
    prefs = {m.team_preference for m in team}
    if len(prefs) > 1:
        ids = ", ".join(m.id for m in team)
        logger.error("team [%s] mixes team preferences %s", ids, sorted(p.value for p in prefs))
        raise InvariantViolation(f"team [{ids}] contains members with different team preferences")
    return next(iter(prefs)) if prefs else None


def filter_team_preference(team, candidates, target_size):
    pref = team_preference_of(team)
    if pref is None:
        return list(candidates)
    levels = {m.education_level for m in team}
    if pref is TeamPreference.UG_ONLY:
        if EducationLevel.PG in levels:
            return []
        return [c for c in candidates
                if c.education_level is EducationLevel.UG
                and c.team_preference in (TeamPreference.UG_ONLY, TeamPreference.EITHER)]
    if pref is TeamPreference.PG_ONLY:
        if EducationLevel.UG in levels:
            return []
        return [c for c in candidates
                if c.education_level is EducationLevel.PG
                and c.team_preference in (TeamPreference.PG_ONLY, TeamPreference.EITHER)]
    return [c for c in candidates if c.team_preference is TeamPreference.EITHER]


# -------- availability --------

def filter_availability_all(team, candidates, target_size):
    return [c for c in candidates
            if all(availability_compatible(m.availability, c.availability) for m in team)]


def filter_availability_any(team, candidates, target_size):
    if not team:
        return list(candidates)
    return [c for c in candidates
            if any(availability_compatible(m.availability, c.availability) for m in team)]


# -------- case interests --------

def _team_case_types(team) -> set:
    return {c for m in team for c in m.case_preferences}


def filter_case_diversity(team, candidates, target_size):
    team_cases = _team_case_types(team)
    if not team_cases:
        return list(candidates)
    return [c for c in candidates if any(ct not in team_cases for ct in c.case_preferences)]


def filter_case_overlap(team, candidates, target_size):
    team_cases = _team_case_types(team)
    if not team_cases or len(team) < 3:
        return list(candidates)
    return [c for c in candidates if any(ct in team_cases for ct in c.case_preferences)]


# -------- roles & skills --------

def filter_role_balance(team, candidates, target_size, cap: int = STRICT_ROLE_CAP):
    counts = {role: 0 for role in CONFLICTING_ROLES}
    for m in team:
        for r in m.preferred_roles:
            if r in counts:
                counts[r] += 1
    return [c for c in candidates
            if not any(r in counts and counts[r] >= cap for r in c.preferred_roles)]


def archetypes_covered(skills) -> int:
    skills = set(skills)
    return sum(1 for members in SKILL_ARCHETYPES.values() if skills & members)


def filter_skill_coverage(team, candidates, target_size, minimum: int = STRICT_MIN_ARCHETYPES):
    team_skills = {s for m in team for s in m.core_strengths}
    return [c for c in candidates
            if archetypes_covered(team_skills | set(c.core_strengths)) >= minimum]


# -------- pipeline --------

def build_filter_stages(strict_team_size: bool = True, strict_availability: bool = True) -> Tuple[FilterStage, ...]:
    availability = FilterStage(
        "availability",
        filter_availability_all,
        None if strict_availability else filter_availability_any,
    )
    if strict_team_size:
        return (
            FilterStage("team_size", filter_exact_team_size),
            FilterStage("team_preference", filter_team_preference),
            availability,
            FilterStage("case_diversity", filter_case_diversity, filter_case_overlap),
        )
    return (
        FilterStage("team_size", filter_exact_team_size, filter_team_size_within_one),
        FilterStage("team_preference", filter_team_preference),
        availability,
        FilterStage("case_diversity", filter_case_diversity, filter_case_overlap),
        FilterStage("role_balance",
                    partial(filter_role_balance, cap=STRICT_ROLE_CAP),
                    partial(filter_role_balance, cap=RELAXED_ROLE_CAP)),
        FilterStage("skill_coverage",
                    partial(filter_skill_coverage, minimum=STRICT_MIN_ARCHETYPES),
                    partial(filter_skill_coverage, minimum=RELAXED_MIN_ARCHETYPES)),
    )


ABSOLUTE_STRICT_STAGES = build_filter_stages(True, True)


def apply_filter_stages(team: Sequence[Participant], candidates: Sequence[Participant],
                        target_size: int, stages: Sequence[FilterStage]) -> List[Participant]:
    remaining = list(candidates)
    for stage in stages:
        passed = stage.strict(team, remaining, target_size)
        if not passed and stage.relaxed is not None:
            passed = stage.relaxed(team, remaining, target_size)
            if passed:
                logger.debug("stage %s relaxed: %d candidates", stage.name, len(passed))
        if not passed:
            logger.debug("stage %s exhausted for team of %d (target %d)", stage.name, len(team), target_size)
            return []
        remaining = passed
    return remaining
