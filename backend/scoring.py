import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Sequence

import numpy as np

from models import Participant, availability_compatible

logger = logging.getLogger("scoring")


@dataclass(frozen=True)
class ScoringConfig:
    name: str = "strict"
    experience_diversity_bonus: float = 25.0
    case_overlap_weight: float = 15.0
    skill_uniqueness_weight: float = 10.0
    availability_bonus: float = 20.0
    availability_requires_all: bool = True
    role_uniqueness_weight: float = 8.0
    education_diversity_bonus: float = 0.0
    size_preference_bonus: float = 0.0


STRICT_SCORING = ScoringConfig()

RELAXED_SCORING = ScoringConfig(
    name="relaxed",
    experience_diversity_bonus=20.0,
    case_overlap_weight=12.0,
    skill_uniqueness_weight=8.0,
    availability_bonus=15.0,
    availability_requires_all=False,
    role_uniqueness_weight=6.0,
    size_preference_bonus=10.0,
)

EDUCATION_AWARE_SCORING = ScoringConfig(
    name="education_aware",
    education_diversity_bonus=12.0,
)


def score_candidate(team: Sequence[Participant], candidate: Participant,
                    target_size: int, config: ScoringConfig = STRICT_SCORING) -> float:
    """
    Additive compatibility of `candidate` joining `team`. Pure; higher is better.
    `target_size` only matters for the size-preference term.
    """
    score = 0.0

    team_experience = {m.experience for m in team}
    if candidate.experience not in team_experience:
        score += config.experience_diversity_bonus

    team_cases = {c for m in team for c in m.case_preferences}
    overlap = sum(1 for c in candidate.case_preferences if c in team_cases)
    score += overlap * config.case_overlap_weight

    team_skills = {s for m in team for s in m.core_strengths}
    unique_skills = sum(1 for s in candidate.core_strengths if s not in team_skills)
    score += unique_skills * config.skill_uniqueness_weight

    if team:
        check = all if config.availability_requires_all else any
        if check(availability_compatible(m.availability, candidate.availability) for m in team):
            score += config.availability_bonus

    team_roles = {r for m in team for r in m.preferred_roles}
    unique_roles = sum(1 for r in candidate.preferred_roles if r not in team_roles)
    score += unique_roles * config.role_uniqueness_weight

    if config.education_diversity_bonus and team:
        levels = {m.education_level for m in team}
        if len(levels) > 1 or candidate.education_level not in levels:
            score += config.education_diversity_bonus

    if config.size_preference_bonus and team:
        mean_pref = float(np.mean([m.preferred_team_size for m in team]))
        if abs(candidate.preferred_team_size - mean_pref) <= 1:
            score += config.size_preference_bonus

    return score


def team_compatibility_score(members: Sequence[Participant], config: ScoringConfig = STRICT_SCORING) -> float:
    """Mean pairwise score of a finished team, clamped to [0, 100]."""
    size = len(members)
    pair_scores = [score_candidate([a], b, size, config) for a, b in combinations(members, 2)]
    if not pair_scores:
        return 0.0
    mean = float(np.mean(pair_scores))
    return round(min(100.0, max(0.0, mean)), 2)


def pick_best_candidate(team: Sequence[Participant], candidates: Sequence[Participant],
                        target_size: int, config: ScoringConfig = STRICT_SCORING):
    best = None
    best_score = float("-inf")
    for c in candidates:
        s = score_candidate(team, c, target_size, config)
        # strict '>' keeps the earliest candidate on ties
        if s > best_score:
            best, best_score = c, s
    logger.debug("best candidate %s scored %.1f against %d members",
                 best.id if best else None, best_score, len(team))
    return best, best_score
