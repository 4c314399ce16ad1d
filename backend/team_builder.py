import logging
import math
from collections import Counter
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from constraints import FilterStage, apply_filter_stages, build_filter_stages
from models import Participant, Team
from scoring import (
    EDUCATION_AWARE_SCORING,
    RELAXED_SCORING,
    STRICT_SCORING,
    ScoringConfig,
    pick_best_candidate,
    team_compatibility_score,
)
from utils import percentage

logger = logging.getLogger("team_builder")

CANONICAL_BUCKET_ORDER = (2, 3, 4)
MAX_COMMON_CASE_TYPES = 3

CATEGORY_UG_ONLY = "ug-only"
CATEGORY_PG_ONLY = "pg-only"
CATEGORY_MIXED = "mixed"


@dataclass(frozen=True)
class MatchingProfile:
    name: str
    stages: Tuple[FilterStage, ...]
    scoring: ScoringConfig = STRICT_SCORING
    mixed_scoring: Optional[ScoringConfig] = None
    bucket_order: Tuple[int, ...] = CANONICAL_BUCKET_ORDER
    flexible_sweep: bool = False
    min_team_compatibility: Optional[float] = None

    def scoring_for(self, category: str) -> ScoringConfig:
        if category == CATEGORY_MIXED and self.mixed_scoring is not None:
            return self.mixed_scoring
        return self.scoring


def make_profile(strict_team_size: bool = True, strict_availability: bool = True,
                 min_team_compatibility: Optional[float] = None) -> MatchingProfile:
    stages = build_filter_stages(strict_team_size, strict_availability)
    if strict_team_size:
        return MatchingProfile(
            name="absolute_strict" if strict_availability else "strict_size",
            stages=stages,
            scoring=replace(STRICT_SCORING, availability_requires_all=strict_availability),
            mixed_scoring=replace(EDUCATION_AWARE_SCORING, availability_requires_all=strict_availability),
            min_team_compatibility=min_team_compatibility,
        )
    return MatchingProfile(
        name="flexible",
        stages=stages,
        scoring=replace(RELAXED_SCORING, availability_requires_all=strict_availability),
        flexible_sweep=True,
        min_team_compatibility=min_team_compatibility,
    )


ABSOLUTE_STRICT_PROFILE = make_profile()


def sort_for_anchor(pool: Sequence[Participant]) -> List[Participant]:
    """Most experienced first, then most available; stable for equal keys."""
    return sorted(pool, key=lambda p: (-p.experience.rank, -p.availability.rank))


def create_team(members: Sequence[Participant], scoring: ScoringConfig = STRICT_SCORING,
                category: str = "", team_id: str = "") -> Team:
    size = len(members)
    case_counts = Counter(ct for m in members for ct in m.case_preferences)
    shared_by = max(2, math.ceil(size / 2))
    common = tuple(ct for ct, n in case_counts.items() if n >= shared_by)[:MAX_COMMON_CASE_TYPES]
    return Team(
        id=team_id,
        members=tuple(members),
        compatibility_score=team_compatibility_score(members, scoring),
        common_case_types=common,
        average_experience=round(float(np.mean([m.experience.rank for m in members])), 2) if members else 0.0,
        preferred_team_size_match=percentage(sum(1 for m in members if m.preferred_team_size == size), size),
        category=category,
    )


def build_one_team(pool: Sequence[Participant], target_size: int,
                   profile: MatchingProfile = ABSOLUTE_STRICT_PROFILE,
                   category: str = CATEGORY_MIXED, team_id: str = "") -> Optional[Team]:
    """
    Grow one team from the head of `pool` (the anchor) up to exactly `target_size`.

    `pool` must already be in anchor order. Returns None when fewer than `target_size`
    participants are available, when any filter stage is exhausted, or when the
    finished team falls below `profile.min_team_compatibility`. Nothing is committed
    on failure.
    """
    if len(pool) < target_size:
        return None
    scoring = profile.scoring_for(category)
    anchor = pool[0]
    team = [anchor]
    remaining = list(pool[1:])

    while len(team) < target_size:
        survivors = apply_filter_stages(team, remaining, target_size, profile.stages)
        if not survivors:
            logger.debug("anchor %s: no eligible candidates at %d/%d", anchor.id, len(team), target_size)
            return None
        best, _ = pick_best_candidate(team, survivors, target_size, scoring)
        team.append(best)
        remaining = [p for p in remaining if p.id != best.id]

    built = create_team(team, scoring, category, team_id)
    if profile.min_team_compatibility is not None and built.compatibility_score < profile.min_team_compatibility:
        logger.debug("anchor %s: team score %.2f below threshold %.2f",
                     anchor.id, built.compatibility_score, profile.min_team_compatibility)
        return None
    return built
