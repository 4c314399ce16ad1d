"""
unmatched_analysis.py: explain why participants ended up without a team

Read-only post-processing of a MatchingResult. For every unmatched participant the
other unmatched participants are treated as the candidate pool: we count how many
share the size preference, the composition preference and a compatible availability,
score each pair with a simplified 0-100 compatibility, and turn the counts into
categorised reasons with suggestions.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from models import (
    EducationLevel,
    MatchingResult,
    Participant,
    Team,
    TeamPreference,
    availability_compatible,
)


logger = logging.getLogger("unmatched_analysis")

TEAM_SIZE = "TEAM_SIZE"
TEAM_PREFERENCE = "TEAM_PREFERENCE"
QUALITY_THRESHOLD = "QUALITY_THRESHOLD"
INSUFFICIENT_CANDIDATES = "INSUFFICIENT_CANDIDATES"

CRITICAL = "CRITICAL"
HIGH = "HIGH"

# experience gap -> pair factor
EXPERIENCE_GAP_FACTORS = {0: 0.8, 1: 1.0, 2: 0.6}
LARGE_GAP_FACTOR = 0.2


@dataclass
class DiagnosticsConfig:
    quality_threshold: float = 70.0
    max_potential_matches: int = 5
    default_team_size: int = 4
    common_issue_min_count: int = 2
    system_recommendation_min_count: int = 3


@dataclass
class UnmatchedReason:
    category: str
    severity: str
    title: str
    description: str
    details: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class PotentialMatch:
    participant: Participant
    compatibility_score: float
    blocking_issues: List[str] = field(default_factory=list)


@dataclass
class CandidateStatistics:
    total_candidates: int = 0
    same_team_size_preference: int = 0
    compatible_team_preference: int = 0
    availability_compatible: int = 0
    high_compatibility: int = 0


@dataclass
class UnmatchedAnalysis:
    participant: Participant
    reasons: List[UnmatchedReason]
    potential_matches: List[PotentialMatch]
    statistics: CandidateStatistics
    recommendations: List[str]

    @property
    def categories(self) -> List[str]:
        return [r.category for r in self.reasons]


@dataclass
class UnmatchedReport:
    total_unmatched: int
    analyses: List[UnmatchedAnalysis]
    reason_breakdown: Dict[str, int]
    common_issues: List[str]
    recommendations: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_unmatched": self.total_unmatched,
            "analyses": [
                {
                    "participant_id": a.participant.id,
                    "participant_name": a.participant.name,
                    "reasons": [vars(r).copy() for r in a.reasons],
                    "potential_matches": [
                        {
                            "participant_id": pm.participant.id,
                            "compatibility_score": pm.compatibility_score,
                            "blocking_issues": list(pm.blocking_issues),
                        }
                        for pm in a.potential_matches
                    ],
                    "statistics": vars(a.statistics).copy(),
                    "recommendations": list(a.recommendations),
                }
                for a in self.analyses
            ],
            "summary": {
                "reason_breakdown": dict(self.reason_breakdown),
                "common_issues": list(self.common_issues),
                "recommendations": list(self.recommendations),
            },
        }


# -------- pairwise helpers --------

def case_overlap_ratio(a: Participant, b: Participant) -> float:
    s1, s2 = set(a.case_preferences), set(b.case_preferences)
    largest = max(len(s1), len(s2))
    return len(s1 & s2) / largest if largest else 0.0


def skill_complementarity(a: Participant, b: Participant) -> float:
    s1, s2 = set(a.core_strengths), set(b.core_strengths)
    union = s1 | s2
    return (len(union) - len(s1 & s2)) / len(union) if union else 0.0


def experience_factor(a: Participant, b: Participant) -> float:
    gap = abs(a.experience.rank - b.experience.rank)
    return EXPERIENCE_GAP_FACTORS.get(gap, LARGE_GAP_FACTOR)


def pair_compatibility(a: Participant, b: Participant) -> float:
    score = case_overlap_ratio(a, b) * 35
    score += skill_complementarity(a, b) * 25
    score += experience_factor(a, b) * 20
    if availability_compatible(a.availability, b.availability):
        score += 15
    if a.preferred_team_size == b.preferred_team_size:
        score += 5
    return round(min(100.0, score), 2)


def team_preferences_compatible(a: Participant, b: Participant) -> bool:
    """Whether a and b could share a team without violating either's composition preference."""
    levels = {a.education_level, b.education_level}
    for p in (a, b):
        if p.team_preference is TeamPreference.UG_ONLY and levels != {EducationLevel.UG}:
            return False
        if p.team_preference is TeamPreference.PG_ONLY and levels != {EducationLevel.PG}:
            return False
    return True


def blocking_issues(a: Participant, b: Participant) -> List[str]:
    issues = []
    if a.preferred_team_size != b.preferred_team_size:
        issues.append(f"Team size mismatch ({a.preferred_team_size} vs {b.preferred_team_size})")
    if not team_preferences_compatible(a, b):
        issues.append(f"Team composition incompatible ({a.team_preference.value} vs {b.team_preference.value})")
    if not availability_compatible(a.availability, b.availability):
        issues.append(f"Availability mismatch ({a.availability.value} vs {b.availability.value})")
    if not set(a.case_preferences) & set(b.case_preferences):
        issues.append("No overlapping case type interests")
    return issues


def most_popular_team_size(teams: Sequence[Team], default: int = 4) -> int:
    counts = Counter(t.team_size for t in teams)
    if not counts:
        return default
    # ties go to the smaller size
    return max(sorted(counts), key=lambda size: counts[size])


# -------- per-participant analysis --------

def candidate_statistics(participant: Participant, others: Sequence[Participant],
                         config: DiagnosticsConfig) -> CandidateStatistics:
    stats = CandidateStatistics(total_candidates=len(others))
    for other in others:
        if other.preferred_team_size == participant.preferred_team_size:
            stats.same_team_size_preference += 1
        if team_preferences_compatible(participant, other):
            stats.compatible_team_preference += 1
        if availability_compatible(participant.availability, other.availability):
            stats.availability_compatible += 1
        if pair_compatibility(participant, other) >= config.quality_threshold:
            stats.high_compatibility += 1
    return stats


def identify_reasons(participant: Participant, stats: CandidateStatistics,
                     potential: Sequence[PotentialMatch], teams: Sequence[Team],
                     config: DiagnosticsConfig) -> List[UnmatchedReason]:
    reasons = []
    needed = participant.preferred_team_size - 1

    if stats.same_team_size_preference < needed:
        reasons.append(UnmatchedReason(
            category=TEAM_SIZE,
            severity=CRITICAL,
            title="Insufficient Team Size Preference Match",
            description=(f"Only {stats.same_team_size_preference} other participants prefer "
                         f"team size {participant.preferred_team_size}"),
            details=[
                f"Participant prefers team size: {participant.preferred_team_size}",
                f"Needs {needed} compatible teammates",
                f"Found only {stats.same_team_size_preference} participants with same preference",
                f"Shortfall: {needed - stats.same_team_size_preference} participants",
            ],
            suggestions=[
                f"Consider changing team size preference to "
                f"{most_popular_team_size(teams, config.default_team_size)}",
                "Be flexible with team size preferences",
                "Wait for more participants with same team size preference",
            ],
        ))

    if stats.compatible_team_preference == 0:
        level = "Undergraduate" if participant.education_level is EducationLevel.UG else "Postgraduate"
        reasons.append(UnmatchedReason(
            category=TEAM_PREFERENCE,
            severity=CRITICAL,
            title="Team Composition Preference Conflict",
            description=f'No participants compatible with "{participant.team_preference.value}" preference',
            details=[
                f"Participant wants: {participant.team_preference.value}",
                f"Education level: {level}",
                f"Compatible participants found: {stats.compatible_team_preference}",
                "Team composition preferences are strictly enforced",
            ],
            suggestions=[
                'Consider changing team preference to "Either UG or PG" for more flexibility',
                "Wait for more participants with compatible preferences",
                "Review team composition requirements",
            ],
        ))

    if stats.high_compatibility == 0 and potential:
        best = potential[0]
        threshold = f"{config.quality_threshold:g}%"
        reasons.append(UnmatchedReason(
            category=QUALITY_THRESHOLD,
            severity=HIGH,
            title=f"Below {threshold} Compatibility Threshold",
            description=f"Best potential match only achieved {best.compatibility_score:.1f}% compatibility",
            details=[
                f"Quality threshold: {threshold} minimum compatibility required",
                f"Best potential match: {best.participant.name}",
                f"Achieved compatibility: {best.compatibility_score:.1f}%",
                f"Blocking issues: {', '.join(best.blocking_issues) or 'none'}",
            ],
            suggestions=[
                "Consider adjusting preferences to improve compatibility",
                "Review case type preferences for more overlap",
                "Consider different skill combinations",
                "Wait for more compatible participants",
            ],
        ))

    if stats.total_candidates < needed:
        reasons.append(UnmatchedReason(
            category=INSUFFICIENT_CANDIDATES,
            severity=CRITICAL,
            title="Insufficient Total Candidates",
            description=f"Only {stats.total_candidates} total candidates available for matching",
            details=[
                f"Needs {needed} teammates",
                f"Total available candidates: {stats.total_candidates}",
                f"Shortfall: {needed - stats.total_candidates} participants",
                "Not enough participants in the matching pool",
            ],
            suggestions=[
                "Wait for more participants to join",
                "Consider smaller team size preference",
                "Join the next matching session with more participants",
            ],
        ))
    return reasons


def personal_recommendations(participant: Participant, reasons: Sequence[UnmatchedReason],
                             potential: Sequence[PotentialMatch]) -> List[str]:
    categories = {r.category for r in reasons}
    recs = []
    if TEAM_SIZE in categories:
        recs.append(f"Consider changing team size preference from {participant.preferred_team_size} "
                    f"to a more popular size")
    if TEAM_PREFERENCE in categories and participant.team_preference is not TeamPreference.EITHER:
        recs.append('Consider changing team preference to "Either UG or PG" for maximum flexibility')
    if potential:
        best = potential[0]
        recs.append(f"Consider reaching out to {best.participant.name} "
                    f"({best.compatibility_score:.1f}% compatibility) for future matching")
    recs.append("Wait for the next matching session with more participants")
    return recs


def analyze_participant(participant: Participant, unmatched: Sequence[Participant], teams: Sequence[Team],
                        config: Optional[DiagnosticsConfig] = None) -> UnmatchedAnalysis:
    config = config or DiagnosticsConfig()
    others = [p for p in unmatched if p.id != participant.id]
    stats = candidate_statistics(participant, others, config)

    potential = [PotentialMatch(o, pair_compatibility(participant, o), blocking_issues(participant, o))
                 for o in others]
    potential.sort(key=lambda pm: -pm.compatibility_score)

    reasons = identify_reasons(participant, stats, potential, teams, config)
    return UnmatchedAnalysis(
        participant=participant,
        reasons=reasons,
        potential_matches=potential[:config.max_potential_matches],
        statistics=stats,
        recommendations=personal_recommendations(participant, reasons, potential),
    )


def analyze_unmatched_participants(unmatched: Sequence[Participant], teams: Sequence[Team],
                                   config: Optional[DiagnosticsConfig] = None) -> UnmatchedReport:
    config = config or DiagnosticsConfig()
    logger.info("Analyzing %d unmatched participants", len(unmatched))
    analyses = [analyze_participant(p, unmatched, teams, config) for p in unmatched]

    breakdown = Counter(r.category for a in analyses for r in a.reasons)
    ranked = sorted(breakdown.items(), key=lambda kv: -kv[1])
    common = [f"{cat.replace('_', ' ').lower()}: {n} participants affected"
              for cat, n in ranked if n >= config.common_issue_min_count]

    system_recs = []
    if breakdown.get(TEAM_SIZE, 0) >= config.system_recommendation_min_count:
        system_recs.append("Consider promoting more flexible team size preferences")
    if breakdown.get(TEAM_PREFERENCE, 0) >= config.system_recommendation_min_count:
        system_recs.append('Encourage "Either UG or PG" preference for better matching')

    return UnmatchedReport(
        total_unmatched=len(unmatched),
        analyses=analyses,
        reason_breakdown=breakdown,
        common_issues=common,
        recommendations=system_recs,
    )


def analyze_unmatched(result: MatchingResult, config: Optional[DiagnosticsConfig] = None) -> UnmatchedReport:
    return analyze_unmatched_participants(result.unmatched, result.teams, config)
