from collections import Counter
from typing import Any, Dict, List, Sequence

import numpy as np

from models import MatchingResult, MatchingStatistics, Participant, Team
from utils import percentage


def generate_statistics(teams: Sequence[Team], unmatched: Sequence[Participant]) -> MatchingStatistics:
    matched = sum(t.team_size for t in teams)
    total = matched + len(unmatched)
    size_counts = Counter(t.team_size for t in teams)
    return MatchingStatistics(
        total_participants=total,
        teams_formed=len(teams),
        average_team_size=round(matched / len(teams), 2) if teams else 0.0,
        matching_efficiency=percentage(matched, total),
        team_size_distribution={size: size_counts[size] for size in sorted(size_counts)},
        case_type_distribution={ct.value: n for ct, n in
                                Counter(ct for t in teams for ct in t.common_case_types).items()},
    )


def team_payloads(result: MatchingResult) -> List[Dict[str, Any]]:
    return [t.to_payload() for t in result.teams]


def summarize_iterations(result: MatchingResult) -> Dict[str, Any]:
    history = result.iteration_history
    summary = {
        "total_iterations": result.iterations or 0,
        "total_teams": len(result.teams),
        "total_matched": result.matched_count,
        "final_efficiency": result.statistics.matching_efficiency,
        "average_iteration_efficiency": 0.0,
        "best_iteration": None,
        "worst_iteration": None,
        "stop_reason": result.stop_reason,
    }
    if history:
        summary["average_iteration_efficiency"] = round(float(np.mean([r.efficiency for r in history])), 2)
        summary["best_iteration"] = max(history, key=lambda r: r.efficiency).to_dict()
        summary["worst_iteration"] = min(history, key=lambda r: r.efficiency).to_dict()
    return summary


def team_to_dict(team: Team) -> Dict[str, Any]:
    data = team.to_payload()
    data.update({
        "category": team.category,
        "commonCaseTypes": [ct.value for ct in team.common_case_types],
        "averageExperience": team.average_experience,
        "preferredTeamSizeMatch": team.preferred_team_size_match,
        "memberDetails": [m.to_record() for m in team.members],
    })
    return data


def statistics_to_dict(stats: MatchingStatistics) -> Dict[str, Any]:
    return {
        "total_participants": stats.total_participants,
        "teams_formed": stats.teams_formed,
        "average_team_size": stats.average_team_size,
        "matching_efficiency": stats.matching_efficiency,
        "team_size_distribution": dict(stats.team_size_distribution),
        "case_type_distribution": dict(stats.case_type_distribution),
    }


def result_to_dict(result: MatchingResult) -> Dict[str, Any]:
    data = {
        "teams": [team_to_dict(t) for t in result.teams],
        "unmatched": [p.to_record() for p in result.unmatched],
        "statistics": statistics_to_dict(result.statistics),
    }
    if result.iterations is not None:
        data["iterations"] = result.iterations
        data["iteration_history"] = [r.to_dict() for r in result.iteration_history]
        data["stop_reason"] = result.stop_reason
    return data
