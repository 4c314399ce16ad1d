import logging
from typing import Optional

import pandas as pd

from models import MatchingResult
from unmatched_analysis import UnmatchedReport

logger = logging.getLogger("export_results")

TEAM_COLUMNS = [
    "team_id", "team_size", "compatibility_score", "category", "member_ids", "member_names",
    "common_case_types", "average_experience", "preferred_team_size_match",
]
UNMATCHED_COLUMNS = [
    "id", "name", "email", "education_level", "preferred_team_size", "team_preference",
    "availability", "experience",
]
DIAGNOSTIC_COLUMNS = ["participant_id", "participant_name", "category", "severity", "title", "description"]


def teams_frame(result: MatchingResult) -> pd.DataFrame:
    rows = []
    for t in result.teams:
        rows.append({
            "team_id": t.id,
            "team_size": t.team_size,
            "compatibility_score": t.compatibility_score,
            "category": t.category,
            "member_ids": "; ".join(t.member_ids),
            "member_names": "; ".join(m.name for m in t.members),
            "common_case_types": "; ".join(ct.value for ct in t.common_case_types),
            "average_experience": t.average_experience,
            "preferred_team_size_match": t.preferred_team_size_match,
        })
    return pd.DataFrame(rows, columns=TEAM_COLUMNS)


def unmatched_frame(result: MatchingResult) -> pd.DataFrame:
    rows = [{k: p.to_record()[k] for k in UNMATCHED_COLUMNS} for p in result.unmatched]
    return pd.DataFrame(rows, columns=UNMATCHED_COLUMNS)


def diagnostics_frame(report: UnmatchedReport) -> pd.DataFrame:
    rows = []
    for a in report.analyses:
        for r in a.reasons:
            rows.append({
                "participant_id": a.participant.id,
                "participant_name": a.participant.name,
                "category": r.category,
                "severity": r.severity,
                "title": r.title,
                "description": r.description,
            })
    return pd.DataFrame(rows, columns=DIAGNOSTIC_COLUMNS)


def write_results(result: MatchingResult, teams_csv: str, unmatched_csv: Optional[str] = None):
    teams_frame(result).to_csv(teams_csv, index=False)
    logger.info("Wrote %d teams to %s", len(result.teams), teams_csv)
    if unmatched_csv:
        unmatched_frame(result).to_csv(unmatched_csv, index=False)
        logger.info("Wrote %d unmatched participants to %s", len(result.unmatched), unmatched_csv)
