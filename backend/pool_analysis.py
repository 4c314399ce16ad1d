import logging
from typing import Any, Dict, List, Sequence

import pandas as pd

from models import VALID_TEAM_SIZES, EducationLevel, Participant, TeamPreference

logger = logging.getLogger("pool_analysis")


def participants_frame(participants: Sequence[Participant]) -> pd.DataFrame:
    columns = ["id", "education_level", "preferred_team_size", "team_preference",
               "availability", "experience", "case_preferences"]
    records = [{k: rec[k] for k in columns} for rec in (p.to_record() for p in participants)]
    return pd.DataFrame.from_records(records, columns=columns)


def _counts(series: pd.Series) -> Dict[Any, int]:
    return {k: int(v) for k, v in series.value_counts(sort=False).items()}


def analyze_pool(participants: Sequence[Participant]) -> Dict[str, Any]:
    """Distributions of a participant pool plus warnings about groups that cannot fully match."""
    df = participants_frame(participants)
    if df.empty:
        return {
            "total_participants": 0,
            "education_distribution": {"ug": 0, "pg": 0},
            "team_size_distribution": {},
            "experience_distribution": {},
            "availability_distribution": {},
            "case_preference_distribution": {},
            "potential_matching_issues": ["No participants to analyze"],
        }

    ug = int((df["education_level"] == EducationLevel.UG.value).sum())
    pg = int((df["education_level"] == EducationLevel.PG.value).sum())
    sizes = _counts(df["preferred_team_size"])
    sizes = {int(k): sizes[k] for k in sorted(sizes)}
    cases = df["case_preferences"].explode().dropna()

    issues: List[str] = []
    for size in VALID_TEAM_SIZES:
        count = sizes.get(size, 0)
        if count and count % size:
            issues.append(f"{count} participants prefer team size {size} ({count % size} may be unmatched)")
    if ug == 0:
        issues.append("No UG participants found")
    if pg == 0:
        issues.append("No PG participants found")

    contradictory = df[
        ((df["education_level"] == EducationLevel.UG.value) & (df["team_preference"] == TeamPreference.PG_ONLY.value))
        | ((df["education_level"] == EducationLevel.PG.value) & (df["team_preference"] == TeamPreference.UG_ONLY.value))
    ]
    if len(contradictory):
        issues.append(f"{len(contradictory)} participants request a team of the other education level "
                      f"and cannot be matched: {', '.join(contradictory['id'])}")

    logger.info("Analyzed pool of %d participants (%d UG, %d PG), %d issues", len(df), ug, pg, len(issues))
    return {
        "total_participants": int(len(df)),
        "education_distribution": {"ug": ug, "pg": pg},
        "team_size_distribution": sizes,
        "experience_distribution": _counts(df["experience"]),
        "availability_distribution": _counts(df["availability"]),
        "case_preference_distribution": _counts(cases) if len(cases) else {},
        "potential_matching_issues": issues,
    }
