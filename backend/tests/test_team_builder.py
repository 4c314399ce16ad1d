import pytest
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import team_builder
from models import Availability, CaseType, Experience


def test_sort_for_anchor_is_stable(make_participant):
    pool = [
        make_participant("low", experience=Experience.NONE, availability=Availability.FULL),
        make_participant("mid1", experience=Experience.PARTICIPATED_1_2, availability=Availability.LIGHT),
        make_participant("mid2", experience=Experience.PARTICIPATED_1_2, availability=Availability.FULL),
        make_participant("mid3", experience=Experience.PARTICIPATED_1_2, availability=Availability.LIGHT),
        make_participant("top", experience=Experience.FINALIST_WINNER, availability=Availability.NOT_AVAILABLE),
    ]
    ordered = [p.id for p in team_builder.sort_for_anchor(pool)]
    assert ordered == ["top", "mid2", "mid1", "mid3", "low"]


def test_build_one_team_needs_enough_participants(make_participant):
    pool = [make_participant("a", size=3), make_participant("b", size=3)]
    assert team_builder.build_one_team(pool, 3) is None


def test_build_one_team_picks_highest_scorer(make_participant):
    anchor = make_participant("a", strengths=["Research"], cases=["Consulting"])
    dull = make_participant("b", strengths=["Research"], cases=["Finance"])
    bright = make_participant("c", experience=Experience.PARTICIPATED_3_PLUS,
                              strengths=["Pitching"], cases=["Consulting", "Marketing"])
    team = team_builder.build_one_team([anchor, dull, bright], 2, team_id="t1")
    assert team is not None
    assert team.member_ids == ["a", "c"]
    assert team.id == "t1"
    assert team.team_size == 2
    assert team.preferred_team_size_match == 100.0


def test_build_one_team_aborts_when_stage_exhausted(make_participant):
    anchor = make_participant("a", availability=Availability.FULL)
    partner = make_participant("b", availability=Availability.LIGHT)
    assert team_builder.build_one_team([anchor, partner], 2) is None

    relaxed = team_builder.make_profile(strict_availability=False)
    # relaxed availability still requires one compatible member; FULL and LIGHT never are
    assert team_builder.build_one_team([anchor, partner], 2, relaxed) is None


def test_minimum_team_compatibility(make_participant):
    pool = [make_participant("a"), make_participant("b")]
    lenient = team_builder.make_profile(min_team_compatibility=10.0)
    picky = team_builder.make_profile(min_team_compatibility=99.0)
    assert team_builder.build_one_team(pool, 2, lenient) is not None
    assert team_builder.build_one_team(pool, 2, picky) is None


def test_create_team_summary_fields(make_participant):
    members = [
        make_participant("a", size=4, experience=Experience.NONE, cases=["Consulting", "Finance"]),
        make_participant("b", size=4, experience=Experience.PARTICIPATED_3_PLUS, cases=["Finance", "Consulting"]),
        make_participant("c", size=3, experience=Experience.PARTICIPATED_1_2, cases=["Marketing", "Finance"]),
        make_participant("d", size=4, experience=Experience.FINALIST_WINNER, cases=["Marketing"]),
    ]
    team = team_builder.create_team(members, category="mixed", team_id="x")
    assert team.common_case_types == (CaseType.CONSULTING, CaseType.FINANCE, CaseType.MARKETING)
    assert team.average_experience == 1.5
    assert team.preferred_team_size_match == 75.0
    assert 0 <= team.compatibility_score <= 100
    assert team.category == "mixed"


def test_profiles():
    strict = team_builder.make_profile()
    assert strict.name == "absolute_strict"
    assert strict.bucket_order == (2, 3, 4)
    assert strict.scoring_for("mixed").education_diversity_bonus == 12.0
    assert strict.scoring_for("ug-only").education_diversity_bonus == 0.0
    flexible = team_builder.make_profile(strict_team_size=False)
    assert flexible.flexible_sweep
    assert flexible.scoring_for("mixed").size_preference_bonus == 10.0
