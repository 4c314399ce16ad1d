import pytest
import sys
import os
import logging
from unittest.mock import patch

import pandas as pd

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import matching_service
from matching_service import MatchingOptions, match_participants
from mock_data import get_mock_participant_rows, get_mock_participants
from models import (
    Availability,
    InputError,
    InvariantViolation,
    MatchingResult,
    TeamPreference,
)
from result_aggregator import generate_statistics
from team_builder import create_team


def _ids(participants):
    return [p.id for p in participants]


def test_four_pairs_form_two_teams(make_participant):
    pool = [make_participant(f"p{i}", size=2) for i in range(1, 5)]
    result = match_participants(pool)
    assert [t.member_ids for t in result.teams] == [["p1", "p2"], ["p3", "p4"]]
    assert [t.id for t in result.teams] == ["team-1-iter1", "team-2-iter1"]
    assert result.unmatched == []
    assert result.statistics.matching_efficiency == 100.0
    assert result.iterations == 1
    assert result.stop_reason == "converged"


def test_three_wanting_four_stay_unmatched(make_participant):
    pool = [make_participant(f"p{i}", size=4) for i in range(1, 4)]
    result = match_participants(pool)
    assert result.teams == []
    assert _ids(result.unmatched) == ["p1", "p2", "p3"]
    assert result.statistics.matching_efficiency == 0.0
    assert result.stop_reason == "stagnated"
    assert result.iterations == 8


def test_contradicting_compositions_never_pair(make_participant):
    ug = make_participant("ug", pref=TeamPreference.UG_ONLY)
    pg = make_participant("pg", pref=TeamPreference.PG_ONLY, year="MBA 1st Year")
    result = match_participants([ug, pg])
    assert result.teams == []
    assert _ids(result.unmatched) == ["ug", "pg"]


def test_large_stuck_remainder_runs_to_max_iterations(make_participant):
    pairs = [make_participant(f"pair{i}", size=2) for i in range(4)]
    impossible = [make_participant(f"imp{i}", pref=TeamPreference.PG_ONLY) for i in range(3)]
    quads = [make_participant(f"quad{i}", size=4) for i in range(3)]
    result = match_participants(pairs + impossible + quads)

    assert len(result.teams) == 2
    assert len(result.unmatched) == 6
    # six stuck participants are not a small remainder, so the limit max(10, n) applies
    assert result.iterations == 10
    assert result.stop_reason == "max_iterations"
    assert len(result.iteration_history) == 10
    assert result.iteration_history[0].participants_matched == 4
    assert result.iteration_history[0].efficiency == 40.0
    assert all(r.teams_formed == 0 for r in result.iteration_history[1:])


def test_stagnation_needs_a_small_remainder(make_participant):
    pairs = [make_participant(f"pair{i}", size=2) for i in range(4)]
    stuck = [make_participant(f"imp{i}", pref=TeamPreference.PG_ONLY) for i in range(16)]
    result = match_participants(pairs + stuck)
    assert len(result.teams) == 2
    assert len(result.unmatched) == 16
    assert result.iterations == 20
    assert result.stop_reason == "max_iterations"

    small = [make_participant(f"quad{i}", size=4) for i in range(3)]
    result = match_participants(pairs + small, MatchingOptions(max_consecutive_failures=3))
    # one productive pass, then three idle ones on the three leftovers
    assert result.iterations == 1 + 3
    assert result.stop_reason == "stagnated"
    assert _ids(result.unmatched) == ["quad0", "quad1", "quad2"]


def test_strict_availability_blocks_high_with_low(make_participant):
    pool = [make_participant("a", availability=Availability.FULL),
            make_participant("b", availability=Availability.LIGHT)]
    result = match_participants(pool, MatchingOptions(use_iterative_matching=False))
    assert result.teams == []
    assert result.iterations is None


def test_mock_pool_partition_and_ids():
    pool = get_mock_participants()
    result = match_participants(pool)

    assert [(t.id, t.category) for t in result.teams] == [
        ("team-1-iter1", "ug-only"),
        ("team-2-iter1", "pg-only"),
        ("team-3-iter1", "mixed"),
    ]
    assert result.teams[0].member_ids == ["p-09", "p-10"]
    assert result.teams[1].member_ids == ["p-06", "p-07", "p-08"]
    assert result.teams[2].member_ids == ["p-01", "p-03", "p-02", "p-04"]
    assert _ids(result.unmatched) == ["p-05", "p-11"]

    placed = [pid for t in result.teams for pid in t.member_ids] + _ids(result.unmatched)
    assert sorted(placed) == sorted(_ids(pool))
    assert all(t.preferred_team_size_match == 100.0 for t in result.teams)


def test_matching_is_deterministic():
    first = match_participants(get_mock_participants())
    second = match_participants(get_mock_participants())
    assert [t.to_payload() for t in first.teams] == [t.to_payload() for t in second.teams]
    assert _ids(first.unmatched) == _ids(second.unmatched)


def test_flexible_size_allows_neighbouring_preferences(make_participant):
    pool = [
        make_participant("x3a", size=3, strengths=["Research"]),
        make_participant("x3b", size=3, strengths=["Pitching"]),
        make_participant("x2", size=2, strengths=["Design"]),
    ]
    strict = match_participants(pool)
    assert strict.teams == []

    flexible = match_participants(pool, MatchingOptions(strict_team_size_matching=False))
    assert [t.member_ids for t in flexible.teams] == [["x3a", "x2"]]
    assert flexible.teams[0].preferred_team_size_match == 50.0
    assert _ids(flexible.unmatched) == ["x3b"]
    assert flexible.stop_reason == "below_minimum"


def test_partition_by_team_preference(make_participant):
    pool = [
        make_participant("ug", pref=TeamPreference.UG_ONLY),
        make_participant("pg", pref=TeamPreference.PG_ONLY, year="PG 1st Year"),
        make_participant("either", pref=TeamPreference.EITHER, year="MBA 1st Year"),
        make_participant("bad_ug", pref=TeamPreference.PG_ONLY),
        make_participant("bad_pg", pref=TeamPreference.UG_ONLY, year="MBA 2nd Year"),
    ]
    groups = matching_service.partition_by_team_preference(pool)
    assert _ids(groups["ug-only"]) == ["ug"]
    assert _ids(groups["pg-only"]) == ["pg"]
    assert _ids(groups["mixed"]) == ["either"]
    assert _ids(groups["impossible"]) == ["bad_ug", "bad_pg"]


def test_buckets_never_mix_sizes(make_participant):
    pool = [make_participant("a", size=2), make_participant("b", size=3),
            make_participant("c", size=2), make_participant("d", size=3), make_participant("e", size=3)]
    teams, leftovers = matching_service.form_teams_by_size(pool, matching_service.make_profile())
    assert [t.team_size for t in teams] == [2, 3]
    assert all(m.preferred_team_size == t.team_size for t in teams for m in t.members)
    assert leftovers == []


def test_invalid_input_is_rejected(make_participant):
    with pytest.raises(InputError, match="empty"):
        match_participants([])
    with pytest.raises(InputError, match="duplicate"):
        match_participants([make_participant("a"), make_participant("a")])
    with pytest.raises(InputError, match="expected Participant"):
        match_participants([{"id": "a"}])
    with pytest.raises(InputError, match="log_level"):
        match_participants([make_participant("a")], MatchingOptions(log_level="chatty"))
    with pytest.raises(InputError, match="max_iterations"):
        match_participants([make_participant("a")], MatchingOptions(max_iterations=0))


def test_deadline_before_first_iteration(make_participant, caplog):
    pool = [make_participant(f"p{i}", size=2) for i in range(4)]
    with patch("matching_service.time") as mock_time:
        mock_time.monotonic.side_effect = [0.0, 100.0, 100.0]
        with caplog.at_level(logging.WARNING):
            result = match_participants(pool, MatchingOptions(deadline_seconds=1.0))
    assert result.iterations == 0
    assert result.teams == []
    assert len(result.unmatched) == 4
    assert result.stop_reason == "deadline"
    assert "deadline reached" in caplog.text


def test_deadline_keeps_partial_result(make_participant):
    pool = [make_participant(f"p{i}", size=2) for i in range(4)] + \
        [make_participant(f"q{i}", size=4) for i in range(2)]
    with patch("matching_service.time") as mock_time:
        mock_time.monotonic.side_effect = [0.0, 0.5, 100.0, 100.0]
        result = match_participants(pool, MatchingOptions(deadline_seconds=1.0))
    assert result.iterations == 1
    assert len(result.teams) == 2
    assert result.stop_reason == "deadline"


def test_single_pass_ids(make_participant):
    pool = [make_participant(f"p{i}", size=2) for i in range(4)]
    result = match_participants(pool, MatchingOptions(use_iterative_matching=False))
    assert [t.id for t in result.teams] == ["team-1-iter1", "team-2-iter1"]
    assert result.iteration_history == []


def test_max_iterations_respected(make_participant):
    pool = [make_participant(f"p{i}", size=4) for i in range(3)]
    result = match_participants(pool, MatchingOptions(max_iterations=3))
    assert result.iterations == 3
    assert result.stop_reason == "max_iterations"


def test_verify_result_catches_broken_composition(make_participant):
    ug = make_participant("ug", pref=TeamPreference.UG_ONLY)
    pg = make_participant("pg", pref=TeamPreference.UG_ONLY, year="MBA 1st Year")
    team = create_team([ug, pg], team_id="bad")
    result = MatchingResult(teams=[team], unmatched=[], statistics=generate_statistics([team], []))
    with pytest.raises(InvariantViolation, match="undergraduates only"):
        matching_service.verify_result([ug, pg], result, MatchingOptions())

    lost = MatchingResult(teams=[], unmatched=[ug], statistics=generate_statistics([], [ug]))
    with pytest.raises(InvariantViolation, match="partition"):
        matching_service.verify_result([ug, pg], lost, MatchingOptions())


def test_log_levels(make_participant, caplog):
    pool = [make_participant(f"p{i}", size=2) for i in range(4)]
    with caplog.at_level(logging.INFO):
        match_participants(pool, MatchingOptions(log_level="minimal"))
    assert "iteration 1" not in caplog.text
    assert "matched 4 of 4 participants" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.INFO):
        match_participants(pool, MatchingOptions(log_level="verbose"))
    assert "iteration 1" in caplog.text
    assert "formed mixed team of 2" in caplog.text


def test_verbose_run_emits_engine_debug_lines(make_participant, caplog):
    pool = [make_participant(f"p{i}", size=2) for i in range(4)]
    match_participants(pool, MatchingOptions(log_level="detailed"))
    assert "best candidate" not in caplog.text

    before = logging.getLogger("scoring").level
    caplog.clear()
    trio = [make_participant("hi", size=3, availability=Availability.FULL),
            make_participant("lo1", size=3, availability=Availability.LIGHT),
            make_participant("lo2", size=3, availability=Availability.LIGHT)]
    match_participants(pool + trio, MatchingOptions(log_level="verbose", use_iterative_matching=False))
    assert "best candidate" in caplog.text
    assert "stage availability exhausted for team of 1 (target 3)" in caplog.text
    assert logging.getLogger("scoring").level == before


def _write_pool_csv(path):
    rows = get_mock_participant_rows()
    for r in rows:
        for key in ("core_strengths", "preferred_roles", "case_preferences"):
            r[key] = "; ".join(r[key])
    pd.DataFrame(rows).to_csv(path, index=False)


def test_read_participants(tmp_path):
    fp = tmp_path / "pool.csv"
    _write_pool_csv(fp)
    people = matching_service.read_participants(str(fp))
    assert _ids(people) == _ids(get_mock_participants())
    assert people == get_mock_participants()


def test_read_participants_reports_row(tmp_path):
    fp = tmp_path / "bad.csv"
    fp.write_text(
        "id,name,current_year,preferred_team_size,team_preference,availability,experience\n"
        "p1,A,2nd Year,2,Either UG or PG,Lightly Available (1–4 hrs/week),Legendary\n",
        encoding="utf-8",
    )
    with pytest.raises(InputError, match="row 2"):
        matching_service.read_participants(str(fp))


def test_cli_writes_outputs(tmp_path):
    pool_csv = tmp_path / "pool.csv"
    _write_pool_csv(pool_csv)
    teams_csv = tmp_path / "teams.csv"
    unmatched_csv = tmp_path / "unmatched.csv"
    diag_csv = tmp_path / "diag.csv"
    argv = ["matching_service.py", "--participants", str(pool_csv), "--out", str(teams_csv),
            "--unmatched-out", str(unmatched_csv), "--diagnostics", str(diag_csv), "--log-level", "minimal"]
    with patch.object(sys, "argv", argv):
        matching_service.main()

    assert len(pd.read_csv(teams_csv)) == 3
    assert list(pd.read_csv(unmatched_csv)["id"]) == ["p-05", "p-11"]
    assert len(pd.read_csv(diag_csv)) >= 2


if __name__ == "__main__":
    pytest.main([__file__])
