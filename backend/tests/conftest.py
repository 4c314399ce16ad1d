import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from models import Availability, Experience, Participant, TeamPreference


def build_participant(pid, size=2, pref=TeamPreference.EITHER, year="2nd Year",
                      availability=Availability.MODERATE, experience=Experience.NONE,
                      strengths=(), roles=(), cases=("Consulting",), name=None):
    return Participant(
        id=pid,
        name=name or f"Participant {pid}",
        current_year=year,
        preferred_team_size=size,
        team_preference=pref,
        availability=availability,
        experience=experience,
        core_strengths=tuple(strengths),
        preferred_roles=tuple(roles),
        case_preferences=tuple(cases),
    )


@pytest.fixture
def make_participant():
    return build_participant
