from models import Participant

# Normalised survey rows. Expected outcome under the default options:
# one mixed team of 4, one PG-only team of 3, one UG-only team of 2,
# leaving one size-4 participant and one contradictory preference unmatched.
MOCK_PARTICIPANT_ROWS = [
    {
        "id": "p-01", "name": "Aarav Mehta", "email": "aarav@example.edu", "college_name": "IIT Delhi",
        "current_year": "3rd Year", "preferred_team_size": 4, "team_preference": "Either UG or PG",
        "availability": "Fully Available (10–15 hrs/week)", "experience": "Finalist/Winner in at least one",
        "core_strengths": ["Research", "Modeling"], "preferred_roles": ["Team Lead"],
        "case_preferences": ["Consulting", "Finance"],
    },
    {
        "id": "p-02", "name": "Diya Sharma", "email": "diya@example.edu", "college_name": "SRCC",
        "current_year": "2nd Year", "preferred_team_size": 4, "team_preference": "Either UG or PG",
        "availability": "Moderately Available (5–10 hrs/week)", "experience": "Participated in 1–2",
        "core_strengths": ["Pitching", "Storytelling"], "preferred_roles": ["Presenter"],
        "case_preferences": ["Marketing", "Consulting"],
    },
    {
        "id": "p-03", "name": "Kabir Rao", "email": "kabir@example.edu", "college_name": "IIM Bangalore",
        "current_year": "PG 1st Year", "preferred_team_size": 4, "team_preference": "Either UG or PG",
        "availability": "Fully Available (10–15 hrs/week)", "experience": "Participated in 3+",
        "core_strengths": ["Markets", "Ideation"], "preferred_roles": ["Coordinator"],
        "case_preferences": ["Product/Tech", "Finance"],
    },
    {
        "id": "p-04", "name": "Meera Iyer", "email": "meera@example.edu", "college_name": "NID",
        "current_year": "4th Year", "preferred_team_size": 4, "team_preference": "Either UG or PG",
        "availability": "Moderately Available (5–10 hrs/week)", "experience": "None",
        "core_strengths": ["Design", "Product"], "preferred_roles": ["Designer"],
        "case_preferences": ["Social Impact", "Marketing"],
    },
    {
        "id": "p-05", "name": "Rohan Gupta", "email": "rohan@example.edu", "college_name": "BITS Pilani",
        "current_year": "1st Year", "preferred_team_size": 4, "team_preference": "Either UG or PG",
        "availability": "Moderately Available (5–10 hrs/week)", "experience": "None",
        "core_strengths": ["Technical"], "preferred_roles": ["Data Analyst"],
        "case_preferences": ["Product/Tech"],
    },
    {
        "id": "p-06", "name": "Ananya Das", "email": "ananya@example.edu", "college_name": "IIM Ahmedabad",
        "current_year": "MBA 1st Year", "preferred_team_size": 3, "team_preference": "Postgrads only",
        "availability": "Fully Available (10–15 hrs/week)", "experience": "Participated in 3+",
        "core_strengths": ["Modeling", "Markets"], "preferred_roles": ["Data Analyst"],
        "case_preferences": ["Finance", "Operations/Supply Chain"],
    },
    {
        "id": "p-07", "name": "Vikram Singh", "email": "vikram@example.edu", "college_name": "IIM Ahmedabad",
        "current_year": "MBA 2nd Year", "preferred_team_size": 3, "team_preference": "Postgrads only",
        "availability": "Moderately Available (5–10 hrs/week)", "experience": "Participated in 1–2",
        "core_strengths": ["Coordination", "Pitching"], "preferred_roles": ["Team Lead"],
        "case_preferences": ["Consulting", "Finance"],
    },
    {
        "id": "p-08", "name": "Sara Khan", "email": "sara@example.edu", "college_name": "XLRI",
        "current_year": "PG 2nd Year", "preferred_team_size": 3, "team_preference": "Postgrads only",
        "availability": "Fully Available (10–15 hrs/week)", "experience": "None",
        "core_strengths": ["Research", "Storytelling"], "preferred_roles": ["Researcher"],
        "case_preferences": ["Public Policy/ESG", "Finance"],
    },
    {
        "id": "p-09", "name": "Ishaan Verma", "email": "ishaan@example.edu", "college_name": "DTU",
        "current_year": "2nd Year", "preferred_team_size": 2, "team_preference": "Undergrads only",
        "availability": "Lightly Available (1–4 hrs/week)", "experience": "Participated in 1–2",
        "core_strengths": ["Ideation", "Design"], "preferred_roles": ["Designer"],
        "case_preferences": ["Marketing"],
    },
    {
        "id": "p-10", "name": "Nisha Patel", "email": "nisha@example.edu", "college_name": "NMIMS",
        "current_year": "3rd Year", "preferred_team_size": 2, "team_preference": "Undergrads only",
        "availability": "Moderately Available (5–10 hrs/week)", "experience": "None",
        "core_strengths": ["Research"], "preferred_roles": ["Researcher"],
        "case_preferences": ["Social Impact", "Marketing"],
    },
    {
        "id": "p-11", "name": "Arjun Nair", "email": "arjun@example.edu", "college_name": "VIT",
        "current_year": "1st Year", "preferred_team_size": 3, "team_preference": "Postgrads only",
        "availability": "Fully Available (10–15 hrs/week)", "experience": "None",
        "core_strengths": ["Technical"], "preferred_roles": ["Flexible with any role"],
        "case_preferences": ["Product/Tech"],
    },
]


def get_mock_participant_rows():
    return [dict(r) for r in MOCK_PARTICIPANT_ROWS]


def get_mock_participants():
    return [Participant.from_record(r) for r in MOCK_PARTICIPANT_ROWS]
