from datetime import datetime

import pytest
from conftest import NOW, make_profile

from career_match.models.engine_settings import LocaleSettings
from career_match.services.profile_analyzer import (
    analyze_profile, career_stage, degree_level, experience_years, parse_date, skill_level
)


@pytest.mark.parametrize("value, expected", [
    ("Jan 2019", datetime(2019, 1, 1)),
    ("January 2019", datetime(2019, 1, 1)),
    ("Sept 2020", datetime(2020, 9, 1)),
    ("03/2019", datetime(2019, 3, 1)),
    ("2019-03-01", datetime(2019, 3, 1)),
    ("2019", datetime(2019, 1, 1)),
    (datetime(2021, 5, 4), datetime(2021, 5, 4)),
    ("sometime", None),
    ("", None),
    (None, None),
])
def test_parse_date(value, expected):
    assert parse_date(value) == expected


def test_experience_years_counts_current_roles_until_now():
    profile = make_profile(work_experience=[
        {"company": "A", "start_date": "Jan 2018", "end_date": "Jan 2020"},
        {"company": "B", "start_date": "Jan 2020", "current": True},
        {"company": "C", "start_date": "not a date", "end_date": "2021"},
    ])
    assert experience_years(profile, now=datetime(2023, 1, 1)) == 5.0


@pytest.mark.parametrize("degree, level", [
    ("PhD in Physics", 5),
    ("Master of Science", 4),
    ("BSc", 3),
    ("Diploma", 2),
    (None, 1),
])
def test_degree_level(degree, level):
    assert degree_level(degree) == level


def test_career_stage_thresholds():
    assert career_stage(0) == "entry"
    assert career_stage(2) == "mid"
    assert career_stage(5) == "senior"


def test_skill_level_is_capped():
    assert skill_level(0, 1, 0) == 1.0
    assert skill_level(8, 3, 1) == pytest.approx(3.8)
    assert skill_level(20, 5, 4) <= 4.0


class TestAnalyzeProfile:

    def test_rich_profile(self):
        profile = make_profile(languages=[
            {"language": "English", "proficiency": "advanced"},
            {"language": "Kinyarwanda", "proficiency": "native"},
            {"language": "French", "proficiency": "beginner"},
        ])
        analysis = analyze_profile(profile, LocaleSettings(), now=NOW)

        assert analysis.experience_years == 3.0
        assert analysis.career_stage == "mid"
        assert analysis.education_level == 3
        assert analysis.has_technical_education
        assert analysis.has_local_experience
        assert analysis.language_skills == ["english", "kinyarwanda"]
        assert "Multilingual" in analysis.strengths

    def test_empty_profile(self):
        analysis = analyze_profile(make_profile(
            bio=None, skills=[], education=[], work_experience=[], languages=[]
        ), now=NOW)

        assert analysis.experience_years == 0.0
        assert analysis.skill_level == 1.0
        assert analysis.education_level == 1
        assert not analysis.has_local_experience
        assert "No work experience listed" in analysis.weaknesses
        assert "Incomplete profile summary" in analysis.weaknesses
