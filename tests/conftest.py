import os
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

# Console-only logging at WARNING while testing
os.environ.setdefault("ENVIRONMENT", "testing")

from career_match.models.models import JobPosting, LearningResource, Profile

# Fixed "now" so experience years never drift between runs
NOW = datetime(2024, 6, 1)

SAMPLE_CV = (
    "John Doe\n"
    "john@x.com\n"
    "+250788123456\n"
    "Skills: JavaScript, Communication\n"
    "Education: Bachelor of Science in Computer Science, University of Rwanda, 2019"
)


def make_profile(**overrides) -> Profile:
    data = {
        "user_id": "user-1",
        "full_name": "Alice Uwase",
        "email": "alice@example.com",
        "bio": "Backend developer focused on Python services and data pipelines for fintech.",
        "location": "Kigali, Rwanda",
        "skills": ["Python", "Django", "SQL"],
        "education": [
            {"institution": "University of Rwanda", "degree": "BSc", "field_of_study": "Computer Science", "graduation_year": 2018}
        ],
        "work_experience": [
            {"company": "Kigali Fintech Ltd", "position": "Software Engineer", "start_date": "Jan 2019", "end_date": "Jan 2022"}
        ],
        "languages": [{"language": "English", "proficiency": "advanced"}],
        "job_preferences": {"work_locations": ["Kigali"]},
    }
    data.update(overrides)
    return Profile(**data)


def make_job(job_id: str = "job-1", **overrides) -> JobPosting:
    data = {
        "job_id": job_id,
        "title": "Backend Developer",
        "description": "Build APIs for our payments platform.",
        "required_skills": ["Python", "Django"],
        "preferred_skills": ["Docker"],
        "experience_level": "mid",
        "education_requirements": ["Bachelor's degree in Computer Science"],
        "location": "Kigali, Rwanda",
        "type": "onsite",
    }
    data.update(overrides)
    return JobPosting(**data)


def make_resource(resource_id: str = "res-1", **overrides) -> LearningResource:
    data = {
        "resource_id": resource_id,
        "title": "Docker for Developers",
        "type": "course",
        "category": "technical",
        "skills": ["Docker"],
        "difficulty": "intermediate",
        "language": "en",
    }
    data.update(overrides)
    return LearningResource(**data)


def set_cursor_docs(coll: MagicMock, docs):
    """Make coll.find().sort().limit().to_list() yield docs, the way the repository reads."""
    coll.find.return_value.sort.return_value.limit.return_value.to_list = AsyncMock(return_value=docs)


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def job():
    return make_job()


@pytest.fixture
def resource():
    return make_resource()


def profile_doc(**overrides):
    """A profile as stored in Mongo: ObjectId, location object, skill objects."""
    doc = {
        "_id": "665f1c2e9b1d4a0012ab34cd",
        "user_id": "user-1",
        "full_name": "Alice Uwase",
        "email": "alice@example.com",
        "bio": "Backend developer focused on Python services and data pipelines for fintech.",
        "location": {"city": "Kigali", "country": "Rwanda"},
        "skills": [{"name": "Python", "level": "advanced"}, "Django", {"name": "SQL"}],
        "education": [
            {"institution": "University of Rwanda", "degree": "BSc", "field_of_study": "Computer Science", "graduation_year": 2018}
        ],
        "work_experience": [
            {"company": "Kigali Fintech Ltd", "position": "Software Engineer", "start_date": "Jan 2019", "end_date": "Jan 2022"}
        ],
        "languages": [{"language": "English", "proficiency": "advanced"}],
        "job_preferences": {"work_locations": ["Kigali"]},
    }
    doc.update(overrides)
    return doc


def job_doc(job_id: str = "job-1", **overrides):
    return make_job(job_id, **overrides).dict()


def resource_doc(resource_id: str = "res-1", **overrides):
    return make_resource(resource_id, **overrides).dict()
