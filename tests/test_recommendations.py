import pytest
from unittest.mock import AsyncMock, patch
from conftest import job_doc, make_job, profile_doc, resource_doc, set_cursor_docs

from career_match.models.engine_settings import EngineSettings
from career_match.models.models import JobPosting
from career_match.models.response import JobMatch
from career_match.services import recommendations as engine
from career_match.utils.exceptions import JobNotFoundError, ProfileNotFoundError
from career_match.utils.ttl_cache import TTLCache

REPO = "career_match.services.repository"

POOR_JOB = {
    "required_skills": ["Accounting", "Finance"],
    "preferred_skills": [],
    "experience_level": "executive",
    "education_requirements": ["PhD in Finance"],
    "location": "Nairobi",
    "type": "onsite",
}


def _job_docs():
    return [
        job_doc("good"),
        job_doc("poor", **POOR_JOB),
        {"job_id": "broken", "experience_level": "guru"},
        {"title": "No identifier"},
        job_doc("closed", is_active=False),
    ]


class TestHelpers:

    def test_coerce_candidates_records_what_it_drops(self):
        valid, filtered = engine.coerce_candidates(_job_docs(), JobPosting, "job_id")

        assert [j.job_id for j in valid] == ["good", "poor"]
        assert [(f.candidate_id, f.reason.split(" ")[0]) for f in filtered] == [
            ("broken", "invalid"), ("#3", "missing"), ("closed", "inactive")
        ]

    def test_cutoff_keeps_scores_at_the_threshold(self):
        matches = [JobMatch(job=make_job(job_id), score=score) for job_id, score in [("a", 0.25), ("b", 0.2499), ("c", 0.3)]]

        kept, below = engine.apply_cutoff(matches, 0.25)
        assert [m.job.job_id for m in kept] == ["a", "c"]
        assert below == 1

    async def test_deadline_skips_remaining_candidates(self):
        scored, skipped = await engine.score_candidates([1, 2, 3], lambda c: c, timeout_seconds=-1)
        assert scored == []
        assert skipped == [1, 2, 3]


class TestJobRecommendations:

    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_ranks_filters_and_applies_cutoff(self, mock_profiles, mock_jobs):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        set_cursor_docs(mock_jobs, _job_docs())

        result = await engine.get_job_recommendations("user-1", limit=10, settings=EngineSettings())

        assert [m.job.job_id for m in result.items] == ["good"]
        assert result.items[0].score >= EngineSettings().cutoffs.job
        assert result.below_cutoff == 1
        assert {f.candidate_id for f in result.filtered} == {"broken", "#3", "closed"}

        query = mock_jobs.find.call_args[0][0]
        assert query["is_active"] is True

    @patch(f"{REPO}.profiles_coll")
    async def test_missing_profile_raises(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=None)

        with pytest.raises(ProfileNotFoundError):
            await engine.get_job_recommendations("ghost")

    @patch(f"{REPO}.profiles_coll")
    async def test_missing_profile_best_effort_is_empty(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=None)

        result = await engine.get_job_recommendations("ghost", best_effort=True)
        assert result.items == []
        assert result.user_id == "ghost"

    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_limit_truncates(self, mock_profiles, mock_jobs):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        set_cursor_docs(mock_jobs, [job_doc(f"job-{i}") for i in range(5)])

        result = await engine.get_job_recommendations("user-1", limit=2)
        assert [m.job.job_id for m in result.items] == ["job-0", "job-1"]


class TestLearningRecommendations:

    @patch(f"{REPO}.learning_resources_coll")
    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_market_gap_drives_ranking_and_is_cached(self, mock_profiles, mock_jobs, mock_learning):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        set_cursor_docs(mock_jobs, [job_doc("good")])
        set_cursor_docs(mock_learning, [
            resource_doc("docker"),
            resource_doc("python-expert", skills=["Python"], category="misc", difficulty="expert"),
        ])
        cache = TTLCache(max_entries=4, default_ttl=300)

        first = await engine.get_learning_recommendations("user-1", cache=cache)
        second = await engine.get_learning_recommendations("user-1", cache=cache)

        assert [m.resource.resource_id for m in first.items] == ["docker"]
        assert first.below_cutoff == 1
        assert first.critical_skills == ["Python", "Django", "Docker"]
        assert first.items[0].skill_gap == ["Docker"]
        assert [m.score for m in second.items] == [m.score for m in first.items]
        mock_jobs.find.return_value.sort.return_value.limit.return_value.to_list.assert_awaited_once()

    @patch(f"{REPO}.learning_resources_coll")
    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_job_specific_learning(self, mock_profiles, mock_jobs, mock_learning):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        mock_jobs.find_one = AsyncMock(return_value=job_doc("good"))
        set_cursor_docs(mock_learning, [resource_doc("docker")])

        result = await engine.get_job_specific_learning_recommendations("user-1", "good")

        assert result.items[0].reasons[0] == "Teaches job-required skills: Docker"
        query = mock_learning.find.call_args[0][0]
        assert "$or" in query
        assert query["is_active"] is True

    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_job_specific_learning_unknown_job(self, mock_profiles, mock_jobs):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        mock_jobs.find_one = AsyncMock(return_value=None)

        with pytest.raises(JobNotFoundError):
            await engine.get_job_specific_learning_recommendations("user-1", "nope")


class TestDashboard:

    @patch(f"{REPO}.profiles_coll")
    async def test_missing_profile_is_not_an_error(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=None)

        result = await engine.get_dashboard_recommendations("ghost")
        assert not result.profile_found
        assert result.jobs == [] and result.learning == []

    @patch(f"{REPO}.learning_resources_coll")
    @patch(f"{REPO}.jobs_coll")
    @patch(f"{REPO}.profiles_coll")
    async def test_bundles_both_lists_with_one_profile_read(self, mock_profiles, mock_jobs, mock_learning):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())
        set_cursor_docs(mock_jobs, [job_doc("good")])
        set_cursor_docs(mock_learning, [resource_doc("docker")])

        result = await engine.get_dashboard_recommendations("user-1", job_limit=1, learning_limit=1)

        assert result.profile_found
        assert [m.job.job_id for m in result.jobs] == ["good"]
        assert [m.resource.resource_id for m in result.learning] == ["docker"]
        mock_profiles.find_one.assert_awaited_once()


def test_stored_profile_shapes_are_normalized():
    from career_match.services.repository import normalize_document

    doc = normalize_document(profile_doc())
    assert "_id" not in doc
    assert doc["location"] == "Kigali, Rwanda"
    assert doc["skills"] == ["Python", "Django", "SQL"]
    assert make_job().all_skills == ["Python", "Django", "Docker"]
