import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch
from conftest import SAMPLE_CV, make_profile

from career_match.models.response import (
    DashboardRecommendations, JobRecommendations, LearningRecommendations, MergeOutcome
)
from career_match.services.repository import Repository
from career_match.utils.exceptions import ProfileNotFoundError

ENGINE = "career_match.services.recommendations"


@pytest.fixture
def test_app():
    from career_match.main import app
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


class TestAppEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers
        assert "X-Processing-Time" in response.headers


class TestCVRouter:

    def test_parse_text_cv(self, client):
        response = client.post("/api/cvs/parse", files={"file": ("cv.txt", SAMPLE_CV.encode(), "text/plain")})

        assert response.status_code == 200
        body = response.json()
        assert body["filename"] == "cv.txt"
        assert body["parsed"]["name"] == "John Doe"
        assert body["parsed"]["education"][0]["institution"] == "University of Rwanda"

    def test_parse_empty_pdf(self, client):
        response = client.post("/api/cvs/parse", files={"file": ("cv.pdf", b"", "application/pdf")})

        assert response.status_code == 200
        assert "Empty upload" in response.json()["parsed"]["extraction_notes"]

    def test_missing_file_is_rejected(self, client):
        response = client.post("/api/cvs/parse")
        assert response.status_code == 422


class TestProfilesRouter:

    @patch.object(Repository, "get_profile", new_callable=AsyncMock)
    def test_get_profile(self, mock_get, client):
        mock_get.return_value = make_profile()

        response = client.get("/api/profiles/user-1")
        assert response.status_code == 200
        assert response.json()["user_id"] == "user-1"

    @patch.object(Repository, "get_profile", new_callable=AsyncMock)
    def test_get_profile_not_found(self, mock_get, client):
        mock_get.side_effect = ProfileNotFoundError("ghost")

        response = client.get("/api/profiles/ghost")
        assert response.status_code == 404
        assert response.json()["detail"]["error"]["error_code"] == "PROFILE_NOT_FOUND"

    @patch.object(Repository, "merge_profile_fields", new_callable=AsyncMock)
    @patch.object(Repository, "get_profile", new_callable=AsyncMock)
    def test_upload_cv_merges_new_data(self, mock_get, mock_merge, client):
        mock_get.return_value = make_profile(phone=None)
        mock_merge.return_value = MergeOutcome(filled_fields=["phone"], appended={"skills": 2})

        response = client.post(
            "/api/profiles/user-1/cv", files={"file": ("cv.txt", SAMPLE_CV.encode(), "text/plain")}
        )

        assert response.status_code == 200
        assert response.json()["merge"] == {"filled_fields": ["phone"], "appended": {"skills": 2}}
        user_id, plan = mock_merge.await_args[0]
        assert user_id == "user-1"
        assert plan.set_fields == {"phone": "+250788123456"}
        assert plan.append_entries["skills"] == ["Javascript", "Communication"]

    @patch.object(Repository, "merge_profile_fields", new_callable=AsyncMock)
    @patch.object(Repository, "get_profile", new_callable=AsyncMock)
    def test_upload_with_nothing_new_skips_the_write(self, mock_get, mock_merge, client):
        mock_get.return_value = make_profile()

        response = client.post("/api/profiles/user-1/cv", files={"file": ("cv.pdf", b"", "application/pdf")})

        assert response.status_code == 200
        assert response.json()["merge"] == {"filled_fields": [], "appended": {}}
        mock_merge.assert_not_awaited()

    @patch.object(Repository, "get_profile", new_callable=AsyncMock)
    def test_upload_for_unknown_user(self, mock_get, client):
        mock_get.side_effect = ProfileNotFoundError("ghost")

        response = client.post("/api/profiles/ghost/cv", files={"file": ("cv.txt", b"text", "text/plain")})
        assert response.status_code == 404


class TestRecommendationsRouter:

    @patch(f"{ENGINE}.get_job_recommendations", new_callable=AsyncMock)
    def test_job_recommendations(self, mock_jobs, client):
        mock_jobs.return_value = JobRecommendations(user_id="user-1")

        response = client.get("/api/recommendations/user-1/jobs?limit=5&best_effort=true")

        assert response.status_code == 200
        assert response.json()["user_id"] == "user-1"
        args, kwargs = mock_jobs.await_args
        assert args == ("user-1",)
        assert kwargs["limit"] == 5
        assert kwargs["best_effort"] is True
        assert "cache" not in kwargs

    @pytest.mark.parametrize("limit", [0, 51])
    def test_limit_is_bounded(self, client, limit):
        response = client.get(f"/api/recommendations/user-1/jobs?limit={limit}")
        assert response.status_code == 422

    @patch(f"{ENGINE}.get_learning_recommendations", new_callable=AsyncMock)
    def test_unknown_user_is_404(self, mock_learning, client):
        mock_learning.side_effect = ProfileNotFoundError("ghost")

        response = client.get("/api/recommendations/ghost/learning")
        assert response.status_code == 404

    @patch(f"{ENGINE}.get_job_specific_learning_recommendations", new_callable=AsyncMock)
    def test_job_specific_learning(self, mock_learning, client):
        mock_learning.return_value = LearningRecommendations(user_id="user-1", critical_skills=["Docker"])

        response = client.get("/api/recommendations/user-1/jobs/job-9/learning")

        assert response.status_code == 200
        assert response.json()["critical_skills"] == ["Docker"]
        assert mock_learning.await_args[0] == ("user-1", "job-9")

    @patch(f"{ENGINE}.get_dashboard_recommendations", new_callable=AsyncMock)
    def test_dashboard(self, mock_dashboard, client):
        mock_dashboard.return_value = DashboardRecommendations(user_id="ghost", profile_found=False)

        response = client.get("/api/recommendations/ghost/dashboard")

        assert response.status_code == 200
        assert response.json()["profile_found"] is False

    def test_cache_invalidation(self, client, test_app):
        response = client.delete("/api/recommendations/cache")

        assert response.status_code == 200
        assert response.json()["entries_dropped"] == 0
        assert test_app.state.market_cache is not None
