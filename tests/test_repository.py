import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ConnectionFailure, OperationFailure
from conftest import profile_doc, set_cursor_docs

from career_match.services.profile_merge import ProfileMergePlan
from career_match.services.repository import Repository, case_insensitive_exact, flatten_location, skill_names
from career_match.utils.exceptions import DatabaseError, ProcessingError, ProfileNotFoundError

REPO = "career_match.services.repository"


def _updated(count):
    result = MagicMock()
    result.modified_count = count
    return result


def test_flatten_location_shapes():
    assert flatten_location("Kigali") == "Kigali"
    assert flatten_location({"city": "Huye", "country": "Rwanda"}) == "Huye, Rwanda"
    assert flatten_location({"address": "KG 7 Ave"}) == "KG 7 Ave"
    assert flatten_location({}) is None
    assert flatten_location(None) is None


def test_skill_names_accepts_objects_and_strings():
    assert skill_names([{"name": " Python "}, "SQL", {"level": "x"}, "", None]) == ["Python", "SQL"]


def test_case_insensitive_exact_is_anchored_and_escaped():
    pattern = case_insensitive_exact("C++")
    assert pattern.match("c++")
    assert not pattern.match("c++ developer")
    assert pattern.flags & re.IGNORECASE


class TestReads:

    @patch(f"{REPO}.profiles_coll")
    async def test_get_profile_normalizes_stored_shapes(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc())

        profile = await Repository.get_profile("user-1")
        assert profile.location == "Kigali, Rwanda"
        assert profile.skills == ["Python", "Django", "SQL"]

    @patch(f"{REPO}.profiles_coll")
    async def test_get_profile_missing(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=None)

        with pytest.raises(ProfileNotFoundError):
            await Repository.get_profile("ghost")

    @patch(f"{REPO}.profiles_coll")
    async def test_get_profile_invalid_document(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(return_value=profile_doc(languages=[{"proficiency": "native"}]))

        with pytest.raises(ProcessingError):
            await Repository.get_profile("user-1")

    @patch(f"{REPO}.profiles_coll")
    async def test_transient_failures_are_retried(self, mock_profiles):
        mock_profiles.find_one = AsyncMock(side_effect=[ConnectionFailure("reset"), profile_doc()])

        profile = await Repository.get_profile("user-1")
        assert profile.user_id == "user-1"
        assert mock_profiles.find_one.await_count == 2

    @patch(f"{REPO}.jobs_coll")
    async def test_driver_errors_become_database_errors(self, mock_jobs):
        mock_jobs.find.return_value.sort.return_value.limit.return_value.to_list = AsyncMock(
            side_effect=OperationFailure("bad query")
        )

        with pytest.raises(DatabaseError):
            await Repository.query_active_jobs({}, 10)

    @patch(f"{REPO}.learning_resources_coll")
    async def test_sampling_is_bounded_and_most_recent_first(self, mock_learning):
        set_cursor_docs(mock_learning, [{"_id": "x", "resource_id": "r1", "skills": [{"name": "Docker"}]}])

        docs = await Repository.query_active_learning_resources({"category": "technical"}, 25)

        assert docs == [{"resource_id": "r1", "skills": ["Docker"]}]
        mock_learning.find.assert_called_once_with({"category": "technical", "is_active": True}, {"_id": 0})
        sort_spec = mock_learning.find.return_value.sort.call_args[0][0]
        assert sort_spec[0][0] == "created_at"
        mock_learning.find.return_value.sort.return_value.limit.assert_called_once_with(25)


class TestMergeProfileFields:

    @patch(f"{REPO}.profiles_coll")
    async def test_scalars_are_only_set_while_empty(self, mock_profiles):
        mock_profiles.update_one = AsyncMock(return_value=_updated(1))
        plan = ProfileMergePlan(set_fields={"phone": "+250788000111"})

        outcome = await Repository.merge_profile_fields("user-1", plan)

        query, update = mock_profiles.update_one.await_args[0]
        assert query["user_id"] == "user-1"
        assert {"phone": {"$exists": False}} in query["$or"]
        # whitespace-only values count as empty, as they do when planning
        assert {"phone": {"$regex": r"^\s*$"}} in query["$or"]
        assert update["$set"]["phone"] == "+250788000111"
        assert outcome.filled_fields == ["phone"]

    @patch(f"{REPO}.profiles_coll")
    async def test_entries_are_pushed_only_when_absent(self, mock_profiles):
        mock_profiles.update_one = AsyncMock(side_effect=[_updated(1), _updated(0), _updated(1)])
        plan = ProfileMergePlan(append_entries={
            "skills": ["Docker", "SQL"],
            "education": [{"institution": "CMU Africa", "degree": "MSc", "field_of_study": None, "graduation_year": 2021}],
        })

        outcome = await Repository.merge_profile_fields("user-1", plan)

        calls = [c[0] for c in mock_profiles.update_one.await_args_list]
        skill_query, skill_update = calls[0]
        assert skill_query["skills"]["$not"].match("docker")
        assert skill_update["$push"] == {"skills": "Docker"}

        education_query = calls[2][0]["education"]["$not"]["$elemMatch"]
        assert education_query["institution"].match("cmu africa")
        assert education_query["degree"].match("MSC")

        assert outcome.appended == {"skills": 1, "education": 1}

    @patch(f"{REPO}.profiles_coll")
    async def test_replayed_plan_changes_nothing(self, mock_profiles):
        mock_profiles.update_one = AsyncMock(return_value=_updated(0))
        plan = ProfileMergePlan(set_fields={"phone": "1"}, append_entries={"skills": ["Docker"]})

        outcome = await Repository.merge_profile_fields("user-1", plan)
        assert outcome.filled_fields == []
        assert outcome.appended == {}
