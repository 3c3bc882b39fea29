"""
Persistence collaborator for the recommendation engine.

Reads return validated models or raw documents; the only write is the
CV merge, which is a series of single-document conditional updates so two
concurrent uploads can never overwrite each other's fields.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING
from pymongo.errors import ConnectionFailure

from career_match.models.models import Profile
from career_match.models.response import MergeOutcome
from career_match.services.db import jobs_coll, learning_resources_coll, profiles_coll
from career_match.services.profile_merge import LIST_IDENTITY, ProfileMergePlan
from career_match.utils.exceptions import (
    ExceptionContext, JobNotFoundError, ProcessingError, ProfileNotFoundError, retry_with_logging
)
from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)

NO_ID = {"_id": 0}


def flatten_location(location: Any) -> Optional[str]:
    """Stored locations are either a string or a {city, country, address} object."""
    if location is None or isinstance(location, str):
        return location
    if isinstance(location, dict):
        parts = [location[k] for k in ("city", "country") if location.get(k)]
        if not parts and location.get("address"):
            parts = [location["address"]]
        return ", ".join(parts) or None
    return str(location)


def skill_names(skills: Any) -> List[str]:
    """Skills may be stored as strings or as {name, level} objects."""
    names = []
    for skill in skills or []:
        name = skill.get("name") if isinstance(skill, dict) else skill
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


def normalize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    if "location" in doc:
        doc["location"] = flatten_location(doc["location"])
    for field in ("skills", "required_skills", "preferred_skills"):
        if field in doc:
            doc[field] = skill_names(doc[field])
    return doc


def case_insensitive_exact(value: str):
    return re.compile(f"^{re.escape(value.strip())}$", re.IGNORECASE)


@retry_with_logging(max_attempts=3, backoff_factor=0.2, exceptions=(ConnectionFailure,), logger=logger)
async def _find_one(coll, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return await coll.find_one(query, NO_ID)


@retry_with_logging(max_attempts=3, backoff_factor=0.2, exceptions=(ConnectionFailure,), logger=logger)
async def _find_recent(coll, query: Dict[str, Any], sort_field: str, limit: int) -> List[Dict[str, Any]]:
    cursor = coll.find(query, NO_ID).sort([(sort_field, DESCENDING), ("_id", DESCENDING)]).limit(limit)
    return await cursor.to_list(length=limit)


class Repository:
    """Static accessors over the profiles, jobs and learning_resources collections"""

    @staticmethod
    async def get_profile(user_id: str) -> Profile:
        with ExceptionContext("get_profile", logger, collection="profiles", user_id=user_id):
            doc = await _find_one(profiles_coll, {"user_id": user_id})
        if not doc:
            raise ProfileNotFoundError(user_id)
        try:
            return Profile(**normalize_document(doc))
        except PydanticValidationError as e:
            raise ProcessingError(
                f"Stored profile for user {user_id} is invalid",
                document_id=user_id, document_type="profile", cause=e
            )

    @staticmethod
    async def query_active_jobs(filter: Optional[Dict[str, Any]] = None, limit: int = 100) -> List[Dict[str, Any]]:
        query = {**(filter or {}), "is_active": True}
        with ExceptionContext("query_active_jobs", logger, collection="jobs", limit=limit):
            docs = await _find_recent(jobs_coll, query, "posted_at", limit)
        return [normalize_document(d) for d in docs]

    @staticmethod
    async def query_active_learning_resources(filter: Optional[Dict[str, Any]] = None, limit: int = 100) -> List[Dict[str, Any]]:
        query = {**(filter or {}), "is_active": True}
        with ExceptionContext("query_active_learning_resources", logger, collection="learning_resources", limit=limit):
            docs = await _find_recent(learning_resources_coll, query, "created_at", limit)
        return [normalize_document(d) for d in docs]

    @staticmethod
    async def get_job(job_id: str) -> Dict[str, Any]:
        with ExceptionContext("get_job", logger, collection="jobs", job_id=job_id):
            doc = await _find_one(jobs_coll, {"job_id": job_id})
        if not doc:
            raise JobNotFoundError(job_id)
        return normalize_document(doc)

    @staticmethod
    async def merge_profile_fields(user_id: str, plan: ProfileMergePlan) -> MergeOutcome:
        """Apply a merge plan with one conditional update per field or entry.

        Scalars are set only while still empty; entries are pushed only while
        no stored entry has the same identity. Replaying a plan changes nothing.
        """
        outcome = MergeOutcome()
        now = datetime.utcnow()

        with ExceptionContext("merge_profile_fields", logger, collection="profiles", user_id=user_id):
            for field, value in plan.set_fields.items():
                result = await profiles_coll.update_one(
                    {
                        "user_id": user_id,
                        "$or": [{field: {"$exists": False}}, {field: None}, {field: {"$regex": r"^\s*$"}}],
                    },
                    {"$set": {field: value, "updated_at": now}},
                )
                if result.modified_count:
                    outcome.filled_fields.append(field)

            for field, entries in plan.append_entries.items():
                appended = 0
                for entry in entries:
                    result = await profiles_coll.update_one(
                        {"user_id": user_id, field: _absent_entry_guard(field, entry)},
                        {"$push": {field: entry}, "$set": {"updated_at": now}},
                    )
                    appended += result.modified_count
                if appended:
                    outcome.appended[field] = appended

        logger.info(
            f"Merged CV data into profile {user_id}: filled={outcome.filled_fields}, appended={outcome.appended}"
        )
        return outcome


def _absent_entry_guard(field: str, entry: Any) -> Dict[str, Any]:
    keys = LIST_IDENTITY[field]
    if keys is None:
        return {"$not": case_insensitive_exact(str(entry))}
    match = {}
    for key in keys:
        value = entry.get(key)
        match[key] = case_insensitive_exact(value) if isinstance(value, str) and value.strip() else {"$in": [None, ""]}
    return {"$not": {"$elemMatch": match}}
