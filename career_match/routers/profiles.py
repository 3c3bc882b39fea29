from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from career_match.models.models import Profile
from career_match.models.response import CVMergeResponse, MergeOutcome
from career_match.services.cv_parser import parse_cv
from career_match.services.profile_merge import plan_profile_merge
from career_match.services.repository import Repository
from career_match.utils.exceptions import CareerMatchBaseException, map_to_http_exception
from career_match.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/{user_id}", response_model=Profile)
async def get_profile(user_id: str):
    try:
        return await Repository.get_profile(user_id)
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)


@router.post("/{user_id}/cv", response_model=CVMergeResponse)
async def upload_cv(user_id: str, file: UploadFile = File(...)):
    """Parse a CV and fill the profile's empty fields from it.

    Existing values are never replaced; list entries are appended only when
    the profile has nothing with the same identity yet.
    """
    try:
        profile = await Repository.get_profile(user_id)
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)

    buffer = await file.read()
    filename = file.filename or "upload"
    parsed = await run_in_threadpool(parse_cv, buffer, filename)

    plan = plan_profile_merge(profile, parsed)
    if plan.is_empty:
        logger.info(f"CV {filename} adds nothing new to profile {user_id}")
        return CVMergeResponse(user_id=user_id, filename=filename, parsed=parsed, merge=MergeOutcome())

    try:
        outcome = await Repository.merge_profile_fields(user_id, plan)
    except CareerMatchBaseException as e:
        raise map_to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to merge CV {filename} into profile {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update profile from CV")

    return CVMergeResponse(user_id=user_id, filename=filename, parsed=parsed, merge=outcome)
