from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from career_match.models.response import CVParseResponse
from career_match.services.cv_parser import parse_cv
from career_match.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/parse", response_model=CVParseResponse)
async def parse_uploaded_cv(file: UploadFile = File(...)):
    """Parse an uploaded CV (pdf, docx or plain text) into structured profile data"""
    buffer = await file.read()
    filename = file.filename or "upload"
    logger.info(f"Parsing uploaded CV {filename} ({len(buffer)} bytes)")

    # Extraction and parsing are CPU bound
    parsed = await run_in_threadpool(parse_cv, buffer, filename)
    return CVParseResponse(filename=filename, parsed=parsed)
