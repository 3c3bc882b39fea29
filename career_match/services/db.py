import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING
import os
from dotenv import load_dotenv

# Import logging
from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)

# Load environment variables from .env
load_dotenv()

# Connection string (from .env or local fallback)
MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")

DB_NAME = os.getenv("DB_NAME", "career_match_db")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

# Initialize client
try:
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
    db = client[DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
profiles_coll = db["profiles"]
jobs_coll = db["jobs"]
learning_resources_coll = db["learning_resources"]


async def _ensure_index(coll, keys, **kwargs):
    name = f"{coll.name}.({', '.join(k for k, _ in keys)})"
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Created index on {name}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {name} already exists")
        else:
            logger.warning(f"Could not create index on {name}: {e}")


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    # Profiles are looked up and merged by user id
    await _ensure_index(profiles_coll, [("user_id", ASCENDING)], unique=True)

    # Candidate sampling reads the most recent active documents first
    await _ensure_index(jobs_coll, [("job_id", ASCENDING)], unique=True)
    await _ensure_index(jobs_coll, [("is_active", ASCENDING), ("posted_at", DESCENDING)])
    await _ensure_index(learning_resources_coll, [("resource_id", ASCENDING)], unique=True)
    await _ensure_index(learning_resources_coll, [("is_active", ASCENDING), ("created_at", DESCENDING)])

    logger.info("Database index initialization completed")
