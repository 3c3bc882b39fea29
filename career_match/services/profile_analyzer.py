"""
Derived profile features used by the scorers.

Everything here is a pure function of the stored profile (plus "now" for
ongoing positions). Strengths and weaknesses only feed human-readable
reasons; they never enter a score.
"""
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from career_match.models.engine_settings import LocaleSettings
from career_match.models.models import DateLike, Profile, WorkExperienceEntry
from career_match.utils.logging_config import get_logger

logger = get_logger(__name__)

DEGREE_LEVELS = (
    (5, ("phd", "ph.d", "doctorate", "doctor of")),
    (4, ("master", "mba", "msc", "m.sc", "meng", "mtech", "m.a")),
    (3, ("bachelor", "bsc", "b.sc", "beng", "btech", "b.a", "degree", "licence", "undergraduate")),
    (2, ("diploma", "certificate", "associate", "a-level", "a level")),
)
TECHNICAL_FIELDS = (
    "computer", "software", "engineering", "information technology", "it", "data", "mathematics",
    "statistics", "physics", "science", "electrical", "electronics", "telecommunication",
)
_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%b %Y", "%B %Y", "%m/%Y", "%Y")
_MONTH_ABBREV_RE = re.compile(r"^([A-Za-z]{3})[A-Za-z]*\.?\s+(\d{4})$")


class ProfileAnalysis(BaseModel):
    skill_level: float = Field(ge=1.0, le=4.0)
    experience_years: float = Field(ge=0.0)
    education_level: int = Field(ge=1, le=5)
    career_stage: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    language_skills: List[str] = Field(default_factory=list)
    has_local_experience: bool = False
    has_technical_education: bool = False


def parse_date(value: Optional[DateLike]) -> Optional[datetime]:
    """Accept datetimes and the CV/date-picker string shapes; None when unparsable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    month = _MONTH_ABBREV_RE.match(text)
    if month:
        text = f"{month.group(1)} {month.group(2)}"
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def entry_years(entry: WorkExperienceEntry, now: datetime) -> float:
    start = parse_date(entry.start_date)
    if start is None:
        return 0.0
    end = now if entry.current else parse_date(entry.end_date)
    if end is None:
        return 0.0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(months, 0) / 12.0


def experience_years(profile: Profile, now: Optional[datetime] = None) -> float:
    now = now or datetime.utcnow()
    return round(sum(entry_years(e, now) for e in profile.work_experience), 1)


def degree_level(degree: Optional[str]) -> int:
    text = (degree or "").lower()
    for level, keywords in DEGREE_LEVELS:
        if any(k in text for k in keywords):
            return level
    return 1


def education_level(profile: Profile) -> int:
    return max((degree_level(e.degree) for e in profile.education), default=1)


def career_stage(years: float) -> str:
    if years < 2:
        return "entry"
    if years < 5:
        return "mid"
    return "senior"


def skill_level(years: float, edu_level: int, certification_count: int) -> float:
    level = 1.0
    if years >= 3:
        level += 1
    if years >= 7:
        level += 1
    if edu_level >= 3:
        level += 0.5
    if certification_count > 0:
        level += 0.3
    return min(level, 4.0)


def has_technical_education(profile: Profile) -> bool:
    for entry in profile.education:
        text = f"{entry.field_of_study or ''} {entry.degree or ''}".lower()
        words = set(re.findall(r"[a-z]+", text))
        if any((f in words) if " " not in f else (f in text) for f in TECHNICAL_FIELDS):
            return True
    return False


def has_local_experience(profile: Profile, locale: LocaleSettings) -> bool:
    keywords = [k.lower() for k in locale.market_keywords]
    for entry in profile.work_experience:
        text = f"{entry.company or ''} {entry.description or ''}".lower()
        if any(k in text for k in keywords):
            return True
    return False


def language_skills(profile: Profile) -> List[str]:
    return [l.language.lower() for l in profile.languages if l.language and l.proficiency != "beginner"]


def analyze_profile(profile: Profile, locale: Optional[LocaleSettings] = None, now: Optional[datetime] = None) -> ProfileAnalysis:
    locale = locale or LocaleSettings()
    years = experience_years(profile, now)
    edu = education_level(profile)
    languages = language_skills(profile)

    strengths, weaknesses = [], []
    if len(profile.skills) >= 5:
        strengths.append("Diverse skill set")
    elif len(profile.skills) < 3:
        weaknesses.append("Limited skills listed")
    if years >= 3:
        strengths.append("Solid work experience")
    elif not profile.work_experience:
        weaknesses.append("No work experience listed")
    if edu >= 3:
        strengths.append("Strong educational background")
    if profile.certifications:
        strengths.append("Professional certifications")
    if len(languages) >= 2:
        strengths.append("Multilingual")
    if not profile.bio or len(profile.bio) < 50:
        weaknesses.append("Incomplete profile summary")

    return ProfileAnalysis(
        skill_level=skill_level(years, edu, len(profile.certifications)),
        experience_years=years,
        education_level=edu,
        career_stage=career_stage(years),
        strengths=strengths,
        weaknesses=weaknesses,
        language_skills=languages,
        has_local_experience=has_local_experience(profile, locale),
        has_technical_education=has_technical_education(profile),
    )
