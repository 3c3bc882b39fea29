from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional, Union, Literal

Proficiency = Literal["beginner", "intermediate", "advanced", "native"]
ExperienceLevel = Literal["entry", "mid", "senior", "lead", "executive"]
Difficulty = Literal["beginner", "intermediate", "advanced", "expert"]
DateLike = Union[datetime, str]


class ExtractedDocument(BaseModel):
    filename: str
    format: str
    text: str
    method: str
    limited: bool = False
    notes: List[str] = Field(default_factory=list)


class EducationEntry(BaseModel):
    institution: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    graduation_year: Optional[int] = None


class WorkExperienceEntry(BaseModel):
    company: Optional[str] = None
    position: Optional[str] = None
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    current: bool = False
    description: str = ""


class CertificationEntry(BaseModel):
    name: str
    issuer: Optional[str] = None


class LanguageEntry(BaseModel):
    language: str
    proficiency: Proficiency = "intermediate"


class JobPreferences(BaseModel):
    work_locations: List[str] = Field(default_factory=list)
    remote_preference: Optional[str] = None  # remote, hybrid, onsite, flexible


class Profile(BaseModel):
    """Stored projection of a job seeker the engine reads and merges into."""
    user_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    work_experience: List[WorkExperienceEntry] = Field(default_factory=list)
    certifications: List[CertificationEntry] = Field(default_factory=list)
    languages: List[LanguageEntry] = Field(default_factory=list)
    job_preferences: JobPreferences = Field(default_factory=JobPreferences)


class ParsedProfile(BaseModel):
    """Transient result of CV parsing; merged into a Profile, never stored as-is."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    work_experience: List[WorkExperienceEntry] = Field(default_factory=list)
    certifications: List[CertificationEntry] = Field(default_factory=list)
    languages: List[LanguageEntry] = Field(default_factory=list)
    summary: Optional[str] = None
    extraction_notes: List[str] = Field(default_factory=list)


class JobPosting(BaseModel):
    job_id: str
    title: str = ""
    description: str = ""
    required_skills: List[str] = Field(default_factory=list)
    preferred_skills: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    education_requirements: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    type: Optional[Literal["remote", "hybrid", "onsite"]] = None
    is_active: bool = True

    @property
    def all_skills(self) -> List[str]:
        return [s for s in self.required_skills + self.preferred_skills if s and s.strip()]


class LearningResource(BaseModel):
    resource_id: str
    title: str = ""
    type: Optional[str] = None
    category: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    difficulty: Optional[Difficulty] = None
    language: Optional[str] = "en"
    is_active: bool = True
