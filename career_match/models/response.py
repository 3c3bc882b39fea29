# models/response.py
from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime

from career_match.models.models import JobPosting, LearningResource, ParsedProfile


class ScoredCandidate(BaseModel):
    score: float = Field(ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)
    skill_gap: List[str] = Field(default_factory=list)
    sub_scores: Dict[str, float] = Field(default_factory=dict)

    @property
    def candidate_id(self) -> str:
        raise NotImplementedError


class JobMatch(ScoredCandidate):
    job: JobPosting
    areas_of_improvement: List[str] = Field(default_factory=list)

    @property
    def candidate_id(self) -> str:
        return self.job.job_id


class LearningMatch(ScoredCandidate):
    resource: LearningResource

    @property
    def candidate_id(self) -> str:
        return self.resource.resource_id


class FilteredCandidate(BaseModel):
    candidate_id: str
    reason: str


class JobRecommendations(BaseModel):
    user_id: str
    items: List[JobMatch] = Field(default_factory=list)
    filtered: List[FilteredCandidate] = Field(default_factory=list)
    below_cutoff: int = 0
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class LearningRecommendations(BaseModel):
    user_id: str
    items: List[LearningMatch] = Field(default_factory=list)
    filtered: List[FilteredCandidate] = Field(default_factory=list)
    below_cutoff: int = 0
    critical_skills: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class DashboardRecommendations(BaseModel):
    user_id: str
    jobs: List[JobMatch] = Field(default_factory=list)
    learning: List[LearningMatch] = Field(default_factory=list)
    profile_found: bool = True


class MergeOutcome(BaseModel):
    filled_fields: List[str] = Field(default_factory=list)
    appended: Dict[str, int] = Field(default_factory=dict)


class CVParseResponse(BaseModel):
    filename: str
    parsed: ParsedProfile


class CVMergeResponse(BaseModel):
    user_id: str
    filename: str
    parsed: ParsedProfile
    merge: MergeOutcome
