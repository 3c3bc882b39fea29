"""
Merge planning for CV-derived data.

A plan only ever fills empty scalar fields or appends list entries whose
identity key is new; it never replaces or removes stored data. The same
identity keys are used by the repository to make each append conditional,
so replaying a plan is a no-op.
"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from career_match.models.models import ParsedProfile, Profile
from career_match.services.skill_vocabulary import normalize_skill

# profile field <- parsed field
SCALAR_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("full_name", "name"),
    ("email", "email"),
    ("phone", "phone"),
    ("bio", "summary"),
)

# list field -> sub-fields that identify an entry (None for plain strings)
LIST_IDENTITY: Dict[str, Optional[Tuple[str, ...]]] = {
    "skills": None,
    "education": ("institution", "degree"),
    "work_experience": ("company", "position"),
    "certifications": ("name",),
    "languages": ("language",),
}


class ProfileMergePlan(BaseModel):
    set_fields: Dict[str, Any] = Field(default_factory=dict)
    append_entries: Dict[str, List[Any]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.set_fields and not any(self.append_entries.values())


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def identity_key(field: str, entry: Any) -> Tuple[str, ...]:
    keys = LIST_IDENTITY[field]
    if keys is None:
        return (normalize_skill(str(entry)),)
    data = entry if isinstance(entry, dict) else entry.dict()
    return tuple(" ".join(str(data.get(k) or "").lower().split()) for k in keys)


def plan_profile_merge(profile: Profile, parsed: ParsedProfile) -> ProfileMergePlan:
    plan = ProfileMergePlan()
    for target, source in SCALAR_FIELDS:
        value = getattr(parsed, source)
        if not _is_blank(value) and _is_blank(getattr(profile, target)):
            plan.set_fields[target] = value.strip()

    for field in LIST_IDENTITY:
        existing = {identity_key(field, e) for e in getattr(profile, field)}
        new_entries = []
        for entry in getattr(parsed, field):
            key = identity_key(field, entry)
            if not any(key) or key in existing:
                continue
            existing.add(key)
            new_entries.append(entry.strip() if isinstance(entry, str) else entry.dict())
        if new_entries:
            plan.append_entries[field] = new_entries
    return plan


def apply_merge_plan(profile: Profile, plan: ProfileMergePlan) -> Profile:
    """In-memory equivalent of the repository merge; returns a new Profile."""
    data = profile.dict()
    for field, value in plan.set_fields.items():
        if _is_blank(data.get(field)):
            data[field] = value
    for field, entries in plan.append_entries.items():
        current = list(data.get(field) or [])
        keys = {identity_key(field, e) for e in current}
        for entry in entries:
            key = identity_key(field, entry)
            if key not in keys:
                keys.add(key)
                current.append(entry)
        data[field] = current
    return Profile(**data)
