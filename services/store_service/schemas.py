"""
Input schemas for creating and editing records.

Drafts describe a new record; patches carry only the fields a caller
explicitly set, so an omitted field is never confused with one cleared to None.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from services.store_service.models import (
    AllocationStatus,
    CertificationCriteria,
    DEFAULT_EXPIRATION_HOURS,
    LabCategory,
    LabLevel,
    LabType,
    Role,
)
from utils.clock import parse_timestamp

MIN_EXPIRATION_HOURS = 1
MAX_EXPIRATION_HOURS = 168


def _drop_blank(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    return [value for value in values if value.strip()]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


class CertificationCriteriaSchema(BaseModel):
    passing_score: int = Field(80, ge=0, le=100)
    max_attempts: int = Field(3, ge=1)
    time_limit: Optional[int] = Field(120, ge=1)

    def to_model(self) -> CertificationCriteria:
        return CertificationCriteria(**self.model_dump())


class LabDraft(BaseModel):
    """Payload for a new lab"""
    title: str = Field(..., min_length=1)
    description: str = ""
    course_id: Optional[str] = None
    category: LabCategory = LabCategory.AI_ML
    level: LabLevel = LabLevel.BEGINNER
    lab_type: LabType = LabType.COURSE
    duration: int = Field(60, ge=0)
    instructions: str = ""
    resources: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True
    environment_url: Optional[str] = None
    expiration_hours: int = Field(
        DEFAULT_EXPIRATION_HOURS, ge=MIN_EXPIRATION_HOURS, le=MAX_EXPIRATION_HOURS
    )
    prerequisites: List[str] = Field(default_factory=list)
    certification_criteria: Optional[CertificationCriteriaSchema] = None
    project_deliverables: Optional[List[str]] = None
    estimated_effort: Optional[str] = None

    @field_validator("resources", "tags", "prerequisites", "project_deliverables")
    @classmethod
    def strip_blank_items(cls, value):
        return _drop_blank(value)

    @field_validator("course_id", "environment_url", "estimated_effort")
    @classmethod
    def blank_text_to_none(cls, value):
        return _blank_to_none(value)

    def to_fields(self) -> Dict[str, Any]:
        fields = self.model_dump(exclude={"certification_criteria"})
        fields["certification_criteria"] = (
            self.certification_criteria.to_model() if self.certification_criteria else None
        )
        return fields


class CourseDraft(BaseModel):
    """Payload for a new course"""
    name: str = Field(..., min_length=1)
    category: LabCategory = LabCategory.AI_ML
    description: str = ""
    level: LabLevel = LabLevel.BEGINNER
    duration: int = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def strip_blank_tags(cls, value):
        return _drop_blank(value)


class LabPatch(BaseModel):
    """Partial update for a lab"""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    course_id: Optional[str] = None
    category: Optional[LabCategory] = None
    level: Optional[LabLevel] = None
    lab_type: Optional[LabType] = None
    duration: Optional[int] = Field(None, ge=0)
    instructions: Optional[str] = None
    resources: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    environment_url: Optional[str] = None
    expiration_hours: Optional[int] = Field(
        None, ge=MIN_EXPIRATION_HOURS, le=MAX_EXPIRATION_HOURS
    )
    prerequisites: Optional[List[str]] = None
    certification_criteria: Optional[CertificationCriteriaSchema] = None
    project_deliverables: Optional[List[str]] = None
    estimated_effort: Optional[str] = None

    @field_validator("resources", "tags", "prerequisites", "project_deliverables")
    @classmethod
    def strip_blank_items(cls, value):
        return _drop_blank(value)

    @field_validator("course_id", "environment_url", "estimated_effort")
    @classmethod
    def blank_text_to_none(cls, value):
        return _blank_to_none(value)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set by the caller"""
        changes = self.model_dump(exclude_unset=True, exclude={"certification_criteria"})
        # Fields that cannot be cleared
        for name in ("title", "category", "level", "lab_type", "duration", "is_active",
                     "expiration_hours", "resources", "tags", "description", "instructions"):
            if name in changes and changes[name] is None:
                del changes[name]
        if "certification_criteria" in self.model_fields_set:
            criteria = self.certification_criteria
            changes["certification_criteria"] = criteria.to_model() if criteria else None
        return changes


class AllocationPatch(BaseModel):
    """Partial update for an allocation; any field may be set directly"""
    lab_id: Optional[str] = None
    user_id: Optional[str] = None
    allocated_by: Optional[str] = None
    allocated_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    status: Optional[AllocationStatus] = None
    completed_at: Optional[datetime] = None
    score: Optional[float] = Field(None, ge=0)

    @field_validator("allocated_at", "due_date", "completed_at")
    @classmethod
    def assume_utc(cls, value):
        return parse_timestamp(value)

    def changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        for name in ("lab_id", "user_id", "allocated_by", "allocated_at", "due_date", "status"):
            if name in changes and changes[name] is None:
                del changes[name]
        return changes


class UserDraft(BaseModel):
    """Payload for a new user created by an admin"""
    name: str = Field(..., min_length=1)
    email: EmailStr
    role: Role = Role.STUDENT
    avatar: Optional[str] = None
