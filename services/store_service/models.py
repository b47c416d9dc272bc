"""
Entity data models for users, labs, courses and allocations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from utils.clock import format_timestamp, parse_timestamp, system_clock


class Role(str, Enum):
    ADMIN = "admin"
    CREATOR = "creator"
    STUDENT = "student"


class UserStatus(str, Enum):
    NEW = "new"
    VERIFIED = "verified"
    ACTIVE = "active"
    DISABLED = "disabled"


class LabCategory(str, Enum):
    AI_ML = "AI/ML"
    DATA_SCIENCE = "Data Science"
    PYTHON = "Python"
    WEB_DEVELOPMENT = "Web Development"
    DEVOPS = "DevOps"


class LabLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LabType(str, Enum):
    COURSE = "course"
    CERTIFICATION = "certification"
    PROJECT = "project"


class AllocationStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"

    @property
    def is_terminal(self) -> bool:
        return self in (AllocationStatus.COMPLETED, AllocationStatus.OVERDUE)


DEFAULT_EXPIRATION_HOURS = 40


@dataclass
class User:
    """Platform user"""
    user_id: str
    name: str
    email: str
    role: Role = Role.STUDENT
    status: UserStatus = UserStatus.NEW
    email_verified: bool = False
    created_at: datetime = field(default_factory=system_clock)
    last_login: Optional[datetime] = None
    avatar: Optional[str] = None

    def __post_init__(self):
        self.role = Role(self.role)
        self.status = UserStatus(self.status)

    @property
    def can_login(self) -> bool:
        return self.status in (UserStatus.VERIFIED, UserStatus.ACTIVE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "email_verified": self.email_verified,
            "created_at": format_timestamp(self.created_at),
            "last_login": format_timestamp(self.last_login),
            "avatar": self.avatar,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            user_id=data["user_id"],
            name=data["name"],
            email=data["email"],
            role=Role(data.get("role", Role.STUDENT.value)),
            status=UserStatus(data.get("status", UserStatus.NEW.value)),
            email_verified=bool(data.get("email_verified", False)),
            created_at=parse_timestamp(data.get("created_at")) or system_clock(),
            last_login=parse_timestamp(data.get("last_login")),
            avatar=data.get("avatar"),
        )


@dataclass
class CertificationCriteria:
    """Pass requirements for certification labs"""
    passing_score: int = 80
    max_attempts: int = 3
    time_limit: Optional[int] = 120  # minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passing_score": self.passing_score,
            "max_attempts": self.max_attempts,
            "time_limit": self.time_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CertificationCriteria':
        return cls(
            passing_score=data.get("passing_score", 80),
            max_attempts=data.get("max_attempts", 3),
            time_limit=data.get("time_limit"),
        )


@dataclass
class Lab:
    """Learning unit that can be allocated to students"""
    lab_id: str
    title: str
    description: str
    creator_id: str
    category: LabCategory = LabCategory.AI_ML
    level: LabLevel = LabLevel.BEGINNER
    lab_type: LabType = LabType.COURSE
    duration: int = 60  # minutes
    instructions: str = ""
    resources: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=system_clock)
    is_active: bool = True
    course_id: Optional[str] = None
    environment_url: Optional[str] = None
    expiration_hours: int = DEFAULT_EXPIRATION_HOURS
    prerequisites: Optional[List[str]] = None
    certification_criteria: Optional[CertificationCriteria] = None
    project_deliverables: Optional[List[str]] = None
    estimated_effort: Optional[str] = None

    def __post_init__(self):
        self.category = LabCategory(self.category)
        self.level = LabLevel(self.level)
        self.lab_type = LabType(self.lab_type)
        if isinstance(self.certification_criteria, dict):
            self.certification_criteria = CertificationCriteria.from_dict(self.certification_criteria)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lab_id": self.lab_id,
            "title": self.title,
            "description": self.description,
            "creator_id": self.creator_id,
            "category": self.category.value,
            "level": self.level.value,
            "lab_type": self.lab_type.value,
            "duration": self.duration,
            "instructions": self.instructions,
            "resources": list(self.resources),
            "tags": list(self.tags),
            "created_at": format_timestamp(self.created_at),
            "is_active": self.is_active,
            "course_id": self.course_id,
            "environment_url": self.environment_url,
            "expiration_hours": self.expiration_hours,
            "prerequisites": list(self.prerequisites) if self.prerequisites is not None else None,
            "certification_criteria": (
                self.certification_criteria.to_dict() if self.certification_criteria else None
            ),
            "project_deliverables": (
                list(self.project_deliverables) if self.project_deliverables is not None else None
            ),
            "estimated_effort": self.estimated_effort,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Lab':
        criteria = data.get("certification_criteria")
        return cls(
            lab_id=data["lab_id"],
            title=data["title"],
            description=data.get("description", ""),
            creator_id=data["creator_id"],
            category=LabCategory(data.get("category", LabCategory.AI_ML.value)),
            level=LabLevel(data.get("level", LabLevel.BEGINNER.value)),
            lab_type=LabType(data.get("lab_type", LabType.COURSE.value)),
            duration=data.get("duration", 60),
            instructions=data.get("instructions", ""),
            resources=list(data.get("resources") or []),
            tags=list(data.get("tags") or []),
            created_at=parse_timestamp(data.get("created_at")) or system_clock(),
            is_active=bool(data.get("is_active", True)),
            course_id=data.get("course_id"),
            environment_url=data.get("environment_url"),
            expiration_hours=data.get("expiration_hours") or DEFAULT_EXPIRATION_HOURS,
            prerequisites=data.get("prerequisites"),
            certification_criteria=CertificationCriteria.from_dict(criteria) if criteria else None,
            project_deliverables=data.get("project_deliverables"),
            estimated_effort=data.get("estimated_effort"),
        )


@dataclass
class Course:
    """Reference course a lab can belong to"""
    course_id: str
    name: str
    category: LabCategory
    description: str
    level: LabLevel
    duration: int  # hours
    tags: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.category = LabCategory(self.category)
        self.level = LabLevel(self.level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "level": self.level.value,
            "duration": self.duration,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Course':
        return cls(
            course_id=data["course_id"],
            name=data["name"],
            category=LabCategory(data["category"]),
            description=data.get("description", ""),
            level=LabLevel(data["level"]),
            duration=data.get("duration", 0),
            tags=list(data.get("tags") or []),
        )


@dataclass
class Allocation:
    """Assignment of one lab to one user"""
    allocation_id: str
    lab_id: str
    user_id: str
    allocated_by: str
    allocated_at: datetime
    due_date: datetime
    status: AllocationStatus = AllocationStatus.ASSIGNED
    completed_at: Optional[datetime] = None
    score: Optional[float] = None

    def __post_init__(self):
        self.status = AllocationStatus(self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allocation_id": self.allocation_id,
            "lab_id": self.lab_id,
            "user_id": self.user_id,
            "allocated_by": self.allocated_by,
            "allocated_at": format_timestamp(self.allocated_at),
            "due_date": format_timestamp(self.due_date),
            "status": self.status.value,
            "completed_at": format_timestamp(self.completed_at),
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Allocation':
        return cls(
            allocation_id=data["allocation_id"],
            lab_id=data["lab_id"],
            user_id=data["user_id"],
            allocated_by=data["allocated_by"],
            allocated_at=parse_timestamp(data["allocated_at"]),
            due_date=parse_timestamp(data["due_date"]),
            status=AllocationStatus(data.get("status", AllocationStatus.ASSIGNED.value)),
            completed_at=parse_timestamp(data.get("completed_at")),
            score=data.get("score"),
        )


def enforce_completion_timestamp(allocation: Allocation, now: datetime):
    """Keep completed_at set exactly when the allocation is completed"""
    if allocation.status == AllocationStatus.COMPLETED:
        if allocation.completed_at is None:
            allocation.completed_at = now
    else:
        allocation.completed_at = None


@dataclass
class LabProgress:
    """A student's view of one lab's allocation"""
    status: AllocationStatus
    due_date: datetime
    progress: int


@dataclass
class ActivityItem:
    """Entry in a dashboard's recent activity feed"""
    item_id: str
    title: str
    description: str
    timestamp: datetime
    item_type: str  # "allocation" or "lab"
