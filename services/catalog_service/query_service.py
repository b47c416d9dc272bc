"""
Query service - filtered and per-role views over the record store.
Nothing here mutates a record except the expiration sweep that precedes
every allocation listing.
"""

from typing import Any, Dict, List, Optional, Union

from services.allocation_service.lifecycle import AllocationManager
from services.store_service.models import (
    ActivityItem,
    Allocation,
    AllocationStatus,
    Course,
    Lab,
    LabCategory,
    LabLevel,
    LabProgress,
    LabType,
    Role,
    User,
    UserStatus,
)
from services.store_service.record_store import COURSES, LABS, USERS, RecordStore
from utils.logging_config import get_logger


class LabQueryService:
    """
    Read-side views for the catalog, allocations and users.
    """

    def __init__(self, store: RecordStore, allocations: AllocationManager,
                 in_progress_percent: int = 65):
        self.store = store
        self.allocations = allocations
        # Fixed display value until sub-task progress is tracked
        self.in_progress_percent = in_progress_percent
        self.logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Labs
    # ------------------------------------------------------------------

    def list_labs(self, category: Optional[Union[LabCategory, str]] = None,
                  level: Optional[Union[LabLevel, str]] = None,
                  lab_type: Optional[Union[LabType, str]] = None,
                  search: Optional[str] = None,
                  active_only: bool = False,
                  creator_id: Optional[str] = None) -> List[Lab]:
        """
        Filter the catalog; all given filters must match

        Args:
            category: Only labs in this category
            level: Only labs at this level
            lab_type: Only labs of this type
            search: Case-insensitive text matched against title, description and tags
            active_only: Skip deactivated labs
            creator_id: Only labs authored by this user

        Returns:
            Matching labs in store order
        """
        category = LabCategory(category) if category else None
        level = LabLevel(level) if level else None
        lab_type = LabType(lab_type) if lab_type else None
        term = search.strip().lower() if search else ""

        def matches(lab: Lab) -> bool:
            if category and lab.category != category:
                return False
            if level and lab.level != level:
                return False
            if lab_type and lab.lab_type != lab_type:
                return False
            if active_only and not lab.is_active:
                return False
            if creator_id and lab.creator_id != creator_id:
                return False
            if term:
                return (term in lab.title.lower()
                        or term in lab.description.lower()
                        or any(term in tag.lower() for tag in lab.tags))
            return True

        return [lab for lab in self.store.load_all(LABS) if matches(lab)]

    def labs_by_creator(self, creator_id: str) -> List[Lab]:
        return self.list_labs(creator_id=creator_id)

    def get_lab(self, lab_id: str) -> Optional[Lab]:
        return self.store.get(LABS, lab_id)

    def require_lab(self, lab_id: str) -> Lab:
        return self.store.require(LABS, lab_id)

    def list_courses(self) -> List[Course]:
        return self.store.load_all(COURSES)

    # ------------------------------------------------------------------
    # Allocations
    # ------------------------------------------------------------------

    def list_allocations(self) -> List[Allocation]:
        return self.allocations.list()

    def list_allocations_for_user(self, user_id: str) -> List[Allocation]:
        return self.allocations.list_by_user(user_id)

    def progress_for(self, status: AllocationStatus) -> int:
        if status == AllocationStatus.COMPLETED:
            return 100
        if status == AllocationStatus.IN_PROGRESS:
            return self.in_progress_percent
        return 0

    def lab_status_for_user(self, lab: Lab, user_id: str,
                            allocations: Optional[List[Allocation]] = None) -> Optional[LabProgress]:
        """
        A user's status on one lab

        Args:
            lab: Lab to look up
            user_id: User whose allocation is wanted
            allocations: Already-fetched allocations; fetched (with a sweep) when omitted

        Returns:
            LabProgress, or None if the lab is not allocated to the user
        """
        if allocations is None:
            allocations = self.list_allocations_for_user(user_id)
        allocation = self.allocations.find_for(lab.lab_id, user_id, allocations)
        if allocation is None:
            return None
        return LabProgress(
            status=allocation.status,
            due_date=allocation.due_date,
            progress=self.progress_for(allocation.status),
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self, search: Optional[str] = None,
                   status: Optional[Union[UserStatus, str]] = None,
                   role: Optional[Union[Role, str]] = None) -> List[User]:
        """Users matching a case-insensitive name/email search, status and role"""
        status = UserStatus(status) if status else None
        role = Role(role) if role else None
        term = search.strip().lower() if search else ""

        results = []
        for user in self.store.load_all(USERS):
            if term and term not in user.name.lower() and term not in user.email.lower():
                continue
            if status and user.status != status:
                continue
            if role and user.role != role:
                continue
            results.append(user)
        return results

    # ------------------------------------------------------------------
    # Dashboards
    # ------------------------------------------------------------------

    def dashboard_stats(self, user: User) -> Dict[str, Any]:
        """Headline numbers for a user's dashboard, by role"""
        if user.role == Role.ADMIN:
            allocations = self.list_allocations()
            completed = sum(1 for a in allocations if a.status == AllocationStatus.COMPLETED)
            return {
                "total_labs": len(self.store.load_all(LABS)),
                "active_allocations": len(allocations),
                "total_users": len(self.store.load_all(USERS)),
                "completion_rate": round(100 * completed / len(allocations)) if allocations else 0,
            }

        if user.role == Role.CREATOR:
            my_labs = self.labs_by_creator(user.user_id)
            my_lab_ids = {lab.lab_id for lab in my_labs}
            allocations = self.list_allocations()
            return {
                "my_labs": len(my_labs),
                "active_labs": sum(1 for lab in my_labs if lab.is_active),
                "total_allocations": sum(1 for a in allocations if a.lab_id in my_lab_ids),
                "average_duration": (
                    round(sum(lab.duration for lab in my_labs) / len(my_labs)) if my_labs else 0
                ),
            }

        mine = self.list_allocations_for_user(user.user_id)
        return {
            "assigned": len(mine),
            "in_progress": sum(1 for a in mine if a.status == AllocationStatus.IN_PROGRESS),
            "completed": sum(1 for a in mine if a.status == AllocationStatus.COMPLETED),
            "overdue": sum(1 for a in mine if a.status == AllocationStatus.OVERDUE),
        }

    def recent_activity(self, user: User, limit: int = 5) -> List[ActivityItem]:
        """
        Latest items for a dashboard feed

        Students see their newest allocations; other roles see the newest labs.
        """
        if user.role == Role.STUDENT:
            labs = {lab.lab_id: lab for lab in self.store.load_all(LABS)}
            mine = sorted(self.list_allocations_for_user(user.user_id),
                          key=lambda a: a.allocated_at, reverse=True)
            return [
                ActivityItem(
                    item_id=a.allocation_id,
                    title=labs[a.lab_id].title if a.lab_id in labs else "Unknown Lab",
                    description=f"Status: {a.status.value}",
                    timestamp=a.allocated_at,
                    item_type="allocation",
                )
                for a in mine[:limit]
            ]

        labs = sorted(self.store.load_all(LABS), key=lambda lab: lab.created_at, reverse=True)
        return [
            ActivityItem(
                item_id=lab.lab_id,
                title=lab.title,
                description=lab.description,
                timestamp=lab.created_at,
                item_type="lab",
            )
            for lab in labs[:limit]
        ]
