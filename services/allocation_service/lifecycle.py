"""
Allocation lifecycle - creation, status transitions and the overdue sweep.

States: assigned -> in-progress -> completed, and assigned/in-progress -> overdue.
The sweep runs before every read of the allocation list, never on writes.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from services.allocation_service.expiration import ExpirationPolicy
from services.exceptions import InvalidReferenceError, InvalidTransitionError
from services.store_service.models import (
    Allocation, AllocationStatus, enforce_completion_timestamp,
)
from services.store_service.record_store import ALLOCATIONS, LABS, USERS, RecordStore
from services.store_service.schemas import AllocationPatch
from utils.clock import parse_timestamp
from utils.logging_config import get_logger, log_allocation_event, log_execution_time


class AllocationManager:
    """
    Owns allocation state transitions.
    Read paths always reflect the latest expiration state.
    """

    def __init__(self, store: RecordStore, policy: ExpirationPolicy):
        self.store = store
        self.policy = policy
        self.clock = policy.clock
        self.logger = get_logger(__name__)

    def _require_reference(self, kind: str, record_id: str, label: str):
        if not self.store.exists(kind, record_id):
            raise InvalidReferenceError(label, record_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, lab_id: str, user_id: str, allocated_by: str,
               due_date: Union[datetime, str]) -> Allocation:
        """
        Assign a lab to a user

        Args:
            lab_id: Lab to assign
            user_id: Assignee
            allocated_by: User making the assignment
            due_date: Due date (datetime or ISO-8601 string)

        Returns:
            The new allocation, status assigned

        Raises:
            InvalidReferenceError: if the lab or user does not exist
        """
        self._require_reference(LABS, lab_id, "lab")
        self._require_reference(USERS, user_id, "user")

        allocation = Allocation(
            allocation_id=str(uuid.uuid4()),
            lab_id=lab_id,
            user_id=user_id,
            allocated_by=allocated_by,
            allocated_at=self.clock(),
            due_date=parse_timestamp(due_date),
            status=AllocationStatus.ASSIGNED,
        )
        stored = self.store.upsert(ALLOCATIONS, allocation)
        log_allocation_event(self.logger, "created", stored.allocation_id,
                             lab_id=lab_id, user_id=user_id, allocated_by=allocated_by)
        return stored

    def start(self, allocation_id: str) -> Optional[Allocation]:
        """Move an assigned allocation to in-progress"""
        def apply(allocation: Allocation):
            if allocation.status != AllocationStatus.ASSIGNED:
                raise InvalidTransitionError(
                    f"Cannot start allocation {allocation_id} from {allocation.status.value}"
                )
            allocation.status = AllocationStatus.IN_PROGRESS

        updated = self.store.update(ALLOCATIONS, allocation_id, apply)
        if updated:
            log_allocation_event(self.logger, "started", allocation_id)
        return updated

    def complete(self, allocation_id: str, score: Optional[float] = None) -> Optional[Allocation]:
        """
        Mark an allocation completed

        Returns:
            Updated allocation, or None if the identifier is unknown

        Raises:
            InvalidTransitionError: if the allocation is already completed or overdue
        """
        now = self.clock()

        def apply(allocation: Allocation):
            if allocation.status.is_terminal:
                raise InvalidTransitionError(
                    f"Cannot complete allocation {allocation_id} from {allocation.status.value}"
                )
            allocation.status = AllocationStatus.COMPLETED
            allocation.completed_at = now
            if score is not None:
                allocation.score = score

        updated = self.store.update(ALLOCATIONS, allocation_id, apply)
        if updated:
            log_allocation_event(self.logger, "completed", allocation_id, score=score)
        return updated

    def update_status(self, allocation_id: str,
                      status: Union[AllocationStatus, str]) -> Optional[Allocation]:
        """Set a status directly; completing keeps an existing completed_at or stamps now"""
        status = AllocationStatus(status)
        now = self.clock()

        def apply(allocation: Allocation):
            allocation.status = status
            enforce_completion_timestamp(allocation, now)

        updated = self.store.update(ALLOCATIONS, allocation_id, apply)
        if updated:
            log_allocation_event(self.logger, "status_changed", allocation_id, status=status.value)
        return updated

    def update(self, allocation_id: str,
               patch: Union[AllocationPatch, Dict[str, Any]]) -> Optional[Allocation]:
        """
        Administrative edit; any field, including status, may be set directly

        Returns:
            Updated allocation, or None if the identifier is unknown

        Raises:
            InvalidReferenceError: if the edit points at a missing lab or user
        """
        if not isinstance(patch, AllocationPatch):
            patch = AllocationPatch.model_validate(patch)
        changes = patch.changes()

        if "lab_id" in changes:
            self._require_reference(LABS, changes["lab_id"], "lab")
        if "user_id" in changes:
            self._require_reference(USERS, changes["user_id"], "user")

        now = self.clock()

        def apply(allocation: Allocation):
            for name, value in changes.items():
                setattr(allocation, name, value)
            enforce_completion_timestamp(allocation, now)

        updated = self.store.update(ALLOCATIONS, allocation_id, apply)
        if updated:
            log_allocation_event(self.logger, "updated", allocation_id, fields=sorted(changes))
        return updated

    # ------------------------------------------------------------------
    # Expiration
    # ------------------------------------------------------------------

    def sweep(self) -> List[str]:
        """
        Mark every expired, non-terminal allocation overdue

        All transitions are written in a single save; a sweep that changes
        nothing does not write.

        Returns:
            Identifiers of the allocations that became overdue
        """
        labs = {lab.lab_id: lab for lab in self.store.load_all(LABS)}
        transitioned: List[str] = []

        def apply(allocations: List[Allocation]) -> bool:
            for allocation in allocations:
                if allocation.status.is_terminal:
                    continue
                lab = labs.get(allocation.lab_id)
                if self.policy.is_expired(allocation, lab):
                    allocation.status = AllocationStatus.OVERDUE
                    transitioned.append(allocation.allocation_id)
                    log_allocation_event(
                        self.logger, "overdue", allocation.allocation_id,
                        expiration_hours=lab.expiration_hours if lab else self.policy.default_hours
                    )
            return bool(transitioned)

        with log_execution_time(self.logger, "expiration sweep"):
            self.store.mutate(ALLOCATIONS, apply)

        if transitioned:
            self.logger.info(f"Marked {len(transitioned)} allocations overdue")
        return transitioned

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, allocation_id: str) -> Optional[Allocation]:
        return self.store.get(ALLOCATIONS, allocation_id)

    def list(self) -> List[Allocation]:
        """All allocations, after one expiration sweep"""
        self.sweep()
        return self.store.load_all(ALLOCATIONS)

    def list_by_user(self, user_id: str) -> List[Allocation]:
        """A user's allocations, after one expiration sweep"""
        self.sweep()
        return [a for a in self.store.load_all(ALLOCATIONS) if a.user_id == user_id]

    def find_for(self, lab_id: str, user_id: str,
                 allocations: Optional[List[Allocation]] = None) -> Optional[Allocation]:
        """First allocation pairing a lab and a user"""
        if allocations is None:
            allocations = self.store.load_all(ALLOCATIONS)
        for allocation in allocations:
            if allocation.lab_id == lab_id and allocation.user_id == user_id:
                return allocation
        return None
