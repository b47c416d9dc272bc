"""
Lab authoring - creation, edits and soft deactivation.
"""

import uuid
from typing import Any, Dict, Optional, Union

from services.exceptions import InvalidReferenceError
from services.store_service.models import CertificationCriteria, Course, Lab, LabType
from services.store_service.record_store import COURSES, LABS, USERS, RecordStore
from services.store_service.schemas import CourseDraft, LabDraft, LabPatch
from utils.clock import Clock, system_clock
from utils.logging_config import get_logger, log_user_interaction


def enforce_type_fields(lab: Lab):
    """
    Keep type-specific fields consistent with the lab type.

    Certification labs always carry criteria (defaulting to 80% / 3 attempts /
    120 minutes); only project labs carry deliverables and effort estimates.
    """
    if lab.lab_type == LabType.CERTIFICATION:
        if lab.certification_criteria is None:
            lab.certification_criteria = CertificationCriteria()
    else:
        lab.certification_criteria = None

    if lab.lab_type != LabType.PROJECT:
        lab.project_deliverables = None
        lab.estimated_effort = None


class LabManager:
    """Creates and edits labs; labs are deactivated, never deleted"""

    def __init__(self, store: RecordStore, clock: Clock = system_clock):
        self.store = store
        self.clock = clock
        self.logger = get_logger(__name__)

    def _check_course(self, course_id: Optional[str]):
        if course_id and not self.store.exists(COURSES, course_id):
            raise InvalidReferenceError("course", course_id)

    def create_lab(self, draft: Union[LabDraft, Dict[str, Any]], creator_id: str) -> Lab:
        """
        Create a lab

        Args:
            draft: Lab contents
            creator_id: Authoring user

        Returns:
            The stored lab

        Raises:
            InvalidReferenceError: for an unknown creator or course
            pydantic.ValidationError: if the draft is invalid
        """
        if not isinstance(draft, LabDraft):
            draft = LabDraft.model_validate(draft)

        if not self.store.exists(USERS, creator_id):
            raise InvalidReferenceError("user", creator_id)
        self._check_course(draft.course_id)

        lab = Lab(
            lab_id=str(uuid.uuid4()),
            creator_id=creator_id,
            created_at=self.clock(),
            **draft.to_fields(),
        )
        enforce_type_fields(lab)

        stored = self.store.upsert(LABS, lab)
        self.logger.info(f"New lab created: {stored.title} ({stored.lab_id})")
        log_user_interaction(self.logger, "lab_created", lab_id=stored.lab_id,
                             creator_id=creator_id, lab_type=stored.lab_type.value)
        return stored

    def update_lab(self, lab_id: str, patch: Union[LabPatch, Dict[str, Any]]) -> Optional[Lab]:
        """
        Apply a partial edit to a lab

        Returns:
            Updated lab, or None if the identifier is unknown
        """
        if not isinstance(patch, LabPatch):
            patch = LabPatch.model_validate(patch)
        changes = patch.changes()
        self._check_course(changes.get("course_id"))

        def apply(lab: Lab):
            for name, value in changes.items():
                setattr(lab, name, value)
            lab.__post_init__()
            enforce_type_fields(lab)

        updated = self.store.update(LABS, lab_id, apply)
        if updated:
            self.logger.info(f"Lab updated: {updated.title} ({lab_id}) fields={sorted(changes)}")
        return updated

    def create_course(self, draft: Union[CourseDraft, Dict[str, Any]]) -> Course:
        """Add a course that labs can be attached to"""
        if not isinstance(draft, CourseDraft):
            draft = CourseDraft.model_validate(draft)

        course = Course(course_id=str(uuid.uuid4()), **draft.model_dump())
        stored = self.store.upsert(COURSES, course)
        self.logger.info(f"New course created: {stored.name} ({stored.course_id})")
        return stored

    def deactivate_lab(self, lab_id: str) -> Optional[Lab]:
        return self.update_lab(lab_id, LabPatch(is_active=False))

    def activate_lab(self, lab_id: str) -> Optional[Lab]:
        return self.update_lab(lab_id, LabPatch(is_active=True))
