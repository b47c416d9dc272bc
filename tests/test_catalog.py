"""
Tests for lab authoring and catalog queries
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from services.allocation_service.expiration import ExpirationPolicy
from services.allocation_service.lifecycle import AllocationManager
from services.catalog_service.lab_manager import LabManager
from services.catalog_service.query_service import LabQueryService
from services.exceptions import InvalidReferenceError, NotFoundError
from services.store_service.models import (
    AllocationStatus, CertificationCriteria, LabCategory, LabLevel, LabType,
)
from services.store_service.record_store import COURSES, LABS, USERS


@pytest.fixture
def labs(store, clock):
    return LabManager(store, clock=clock)


@pytest.fixture
def allocations(store, clock):
    return AllocationManager(store, ExpirationPolicy(clock=clock))


@pytest.fixture
def queries(store, allocations):
    return LabQueryService(store, allocations)


class TestLabManager:
    """Test lab creation and edits"""

    def test_certification_gets_default_criteria(self, labs, store):
        lab = labs.create_lab({"title": "Cert", "lab_type": "certification"}, "2")

        assert lab.certification_criteria == CertificationCriteria(80, 3, 120)
        assert store.get(LABS, lab.lab_id).certification_criteria.to_dict() == {
            "passing_score": 80, "max_attempts": 3, "time_limit": 120
        }

    def test_create_sets_id_and_timestamp(self, labs, clock):
        first = labs.create_lab({"title": "One"}, "2")
        second = labs.create_lab({"title": "Two"}, "2")

        assert first.lab_id != second.lab_id
        assert first.created_at == clock()
        assert first.creator_id == "2"
        assert first.expiration_hours == 40

    def test_type_specific_fields_are_cleared(self, labs):
        lab = labs.create_lab({
            "title": "Course lab",
            "lab_type": "course",
            "certification_criteria": {"passing_score": 90},
            "project_deliverables": ["report"],
            "estimated_effort": "2 weeks",
        }, "2")

        assert lab.certification_criteria is None
        assert lab.project_deliverables is None
        assert lab.estimated_effort is None

    def test_project_fields_kept_for_projects(self, labs):
        lab = labs.create_lab({
            "title": "Capstone",
            "lab_type": "project",
            "project_deliverables": ["repo", " ", "demo"],
            "estimated_effort": "3 weeks",
            "tags": ["docker", ""],
        }, "2")

        assert lab.project_deliverables == ["repo", "demo"]
        assert lab.estimated_effort == "3 weeks"
        assert lab.tags == ["docker"]

    def test_unknown_course_rejected(self, labs):
        with pytest.raises(InvalidReferenceError):
            labs.create_lab({"title": "Orphan", "course_id": "99"}, "2")

    def test_unknown_creator_rejected(self, labs):
        with pytest.raises(InvalidReferenceError):
            labs.create_lab({"title": "Ghost"}, "no-such-user")

    @pytest.mark.parametrize("hours", [0, 169])
    def test_expiration_hours_bounds(self, labs, hours):
        with pytest.raises(ValidationError):
            labs.create_lab({"title": "Bounds", "expiration_hours": hours}, "2")

    def test_update_lab(self, labs):
        updated = labs.update_lab("1", {"title": "Regression, revisited", "expiration_hours": 72})

        assert updated.title == "Regression, revisited"
        assert updated.expiration_hours == 72
        assert updated.category == LabCategory.AI_ML

    def test_switching_to_certification_adds_criteria(self, labs):
        updated = labs.update_lab("2", {"lab_type": "certification"})
        assert updated.lab_type == LabType.CERTIFICATION
        assert updated.certification_criteria == CertificationCriteria()

    def test_update_missing_lab(self, labs):
        assert labs.update_lab("missing", {"title": "x"}) is None

    def test_create_course_then_attach_lab(self, labs, store):
        course = labs.create_course({
            "name": "MLOps Basics", "category": "AI/ML", "level": "Intermediate",
            "duration": 12, "tags": ["mlops", " "],
        })

        assert store.get(COURSES, course.course_id).name == "MLOps Basics"
        assert course.level == LabLevel.INTERMEDIATE
        assert course.tags == ["mlops"]

        lab = labs.create_lab({"title": "Model registry", "course_id": course.course_id}, "2")
        assert lab.course_id == course.course_id

    def test_create_course_requires_name(self, labs):
        with pytest.raises(ValidationError):
            labs.create_course({"name": ""})

    def test_deactivate_and_activate(self, labs, store):
        assert labs.deactivate_lab("1").is_active is False
        assert store.get(LABS, "1").is_active is False
        assert labs.activate_lab("1").is_active is True


class TestLabQueries:
    """Test catalog filters"""

    def test_no_filters_returns_store_order(self, queries):
        assert [lab.lab_id for lab in queries.list_labs()] == ["1", "2", "3", "4", "5", "6"]

    def test_filters_are_combined(self, queries):
        results = queries.list_labs(category="AI/ML", level="Advanced")
        assert [lab.lab_id for lab in results] == ["4"]

    def test_search_is_case_insensitive_over_tags(self, queries):
        assert [lab.lab_id for lab in queries.list_labs(search="PANDAS")] == ["2"]
        assert [lab.lab_id for lab in queries.list_labs(search="itertools")] == ["6"]

    def test_active_only(self, queries):
        assert "6" not in [lab.lab_id for lab in queries.list_labs(active_only=True)]

    def test_by_type_and_creator(self, queries):
        assert [lab.lab_id for lab in queries.list_labs(lab_type=LabType.PROJECT)] == ["5"]
        assert [lab.lab_id for lab in queries.labs_by_creator("6")] == ["6"]

    def test_get_lab_and_courses(self, queries):
        assert queries.get_lab("3").title == "REST APIs with Flask"
        assert queries.get_lab("missing") is None
        with pytest.raises(NotFoundError):
            queries.require_lab("missing")
        assert [c.course_id for c in queries.list_courses()] == ["1", "2", "3"]


class TestProgress:
    """Test per-user lab status"""

    def test_progress_by_status(self, queries, allocations, store):
        allocations.start("3")
        lab3 = queries.get_lab("3")
        lab4 = queries.get_lab("4")

        in_progress = queries.lab_status_for_user(lab3, "3")
        assert in_progress.status == AllocationStatus.IN_PROGRESS
        assert in_progress.progress == 65

        completed = queries.lab_status_for_user(lab4, "3")
        assert completed.progress == 100

        overdue = queries.lab_status_for_user(queries.get_lab("1"), "3")
        assert overdue.status == AllocationStatus.OVERDUE
        assert overdue.progress == 0

    def test_not_allocated(self, queries):
        assert queries.lab_status_for_user(queries.get_lab("5"), "3") is None

    def test_configurable_in_progress_value(self, store, allocations):
        queries = LabQueryService(store, allocations, in_progress_percent=50)
        allocations.start("3")
        assert queries.lab_status_for_user(queries.get_lab("3"), "3").progress == 50

    def test_listing_sweeps(self, queries, clock):
        # Load the samples first; they are seeded relative to the current time
        assert queries.list_allocations()
        clock.advance(hours=100)
        statuses = {a.allocation_id: a.status for a in queries.list_allocations()}
        assert statuses["2"] == AllocationStatus.OVERDUE
        assert statuses["4"] == AllocationStatus.COMPLETED


class TestUserQueries:
    """Test user listing"""

    def test_search_name_and_email(self, queries):
        assert [u.user_id for u in queries.list_users(search="EMMA")] == ["4"]
        assert [u.user_id for u in queries.list_users(search="usaii")] == ["1", "2", "3", "4", "5", "6"]

    def test_status_and_role_filters(self, queries):
        assert [u.user_id for u in queries.list_users(role="creator")] == ["2", "6"]
        assert [u.user_id for u in queries.list_users(status="disabled")] == ["6"]
        assert queries.list_users(role="creator", status="new") == []


class TestDashboards:
    """Test dashboard numbers and activity feeds"""

    def test_admin_stats(self, queries, store):
        stats = queries.dashboard_stats(store.get(USERS, "1"))
        assert stats == {
            "total_labs": 6,
            "active_allocations": 4,
            "total_users": 6,
            "completion_rate": 25,
        }

    def test_creator_stats(self, queries, store):
        stats = queries.dashboard_stats(store.get(USERS, "2"))
        assert stats["my_labs"] == 5
        assert stats["active_labs"] == 5
        assert stats["total_allocations"] == 4

    def test_student_stats(self, queries, store):
        stats = queries.dashboard_stats(store.get(USERS, "3"))
        assert stats == {"assigned": 3, "in_progress": 0, "completed": 1, "overdue": 1}

    def test_student_activity_is_newest_first(self, queries, store):
        feed = queries.recent_activity(store.get(USERS, "3"))

        assert [item.item_id for item in feed] == ["3", "1", "4"]
        assert feed[0].description == "Status: assigned"
        assert feed[0].item_type == "allocation"

    def test_student_activity_for_deleted_lab(self, queries, store, allocations, clock):
        allocations.create("5", "3", "1", clock() + timedelta(days=3))
        store.save_all(LABS, [lab for lab in store.load_all(LABS) if lab.lab_id != "5"])

        feed = queries.recent_activity(store.get(USERS, "3"), limit=1)
        assert feed[0].title == "Unknown Lab"

    def test_admin_activity_lists_newest_labs(self, queries, store):
        feed = queries.recent_activity(store.get(USERS, "1"), limit=2)
        assert [item.item_id for item in feed] == ["6", "5"]
        assert feed[0].item_type == "lab"
