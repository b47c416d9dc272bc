"""
Tests for the role capability table
"""

import pytest

from services.auth_service.permissions import (
    Capability, available_views, has_capability, require_capability,
)
from services.exceptions import PermissionDeniedError
from services.store_service.models import Role, User


class TestCapabilities:
    """Test role capabilities and navigation views"""

    def test_available_views(self):
        assert available_views(Role.ADMIN) == ["dashboard", "catalog", "allocations", "users"]
        assert available_views(Role.CREATOR) == ["dashboard", "catalog", "create-lab"]
        assert available_views(Role.STUDENT) == ["dashboard", "catalog"]

    def test_has_capability_accepts_strings(self):
        assert has_capability("student", "work_on_labs") is True
        assert has_capability("student", Capability.CREATE_LAB) is False

    def test_only_admins_manage(self):
        for role in Role:
            assert has_capability(role, Capability.MANAGE_USERS) is (role == Role.ADMIN)
            assert has_capability(role, Capability.MANAGE_ALLOCATIONS) is (role == Role.ADMIN)

    def test_require_capability(self):
        student = User(user_id="3", name="Sam", email="student@usaii.org", role=Role.STUDENT)

        require_capability(student, Capability.VIEW_CATALOG)
        with pytest.raises(PermissionDeniedError):
            require_capability(student, Capability.MANAGE_ALLOCATIONS)
