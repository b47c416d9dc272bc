"""
Tests for the record store
"""

import os
import shutil
import tempfile
from unittest.mock import MagicMock, patch

import pytest

from infrastructure.storage.blob_store import BlobStore
from services.exceptions import NotFoundError, PersistenceError
from services.store_service.models import (
    AllocationStatus, Lab, LabType, User, UserStatus,
)
from services.store_service.record_store import (
    ALLOCATIONS, COURSES, LAB_SEED_KEY, LABS, USERS, RecordStore,
)
from utils.logging_config import ErrorTracker
from conftest import FrozenClock


class TestRecordStoreDefaults:
    """Test first-load seeding"""

    def test_seeds_bundled_collections(self, store):
        users = store.load_all(USERS)
        labs = store.load_all(LABS)

        assert [u.email for u in users][:3] == [
            "admin@usaii.org", "creator@usaii.org", "student@usaii.org"
        ]
        assert [lab.lab_id for lab in labs] == ["1", "2", "3", "4", "5", "6"]
        assert len(store.load_all(COURSES)) == 3
        assert len(store.load_all(ALLOCATIONS)) == 4

    def test_seeding_is_persisted(self, store, blob_store):
        store.load_all(USERS)
        stored = blob_store.get(USERS)
        assert stored[0]["email"] == "admin@usaii.org"

    def test_empty_stored_list_is_not_reseeded(self, blob_store, clock):
        blob_store.set(USERS, [])
        store = RecordStore(blob_store, clock=clock)
        assert store.load_all(USERS) == []

    def test_no_seed_when_disabled(self, empty_store):
        assert empty_store.load_all(LABS) == []
        assert empty_store.load_all(USERS) == []


class TestRecordStoreOperations:
    """Test reads and writes"""

    def test_save_all_then_load_all_round_trip(self, store):
        users = store.load_all(USERS)[:2]
        users[0].name = "Renamed"

        assert store.save_all(USERS, users) is True
        assert store.load_all(USERS) == users

    def test_returned_records_are_copies(self, store):
        lab = store.get(LABS, "1")
        lab.title = "Changed outside the store"
        lab.tags.append("leaked")

        fresh = store.get(LABS, "1")
        assert fresh.title != "Changed outside the store"
        assert "leaked" not in fresh.tags

    def test_require_missing_raises(self, store):
        assert store.require(USERS, "1").email == "admin@usaii.org"
        with pytest.raises(NotFoundError) as exc_info:
            store.require(LABS, "missing")
        assert exc_info.value.record_id == "missing"

    def test_get_missing_returns_none(self, store):
        assert store.get(USERS, "nope") is None
        assert store.exists(USERS, "1") is True
        assert store.exists(USERS, "nope") is False

    def test_upsert_inserts_and_replaces(self, store):
        user = User(user_id="u-new", name="Nina", email="nina@usaii.org")
        store.upsert(USERS, user)
        user.name = "Nina K."
        store.upsert(USERS, user)

        matches = [u for u in store.load_all(USERS) if u.user_id == "u-new"]
        assert len(matches) == 1
        assert matches[0].name == "Nina K."

    def test_update_missing_returns_none(self, store):
        assert store.update(USERS, "missing", lambda u: None) is None

    def test_patch_merges_fields(self, store):
        updated = store.patch(USERS, "4", {"status": "active"})

        assert updated.status == UserStatus.ACTIVE
        assert store.get(USERS, "4").status == UserStatus.ACTIVE

    def test_patch_rejects_unknown_fields(self, store):
        with pytest.raises(ValueError):
            store.patch(USERS, "4", {"shoe_size": 42})

    def test_patch_rejects_id_change(self, store):
        with pytest.raises(ValueError):
            store.patch(USERS, "4", {"user_id": "40"})

    def test_patch_missing_returns_none(self, store):
        assert store.patch(USERS, "missing", {"name": "x"}) is None

    def test_patch_to_completed_stamps_completion_time(self, store, clock):
        updated = store.patch(ALLOCATIONS, "2", {"status": "completed"})

        assert updated.status == AllocationStatus.COMPLETED
        assert updated.completed_at == clock()
        assert store.get(ALLOCATIONS, "2").completed_at == clock()

    def test_patch_away_from_completed_clears_completion_time(self, store):
        assert store.get(ALLOCATIONS, "4").completed_at is not None

        updated = store.patch(ALLOCATIONS, "4", {"status": "in-progress"})

        assert updated.completed_at is None
        assert store.get(ALLOCATIONS, "4").completed_at is None

    def test_failed_patch_leaves_record_untouched(self, store, blob_store):
        before = store.get(ALLOCATIONS, "2")

        with pytest.raises(ValueError):
            store.patch(ALLOCATIONS, "2", {"status": "bogus"})

        assert store.get(ALLOCATIONS, "2") == before
        assert all(isinstance(a.status, AllocationStatus) for a in store.load_all(ALLOCATIONS))
        stored = {a["allocation_id"]: a for a in blob_store.get(ALLOCATIONS)}
        assert stored["2"]["status"] == before.status.value

    def test_failed_update_leaves_record_untouched(self, store):
        def apply(user):
            user.name = "Half applied"
            raise RuntimeError("edit failed")

        with pytest.raises(RuntimeError):
            store.update(USERS, "4", apply)

        assert store.get(USERS, "4").name != "Half applied"

    def test_mutate_only_writes_on_change(self, store, blob_store):
        store.load_all(ALLOCATIONS)
        with patch.object(blob_store, "set", wraps=blob_store.set) as spy:
            assert store.mutate(ALLOCATIONS, lambda records: False) is False
            assert spy.call_count == 0

            assert store.mutate(ALLOCATIONS, lambda records: True) is True
            assert spy.call_count == 1

    def test_unknown_kind(self, store):
        with pytest.raises(ValueError):
            store.load_all("widgets")

    def test_reset_reloads_from_storage(self, store, blob_store):
        store.load_all(USERS)
        blob_store.set(USERS, [])
        store.reset(USERS)
        assert store.load_all(USERS) == []


class TestLabReconciliation:
    """Test merging bundled labs with stored labs"""

    def setup_method(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "labs.db")
        self.clock = FrozenClock()

    def teardown_method(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _open(self) -> RecordStore:
        return RecordStore(BlobStore(self.db_path), clock=self.clock)

    def test_user_added_labs_follow_defaults(self):
        store = self._open()
        store.upsert(LABS, Lab(lab_id="custom", title="Custom", description="", creator_id="2"))

        reopened = self._open()
        ids = [lab.lab_id for lab in reopened.load_all(LABS)]
        assert ids == ["1", "2", "3", "4", "5", "6", "custom"]

    def test_edited_default_lab_is_kept(self):
        store = self._open()
        store.patch(LABS, "2", {"title": "Pandas, revised"})

        reopened = self._open()
        assert reopened.get(LABS, "2").title == "Pandas, revised"

    def test_unedited_default_lab_is_refreshed_from_bundle(self):
        store = self._open()
        store.load_all(LABS)

        blob = BlobStore(self.db_path)
        assert set(blob.get(LAB_SEED_KEY)) == {"1", "2", "3", "4", "5", "6"}

        reopened = self._open()
        assert reopened.get(LABS, "4").lab_type == LabType.CERTIFICATION

    def test_stored_copy_without_seed_record_loses_to_bundle(self):
        blob = BlobStore(self.db_path)
        stale = Lab(lab_id="1", title="Stale", description="", creator_id="2")
        blob.set(LABS, [stale.to_dict()])

        store = self._open()
        assert store.get(LABS, "1").title == "Linear Regression from Scratch"


class TestPersistenceFailures:
    """Storage failures are logged and never raised"""

    def test_write_failure_is_tracked_not_raised(self, clock):
        blob_store = MagicMock(spec=BlobStore)
        blob_store.get.return_value = None
        blob_store.set.side_effect = PersistenceError("disk full")
        tracker = MagicMock(spec=ErrorTracker)

        store = RecordStore(blob_store, clock=clock, error_tracker=tracker)
        user = User(user_id="u1", name="Ana", email="ana@usaii.org")
        stored = store.upsert(USERS, user)

        assert stored.user_id == "u1"
        assert store.get(USERS, "u1") is not None
        assert tracker.track_error.called
        assert store.save_all(USERS, [user]) is False

    def test_read_failure_falls_back_to_defaults(self, clock):
        blob_store = MagicMock(spec=BlobStore)
        blob_store.get.side_effect = PersistenceError("unreadable")

        store = RecordStore(blob_store, clock=clock)
        assert len(store.load_all(USERS)) == 6

    def test_malformed_records_fall_back_to_defaults(self, blob_store, clock):
        blob_store.set(USERS, [{"name": "no id"}])
        store = RecordStore(blob_store, clock=clock)
        assert len(store.load_all(USERS)) == 6


class TestSession:
    """Test the persisted session user"""

    def test_save_load_clear(self, store):
        user = store.get(USERS, "3")
        assert store.save_session(user) is True
        assert store.load_session() == user

        assert store.clear_session() is True
        assert store.load_session() is None
