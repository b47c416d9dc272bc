"""
Record store - canonical in-memory collections mirrored to the blob store.

Every successful mutation rewrites its whole collection before returning.
Persistence is best-effort: storage failures are logged and the in-memory
state stays authoritative for the rest of the session.
"""

import copy
import hashlib
import json
import threading
from typing import Any, Callable, Dict, List, Optional, Type

from infrastructure.storage.blob_store import BlobStore
from services.exceptions import NotFoundError, PersistenceError
from services.store_service import defaults
from services.store_service.models import (
    Allocation, Course, Lab, User, enforce_completion_timestamp,
)
from utils.clock import Clock, system_clock
from utils.logging_config import ErrorTracker, get_logger

USERS = "users"
LABS = "labs"
ALLOCATIONS = "allocations"
COURSES = "courses"

SESSION_KEY = "session"
LAB_SEED_KEY = "labs.seed"

RECORD_TYPES: Dict[str, Type] = {
    USERS: User,
    LABS: Lab,
    ALLOCATIONS: Allocation,
    COURSES: Course,
}

ID_FIELDS: Dict[str, str] = {
    USERS: "user_id",
    LABS: "lab_id",
    ALLOCATIONS: "allocation_id",
    COURSES: "course_id",
}


def lab_fingerprint(lab: Lab) -> str:
    """Content hash used to tell whether a seeded lab was edited since"""
    payload = json.dumps(lab.to_dict(), sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class RecordStore:
    """
    Sole owner of the user, lab, course and allocation collections.
    Callers only ever receive copies of stored records.
    """

    def __init__(self, blob_store: BlobStore, clock: Clock = system_clock,
                 seed_defaults: bool = True, error_tracker: Optional[ErrorTracker] = None):
        """
        Initialize record store

        Args:
            blob_store: Durable storage backend
            clock: Source of the current time (used when seeding sample allocations)
            seed_defaults: Fall back to the bundled dataset when nothing is stored
            error_tracker: Optional tracker notified of persistence failures
        """
        self.logger = get_logger(__name__)
        self.blob_store = blob_store
        self.clock = clock
        self.seed_defaults = seed_defaults
        self.error_tracker = error_tracker

        self._collections: Dict[str, List[Any]] = {}
        self._locks = {kind: threading.RLock() for kind in RECORD_TYPES}
        self._session_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_for(self, kind: str) -> threading.RLock:
        try:
            return self._locks[kind]
        except KeyError:
            raise ValueError(f"Unknown record kind: {kind}") from None

    def _id_of(self, kind: str, record: Any) -> str:
        return getattr(record, ID_FIELDS[kind])

    def _report(self, error: Exception, context: str):
        if self.error_tracker is not None:
            self.error_tracker.track_error(error, context)
        else:
            self.logger.error(f"Error in {context}: {error}")

    def _read_blob(self, key: str) -> Optional[Any]:
        try:
            return self.blob_store.get(key)
        except PersistenceError as e:
            self._report(e, f"loading {key}")
            return None

    def _write_blob(self, key: str, value: Any) -> bool:
        try:
            self.blob_store.set(key, value)
            return True
        except PersistenceError as e:
            self._report(e, f"saving {key}")
            return False

    def _decode(self, kind: str, stored: Any) -> Optional[List[Any]]:
        if stored is None:
            return None
        record_type = RECORD_TYPES[kind]
        try:
            return [record_type.from_dict(item) for item in stored]
        except (KeyError, TypeError, ValueError) as e:
            self._report(PersistenceError(f"Stored {kind} are malformed: {e}"), f"loading {kind}")
            return None

    def _default_records(self, kind: str) -> List[Any]:
        if not self.seed_defaults:
            return []
        if kind == USERS:
            raw = defaults.DEFAULT_USERS
        elif kind == COURSES:
            raw = defaults.DEFAULT_COURSES
        elif kind == LABS:
            raw = defaults.DEFAULT_LABS
        else:
            raw = defaults.default_allocations(self.clock())
        record_type = RECORD_TYPES[kind]
        return [record_type.from_dict(item) for item in raw]

    def _reconcile_labs(self, stored: Optional[List[Lab]]) -> List[Lab]:
        """
        Merge the bundled catalog with durable labs.

        Default labs come first in bundled order. A stored copy of a default lab
        replaces it only if it was edited since it was seeded; stored labs that
        are not part of the bundle follow in stored order.
        """
        stored = stored or []
        bundled = self._default_records(LABS)
        if not bundled:
            return stored

        seeds = self._read_blob(LAB_SEED_KEY) or {}
        stored_by_id = {lab.lab_id: lab for lab in stored}

        merged: List[Lab] = []
        diverged = 0
        for default_lab in bundled:
            stored_lab = stored_by_id.get(default_lab.lab_id)
            seeded_hash = seeds.get(default_lab.lab_id)
            if stored_lab is not None and seeded_hash is not None \
                    and lab_fingerprint(stored_lab) != seeded_hash:
                merged.append(stored_lab)
                diverged += 1
            else:
                merged.append(default_lab)

        seen = {lab.lab_id for lab in merged}
        user_added = 0
        for lab in stored:
            if lab.lab_id not in seen:
                merged.append(lab)
                seen.add(lab.lab_id)
                user_added += 1

        self._write_blob(LAB_SEED_KEY, {lab.lab_id: lab_fingerprint(lab) for lab in bundled})
        self.logger.info(
            f"Loaded {len(bundled)} bundled labs, kept {diverged} edited and {user_added} user-added"
        )
        return merged

    def _collection(self, kind: str) -> List[Any]:
        """Live collection for `kind`, loading it on first access (caller holds the lock)"""
        if kind in self._collections:
            return self._collections[kind]

        stored = self._decode(kind, self._read_blob(kind))

        if kind == LABS:
            records = self._reconcile_labs(stored)
            needs_save = True
        elif stored is None:
            records = self._default_records(kind)
            needs_save = True
            self.logger.info(f"Initialized {kind} with default data: {len(records)}")
        else:
            records = stored
            needs_save = False
            self.logger.info(f"Loaded {kind} from storage: {len(records)}")

        self._collections[kind] = records
        if needs_save:
            self._persist(kind)
        return records

    def _persist(self, kind: str) -> bool:
        records = self._collections.get(kind, [])
        saved = self._write_blob(kind, [record.to_dict() for record in records])
        if saved:
            self.logger.debug(f"Saved {kind} to storage: {len(records)}")
        return saved

    def _index_of(self, kind: str, record_id: str) -> int:
        for index, record in enumerate(self._collection(kind)):
            if self._id_of(kind, record) == record_id:
                return index
        return -1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_all(self, kind: str) -> List[Any]:
        """
        Get every record of a kind in store order

        Args:
            kind: One of users, labs, allocations, courses

        Returns:
            List of record copies
        """
        with self._lock_for(kind):
            return copy.deepcopy(self._collection(kind))

    def save_all(self, kind: str, records: List[Any]) -> bool:
        """
        Replace a whole collection and overwrite its durable copy

        Returns:
            True if the durable write succeeded; the in-memory collection is
            replaced either way
        """
        with self._lock_for(kind):
            self._collections[kind] = copy.deepcopy(list(records))
            return self._persist(kind)

    def get(self, kind: str, record_id: str) -> Optional[Any]:
        """Get a copy of one record, or None if absent"""
        with self._lock_for(kind):
            index = self._index_of(kind, record_id)
            if index == -1:
                return None
            return copy.deepcopy(self._collections[kind][index])

    def require(self, kind: str, record_id: str) -> Any:
        """Get a copy of one record, raising NotFoundError if absent"""
        record = self.get(kind, record_id)
        if record is None:
            raise NotFoundError(kind, record_id)
        return record

    def exists(self, kind: str, record_id: str) -> bool:
        with self._lock_for(kind):
            return self._index_of(kind, record_id) != -1

    def upsert(self, kind: str, record: Any) -> Any:
        """
        Insert a record, or replace the one with the same identifier

        Returns:
            Copy of the stored record
        """
        with self._lock_for(kind):
            collection = self._collection(kind)
            stored = copy.deepcopy(record)
            index = self._index_of(kind, self._id_of(kind, record))
            if index == -1:
                collection.append(stored)
            else:
                collection[index] = stored
            self._persist(kind)
            return copy.deepcopy(stored)

    def update(self, kind: str, record_id: str, apply: Callable[[Any], None]) -> Optional[Any]:
        """
        Edit one record and persist the collection

        `apply` works on a copy that replaces the stored record only if it
        returns normally, so a failed edit leaves the collection untouched.

        Args:
            kind: Record kind
            record_id: Identifier of the record to edit
            apply: Function mutating the record

        Returns:
            Copy of the updated record, or None if the identifier is unknown
        """
        with self._lock_for(kind):
            index = self._index_of(kind, record_id)
            if index == -1:
                self.logger.warning(f"{kind} record not found for update: {record_id}")
                return None
            record = copy.deepcopy(self._collections[kind][index])
            apply(record)
            self._collections[kind][index] = record
            self._persist(kind)
            return copy.deepcopy(record)

    def patch(self, kind: str, record_id: str, changes: Dict[str, Any]) -> Optional[Any]:
        """
        Merge fields into a record by identifier

        Allocation patches keep completed_at in step with the status.

        Returns:
            Copy of the updated record, or None if the identifier is unknown
        """
        record_type = RECORD_TYPES.get(kind)
        if record_type is None:
            raise ValueError(f"Unknown record kind: {kind}")
        field_names = set(record_type.__dataclass_fields__)
        unknown = set(changes) - field_names
        if unknown:
            raise ValueError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")
        if ID_FIELDS[kind] in changes and changes[ID_FIELDS[kind]] != record_id:
            raise ValueError("Record identifiers cannot be changed")

        now = self.clock()

        def apply(record):
            for name, value in changes.items():
                setattr(record, name, copy.deepcopy(value))
            record.__post_init__()
            if kind == ALLOCATIONS:
                enforce_completion_timestamp(record, now)

        return self.update(kind, record_id, apply)

    def mutate(self, kind: str, apply: Callable[[List[Any]], bool]) -> bool:
        """
        Run a batch edit over the live collection

        Args:
            apply: Function receiving the live list and returning True if it changed anything

        Returns:
            True if the collection changed (and was written once)
        """
        with self._lock_for(kind):
            changed = apply(self._collection(kind))
            if changed:
                self._persist(kind)
            return changed

    def reset(self, kind: Optional[str] = None):
        """Drop cached collections so the next access reloads from storage"""
        kinds = [kind] if kind else list(RECORD_TYPES)
        for name in kinds:
            with self._lock_for(name):
                self._collections.pop(name, None)

    # ------------------------------------------------------------------
    # Session user
    # ------------------------------------------------------------------

    def save_session(self, user: User) -> bool:
        with self._session_lock:
            return self._write_blob(SESSION_KEY, user.to_dict())

    def load_session(self) -> Optional[User]:
        with self._session_lock:
            stored = self._read_blob(SESSION_KEY)
        if not stored:
            return None
        try:
            return User.from_dict(stored)
        except (KeyError, TypeError, ValueError) as e:
            self._report(PersistenceError(f"Stored session is malformed: {e}"), "loading session")
            return None

    def clear_session(self) -> bool:
        with self._session_lock:
            try:
                self.blob_store.delete(SESSION_KEY)
                return True
            except PersistenceError as e:
                self._report(e, "clearing session")
                return False
