"""
Lab platform - wires one record store to every service.

UI code builds a single LabPlatform and calls into its components; the
actor-aware methods here check the caller's role before delegating.
"""

from datetime import datetime
from typing import Dict, Optional, Union

from config.app_config import AppConfig, get_config
from config.environments import get_environment_config
from infrastructure.storage.blob_store import BlobStore
from services.allocation_service.expiration import ExpirationPolicy
from services.allocation_service.lifecycle import AllocationManager
from services.allocation_service.sweeper import ExpirationSweeper
from services.auth_service.auth_manager import AuthManager
from services.auth_service.permissions import Capability, require_capability
from services.auth_service.user_manager import UserManager
from services.auth_service.verifiers import build_verifier
from services.catalog_service.lab_manager import LabManager
from services.catalog_service.query_service import LabQueryService
from services.store_service.models import Allocation, Lab, User, UserStatus
from services.store_service.record_store import RecordStore
from services.store_service.schemas import LabDraft
from utils.clock import Clock, system_clock
from utils.logging_config import ErrorTracker, get_logger, initialize_logging


class LabPlatform:
    """
    Composition root holding one instance of every component.
    """

    def __init__(self, config: Optional[AppConfig] = None, clock: Clock = system_clock,
                 blob_store: Optional[BlobStore] = None,
                 error_tracker: Optional[ErrorTracker] = None,
                 password_hashes: Optional[Dict[str, str]] = None):
        """
        Build the platform

        Args:
            config: Application configuration (global config when omitted)
            clock: Source of the current time for every component
            blob_store: Durable storage; opened at config.storage.db_path when omitted
            error_tracker: Tracker for persistence and sweeper failures
            password_hashes: Hashes for the bcrypt verifier, keyed by user id
        """
        self.config = config or get_config()
        self.clock = clock
        self.logger = get_logger(__name__)
        self.error_tracker = error_tracker or ErrorTracker(self.logger)

        self.blob_store = blob_store or BlobStore(self.config.storage.db_path)
        self.store = RecordStore(
            self.blob_store,
            clock=clock,
            seed_defaults=self.config.storage.seed_defaults,
            error_tracker=self.error_tracker,
        )

        expiration = self.config.expiration
        self.policy = ExpirationPolicy(clock=clock, default_hours=expiration.default_hours)
        self.allocations = AllocationManager(self.store, self.policy)
        self.sweeper = ExpirationSweeper(
            self.allocations,
            interval_seconds=expiration.sweep_interval_minutes * 60,
            error_tracker=self.error_tracker,
        )

        self.labs = LabManager(self.store, clock=clock)
        self.queries = LabQueryService(
            self.store, self.allocations,
            in_progress_percent=self.config.progress.in_progress_percent,
        )

        self.users = UserManager(self.store, clock=clock)
        self.auth = AuthManager(
            self.store,
            verifier=build_verifier(self.config.auth.password_verifier, password_hashes),
            clock=clock,
            allowed_statuses=self.config.auth.allowed_login_statuses,
        )

        self.logger.info(
            f"Lab platform ready ({self.config.environment}, db={self.config.storage.db_path})"
        )

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> 'LabPlatform':
        """
        Build the platform for the running app, with logging initialized

        Without an explicit config the APP_ENV environment's settings are used,
        including its sweep cadence and log file.
        """
        config = config or get_environment_config()
        tracker = initialize_logging(config)
        return cls(config=config, error_tracker=tracker)

    # ------------------------------------------------------------------
    # Actor-aware entry points
    # ------------------------------------------------------------------

    def allocate_lab(self, actor: User, lab_id: str, user_id: str,
                     due_date: Union[datetime, str]) -> Allocation:
        """
        Assign a lab on behalf of an administrator

        Raises:
            PermissionDeniedError: if the actor cannot manage allocations
            InvalidReferenceError: if the lab or user does not exist
        """
        require_capability(actor, Capability.MANAGE_ALLOCATIONS)
        return self.allocations.create(lab_id, user_id, actor.user_id, due_date)

    def author_lab(self, actor: User, draft: Union[LabDraft, dict]) -> Lab:
        """
        Create a lab on behalf of a creator

        Raises:
            PermissionDeniedError: if the actor cannot create labs
        """
        require_capability(actor, Capability.CREATE_LAB)
        return self.labs.create_lab(draft, actor.user_id)

    def change_user_status(self, actor: User, user_id: str,
                           status: Union[UserStatus, str]) -> Optional[User]:
        require_capability(actor, Capability.MANAGE_USERS)
        return self.users.update_status(user_id, status)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Start the background expiration sweeper"""
        self.sweeper.start()

    def shutdown(self):
        self.sweeper.stop(timeout=5)
        self.blob_store.close()
        self.logger.info("Lab platform stopped")
