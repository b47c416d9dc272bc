"""
User manager - account creation and status administration.
"""

import uuid
from typing import Any, Dict, List, Optional, Union

from services.exceptions import DuplicateEmailError
from services.store_service.models import User, UserStatus
from services.store_service.record_store import USERS, RecordStore
from services.store_service.schemas import UserDraft
from utils.clock import Clock, system_clock
from utils.logging_config import get_logger


class UserManager:
    """
    Administrative operations on user accounts.
    """

    def __init__(self, store: RecordStore, clock: Clock = system_clock):
        self.store = store
        self.clock = clock
        self.logger = get_logger(__name__)

    def create_user(self, draft: Union[UserDraft, Dict[str, Any]]) -> User:
        """
        Create a new account awaiting verification

        Args:
            draft: Name, email, role and optional avatar

        Returns:
            The new user, status new and unverified

        Raises:
            DuplicateEmailError: if the email is already registered
            pydantic.ValidationError: if the draft is invalid
        """
        if not isinstance(draft, UserDraft):
            draft = UserDraft.model_validate(draft)

        email = str(draft.email)
        if any(user.email == email for user in self.store.load_all(USERS)):
            self.logger.warning(f"Email already exists: {email}")
            raise DuplicateEmailError(f"Email already exists: {email}")

        user = User(
            user_id=str(uuid.uuid4()),
            name=draft.name,
            email=email,
            role=draft.role,
            status=UserStatus.NEW,
            email_verified=False,
            created_at=self.clock(),
            avatar=draft.avatar,
        )
        stored = self.store.upsert(USERS, user)

        self.logger.info(f"User created successfully: {email}")
        self._send_verification(stored)
        return stored

    def update_status(self, user_id: str, status: Union[UserStatus, str]) -> Optional[User]:
        """
        Change an account status

        Verified and active accounts are always marked email-verified.

        Returns:
            Updated user, or None if the identifier is unknown
        """
        status = UserStatus(status)

        def apply(user: User):
            user.status = status
            if status in (UserStatus.VERIFIED, UserStatus.ACTIVE):
                user.email_verified = True

        updated = self.store.update(USERS, user_id, apply)
        if updated:
            self.logger.info(f"User {user_id} status changed to {status.value}")
        return updated

    def send_verification_email(self, user_id: str) -> bool:
        """Simulate sending a verification email; False for an unknown user"""
        user = self.store.get(USERS, user_id)
        if user is None:
            self.logger.warning(f"Verification requested for unknown user: {user_id}")
            return False
        self._send_verification(user)
        return True

    def _send_verification(self, user: User):
        # Delivery is simulated
        self.logger.info(f"Verification email sent to {user.email}")

    def get_user(self, user_id: str) -> Optional[User]:
        return self.store.get(USERS, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self.store.load_all(USERS):
            if user.email == email:
                return user
        return None

    def list_users(self) -> List[User]:
        return self.store.load_all(USERS)
