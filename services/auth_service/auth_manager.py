"""
Authentication service - admits users by email and account status.

Passwords go through a pluggable verifier. The default verifier accepts any
password, so login is decided by account status alone.
"""

from typing import Iterable, Optional

from services.auth_service.verifiers import AllowAllVerifier, PasswordVerifier
from services.exceptions import AuthFailure
from services.store_service.models import User, UserStatus
from services.store_service.record_store import USERS, RecordStore
from utils.clock import Clock, system_clock
from utils.logging_config import get_logger, log_user_interaction

DEFAULT_LOGIN_STATUSES = (UserStatus.VERIFIED, UserStatus.ACTIVE)


class AuthManager:
    """
    Main authentication manager service.
    Handles login, logout and the persisted session user.
    """

    def __init__(self, store: RecordStore, verifier: Optional[PasswordVerifier] = None,
                 clock: Clock = system_clock,
                 allowed_statuses: Iterable[UserStatus] = DEFAULT_LOGIN_STATUSES):
        self.store = store
        self.verifier = verifier or AllowAllVerifier()
        self.clock = clock
        self.allowed_statuses = frozenset(UserStatus(status) for status in allowed_statuses)
        self.logger = get_logger(__name__)

    def authenticate(self, email: str, password: str) -> User:
        """
        Authenticate a user by email

        Args:
            email: Login email, matched exactly (case-sensitive)
            password: Password handed to the configured verifier

        Returns:
            Detached copy of the user; active users get last_login refreshed

        Raises:
            AuthFailure: for an unknown email, a disallowed status or a rejected password
        """
        user = next((u for u in self.store.load_all(USERS) if u.email == email), None)

        if user is None:
            self.logger.warning(f"User not found: {email}")
            raise AuthFailure()

        if user.status not in self.allowed_statuses:
            self.logger.warning(f"User cannot login - status: {user.status.value}")
            raise AuthFailure()

        if not self.verifier.verify(user, password):
            self.logger.warning(f"Invalid password for user: {email}")
            raise AuthFailure()

        if user.status == UserStatus.ACTIVE:
            now = self.clock()

            def apply(record: User):
                record.last_login = now

            user = self.store.update(USERS, user.user_id, apply) or user

        self.logger.info(f"User authenticated successfully: {user.name} ({user.role.value})")
        return user

    def login(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate and remember the session user

        Returns:
            The user if admitted, None otherwise
        """
        try:
            user = self.authenticate(email, password)
        except AuthFailure:
            log_user_interaction(self.logger, "login_denied", email=email)
            return None

        self.store.save_session(user)
        log_user_interaction(self.logger, "login", user_id=user.user_id)
        return user

    def logout(self) -> bool:
        user = self.store.load_session()
        cleared = self.store.clear_session()
        if user:
            log_user_interaction(self.logger, "logout", user_id=user.user_id)
        return cleared

    def current_user(self) -> Optional[User]:
        """Session user saved by the last login, if any"""
        return self.store.load_session()
