"""
Password verifiers used by the authentication gate.

The platform ships with AllowAllVerifier: any password is accepted for an
account whose status permits login. BcryptPasswordVerifier is available for
deployments that hold real password hashes.
"""

from typing import Dict, Optional

import bcrypt

from services.store_service.models import User
from utils.logging_config import get_logger


class PasswordVerifier:
    """Checks a password for a user"""

    name = "base"

    def verify(self, user: User, password: str) -> bool:
        raise NotImplementedError


class AllowAllVerifier(PasswordVerifier):
    """Accepts every password; account status is the only login gate"""

    name = "allow_all"

    def verify(self, user: User, password: str) -> bool:
        return True


class BcryptPasswordVerifier(PasswordVerifier):
    """Verifies passwords against bcrypt hashes keyed by user id"""

    name = "bcrypt"

    def __init__(self, password_hashes: Optional[Dict[str, str]] = None):
        self.logger = get_logger(__name__)
        self.password_hashes: Dict[str, str] = dict(password_hashes or {})

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt"""
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def set_password(self, user_id: str, password: str):
        self.password_hashes[user_id] = self.hash_password(password)

    def verify(self, user: User, password: str) -> bool:
        hashed = self.password_hashes.get(user.user_id)
        if not hashed:
            self.logger.warning(f"No password hash for user: {user.user_id}")
            return False
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def build_verifier(name: str, password_hashes: Optional[Dict[str, str]] = None) -> PasswordVerifier:
    """Create the verifier named in configuration"""
    if name == AllowAllVerifier.name:
        return AllowAllVerifier()
    if name == BcryptPasswordVerifier.name:
        return BcryptPasswordVerifier(password_hashes)
    raise ValueError(f"Unknown password verifier: {name}")
