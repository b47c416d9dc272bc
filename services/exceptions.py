"""
Exception hierarchy shared by the platform services.
"""


class LabPlatformError(Exception):
    """Base class for platform errors"""
    pass


class NotFoundError(LabPlatformError):
    """Requested identifier is absent from a collection"""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class InvalidReferenceError(LabPlatformError):
    """A new record references a lab, user or course that does not exist"""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"Referenced {kind} '{record_id}' does not exist")
        self.kind = kind
        self.record_id = record_id


class InvalidTransitionError(LabPlatformError):
    """Lifecycle action not allowed from the allocation's current status"""
    pass


class PersistenceError(LabPlatformError):
    """Durable read or write failed"""
    pass


class AuthFailure(LabPlatformError):
    """Login denied"""

    def __init__(self):
        super().__init__("Authentication denied")


class PermissionDeniedError(LabPlatformError):
    """The acting user's role lacks a capability"""
    pass


class DuplicateEmailError(LabPlatformError):
    """A user with this email already exists"""
    pass
