"""
Expiration policy - decides when an allocation has outlived its lab's window.
"""

from datetime import datetime, timedelta
from typing import Optional

from services.store_service.models import Allocation, DEFAULT_EXPIRATION_HOURS, Lab
from utils.clock import Clock, system_clock


def expiration_window(lab: Optional[Lab], default_hours: int = DEFAULT_EXPIRATION_HOURS) -> timedelta:
    """Window after allocation before it expires; unknown labs get the default"""
    hours = lab.expiration_hours if lab is not None and lab.expiration_hours else default_hours
    return timedelta(hours=hours)


def is_expired(allocation: Allocation, lab: Optional[Lab], now: datetime,
               default_hours: int = DEFAULT_EXPIRATION_HOURS) -> bool:
    """
    Check whether an allocation is past its expiration window

    Args:
        allocation: Allocation to check
        lab: The allocation's lab, or None if it no longer exists
        now: Current time
        default_hours: Window used when the lab is missing or has none

    Returns:
        True if strictly more than the window has elapsed since allocation
    """
    elapsed = now - allocation.allocated_at
    return elapsed > expiration_window(lab, default_hours)


class ExpirationPolicy:
    """Expiration checks bound to an injectable clock"""

    def __init__(self, clock: Clock = system_clock, default_hours: int = DEFAULT_EXPIRATION_HOURS):
        self.clock = clock
        self.default_hours = default_hours

    def is_expired(self, allocation: Allocation, lab: Optional[Lab]) -> bool:
        return is_expired(allocation, lab, self.clock(), self.default_hours)

    def expires_at(self, allocation: Allocation, lab: Optional[Lab]) -> datetime:
        return allocation.allocated_at + expiration_window(lab, self.default_hours)

    def time_remaining(self, allocation: Allocation, lab: Optional[Lab]) -> timedelta:
        """Time left before expiry, never negative"""
        remaining = self.expires_at(allocation, lab) - self.clock()
        return max(remaining, timedelta(0))
