"""
Base Service Class.
Provides common utility methods for all services.
"""
from datetime import datetime, timezone
from typing import Callable, Optional
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]

class BaseService:
    """
    Abstract base class for all services.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock

    def now(self) -> datetime:
        """Return current server time (UTC, timezone-aware)."""
        clock = getattr(self, '_clock', None)
        if clock is not None:
            return clock()
        return datetime.now(timezone.utc)
