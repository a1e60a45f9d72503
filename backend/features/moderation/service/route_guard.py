"""
Route Guard.

Blocks banned or suspended users. The decision is recomputed on every
request (one warning-store round trip each time) so a ban applies to the
very next navigation.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from backend.features.moderation.service.moderation_service import ModerationService
from backend.services.system.logger_service import get_logger, log_error
from backend.services.system.session import Session

logger = get_logger(__name__)

BAN_NOTICE_ROUTE = '/banned'


class GuardState(str, Enum):
    CHECKING = 'checking'
    RESOLVED = 'resolved'


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    allowed: bool
    redirect_to: Optional[str] = None
    warning_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'allowed': self.allowed,
            'redirect': self.redirect_to,
            'warningType': self.warning_type,
        }


CHECKING = GuardDecision(state=GuardState.CHECKING, allowed=False)


class RouteGuard:
    def __init__(self, moderation_service: ModerationService):
        self.moderation_service = moderation_service

    def evaluate(self, session: Optional[Session]) -> GuardDecision:
        """Resolve the guard for one request: pass through, or redirect to the ban notice."""
        if session is None or not session.user_id:
            return GuardDecision(state=GuardState.RESOLVED, allowed=True)

        try:
            warnings = self.moderation_service.get_active_warnings(session.user_id)
        except Exception as e:
            # The warning store being unreachable must not lock every user out
            log_error(logger, e, {'operation': 'route_guard', 'user_id': session.user_id})
            return GuardDecision(state=GuardState.RESOLVED, allowed=True)

        warning = self.moderation_service.restricting_warning(warnings)
        if warning is None:
            return GuardDecision(state=GuardState.RESOLVED, allowed=True)

        logger.info(
            "Restricted user redirected to ban notice",
            extra={'user_id': session.user_id, 'warning_type': warning.type, 'warning_id': warning.id}
        )
        return GuardDecision(
            state=GuardState.RESOLVED,
            allowed=False,
            redirect_to=BAN_NOTICE_ROUTE,
            warning_type=warning.type,
        )
