from datetime import timedelta

import pytest

from backend.features.audit.repository.audit_repository import AuditRepository
from backend.features.audit.service.audit_service import AuditService
from backend.features.moderation.domain.warning_entity import BAN, SUSPENSION
from backend.features.moderation.repository.user_repository import UserRepository
from backend.features.moderation.repository.warning_repository import WarningRepository
from backend.features.moderation.service.moderation_service import ModerationService
from backend.features.moderation.service.route_guard import (
    BAN_NOTICE_ROUTE,
    CHECKING,
    GuardState,
    RouteGuard,
)


@pytest.fixture
def moderation_service(fake_db, clock):
    audit_repository = AuditRepository(db=fake_db)
    return ModerationService(
        warning_repository=WarningRepository(db=fake_db),
        user_repository=UserRepository(db=fake_db),
        audit_repository=audit_repository,
        audit_service=AuditService(audit_repository, clock=clock),
        clock=clock,
    )


@pytest.fixture
def guard(moderation_service):
    return RouteGuard(moderation_service)


def test_initial_state_is_checking():
    assert CHECKING.state == GuardState.CHECKING
    assert CHECKING.allowed is False
    assert CHECKING.to_dict()['state'] == 'checking'


def test_no_session_passes_through(guard):
    decision = guard.evaluate(None)
    assert decision.state == GuardState.RESOLVED
    assert decision.allowed is True
    assert decision.redirect_to is None


def test_unrestricted_user_passes(guard, moderation_service, admin_session, user_session):
    moderation_service.issue_warning(admin_session, user_session.user_id, 'Be nice')

    decision = guard.evaluate(user_session)

    assert decision.allowed is True
    assert decision.state == GuardState.RESOLVED


def test_banned_user_is_redirected(guard, moderation_service, admin_session, user_session):
    moderation_service.ban(admin_session, user_session.user_id, None, 'Fraud')

    decision = guard.evaluate(user_session)

    assert decision.allowed is False
    assert decision.redirect_to == BAN_NOTICE_ROUTE
    assert decision.warning_type == BAN
    assert decision.to_dict() == {
        'state': 'resolved',
        'allowed': False,
        'redirect': '/banned',
        'warningType': BAN,
    }


def test_suspended_user_is_redirected(guard, moderation_service, admin_session, user_session, clock):
    moderation_service.suspend(admin_session, user_session.user_id, None, 'Spam', clock() + timedelta(days=1))

    decision = guard.evaluate(user_session)

    assert decision.redirect_to == BAN_NOTICE_ROUTE
    assert decision.warning_type == SUSPENSION


def test_decision_is_recomputed_every_time(guard, moderation_service, admin_session, user_session, fake_db):
    assert guard.evaluate(user_session).allowed is True
    moderation_service.ban(admin_session, user_session.user_id, None, 'Fraud')
    assert guard.evaluate(user_session).allowed is False
    moderation_service.unban(admin_session, user_session.user_id)
    assert guard.evaluate(user_session).allowed is True
    assert fake_db.reads >= 3


def test_store_failure_fails_open(guard, user_session, fake_db):
    fake_db.fail_reads = True

    decision = guard.evaluate(user_session)

    assert decision.allowed is True
    assert decision.state == GuardState.RESOLVED
