from datetime import timedelta

import pytest

from backend.features.audit.domain.audit_entity import ROLE_CHANGED, USER_BANNED, USER_UNBANNED
from backend.features.audit.repository.audit_repository import AuditRepository
from backend.features.audit.service.audit_service import AuditService
from backend.features.moderation.domain.warning_entity import BAN, SUSPENSION, WARNING
from backend.features.moderation.repository.user_repository import UserRepository
from backend.features.moderation.repository.warning_repository import WarningRepository
from backend.features.moderation.service.moderation_service import ModerationService, UserNotFound


def _build_service(fake_db, clock, auto_expire=False):
    audit_repository = AuditRepository(db=fake_db)
    return ModerationService(
        warning_repository=WarningRepository(db=fake_db),
        user_repository=UserRepository(db=fake_db),
        audit_repository=audit_repository,
        audit_service=AuditService(audit_repository, clock=clock),
        suspension_auto_expire=auto_expire,
        clock=clock,
    )


@pytest.fixture
def service(fake_db, clock):
    fake_db.docs('users')['user-1'] = {'displayName': 'Uma User', 'role': 'buyer'}
    return _build_service(fake_db, clock)


def _audit_entries(fake_db, action):
    return [e for e in fake_db.docs('audit_logs').values() if e['action'] == action]


def test_ban_creates_active_ban_and_audit_entry(service, admin_session, fake_db):
    result = service.ban(admin_session, 'user-1', 'Uma User', 'Selling stolen assets')

    active = service.get_active_warnings('user-1')
    assert [w.type for w in active] == [BAN]
    assert active[0].is_active
    assert active[0].admin_id == 'admin-1'

    entries = _audit_entries(fake_db, USER_BANNED)
    assert len(entries) == 1
    assert entries[0]['targetUserId'] == 'user-1'
    assert entries[0]['performedBy'] == 'admin-1'
    assert entries[0]['details']['warningId'] == active[0].id
    assert result['auditEntry']['action'] == USER_BANNED

    user = fake_db.docs('users')['user-1']
    assert user['isBanned'] is True
    assert user['banReason'] == 'Selling stolen assets'


def test_ban_is_all_or_nothing(service, admin_session, fake_db):
    fake_db.fail_commits = True

    with pytest.raises(RuntimeError):
        service.ban(admin_session, 'user-1', 'Uma User', 'Spam')

    assert fake_db.docs('warnings') == {}
    assert fake_db.docs('audit_logs') == {}
    assert 'isBanned' not in fake_db.docs('users')['user-1']


def test_ban_requires_reason_and_other_target(service, admin_session, fake_db):
    with pytest.raises(ValueError, match='ban reason'):
        service.ban(admin_session, 'user-1', None, '   ')
    with pytest.raises(ValueError, match='your own account'):
        service.ban(admin_session, 'admin-1', None, 'Testing')

    assert fake_db.docs('warnings') == {}


def test_unban_deactivates_ban_and_records_audit(service, admin_session, fake_db, clock):
    banned = service.ban(admin_session, 'user-1', 'Uma User', 'Spam')
    clock.advance(days=1)

    result = service.unban(admin_session, 'user-1', 'Uma User')

    warning_id = banned['warning']['id']
    stored = fake_db.docs('warnings')[warning_id]
    assert stored['isActive'] is False
    assert stored['deactivatedBy'] == 'admin-1'
    assert stored['deactivatedAt'] == clock()
    assert result['deactivatedWarnings'] == [warning_id]
    assert service.get_active_warnings('user-1') == []

    user = fake_db.docs('users')['user-1']
    assert user['isBanned'] is False
    assert 'banReason' not in user
    assert 'banDate' not in user

    entries = _audit_entries(fake_db, USER_UNBANNED)
    assert len(entries) == 1
    assert entries[0]['targetUserId'] == 'user-1'


def test_unban_leaves_plain_warnings_active(service, admin_session):
    service.issue_warning(admin_session, 'user-1', 'Low quality listing')
    service.ban(admin_session, 'user-1', None, 'Spam')

    service.unban(admin_session, 'user-1')

    assert [w.type for w in service.get_active_warnings('user-1')] == [WARNING]


def test_issue_warning_does_not_restrict(service, admin_session, fake_db):
    service.issue_warning(admin_session, 'user-1', 'Please tag your uploads')

    assert service.restricting_warning(service.get_active_warnings('user-1')) is None
    assert service.build_ban_notice('user-1') is None
    assert fake_db.docs('audit_logs') == {}


def test_suspend_requires_future_expiry(service, admin_session, clock, fake_db):
    with pytest.raises(ValueError, match='in the future'):
        service.suspend(admin_session, 'user-1', None, 'Harassment', clock() - timedelta(hours=1))
    assert fake_db.docs('warnings') == {}

    result = service.suspend(admin_session, 'user-1', None, 'Harassment', clock() + timedelta(days=3))

    assert result['warning']['type'] == SUSPENSION
    entries = _audit_entries(fake_db, USER_BANNED)
    assert entries[0]['details']['type'] == SUSPENSION


def test_expired_suspension_still_restricts_by_default(service, admin_session, clock):
    service.suspend(admin_session, 'user-1', None, 'Harassment', clock() + timedelta(days=1))
    clock.advance(days=2)

    warning = service.restricting_warning(service.get_active_warnings('user-1'))
    assert warning is not None
    assert warning.type == SUSPENSION


def test_expired_suspension_lifted_with_auto_expire(fake_db, clock, admin_session):
    fake_db.docs('users')['user-1'] = {}
    service = _build_service(fake_db, clock, auto_expire=True)
    service.suspend(admin_session, 'user-1', None, 'Harassment', clock() + timedelta(days=1))
    clock.advance(days=2)

    assert service.restricting_warning(service.get_active_warnings('user-1')) is None


def test_ban_takes_precedence_over_suspension(service, admin_session, clock):
    service.suspend(admin_session, 'user-1', None, 'Harassment', clock() + timedelta(days=7))
    clock.advance(minutes=1)
    service.ban(admin_session, 'user-1', None, 'Repeat offence')

    assert service.restricting_warning(service.get_active_warnings('user-1')).type == BAN


def test_build_ban_notice_for_suspension(service, admin_session, clock):
    service.suspend(admin_session, 'user-1', None, 'Harassment', clock() + timedelta(days=2, hours=3),
                    details='Reported by three buyers')

    notice = service.build_ban_notice('user-1')

    assert notice['type'] == SUSPENSION
    assert notice['title'] == 'Suspended for 3 Days'
    assert notice['isPermanent'] is False
    assert notice['daysRemaining'] == 3
    assert notice['details'] == 'Reported by three buyers'
    assert notice['reviewDate'] == '3/14/2026, 09:30:00 AM UTC'


def test_build_ban_notice_for_ban(service, admin_session):
    service.ban(admin_session, 'user-1', None, 'Fraud')

    notice = service.build_ban_notice('user-1')

    assert notice['title'] == 'Permanently Banned'
    assert notice['isPermanent'] is True
    assert notice['canReactivateDate'] is None
    assert notice['accountStatus'] == 'Permanently Disabled'


def test_change_role_records_previous_and_new(service, admin_session, fake_db):
    result = service.change_role(admin_session, 'user-1', None, 'seller')

    assert result['changed'] is True
    assert fake_db.docs('users')['user-1']['role'] == 'seller'
    entry = _audit_entries(fake_db, ROLE_CHANGED)[0]
    assert entry['details'] == {'previousRole': 'buyer', 'newRole': 'seller'}
    assert entry['targetUserName'] == 'Uma User'


def test_change_role_unchanged_is_noop(service, admin_session, fake_db):
    assert service.change_role(admin_session, 'user-1', None, 'buyer') == {'role': 'buyer', 'changed': False}
    assert fake_db.docs('audit_logs') == {}


def test_change_role_unknown_user(service, admin_session):
    with pytest.raises(UserNotFound):
        service.change_role(admin_session, 'ghost', None, 'seller')
