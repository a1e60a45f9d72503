from datetime import timedelta

import pytest

from backend.features.uploads.domain.scheduled_upload_entity import (
    CANCELLED,
    COMPLETED,
    FAILED,
    PROCESSING,
    SCHEDULED,
    ConcurrentUpdate,
    InvalidStatusTransition,
    LeaseLost,
    ScheduledUploadNotFound,
)
from backend.features.uploads.mapper.scheduled_upload_mapper import time_remaining
from backend.features.uploads.repository.scheduled_upload_repository import ScheduledUploadRepository
from backend.features.uploads.service.scheduled_upload_service import ScheduledUploadService

FILES = [{'name': 'model.glb', 'size': 2048, 'type': 'model/gltf-binary'}]


@pytest.fixture
def repository(fake_db):
    return ScheduledUploadRepository(db=fake_db)


@pytest.fixture
def service(repository, clock):
    return ScheduledUploadService(repository, lease_seconds=300, clock=clock)


def _schedule(service, clock, minutes=30, user_id='user-1', asset_id='asset-1'):
    return service.schedule(user_id, asset_id, FILES, 'v2 textures', clock() + timedelta(minutes=minutes))


def test_schedule_creates_scheduled_record(service, clock, fake_db):
    upload = _schedule(service, clock)

    assert upload.id
    stored = fake_db.docs('scheduled_uploads')[upload.id]
    assert stored['status'] == SCHEDULED
    assert stored['assetId'] == 'asset-1'
    assert stored['userId'] == 'user-1'
    assert stored['files'] == FILES
    assert stored['changeNotes'] == 'v2 textures'
    assert stored['createdAt'] == clock()


@pytest.mark.parametrize('offset', [timedelta(0), timedelta(minutes=-5)])
def test_schedule_rejects_non_future_time_and_writes_nothing(service, clock, fake_db, offset):
    with pytest.raises(ValueError, match='must be in the future'):
        service.schedule('user-1', 'asset-1', FILES, '', clock() + offset)

    assert fake_db.docs('scheduled_uploads') == {}


def test_schedule_requires_files_and_time(service, clock, fake_db):
    with pytest.raises(ValueError, match='at least one file'):
        service.schedule('user-1', 'asset-1', [], '', clock() + timedelta(hours=1))
    with pytest.raises(ValueError, match='date and time'):
        service.schedule('user-1', 'asset-1', FILES, '', None)

    assert fake_db.docs('scheduled_uploads') == {}


def test_schedule_immediately_uses_one_minute_delay(service, clock):
    upload = service.schedule_immediately('user-1', 'asset-1', FILES, '')

    assert upload.scheduled_for == clock() + timedelta(minutes=1)
    assert service.list_pending() == []
    clock.advance(minutes=1)
    assert [u.id for u in service.list_pending()] == [upload.id]


def test_list_pending_returns_exactly_due_scheduled_records(service, clock):
    due = _schedule(service, clock, minutes=5)
    later = _schedule(service, clock, minutes=120)
    cancelled = _schedule(service, clock, minutes=10)
    service.cancel(cancelled.id)

    clock.advance(minutes=15)

    pending_ids = {u.id for u in service.list_pending()}
    assert pending_ids == {due.id}
    assert later.id not in pending_ids


def test_list_for_user_sorts_by_schedule_time_descending(service, clock):
    first = _schedule(service, clock, minutes=10)
    last = _schedule(service, clock, minutes=90)
    middle = _schedule(service, clock, minutes=45)
    _schedule(service, clock, minutes=20, user_id='user-2')

    assert [u.id for u in service.list_for_user('user-1')] == [last.id, middle.id, first.id]


def test_listing_failure_returns_empty_list(service, clock, fake_db):
    _schedule(service, clock)
    fake_db.fail_reads = True

    assert service.list_for_user('user-1') == []
    assert service.list_pending() == []


def test_update_status_follows_lifecycle(service, clock, fake_db):
    upload = _schedule(service, clock)
    clock.advance(minutes=31)

    service.update_status(upload.id, PROCESSING)
    clock.advance(seconds=5)
    result = service.update_status(upload.id, FAILED, 'Storage quota exceeded')

    stored = fake_db.docs('scheduled_uploads')[upload.id]
    assert result.status == FAILED
    assert stored['status'] == FAILED
    assert stored['errorMessage'] == 'Storage quota exceeded'
    assert stored['updatedAt'] == clock()


def test_update_status_same_status_is_noop(service, clock, fake_db):
    upload = _schedule(service, clock)
    before = dict(fake_db.docs('scheduled_uploads')[upload.id])

    clock.advance(minutes=1)
    service.update_status(upload.id, SCHEDULED)

    assert fake_db.docs('scheduled_uploads')[upload.id] == before


def test_update_status_rejects_unknown_status(service, clock):
    upload = _schedule(service, clock)
    with pytest.raises(ValueError, match='Unknown status'):
        service.update_status(upload.id, 'archived')


def test_cancel_on_completed_errors_and_keeps_status(service, clock, fake_db):
    upload = _schedule(service, clock)
    service.update_status(upload.id, PROCESSING)
    service.update_status(upload.id, COMPLETED)

    with pytest.raises(InvalidStatusTransition) as excinfo:
        service.cancel(upload.id)

    assert excinfo.value.current == COMPLETED
    assert fake_db.docs('scheduled_uploads')[upload.id]['status'] == COMPLETED


def test_terminal_records_never_move_back(service, clock):
    upload = _schedule(service, clock)
    service.cancel(upload.id)

    for status in (SCHEDULED, PROCESSING, COMPLETED):
        with pytest.raises(InvalidStatusTransition):
            service.update_status(upload.id, status)


def test_missing_record_raises_not_found(service):
    with pytest.raises(ScheduledUploadNotFound):
        service.update_status('missing', CANCELLED)
    with pytest.raises(ScheduledUploadNotFound):
        service.delete('missing')


def test_delete_removes_record_in_any_status(service, clock, fake_db):
    upload = _schedule(service, clock)
    service.update_status(upload.id, PROCESSING)

    service.delete(upload.id)

    assert upload.id not in fake_db.docs('scheduled_uploads')


def test_stale_write_raises_concurrent_update(service, repository, clock, fake_db):
    upload = _schedule(service, clock)
    stale = repository.find_by_id(upload.id)
    service.update_status(upload.id, PROCESSING)

    with pytest.raises(ConcurrentUpdate):
        service._write(upload.id, {'status': CANCELLED}, stale.update_time)

    assert fake_db.docs('scheduled_uploads')[upload.id]['status'] == PROCESSING


def test_claim_sets_lease_and_only_one_worker_wins(service, clock, fake_db):
    upload = _schedule(service, clock, minutes=1)
    clock.advance(minutes=2)

    claimed = service.claim(upload.id, 'worker-a')
    second = service.claim(upload.id, 'worker-b')

    assert claimed.status == PROCESSING
    assert second is None
    stored = fake_db.docs('scheduled_uploads')[upload.id]
    assert stored['claimedBy'] == 'worker-a'
    assert stored['leaseExpiresAt'] == clock() + timedelta(seconds=300)


def test_claim_loses_race_against_concurrent_writer(service, repository, clock, monkeypatch):
    upload = _schedule(service, clock, minutes=1)
    clock.advance(minutes=2)
    snapshot = repository.find_by_id(upload.id)
    # Another worker claims between our read and our write
    service.claim(upload.id, 'worker-a')
    monkeypatch.setattr(repository, 'find_by_id', lambda _id: snapshot)

    assert service.claim(upload.id, 'worker-b') is None


def test_claim_ignores_records_not_yet_due(service, clock):
    upload = _schedule(service, clock, minutes=10)
    assert service.claim(upload.id, 'worker-a') is None


def test_time_remaining_labels(clock):
    now = clock()
    assert time_remaining(now - timedelta(seconds=1), now) == 'Ready to upload'
    assert time_remaining(now + timedelta(seconds=30), now) == 'Now'
    assert time_remaining(now + timedelta(minutes=42), now) == '42m'
    assert time_remaining(now + timedelta(hours=3, minutes=5), now) == '3h 5m'
    assert time_remaining(now + timedelta(days=2, hours=4), now) == '2d 4h'


def test_listings_tolerate_record_without_schedule_time(service, clock, fake_db):
    upload = _schedule(service, clock, minutes=5)
    fake_db.docs('scheduled_uploads')['legacy-1'] = {
        'assetId': 'asset-1', 'userId': 'user-1', 'files': FILES, 'status': SCHEDULED,
    }
    clock.advance(minutes=10)

    assert [u.id for u in service.list_for_user('user-1')] == [upload.id, 'legacy-1']
    assert [u.id for u in service.list_pending()] == [upload.id]
    assert service.claim('legacy-1', 'worker-a') is None


def test_expired_lease_can_be_taken_over(service, clock, fake_db):
    upload = _schedule(service, clock, minutes=1)
    clock.advance(minutes=2)
    service.claim(upload.id, 'worker-a')

    clock.advance(seconds=299)
    assert service.list_expired_leases() == []
    assert service.claim(upload.id, 'worker-b') is None

    clock.advance(seconds=1)
    assert [u.id for u in service.list_expired_leases()] == [upload.id]
    reclaimed = service.claim(upload.id, 'worker-b')

    assert reclaimed.claimed_by == 'worker-b'
    stored = fake_db.docs('scheduled_uploads')[upload.id]
    assert stored['status'] == PROCESSING
    assert stored['claimedBy'] == 'worker-b'
    assert stored['leaseExpiresAt'] == clock() + timedelta(seconds=300)


def test_worker_outcome_requires_holding_the_claim(service, clock, fake_db):
    upload = _schedule(service, clock, minutes=1)
    clock.advance(minutes=2)
    service.claim(upload.id, 'worker-a')
    clock.advance(minutes=10)
    service.claim(upload.id, 'worker-b')

    with pytest.raises(LeaseLost) as excinfo:
        service.update_status(upload.id, COMPLETED, worker_id='worker-a')

    assert excinfo.value.holder == 'worker-b'
    assert fake_db.docs('scheduled_uploads')[upload.id]['status'] == PROCESSING
    assert service.update_status(upload.id, COMPLETED, worker_id='worker-b').status == COMPLETED
