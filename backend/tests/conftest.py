"""Shared fixtures: an in-memory Firestore double, a settable clock and a wired test app."""
import copy
import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Configuration is read once per process; set it before any backend import
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='marketplace-logs-'))
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('FIREBASE_STORAGE_BUCKET', 'test-bucket.appspot.com')
os.environ.setdefault('NSFW_DETECTION_URL', 'http://nsfw-detector.test/classify')

from firebase_admin import firestore
from google.api_core.exceptions import FailedPrecondition, NotFound

from backend.services.system.auth_middleware import AuthenticationError
from backend.services.system.session import Session


# ----------------------------------------------------------------------
# In-memory Firestore
# ----------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, doc_id, data, update_time=None):
        self.id = doc_id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeWriteOption:
    def __init__(self, last_update_time):
        self.last_update_time = last_update_time


class FakeDocumentReference:
    def __init__(self, store, collection, doc_id):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def get(self):
        data = self._store.docs(self._collection).get(self.id)
        return FakeSnapshot(self.id, data, self._store.update_times.get((self._collection, self.id)))

    def set(self, data, merge=False):
        self._store.apply_set(self._collection, self.id, data, merge)

    def update(self, fields, option=None):
        self._store.apply_update(self._collection, self.id, fields, option)

    def delete(self):
        self._store.docs(self._collection).pop(self.id, None)
        self._store.update_times.pop((self._collection, self.id), None)


class FakeQuery:
    def __init__(self, store, collection, filters=None, order=None):
        self._store = store
        self._collection = collection
        self._filters = list(filters or [])
        self._order = order

    def where(self, filter=None):
        return FakeQuery(self._store, self._collection, self._filters + [filter], self._order)

    def order_by(self, field, direction='ASCENDING'):
        return FakeQuery(self._store, self._collection, self._filters, (field, direction))

    def _matches(self, data):
        for f in self._filters:
            value = data.get(f.field_path)
            if f.op_string == '==' and value != f.value:
                return False
            if f.op_string == '<=' and not (value is not None and value <= f.value):
                return False
        return True

    def stream(self):
        self._store.reads += 1
        if self._store.fail_reads:
            raise RuntimeError('Firestore unavailable')
        items = [
            (doc_id, data) for doc_id, data in self._store.docs(self._collection).items()
            if self._matches(data)
        ]
        if self._order is not None:
            field, direction = self._order
            items.sort(key=lambda item: item[1].get(field), reverse=direction == firestore.Query.DESCENDING)
        for doc_id, data in items:
            yield FakeSnapshot(doc_id, copy.deepcopy(data), self._store.update_times.get((self._collection, doc_id)))


class FakeCollection(FakeQuery):
    def __init__(self, store, name):
        super().__init__(store, name)

    def document(self, doc_id=None):
        return FakeDocumentReference(self._store, self._collection, doc_id or self._store.new_id())


class FakeBatch:
    def __init__(self, store):
        self._store = store
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(('set', ref, data, merge))

    def update(self, ref, fields):
        self._ops.append(('update', ref, fields, None))

    def commit(self):
        if self._store.fail_commits:
            raise RuntimeError('Batch commit failed')
        # Validate everything first so a failing write leaves nothing applied
        for op, ref, _, _ in self._ops:
            if op == 'update' and ref.id not in self._store.docs(ref._collection):
                raise NotFound(f'No document to update: {ref._collection}/{ref.id}')
        for op, ref, data, merge in self._ops:
            if op == 'set':
                self._store.apply_set(ref._collection, ref.id, data, merge)
            else:
                self._store.apply_update(ref._collection, ref.id, data, None)
        self._store.commits += 1


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for the repositories."""

    def __init__(self):
        self.collections = {}
        self.update_times = {}
        self._ids = itertools.count(1)
        self._versions = itertools.count(1)
        self.fail_reads = False
        self.fail_commits = False
        self.reads = 0
        self.commits = 0

    def new_id(self):
        return f'doc-{next(self._ids)}'

    def docs(self, name):
        return self.collections.setdefault(name, {})

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def write_option(self, last_update_time=None):
        return FakeWriteOption(last_update_time)

    def _touch(self, collection, doc_id):
        self.update_times[(collection, doc_id)] = next(self._versions)

    @staticmethod
    def _apply_fields(target, fields):
        for key, value in fields.items():
            if value is firestore.DELETE_FIELD:
                target.pop(key, None)
            else:
                target[key] = copy.deepcopy(value)

    def apply_set(self, collection, doc_id, data, merge):
        docs = self.docs(collection)
        target = docs.get(doc_id, {}) if merge else {}
        self._apply_fields(target, data)
        docs[doc_id] = target
        self._touch(collection, doc_id)

    def apply_update(self, collection, doc_id, fields, option):
        docs = self.docs(collection)
        if doc_id not in docs:
            raise NotFound(f'No document to update: {collection}/{doc_id}')
        if option is not None and self.update_times.get((collection, doc_id)) != option.last_update_time:
            raise FailedPrecondition('The document was modified since it was read')
        self._apply_fields(docs[doc_id], fields)
        self._touch(collection, doc_id)


# ----------------------------------------------------------------------
# Clock and sessions
# ----------------------------------------------------------------------

class MutableClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


START = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)

ADMIN_CLAIMS = {'uid': 'admin-1', 'email': 'admin@example.com', 'name': 'Ada Admin', 'admin': True}
USER_CLAIMS = {'uid': 'user-1', 'email': 'user@example.com', 'name': 'Uma User'}
OTHER_CLAIMS = {'uid': 'user-2', 'email': 'other@example.com', 'name': 'Otto Other'}

TOKENS = {
    'admin-token': ADMIN_CLAIMS,
    'user-token': USER_CLAIMS,
    'other-token': OTHER_CLAIMS,
}


def auth(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def clock():
    return MutableClock(START)


@pytest.fixture
def admin_session():
    return Session.from_claims(ADMIN_CLAIMS)


@pytest.fixture
def user_session():
    return Session.from_claims(USER_CLAIMS)


# ----------------------------------------------------------------------
# Wired application
# ----------------------------------------------------------------------

@pytest.fixture
def app(fake_db, clock, monkeypatch):
    """The real Flask app with every repository pointed at the in-memory store."""
    from backend import app as app_module
    from backend.features.audit import index as audit_index
    from backend.features.moderation import index as moderation_index
    from backend.features.system import index as system_index
    from backend.features.uploads import index as uploads_index
    from backend.services.system import auth_middleware
    from backend.services.system.security import limiter

    for repository in (
        audit_index.audit_repository,
        moderation_index.warning_repository,
        moderation_index.user_repository,
        uploads_index.scheduled_upload_repository,
        uploads_index.asset_repository,
    ):
        monkeypatch.setattr(repository, '_client', fake_db)

    for service in (
        audit_index.audit_service,
        moderation_index.moderation_service,
        uploads_index.scheduled_upload_service,
        uploads_index.asset_publisher,
        system_index.nsfw_service,
    ):
        monkeypatch.setattr(service, '_clock', clock)

    def verify(token):
        if token not in TOKENS:
            raise AuthenticationError('Invalid token')
        return dict(TOKENS[token])

    monkeypatch.setattr(auth_middleware, 'verify_firebase_token', verify)

    app_module.app.config['TESTING'] = True
    limiter.reset()
    yield app_module.app
    limiter.reset()


@pytest.fixture
def client(app):
    return app.test_client()
