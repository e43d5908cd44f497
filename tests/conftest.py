"""In-memory stand-ins for the Supabase client used across the tests."""

import asyncio
import copy
import itertools
import time
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from config import Config


def no_rows_error():
    return APIError({
        'code': 'PGRST116',
        'message': 'JSON object requested, multiple (or no) rows returned',
        'details': 'The result contains 0 rows',
        'hint': None,
    })


def store_error(message='permission denied for table'):
    return APIError({'code': '42501', 'message': message, 'details': None, 'hint': None})


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query builder mimicking postgrest's async request builders."""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.action = 'select'
        self.columns = '*'
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_count = None
        self.is_single = False

    def select(self, columns='*'):
        self.columns = columns
        return self

    def insert(self, row):
        self.action = 'insert'
        self.payload = row
        return self

    def update(self, row):
        self.action = 'update'
        self.payload = row
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def single(self):
        self.is_single = True
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    async def execute(self):
        self.store.calls.append(self)
        pending = self.store.failures_once.get((self.table, self.action))
        if pending:
            raise pending.pop(0)
        failure = self.store.failures.get((self.table, self.action)) or self.store.failures.get(self.table)
        if failure is not None:
            raise failure

        rows = self.store.tables.setdefault(self.table, [])

        if self.action == 'insert':
            row = dict(self.store.defaults.get(self.table, {}))
            row.update({key: value for key, value in self.payload.items() if value is not None or key not in row})
            row.setdefault('id', f"{self.table}-{next(self.store.ids)}")
            row['created_at'] = '2024-05-01T00:00:00+00:00'
            rows.append(row)
            return FakeResponse([copy.deepcopy(row)])

        if self.action == 'update':
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        selected = [self.store.embed(self.table, self.columns, row) for row in rows if self._matches(row)]
        if self.order_by:
            column, desc = self.order_by
            selected.sort(key=lambda row: row[column], reverse=desc)
        if self.limit_count is not None:
            selected = selected[:self.limit_count]
        if self.is_single:
            if len(selected) != 1:
                raise no_rows_error()
            return FakeResponse(selected[0])
        return FakeResponse(selected)


class FakeStore:
    """Tables of rows plus programmable failures."""

    def __init__(self):
        self.tables = {}
        self.defaults = {
            'fishing_locations': {'rating': 0, 'review_count': 0},
            'fishing_reports': {'likes': 0},
            'guides': {'rating': 0, 'verified': False},
            'users': {'experience': 'beginner', 'total_catches': 0},
        }
        self.failures = {}
        # (table, action) -> errors raised by the next calls, one each
        self.failures_once = {}
        self.calls = []
        self.ids = itertools.count(1)

    def add(self, table, *rows):
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))

    def calls_for(self, table, action=None):
        return [call for call in self.calls
                if call.table == table and (action is None or call.action == action)]

    def _author(self, row):
        for user in self.tables.get('users', []):
            if user['id'] == row.get('user_id'):
                return {'username': user.get('username')}
        return None

    def embed(self, table, columns, row):
        row = copy.deepcopy(row)
        if table == 'comments' and 'users(' in columns:
            row['users'] = self._author(row)
        if table == 'fishing_reports' and 'comments(' in columns:
            row['comments'] = [
                dict(copy.deepcopy(comment), users=self._author(comment))
                for comment in self.tables.get('comments', [])
                if comment['report_id'] == row['id']
            ]
        return row


def make_session(user_id='user-1', email='angler@example.com', access_token='access-token',
                 refresh_token='refresh-token', expires_in=3600):
    return SimpleNamespace(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(time.time()) + expires_in,
        user=SimpleNamespace(id=user_id, email=email, user_metadata={}),
    )


class FakeSubscription:
    def __init__(self, auth, callback):
        self.auth = auth
        self.callback = callback

    def unsubscribe(self):
        if self in self.auth.listeners:
            self.auth.listeners.remove(self)
        self.auth.log.append('unsubscribe')


class FakeAuth:
    """Auth client with a push stream and an optionally held-back session probe."""

    def __init__(self):
        self.listeners = []
        self.callbacks = []
        self.log = []
        self.session = None
        self.hold_probe = False
        self.release_probe = asyncio.Event()
        self.probe_error = None
        self.error = None
        self.oauth_requests = []

    def on_auth_state_change(self, callback):
        subscription = FakeSubscription(self, callback)
        self.listeners.append(subscription)
        self.callbacks.append(callback)
        self.log.append('subscribe')
        return subscription

    def emit(self, event, session):
        for subscription in list(self.listeners):
            subscription.callback(event, session)

    async def get_session(self):
        self.log.append('get_session')
        if self.hold_probe:
            await self.release_probe.wait()
        if self.probe_error is not None:
            raise self.probe_error
        return self.session

    async def set_session(self, access_token, refresh_token):
        self.log.append(('set_session', access_token, refresh_token))
        if self.error is not None:
            raise self.error
        self.session = make_session(access_token=access_token, refresh_token=refresh_token)
        self.emit('SIGNED_IN', self.session)
        return SimpleNamespace(user=self.session.user, session=self.session)

    async def sign_up(self, credentials):
        self.log.append(('sign_up', credentials))
        if self.error is not None:
            raise self.error
        user = SimpleNamespace(id='user-new', email=credentials['email'],
                               user_metadata=credentials['options']['data'])
        return SimpleNamespace(user=user, session=None)

    async def sign_in_with_password(self, credentials):
        self.log.append(('sign_in', credentials['email']))
        if self.error is not None:
            raise self.error
        self.session = make_session(email=credentials['email'])
        return SimpleNamespace(user=self.session.user, session=self.session)

    async def sign_in_with_oauth(self, credentials):
        self.oauth_requests.append(credentials)
        if self.error is not None:
            raise self.error
        provider = credentials['provider']
        return SimpleNamespace(provider=provider, url=f"https://auth.example.com/authorize?provider={provider}")

    async def sign_out(self):
        self.log.append('sign_out')
        if self.error is not None:
            raise self.error
        self.session = None


class FakeClient:
    def __init__(self, store=None, auth=None):
        self.store = store or FakeStore()
        self.auth = auth or FakeAuth()
        self.postgrest = SimpleNamespace(token=None)
        self.postgrest.auth = lambda token: setattr(self.postgrest, 'token', token)

    def table(self, name):
        return FakeQuery(self.store, name)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def client(store, auth):
    return FakeClient(store, auth)


@pytest.fixture
def dev_mode(monkeypatch):
    monkeypatch.setattr(Config, 'DEV_MODE', True)


@pytest.fixture
def jwt_secret(monkeypatch):
    secret = 'test-jwt-secret-with-enough-length-for-hs256'
    monkeypatch.setattr(Config, 'SUPABASE_JWT_SECRET', secret)
    return secret
