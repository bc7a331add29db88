"""An in-memory stand-in for the async Supabase client."""

from typing import Any, Callable, Dict, List, NamedTuple, Optional
import asyncio
import uuid


class FakeAuthUser(NamedTuple):
    id: str
    email: str


class FakeSession(NamedTuple):
    user: FakeAuthUser


class FakeAuthResponse(NamedTuple):
    user: Optional[FakeAuthUser]
    session: Optional[FakeSession]


class FakeResponse(NamedTuple):
    data: Any


class FakeQuery(object):
    def __init__(self, client: 'FakeClient', name: str) -> None:
        self.client = client
        self.rows = client.tables.setdefault(name, [])
        self._op = 'select'
        self._values: Dict[str, Any] = {}
        self._filters: List[tuple] = []
        self._single = False

    def select(self, *columns: str) -> 'FakeQuery':
        self._op = 'select'
        return self

    def update(self, values: Dict[str, Any]) -> 'FakeQuery':
        self._op = 'update'
        self._values = values
        return self

    def delete(self) -> 'FakeQuery':
        self._op = 'delete'
        return self

    def eq(self, column: str, value: Any) -> 'FakeQuery':
        self._filters.append((column, value))
        return self

    def maybe_single(self) -> 'FakeQuery':
        self._single = True
        return self

    async def execute(self) -> Optional[FakeResponse]:
        if self.client.query_delay:
            await asyncio.sleep(self.client.query_delay)
        if self.client.table_error is not None:
            raise self.client.table_error
        matched = [row for row in self.rows
                   if all(row.get(c) == v for c, v in self._filters)]
        if self._op == 'update':
            for row in matched:
                row.update(self._values)
            self.client.updates.append(dict(self._values))
        elif self._op == 'delete':
            for row in matched:
                self.rows.remove(row)
        if self._single:
            return FakeResponse(dict(matched[0])) if matched else None
        return FakeResponse([dict(row) for row in matched])


class FakeSubscription(object):
    def __init__(self, auth: 'FakeAuth', callback: Callable) -> None:
        self.auth = auth
        self.callback = callback
        self.unsubscribe_calls = 0

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self.auth.listeners.remove(self.callback)


class FakeAuth(object):
    """Accounts, one session, and auth-state listeners."""

    def __init__(self, client: 'FakeClient') -> None:
        self.client = client
        self.accounts: Dict[str, tuple] = {}
        self.session: Optional[FakeSession] = None
        self.listeners: List[Callable] = []
        self.subscriptions: List[FakeSubscription] = []
        self.sign_in_delay = 0.0
        self.get_session_delay = 0.0
        self.sign_in_error: Optional[Exception] = None
        self.sign_out_calls = 0

    def _emit(self, event: str, session: Optional[FakeSession]) -> None:
        for callback in list(self.listeners):
            callback(event, session)

    def add_account(self, email: str, password: str,
                    profile: Optional[Dict[str, Any]] = None) -> str:
        user_id = str(uuid.uuid4())
        self.accounts[email] = (user_id, password)
        if profile is not None:
            self.client.tables.setdefault('profiles', []).append(
                dict(profile, id=user_id, email=email)
            )
        return user_id

    async def sign_in_with_password(self, credentials: Dict[str, str]
                                    ) -> FakeAuthResponse:
        if self.sign_in_delay:
            await asyncio.sleep(self.sign_in_delay)
        if self.sign_in_error is not None:
            raise self.sign_in_error
        account = self.accounts.get(credentials['email'])
        if account is None or account[1] != credentials['password']:
            raise Exception('Invalid login credentials')
        self.session = FakeSession(FakeAuthUser(account[0],
                                                credentials['email']))
        self._emit('SIGNED_IN', self.session)
        return FakeAuthResponse(self.session.user, self.session)

    async def sign_up(self, credentials: Dict[str, Any]) -> FakeAuthResponse:
        email = credentials['email']
        if email in self.accounts:
            raise Exception('User already registered')
        data = credentials.get('options', {}).get('data', {})
        # The backend's trigger creates the profile row.
        user_id = self.add_account(email, credentials['password'], {
            'name': data.get('name'), 'phone': data.get('phone'),
            'role': 'general', 'subscription_expiry': None,
        })
        self.session = FakeSession(FakeAuthUser(user_id, email))
        self._emit('SIGNED_IN', self.session)
        return FakeAuthResponse(self.session.user, self.session)

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        had_session = self.session is not None
        self.session = None
        if had_session:
            self._emit('SIGNED_OUT', None)

    async def get_session(self) -> Optional[FakeSession]:
        if self.get_session_delay:
            await asyncio.sleep(self.get_session_delay)
        return self.session

    def on_auth_state_change(self, callback: Callable) -> FakeSubscription:
        self.listeners.append(callback)
        subscription = FakeSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription


class FakeClient(object):
    """Mimics the parts of ``supabase.AsyncClient`` used by the backend."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {'profiles': []}
        self.updates: List[Dict[str, Any]] = []
        self.table_error: Optional[Exception] = None
        self.query_delay = 0.0
        self.auth = FakeAuth(self)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    @property
    def profiles(self) -> List[Dict[str, Any]]:
        return self.tables['profiles']
