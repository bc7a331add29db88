"""
Hosted mode: users live in a backend-as-a-service.

Credentials and sessions are handled by the backend's auth subsystem; user
records are rows of the ``profiles`` table, keyed by an opaque
backend-assigned id and cross-referenced by e-mail. Every mutation first
resolves ``email -> id`` and then mutates by id.

All calls go through an async Supabase client (``supabase.AsyncClient``).
Exceptions raised by the client are translated at this boundary into
:mod:`appraiser.users.exceptions`, so nothing transport-specific leaks out.
"""

from typing import Any, Dict, Iterator, List, NamedTuple, Optional
from contextlib import contextmanager
import asyncio
import logging

from .. import config
from ..domain import (Role, SessionEvent, User, from_profile_row,
                      synthesize_user, to_profile_row)
from ..exceptions import (AccountsError, AuthenticationFailed, NoSuchUser,
                          NotSupported, TimedOut, TransportFailed, UserExists)
from ..tasks import fire_and_forget, race
from .base import UserBackend, SessionHandler, Unsubscribe

logger = logging.getLogger(__name__)


def translate(exc: BaseException) -> AccountsError:
    """Map an exception raised by the hosted client to an accounts error."""
    if isinstance(exc, AccountsError):
        return exc
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, asyncio.TimeoutError) or 'timed out' in message.lower():
        return TimedOut(message)
    if 'Invalid API key' in message:
        return TransportFailed(message, key='invalidApiKey')
    if 'Invalid login credentials' in message:
        return AuthenticationFailed(message)
    if 'Email not confirmed' in message:
        return AuthenticationFailed(message, key='emailNotConfirmed')
    if 'already registered' in message:
        return UserExists(message)
    return TransportFailed(message)


def _rows(response: Any) -> Any:
    # ``maybe_single()`` yields no response at all when nothing matches.
    if response is None:
        return None
    return response.data


class SignupIntent(NamedTuple):
    """A sign-up in progress whose side-effect session must be ignored."""

    email: str

    def covers(self, event: SessionEvent) -> bool:
        return (event.kind == SessionEvent.SIGNED_IN
                and (event.email is None or event.email == self.email))


class CloudBackend(UserBackend):
    """Implements the user backend against the hosted service."""

    is_cloud = True

    def __init__(self, client: Any,
                 table: str = config.PROFILES_TABLE,
                 login_timeout: float = config.LOGIN_TIMEOUT,
                 restore_timeout: float = config.SESSION_RESTORE_TIMEOUT,
                 clear_timeout: float = config.STALE_SESSION_CLEAR_TIMEOUT,
                 query_timeout: float = config.QUERY_TIMEOUT,
                 bootstrap_email: str = config.BOOTSTRAP_ADMIN_EMAIL) -> None:
        self.client = client
        self._table = table
        self._login_timeout = login_timeout
        self._restore_timeout = restore_timeout
        self._clear_timeout = clear_timeout
        self._query_timeout = query_timeout
        self._bootstrap_email = bootstrap_email
        self._signup_intents: List[SignupIntent] = []

    def _profiles(self) -> Any:
        return self.client.table(self._table)

    async def _call(self, aw: Any) -> Any:
        try:
            return await aw
        except AccountsError:
            raise
        except Exception as e:
            raise translate(e) from e

    async def _query(self, query: Any, what: str) -> Any:
        """Execute a profiles-table query within the query timeout."""
        return await race(self._call(query.execute()), self._query_timeout,
                          what)

    @contextmanager
    def _signup_intent(self, email: str) -> Iterator[SignupIntent]:
        intent = SignupIntent(email)
        self._signup_intents.append(intent)
        try:
            yield intent
        finally:
            self._signup_intents.remove(intent)

    def _suppressed(self, event: SessionEvent) -> bool:
        return any(intent.covers(event) for intent in self._signup_intents)

    async def _user_for(self, auth_user: Any, timeout: float) -> User:
        """
        The profile for an authenticated account, or a stand-in.

        The profile read gets at most ``timeout`` seconds; a slow or failing
        read yields the stand-in.
        """
        try:
            profile = await race(self.fetch_profile(auth_user.id),
                                 max(timeout, 0), 'Profile lookup')
        except (TransportFailed, TimedOut) as e:
            logger.warning('Could not load profile for %s: %s',
                           auth_user.id, e)
            profile = None
        if profile is not None:
            return profile
        # Just signed up, or the backend has not created the row yet.
        return synthesize_user(getattr(auth_user, 'email', None) or '',
                               self._bootstrap_email)

    async def _clear_stale_session(self) -> None:
        try:
            await race(self._call(self.client.auth.sign_out()),
                       self._clear_timeout, 'Stale session clean-up')
        except AccountsError as e:
            logger.warning('Pre-login cleanup warning: %s', e)

    async def _resolve_id(self, email: str) -> str:
        response = await self._query(
            self._profiles().select('id').eq('email', email).maybe_single(),
            'Profile id lookup'
        )
        row = _rows(response)
        if not row:
            raise NoSuchUser(f'No profile for {email}')
        return str(row['id'])

    async def login(self, email: str, password: str) -> User:
        await self._clear_stale_session()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._login_timeout
        response = await race(
            self._call(self.client.auth.sign_in_with_password(
                {'email': email, 'password': password}
            )),
            self._login_timeout, 'Sign-in'
        )
        auth_user = getattr(response, 'user', None)
        if auth_user is None:
            raise AuthenticationFailed('Sign-in returned no user')
        logger.info('Hosted sign-in succeeded for %s', email)
        return await self._user_for(auth_user, deadline - loop.time())

    async def logout(self) -> None:
        fire_and_forget(self.client.auth.sign_out(), 'Sign-out')

    async def register(self, email: str, password: str, name: str,
                       phone: str) -> User:
        with self._signup_intent(email):
            response = await self._call(self.client.auth.sign_up({
                'email': email,
                'password': password,
                'options': {'data': {'name': name, 'phone': phone}},
            }))
            if getattr(response, 'session', None) is not None:
                # Sign-up opened a session. Drop it: sessions only start
                # from an explicit login.
                fire_and_forget(self.client.auth.sign_out(),
                                'Post sign-up sign-out')
        if getattr(response, 'user', None) is None:
            raise AccountsError('Sign-up returned no user',
                                key='registrationFailed')
        return User(email=email, name=name, phone=phone, role=Role.GENERAL)

    async def add_user(self, user: User) -> User:
        raise NotSupported('Accounts can only be created by signing up')

    async def update_user(self, email: str, changes: Dict[str, Any],
                          current_email: Optional[str] = None) -> User:
        user_id = await self._resolve_id(email)
        row = to_profile_row(User.model_validate(dict(changes, email=email)))
        # Blank values never overwrite a profile column.
        updates = {column: value for column, value in row.items()
                   if column in changes and value not in (None, '')}
        if 'password' in changes:
            logger.debug('Ignoring password change for %s in hosted mode',
                         email)
        if updates:
            await self._query(
                self._profiles().update(updates).eq('id', user_id),
                'Profile update'
            )
        updated = await self.fetch_profile(user_id)
        if updated is None:
            raise NoSuchUser(f'Profile for {email} disappeared')
        return updated

    async def delete_user(self, email: str) -> None:
        # Only the profile row can be removed from the client side; the auth
        # account itself stays with the backend.
        user_id = await self._resolve_id(email)
        await self._query(self._profiles().delete().eq('id', user_id),
                          'Profile delete')

    async def fetch_all(self) -> List[User]:
        response = await self._query(self._profiles().select('*'),
                                     'Profile list')
        return [from_profile_row(row) for row in _rows(response) or []]

    async def fetch_profile(self, user_id: str) -> Optional[User]:
        response = await self._query(
            self._profiles().select('*').eq('id', user_id).maybe_single(),
            'Profile read'
        )
        row = _rows(response)
        return from_profile_row(row) if row else None

    async def restore_session(self) -> Optional[User]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._restore_timeout
        try:
            session = await race(self._call(self.client.auth.get_session()),
                                 self._restore_timeout, 'Session restore')
        except AccountsError as e:
            logger.warning('Session init warning (backend might be slow or '
                           'down): %s', e)
            return None
        auth_user = getattr(session, 'user', None)
        if auth_user is None:
            return None
        return await self._user_for(auth_user, deadline - loop.time())

    def subscribe(self, handler: SessionHandler) -> Unsubscribe:
        """
        Forward the hosted client's auth-state changes to ``handler``.

        Must be called from a running event loop; ``handler`` runs as a task
        on that loop.
        """
        loop = asyncio.get_running_loop()

        def on_change(event: Any, session: Any) -> None:
            auth_user = getattr(session, 'user', None)
            change = SessionEvent(
                kind=str(getattr(event, 'value', event)),
                user_id=getattr(auth_user, 'id', None),
                email=getattr(auth_user, 'email', None),
            )
            if self._suppressed(change):
                logger.debug('Ignoring %s from sign-up of %s', change.kind,
                             change.email)
                return
            fire_and_forget(handler(change), f'{change.kind} handler',
                            loop=loop)

        subscription = self.client.auth.on_auth_state_change(on_change)
        unsubscribed = False

        def unsubscribe() -> None:
            nonlocal unsubscribed
            if unsubscribed:
                return
            unsubscribed = True
            subscription.unsubscribe()

        return unsubscribe
