"""
The identity service: one contract over the local and hosted backends.

Presentation code talks only to :class:`IdentityService`. It never sees an
exception for an expected failure: every operation returns a
:class:`.domain.Result` whose ``key`` is a localizable reason, and session
changes are published through the shared :class:`.state.AuthState`.

Session state moves ``anonymous -> authenticating -> authenticated`` on login
and back to ``anonymous`` on logout, on a forced sign-out, or when an attempt
fails or times out. A failed attempt never leaves a half-set session.
"""

from typing import Any, Awaitable, Callable, Mapping, Optional
from datetime import datetime
import asyncio
import logging

from . import config
from .backends.base import UserBackend, defined_changes
from .domain import (Result, SessionEvent, SessionStatus, User,
                     synthesize_user)
from .exceptions import AccountsError, SelfDeleteForbidden
from .state import AuthState
from .subscription import subscription_update

logger = logging.getLogger(__name__)


class IdentityService(object):
    """Login, registration and user administration over one backend."""

    def __init__(self, backend: UserBackend,
                 state: Optional[AuthState] = None,
                 settle_delay: float = config.SIGN_IN_SETTLE_DELAY,
                 bootstrap_email: str = config.BOOTSTRAP_ADMIN_EMAIL) -> None:
        self.backend = backend
        self.state = state if state is not None else AuthState()
        self._settle_delay = settle_delay
        self._bootstrap_email = bootstrap_email
        self._unsubscribe: Optional[Callable[[], None]] = None
        # Bumped whenever the session ends, so that a sign-in event still
        # being handled cannot bring back a session that is gone.
        self._session_epoch = 0

    @property
    def current_user(self) -> Optional[User]:
        return self.state.current_user

    async def _attempt(self, aw: Awaitable, what: str,
                       success_key: str = '') -> Result:
        try:
            data = await aw
        except AccountsError as e:
            logger.info('%s failed: %s', what, e)
            return Result.fail(e.key, str(e) or None)
        except Exception as e:
            logger.exception('Unexpected error during %s', what)
            return Result.fail('unexpectedError', str(e))
        return Result.ok(success_key, data)

    # Startup and teardown.

    async def start(self) -> None:
        """
        Restore the previous session and start listening for changes.

        Never blocks startup on an unreachable backend: if the session cannot
        be restored in time the app starts with no session.
        """
        await self.reload()
        if self._unsubscribe is None:
            self._unsubscribe = self.backend.subscribe(self._on_session_event)

    async def reload(self) -> None:
        """Re-read the session and the user list from the backend."""
        try:
            user = await self.backend.restore_session()
        except AccountsError as e:
            logger.warning('Could not restore session: %s', e)
            user = None
        if user is not None:
            logger.debug('Restored session for %s', user.email)
            self.state.update(current_user=user,
                              status=SessionStatus.AUTHENTICATED)
        else:
            self.state.update(current_user=None,
                              status=SessionStatus.ANONYMOUS)
        await self.fetch_all()

    def close(self) -> None:
        """Stop listening for session changes."""
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()

    async def _on_session_event(self, event: SessionEvent) -> None:
        if event.user_id:
            epoch = self._session_epoch
            if event.kind == SessionEvent.SIGNED_IN:
                # Give the backend time to create the profile row.
                await asyncio.sleep(self._settle_delay)
            try:
                profile = await self.backend.fetch_profile(event.user_id)
            except AccountsError as e:
                logger.warning('Profile lookup after %s failed: %s',
                               event.kind, e)
                profile = None
            if epoch != self._session_epoch:
                logger.debug('Dropping stale %s for %s', event.kind,
                             event.email)
                return
            user = profile or synthesize_user(event.email or '',
                                              self._bootstrap_email)
            self.state.update(current_user=user,
                              status=SessionStatus.AUTHENTICATED)
            await self.fetch_all()
        elif event.kind == SessionEvent.SIGNED_OUT:
            self._session_epoch += 1
            self.state.update(current_user=None, users=[],
                              status=SessionStatus.ANONYMOUS)

    # Sessions.

    async def login(self, email: str, password: str) -> Result:
        """Authenticate and open a session."""
        logger.debug('Login attempt: %s', email)
        self.state.update(status=SessionStatus.AUTHENTICATING,
                          last_error=None)
        result = await self._attempt(self.backend.login(email, password),
                                     'Login')
        if not result.success:
            # The session is whatever survived the attempt: the hosted
            # backend signs out before signing in, and its sign-out event
            # has already cleared the user.
            current = self.state.current_user
            self.state.update(
                status=(SessionStatus.AUTHENTICATED if current is not None
                        else SessionStatus.ANONYMOUS),
                last_error=result.key
            )
            return result
        self.state.update(current_user=result.data,
                          status=SessionStatus.AUTHENTICATED,
                          login_open=False)
        await self.fetch_all()
        return Result.ok('loginSuccess', result.data)

    async def logout(self) -> None:
        """Close the session. Backend clean-up happens in the background."""
        self._session_epoch += 1
        self.state.update(current_user=None, admin_panel_open=False,
                          status=SessionStatus.ANONYMOUS)
        try:
            await self.backend.logout()
        except AccountsError as e:
            logger.warning('Logout clean-up failed: %s', e)

    # Accounts.

    async def register(self, email: str, password: str, name: str,
                       phone: str) -> Result:
        """
        Create an account. The caller must log in afterwards.

        Name and phone are required and are checked before anything is sent
        to the backend.
        """
        if not (name or '').strip() or not (phone or '').strip() \
                or not (email or '').strip() or not password:
            return Result.fail('missingRequiredFields')
        result = await self._attempt(
            self.backend.register(email.strip(), password, name.strip(),
                                  phone.strip()),
            'Registration', 'registrationSuccess'
        )
        if result.success:
            await self.fetch_all()
        return result

    async def add_user(self, user: User) -> Result:
        """Create an account on behalf of an admin. Local mode only."""
        result = await self._attempt(self.backend.add_user(user),
                                     'Add user', 'addUserSuccess')
        if result.success:
            await self.fetch_all()
        return result

    async def update_user(self, email: str,
                          changes: Mapping[str, Any]) -> Result:
        """
        Merge ``changes`` into the record for ``email``.

        Only keys with a value other than ``None`` are applied. If the record
        belongs to the current session, the session snapshot is refreshed.
        """
        try:
            changes = defined_changes(changes)
        except AccountsError as e:
            return Result.fail(e.key, str(e))
        current = self.state.current_user
        current_email = current.email if current is not None else None
        result = await self._attempt(
            self.backend.update_user(email, changes,
                                     current_email=current_email),
            'Update user', 'updateUserSuccess'
        )
        if not result.success:
            return result
        if current_email == email:
            self.state.update(current_user=result.data)
        await self.fetch_all()
        return result

    async def delete_user(self, email: str) -> Result:
        """Remove the record for ``email``. Never the session's own."""
        result = await self._attempt(self._delete_other(email),
                                     'Delete user', 'deleteUserSuccess')
        if result.success:
            await self.fetch_all()
        return result

    async def _delete_other(self, email: str) -> None:
        current = self.state.current_user
        if current is not None and current.email == email:
            raise SelfDeleteForbidden(f'{email} is signed in')
        await self.backend.delete_user(email)

    async def fetch_all(self) -> Result:
        """Refresh the user list in the shared state."""
        result = await self._attempt(self.backend.fetch_all(), 'Fetch users')
        if result.success:
            self.state.update(users=result.data)
        return result

    async def get_user(self, email: str) -> Optional[User]:
        """Look up a single record by e-mail."""
        result = await self._attempt(self.backend.fetch_all(), 'Fetch users')
        if not result.success:
            return None
        for user in result.data:
            if user.email == email:
                return user
        return None

    async def extend_subscription(self, email: str, days: int,
                                  now: Optional[datetime] = None) -> Result:
        """
        Extend the paid term of ``email`` by ``days`` and make it paid.

        The term stacks on an expiry still in the future, and otherwise
        starts now.
        """
        user = await self.get_user(email)
        if user is None:
            return Result.fail('userNotFound')
        try:
            changes = subscription_update(user.subscription_expiry, days,
                                          now=now)
        except AccountsError as e:
            return Result.fail(e.key, str(e))
        result = await self.update_user(email, changes)
        if not result.success:
            return result
        return Result.ok('subscriptionExtended', result.data)

    # Views.

    def set_login_open(self, is_open: bool) -> None:
        self.state.update(login_open=is_open)

    def set_admin_panel_open(self, is_open: bool) -> bool:
        """Open or close the admin panel. Only admins may open it."""
        user = self.state.current_user
        if is_open and (user is None or not user.is_admin):
            return False
        self.state.update(admin_panel_open=is_open)
        return True
