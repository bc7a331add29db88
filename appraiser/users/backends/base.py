"""Interface shared by the local and hosted user backends."""

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..domain import SessionEvent, User
from ..exceptions import ValidationFailed

SessionHandler = Callable[[SessionEvent], Awaitable[None]]
Unsubscribe = Callable[[], None]

UPDATABLE_FIELDS = ('role', 'name', 'phone', 'subscription_expiry',
                    'password')


def defined_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Normalize and check a partial update before it reaches a backend.

    Accepts either attribute names or their camelCase aliases. Keys whose
    value is ``None`` count as absent: they never overwrite stored data. A
    blank password also counts as absent. The e-mail address is immutable.

    Raises
    ------
    :class:`.ValidationFailed`
        With key ``invalidField`` for a field that cannot be updated, or for
        a value the user record would reject (an unknown role, an expiry
        that is not a date).

    """
    normalized = {}
    for key, value in changes.items():
        if key == 'subscriptionExpiry':
            key = 'subscription_expiry'
        if key not in UPDATABLE_FIELDS:
            raise ValidationFailed(f'Cannot update {key}', key='invalidField')
        if value is None:
            continue
        if key == 'password' and not value:
            continue
        normalized[key] = value
    if normalized:
        try:
            User.model_validate(dict(normalized, email=''))
        except (ValidationError, OverflowError) as e:
            raise ValidationFailed(f'Invalid update: {e}',
                                   key='invalidField') from e
    return normalized


class UserBackend(object):
    """
    A place where users and sessions live.

    Two variants exist, selected once at startup by
    :func:`appraiser.users.backends.create_backend`. Methods raise
    :class:`appraiser.users.exceptions.AccountsError` subclasses on expected
    failures.
    """

    is_cloud = False

    async def login(self, email: str, password: str) -> User:
        """Authenticate and open a session. Returns the session's user."""
        raise NotImplementedError

    async def logout(self) -> None:
        """Close the current session."""
        raise NotImplementedError

    async def register(self, email: str, password: str, name: str,
                       phone: str) -> User:
        """Create an account without opening a session."""
        raise NotImplementedError

    async def add_user(self, user: User) -> User:
        """Create an account on behalf of an admin."""
        raise NotImplementedError

    async def update_user(self, email: str, changes: Dict[str, Any],
                          current_email: Optional[str] = None) -> User:
        """Merge ``changes`` into the record for ``email``."""
        raise NotImplementedError

    async def delete_user(self, email: str) -> None:
        """Remove the record for ``email``."""
        raise NotImplementedError

    async def fetch_all(self) -> List[User]:
        """Get all user records."""
        raise NotImplementedError

    async def fetch_profile(self, user_id: str) -> Optional[User]:
        """Get the record for a backend-assigned id, if it exists yet."""
        raise NotImplementedError

    async def restore_session(self) -> Optional[User]:
        """Recover the session that was open when the app last ran."""
        raise NotImplementedError

    def subscribe(self, handler: SessionHandler) -> Unsubscribe:
        """Register for sign-in/sign-out events. Returns an unsubscribe."""
        raise NotImplementedError
