"""
Local mode: users and the session live in local storage.

Used only when no hosted backend is configured. The user records are kept as
one ordered JSON list under :data:`.storage.USERS_KEY`; the current session is
a separate, denormalized copy of the session user's record under
:data:`.storage.CURRENT_USER_KEY`. Lookups are linear scans by e-mail.
"""

from typing import Any, Dict, List, Optional
import json
import logging

from pydantic import ValidationError

from .. import config
from ..domain import Role, User
from ..exceptions import AuthenticationFailed, NoSuchUser, UserExists
from ..passwords import check_password, hash_password, is_hashed
from ..storage import CURRENT_USER_KEY, USERS_KEY, Storage
from .base import UserBackend, SessionHandler, Unsubscribe

logger = logging.getLogger(__name__)


def find(users: List[User], email: str) -> Optional[int]:
    """Index of the record for ``email``, or ``None``."""
    for i, user in enumerate(users):
        if user.email == email:
            return i
    return None


def _public(user: User) -> User:
    """Copy of ``user`` without the password hash."""
    return user.model_copy(update={'password': None})


class LocalStore(object):
    """Reads and writes user records in a :class:`.storage.Storage`."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def _load(self, key: str) -> Any:
        raw = self.storage.get_item(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning('Ignoring unreadable %s blob: %s', key, e)
            return None

    def load_users(self) -> List[User]:
        """Get all stored users. An unreadable blob reads as empty."""
        data = self._load(USERS_KEY)
        if not isinstance(data, list):
            return []
        try:
            return [User.from_storage(item) for item in data]
        except ValidationError as e:
            logger.warning('Ignoring malformed %s blob: %s', USERS_KEY, e)
            return []

    def save_users(self, users: List[User]) -> None:
        self.storage.set_item(
            USERS_KEY, json.dumps([user.to_storage() for user in users])
        )

    def load_current_user(self) -> Optional[User]:
        data = self._load(CURRENT_USER_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return User.from_storage(data)
        except ValidationError as e:
            logger.warning('Ignoring malformed session copy: %s', e)
            return None

    def save_current_user(self, user: User) -> None:
        self.storage.set_item(CURRENT_USER_KEY,
                              json.dumps(_public(user).to_storage()))

    def clear_current_user(self) -> None:
        self.storage.remove_item(CURRENT_USER_KEY)


class LocalBackend(UserBackend):
    """Implements the user backend on top of a :class:`.LocalStore`."""

    def __init__(self, store: LocalStore,
                 bootstrap_email: str = config.BOOTSTRAP_ADMIN_EMAIL,
                 bootstrap_password: str = config.BOOTSTRAP_ADMIN_PASSWORD
                 ) -> None:
        self.store = store
        self._bootstrap_email = bootstrap_email
        self._bootstrap_password = bootstrap_password

    def _bootstrap(self, email: str, password: str) -> Optional[User]:
        """Create the first admin from the configured credentials."""
        if not self._bootstrap_password:
            return None
        if email != self._bootstrap_email \
                or password != self._bootstrap_password:
            return None
        logger.info('Creating bootstrap admin %s', email)
        admin = User(email=email, password=hash_password(password),
                     role=Role.ADMIN, name='Admin')
        self.store.save_users([admin])
        return admin

    async def login(self, email: str, password: str) -> User:
        users = self.store.load_users()
        idx = find(users, email)
        if idx is None:
            user = self._bootstrap(email, password) if not users else None
            if user is None:
                raise AuthenticationFailed('Invalid e-mail or password '
                                           '(local mode)')
        else:
            user = users[idx]
            check_password(password, user.password or '')
            if not is_hashed(user.password):
                logger.info('Rehashing clear-text password for %s', email)
                user = user.model_copy(
                    update={'password': hash_password(password)}
                )
                users[idx] = user
                self.store.save_users(users)
        self.store.save_current_user(user)
        return _public(user)

    async def logout(self) -> None:
        self.store.clear_current_user()

    async def register(self, email: str, password: str, name: str,
                       phone: str) -> User:
        users = self.store.load_users()
        if find(users, email) is not None:
            raise UserExists(f'{email} is already registered')
        # An empty store bootstraps its first account as the admin.
        role = Role.GENERAL if users else Role.ADMIN
        user = User(email=email, password=hash_password(password),
                    name=name, phone=phone, role=role)
        self.store.save_users(users + [user])
        logger.info('Registered %s as %s', email, role.value)
        return _public(user)

    async def add_user(self, user: User) -> User:
        users = self.store.load_users()
        if find(users, user.email) is not None:
            raise UserExists(f'{user.email} is already registered')
        if user.password and not is_hashed(user.password):
            user = user.model_copy(
                update={'password': hash_password(user.password)}
            )
        self.store.save_users(users + [user])
        return _public(user)

    async def update_user(self, email: str, changes: Dict[str, Any],
                          current_email: Optional[str] = None) -> User:
        users = self.store.load_users()
        idx = find(users, email)
        if idx is None:
            raise NoSuchUser(f'No user {email}')
        if changes.get('password'):
            changes = dict(changes, password=hash_password(changes['password']))
        data = users[idx].model_dump()
        data.update(changes)
        updated = User.model_validate(data)
        users[idx] = updated
        self.store.save_users(users)
        if current_email == email:
            self.store.save_current_user(updated)
        return _public(updated)

    async def delete_user(self, email: str) -> None:
        users = self.store.load_users()
        remaining = [user for user in users if user.email != email]
        if len(remaining) == len(users):
            raise NoSuchUser(f'No user {email}')
        self.store.save_users(remaining)

    async def fetch_all(self) -> List[User]:
        return [_public(user) for user in self.store.load_users()]

    async def fetch_profile(self, user_id: str) -> Optional[User]:
        # Local records have no separate id; the e-mail serves as one.
        users = self.store.load_users()
        idx = find(users, user_id)
        return _public(users[idx]) if idx is not None else None

    async def restore_session(self) -> Optional[User]:
        return self.store.load_current_user()

    def subscribe(self, handler: SessionHandler) -> Unsubscribe:
        # Nothing outside this process signs users in or out.
        return lambda: None
