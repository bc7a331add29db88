"""Defines user concepts for the appraiser accounts layer."""

from typing import Any, Optional, NamedTuple, Dict
from datetime import datetime
from enum import Enum
import logging

import dateutil.parser
from pytz import UTC
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Access level of a user. Mutually exclusive."""

    GENERAL = 'general'
    PAID = 'paid'
    ADMIN = 'admin'


LEGACY_ROLES = {
    '一般用戶': Role.GENERAL,
    '付費用戶': Role.PAID,
    '管理員': Role.ADMIN,
}
"""Role labels written by earlier releases, still found in old backups."""


def now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def to_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return UTC.localize(value)
    return value


class User(BaseModel):
    """Represents a person with access to the appraiser."""

    model_config = ConfigDict(populate_by_name=True,
                              validate_assignment=True)

    email: str
    """The user's e-mail address. Unique and immutable."""

    role: Role = Role.GENERAL

    name: Optional[str] = None
    """Display name."""

    phone: Optional[str] = None
    """Contact phone number."""

    subscription_expiry: Optional[datetime] = Field(
        default=None, alias='subscriptionExpiry'
    )
    """End of the paid term. ``None`` means there is no paid term."""

    password: Optional[str] = Field(default=None, repr=False)
    """Salted password hash. Only present in local mode."""

    @field_validator('role', mode='before')
    @classmethod
    def _coerce_role(cls, value: Any) -> Any:
        if value is None or value == '':
            return Role.GENERAL
        if value in LEGACY_ROLES:
            return LEGACY_ROLES[value]
        return value

    @field_validator('subscription_expiry', mode='before')
    @classmethod
    def _parse_expiry(cls, value: Any) -> Any:
        if value is None or value == '':
            return None
        if isinstance(value, str):
            value = dateutil.parser.parse(value)
        if isinstance(value, datetime):
            return to_aware(value)
        return value

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def subscription_active(self, at: Optional[datetime] = None) -> bool:
        """
        Whether the paid term is still running.

        This is advisory only, for display. Nothing demotes a paid user whose
        term has lapsed.
        """
        if self.subscription_expiry is None:
            return False
        return self.subscription_expiry > (at or now())

    def to_storage(self) -> Dict[str, Any]:
        """The camelCase JSON shape kept in local storage and backups."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)

    @classmethod
    def from_storage(cls, data: Dict[str, Any]) -> 'User':
        return cls.model_validate(data)


def to_profile_row(user: User) -> Dict[str, Any]:
    """Translate a :class:`.User` to the snake_case ``profiles`` row shape."""
    expiry = user.subscription_expiry
    return {
        'email': user.email,
        'role': user.role.value,
        'name': user.name,
        'phone': user.phone,
        'subscription_expiry': expiry.isoformat() if expiry else None,
    }


def from_profile_row(row: Dict[str, Any]) -> User:
    """Translate a ``profiles`` row to a :class:`.User`."""
    return User(
        email=row.get('email') or '',
        role=row.get('role') or Role.GENERAL,
        name=row.get('name') or None,
        phone=row.get('phone') or None,
        subscription_expiry=row.get('subscription_expiry') or None,
    )


class Result(NamedTuple):
    """Outcome of an identity-service operation."""

    success: bool
    """Whether the operation succeeded."""

    key: str = ''
    """Machine-readable, localizable message key."""

    detail: Optional[str] = None
    """Human-readable detail, e.g. a backend error message."""

    data: Any = None
    """Payload of a successful operation, if any."""

    @classmethod
    def ok(cls, key: str = '', data: Any = None) -> 'Result':
        return cls(True, key, None, data)

    @classmethod
    def fail(cls, key: str, detail: Optional[str] = None) -> 'Result':
        return cls(False, key, detail, None)


class SessionStatus(str, Enum):
    """States of the current session."""

    ANONYMOUS = 'anonymous'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'


class SessionEvent(NamedTuple):
    """A sign-in or sign-out notification from the hosted backend."""

    SIGNED_IN = 'SIGNED_IN'  # type: ignore
    SIGNED_OUT = 'SIGNED_OUT'  # type: ignore

    kind: str
    """``SIGNED_IN``, ``SIGNED_OUT`` or another backend event name."""

    user_id: Optional[str] = None
    """Backend-assigned identifier of the signed-in account."""

    email: Optional[str] = None


def synthesize_user(email: str, bootstrap_email: str) -> User:
    """
    Minimal record for an account whose profile row does not exist yet.

    Only the reserved bootstrap address is inferred to be an admin.
    """
    role = Role.ADMIN if email and email == bootstrap_email else Role.GENERAL
    return User(email=email or '', role=role)
