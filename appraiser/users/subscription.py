"""
Subscription policy.

Extending a term that is still running stacks on top of it; extending a
lapsed or absent term starts from now. These functions are pure: promoting
the user to :attr:`.Role.PAID` is done by whoever applies the result (see
:meth:`appraiser.users.identity.IdentityService.extend_subscription`).
"""

from typing import Any, Dict, NamedTuple, Optional
from datetime import datetime, timedelta

from .domain import Role, now as _now, to_aware
from .exceptions import ValidationFailed


class Plan(NamedTuple):
    """A purchasable subscription plan."""

    plan_id: str
    days: int
    price: int
    """Price in New Taiwan dollars."""

    currency: str = 'TWD'


PLANS = {
    'monthly': Plan('monthly', 30, 120),
    'biannual': Plan('biannual', 120, 560),
    'yearly': Plan('yearly', 365, 960),
}


def plan_days(plan_id: str) -> int:
    """Number of days bought by ``plan_id``."""
    try:
        return PLANS[plan_id].days
    except KeyError as e:
        raise ValidationFailed(f'Unknown plan {plan_id}',
                               key='invalidPlan') from e


def extend_expiry(current: Optional[datetime], days: int,
                  now: Optional[datetime] = None) -> datetime:
    """
    Compute the new end of a paid term.

    Parameters
    ----------
    current : datetime or None
        Current end of the term, if any.
    days : int
        Length of the extension.
    now : datetime
        Reference time. Defaults to the current time.

    Returns
    -------
    datetime
        ``max(now, current) + days``.

    """
    if days < 0:
        raise ValidationFailed('Extension must not be negative',
                               key='invalidField')
    start = to_aware(now) if now is not None else _now()
    if current is not None and to_aware(current) > start:
        start = to_aware(current)
    return start + timedelta(days=days)


def subscription_update(current: Optional[datetime], days: int,
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    """Changes that apply an extension of ``days`` to a user record."""
    return {
        'role': Role.PAID,
        'subscription_expiry': extend_expiry(current, days, now=now),
    }


def is_active(expiry: Optional[datetime],
              now: Optional[datetime] = None) -> bool:
    """Whether a term ending at ``expiry`` is still running. Advisory."""
    if expiry is None:
        return False
    return to_aware(expiry) > (to_aware(now) if now is not None else _now())
