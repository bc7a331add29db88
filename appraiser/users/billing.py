"""
Paid upgrades and account notices.

Payment capture itself happens with the payment provider; this module only
applies its outcome to the account and tells the member about it.
"""

from typing import Any, Awaitable, Callable, Optional
import logging

from ..mail import EmailPayload, SendResult, send_email
from .domain import Result, User
from .exceptions import ValidationFailed
from .identity import IdentityService
from .settings import Settings
from .subscription import plan_days

logger = logging.getLogger(__name__)

Capture = Callable[[], Awaitable[Any]]
Dispatcher = Callable[[EmailPayload], SendResult]

ROLE_LABELS = {
    'general': 'General member',
    'paid': 'Paid member',
    'admin': 'Administrator',
}


async def upgrade_after_payment(identity: IdentityService, plan_id: str,
                                capture: Capture) -> Result:
    """
    Capture a payment for ``plan_id`` and extend the current subscription.

    Parameters
    ----------
    identity : :class:`.IdentityService`
    plan_id : str
        One of :data:`.subscription.PLANS`.
    capture : callable
        Coroutine function that completes the payment with the provider and
        raises if it did not go through.

    Returns
    -------
    :class:`.Result`
        ``upgradeSuccess`` with the updated user, or a failure key.

    """
    user = identity.current_user
    if user is None:
        return Result.fail('loginRequired')
    try:
        days = plan_days(plan_id)
    except ValidationFailed as e:
        return Result.fail(e.key, str(e))
    try:
        await capture()
    except Exception as e:
        logger.error('Payment capture for %s failed: %s', plan_id, e)
        return Result.fail('paymentFailed', str(e))
    logger.info('Payment captured for %s, plan %s', user.email, plan_id)
    result = await identity.extend_subscription(user.email, days)
    if not result.success:
        # Paid but not applied; an admin has to extend by hand.
        logger.error('Could not apply plan %s to %s: %s', plan_id,
                     user.email, result.key)
        return result
    return Result.ok('upgradeSuccess', result.data)


def account_notice(user: User) -> str:
    """Body of the account-status mail."""
    expiry = user.subscription_expiry
    lines = [
        f'Dear {user.name or user.email},',
        '',
        'Here is the current status of your AI Property Appraiser account.',
        '',
        f'Account: {user.email}',
        f'Membership: {ROLE_LABELS.get(user.role.value, user.role.value)}',
        f'Subscription expiry: '
        f'{expiry.date().isoformat() if expiry else "-"}',
    ]
    return '\n'.join(lines)


def notify_account_status(user: User, settings: Settings,
                          dispatcher: Optional[Dispatcher] = None) -> Result:
    """Mail ``user`` their account status, with the sender in CC."""
    if not settings.smtp_configured:
        return Result.fail('smtpNotConfigured')
    payload = EmailPayload(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        smtp_pass=settings.smtp_pass,
        to=user.email,
        cc=settings.smtp_user,
        subject='AI Property Appraiser account status',
        text=account_notice(user),
    )
    sent = (dispatcher or send_email)(payload)
    if not sent.success:
        return Result.fail('emailFailed', sent.error)
    return Result.ok('emailSent', sent.message_id)
