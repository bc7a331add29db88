"""Tests for :mod:`appraiser.users.billing`."""

from datetime import datetime, timedelta
from unittest import mock

import pytest
from pytz import UTC

from ...mail import SendResult
from .. import billing
from ..domain import Role, User
from ..settings import Settings

SMTP = Settings(smtp_host='smtp.x.com', smtp_user='bot@x.com',
                smtp_pass='pw')


@pytest.mark.asyncio
async def test_upgrade_after_payment(local_identity):
    await local_identity.register('a@x.com', 'p', 'A', '1')
    await local_identity.register('b@x.com', 'p', 'B', '2')
    await local_identity.login('b@x.com', 'p')
    capture = mock.AsyncMock(return_value={'status': 'COMPLETED'})

    result = await billing.upgrade_after_payment(local_identity, 'monthly',
                                                 capture)
    assert result.success
    assert result.key == 'upgradeSuccess'
    capture.assert_awaited_once()
    user = local_identity.current_user
    assert user.role == Role.PAID
    assert user.subscription_expiry > datetime.now(tz=UTC) \
        + timedelta(days=29)


@pytest.mark.asyncio
async def test_upgrade_requires_login(local_identity):
    capture = mock.AsyncMock()
    result = await billing.upgrade_after_payment(local_identity, 'monthly',
                                                 capture)
    assert result.key == 'loginRequired'
    capture.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_payment_changes_nothing(local_identity):
    await local_identity.register('a@x.com', 'p', 'A', '1')
    await local_identity.login('a@x.com', 'p')
    capture = mock.AsyncMock(side_effect=RuntimeError('card declined'))
    result = await billing.upgrade_after_payment(local_identity, 'yearly',
                                                 capture)
    assert result.key == 'paymentFailed'
    assert local_identity.current_user.subscription_expiry is None


@pytest.mark.asyncio
async def test_unknown_plan(local_identity):
    await local_identity.register('a@x.com', 'p', 'A', '1')
    await local_identity.login('a@x.com', 'p')
    capture = mock.AsyncMock()
    result = await billing.upgrade_after_payment(local_identity, 'weekly',
                                                 capture)
    assert result.key == 'invalidPlan'
    capture.assert_not_awaited()


def test_account_notice():
    user = User(email='b@x.com', name='B', role=Role.PAID,
                subscription_expiry=datetime(2024, 5, 1, tzinfo=UTC))
    text = billing.account_notice(user)
    assert 'Dear B,' in text
    assert 'Paid member' in text
    assert '2024-05-01' in text


def test_notify_account_status():
    dispatcher = mock.MagicMock(return_value=SendResult(True,
                                                        message_id='<1@x>'))
    user = User(email='b@x.com', name='B')
    result = billing.notify_account_status(user, SMTP, dispatcher)
    assert result.key == 'emailSent'
    payload = dispatcher.call_args[0][0]
    assert payload.to == 'b@x.com'
    assert payload.cc == 'bot@x.com'
    assert payload.smtp_pass == 'pw'


def test_notify_without_smtp():
    dispatcher = mock.MagicMock()
    result = billing.notify_account_status(User(email='b@x.com'),
                                           Settings(), dispatcher)
    assert result.key == 'smtpNotConfigured'
    dispatcher.assert_not_called()


def test_notify_delivery_failure():
    dispatcher = mock.MagicMock(return_value=SendResult(False, 'refused'))
    result = billing.notify_account_status(User(email='b@x.com'), SMTP,
                                           dispatcher)
    assert not result.success
    assert result.key == 'emailFailed'
    assert result.detail == 'refused'
