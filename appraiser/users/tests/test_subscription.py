"""Tests for :mod:`appraiser.users.subscription`."""

from unittest import TestCase
from datetime import datetime, timedelta
from pytz import UTC

from .. import subscription
from ..domain import Role
from ..exceptions import ValidationFailed

NOW = datetime(2024, 3, 1, 12, tzinfo=UTC)


class TestExtendExpiry(TestCase):
    """New expiry is ``max(now, current) + days``."""

    def test_no_current_term(self):
        self.assertEqual(subscription.extend_expiry(None, 30, now=NOW),
                         NOW + timedelta(days=30))

    def test_lapsed_term_starts_now(self):
        lapsed = NOW - timedelta(days=5)
        self.assertEqual(subscription.extend_expiry(lapsed, 30, now=NOW),
                         NOW + timedelta(days=30))

    def test_running_term_stacks(self):
        running = NOW + timedelta(days=10)
        self.assertEqual(subscription.extend_expiry(running, 30, now=NOW),
                         NOW + timedelta(days=40))

    def test_consecutive_extensions_add_up(self):
        """Extending by D1 then D2 equals extending by D1 + D2."""
        start = NOW + timedelta(days=3)
        once = subscription.extend_expiry(start, 30, now=NOW)
        twice = subscription.extend_expiry(once, 120, now=NOW)
        self.assertEqual(twice, start + timedelta(days=150))

    def test_naive_current_is_utc(self):
        naive = datetime(2024, 3, 11, 12)
        self.assertEqual(subscription.extend_expiry(naive, 1, now=NOW),
                         datetime(2024, 3, 12, 12, tzinfo=UTC))

    def test_zero_days(self):
        self.assertEqual(subscription.extend_expiry(None, 0, now=NOW), NOW)

    def test_negative_days(self):
        with self.assertRaises(ValidationFailed) as ctx:
            subscription.extend_expiry(None, -1, now=NOW)
        self.assertEqual(ctx.exception.key, 'invalidField')

    def test_defaults_to_current_time(self):
        before = datetime.now(tz=UTC)
        expiry = subscription.extend_expiry(None, 1)
        self.assertGreaterEqual(expiry, before + timedelta(days=1))


class TestPlans(TestCase):
    def test_plan_days(self):
        self.assertEqual(subscription.plan_days('monthly'), 30)
        self.assertEqual(subscription.plan_days('biannual'), 120)
        self.assertEqual(subscription.plan_days('yearly'), 365)

    def test_unknown_plan(self):
        with self.assertRaises(ValidationFailed) as ctx:
            subscription.plan_days('weekly')
        self.assertEqual(ctx.exception.key, 'invalidPlan')


class TestSubscriptionUpdate(TestCase):
    def test_makes_user_paid(self):
        changes = subscription.subscription_update(None, 30, now=NOW)
        self.assertEqual(changes['role'], Role.PAID)
        self.assertEqual(changes['subscription_expiry'],
                         NOW + timedelta(days=30))

    def test_is_active(self):
        self.assertTrue(subscription.is_active(NOW + timedelta(seconds=1),
                                               now=NOW))
        self.assertFalse(subscription.is_active(NOW, now=NOW))
        self.assertFalse(subscription.is_active(None, now=NOW))
