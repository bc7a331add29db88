"""Tests for :mod:`appraiser.users.backends.base`."""

from unittest import TestCase

from ...exceptions import ValidationFailed
from ..base import defined_changes


class TestDefinedChanges(TestCase):
    """Partial updates only carry fields with a value."""

    def test_none_is_absent(self):
        self.assertEqual(
            defined_changes({'name': 'B', 'subscription_expiry': None}),
            {'name': 'B'}
        )

    def test_camel_case_alias(self):
        self.assertEqual(defined_changes({'subscriptionExpiry': '2024-01-01'}),
                         {'subscription_expiry': '2024-01-01'})

    def test_empty_string_is_a_value(self):
        self.assertEqual(defined_changes({'phone': ''}), {'phone': ''})

    def test_email_is_immutable(self):
        with self.assertRaises(ValidationFailed) as ctx:
            defined_changes({'email': 'c@x.com'})
        self.assertEqual(ctx.exception.key, 'invalidField')

    def test_unknown_field(self):
        with self.assertRaises(ValidationFailed):
            defined_changes({'favourite_colour': 'blue'})

    def test_blank_password_is_absent(self):
        self.assertEqual(defined_changes({'password': '', 'name': 'B'}),
                         {'name': 'B'})

    def test_unknown_role(self):
        with self.assertRaises(ValidationFailed) as ctx:
            defined_changes({'role': 'superuser'})
        self.assertEqual(ctx.exception.key, 'invalidField')

    def test_legacy_role_label(self):
        self.assertEqual(defined_changes({'role': '付費用戶'}),
                         {'role': '付費用戶'})

    def test_unparseable_expiry(self):
        with self.assertRaises(ValidationFailed) as ctx:
            defined_changes({'subscriptionExpiry': 'soon'})
        self.assertEqual(ctx.exception.key, 'invalidField')
