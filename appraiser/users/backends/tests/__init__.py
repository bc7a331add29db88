"""Tests for :mod:`appraiser.users.backends`."""
