"""Tests for :mod:`appraiser.users`."""
