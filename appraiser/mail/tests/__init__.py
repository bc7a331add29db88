"""Tests for :mod:`appraiser.mail`."""
