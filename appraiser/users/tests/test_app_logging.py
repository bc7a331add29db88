"""Tests for :mod:`appraiser.users.app_logging`."""

from unittest import TestCase
import logging

from .. import app_logging


class TestSetupLogger(TestCase):
    def setUp(self):
        self.root = logging.getLogger()
        self.level = self.root.level

    def tearDown(self):
        for handler in list(self.root.handlers):
            if handler.get_name() == app_logging.HANDLER_NAME:
                self.root.removeHandler(handler)
        self.root.setLevel(self.level)

    def _ours(self):
        return [h for h in self.root.handlers
                if h.get_name() == app_logging.HANDLER_NAME]

    def test_repeated_calls_keep_one_handler(self):
        app_logging.setup_logger('info')
        app_logging.setup_logger('debug')
        self.assertEqual(len(self._ours()), 1)
        self.assertEqual(self.root.level, logging.DEBUG)
