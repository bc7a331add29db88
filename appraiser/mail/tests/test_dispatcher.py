"""Tests for :mod:`appraiser.mail.dispatcher`."""

from unittest import TestCase, mock

from .. import dispatcher
from ..domain import DeliveryFailed, EmailPayload
from ..transports import HTTPTransport, SMTPTransport


class TestSelectTransport(TestCase):
    """The transport follows the environment."""

    def _config(self, mock_config, **values):
        mock_config.MAIL_TRANSPORT = ''
        mock_config.DESKTOP_SHELL = False
        mock_config.MAIL_API_URL = ''
        mock_config.VERCEL = False
        mock_config.MAIL_RELAY_URL = 'http://localhost:3000/api/send-email'
        for key, value in values.items():
            setattr(mock_config, key, value)

    @mock.patch(f'{dispatcher.__name__}.config')
    def test_local_relay(self, mock_config):
        self._config(mock_config)
        transport = dispatcher.select_transport()
        self.assertIsInstance(transport, HTTPTransport)
        self.assertEqual(transport.url, 'http://localhost:3000/api/send-email')

    @mock.patch(f'{dispatcher.__name__}.config')
    def test_desktop_shell(self, mock_config):
        self._config(mock_config, DESKTOP_SHELL=True)
        self.assertIsInstance(dispatcher.select_transport(), SMTPTransport)

    @mock.patch(f'{dispatcher.__name__}.config')
    def test_serverless(self, mock_config):
        self._config(mock_config, MAIL_API_URL='https://x.app/api/send-email')
        transport = dispatcher.select_transport()
        self.assertEqual(transport.url, 'https://x.app/api/send-email')

    @mock.patch(f'{dispatcher.__name__}.config')
    def test_override(self, mock_config):
        self._config(mock_config, MAIL_TRANSPORT='smtp',
                     MAIL_API_URL='https://x.app/api/send-email')
        self.assertIsInstance(dispatcher.select_transport(), SMTPTransport)

    @mock.patch(f'{dispatcher.__name__}.config')
    def test_unknown(self, mock_config):
        self._config(mock_config, MAIL_TRANSPORT='pigeon')
        with self.assertRaises(ValueError):
            dispatcher.select_transport()


class TestSendEmail(TestCase):
    """:func:`.send_email` reports failures instead of raising them."""

    def setUp(self):
        self.payload = EmailPayload(smtp_host='h', smtp_user='u',
                                    smtp_pass='p', to='b@x.com')

    def test_success(self):
        transport = mock.MagicMock()
        transport.send.return_value = '<1@x>'
        result = dispatcher.send_email(self.payload, transport)
        self.assertTrue(result.success)
        self.assertEqual(result.message_id, '<1@x>')

    def test_delivery_failed(self):
        transport = mock.MagicMock()
        transport.send.side_effect = DeliveryFailed('relay down')
        result = dispatcher.send_email(self.payload, transport)
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'relay down')

    def test_unexpected_error(self):
        transport = mock.MagicMock()
        transport.send.side_effect = KeyError('boom')
        result = dispatcher.send_email(self.payload, transport)
        self.assertFalse(result.success)

    @mock.patch(f'{dispatcher.__name__}.select_transport')
    def test_default_transport(self, mock_select):
        mock_select.return_value.send.return_value = None
        self.assertTrue(dispatcher.send_email(self.payload).success)
        mock_select.assert_called_once()
