"""Provides a unified API for sending appraiser notification mail."""

from .domain import DeliveryFailed, EmailPayload, SendResult
from .dispatcher import select_transport, send_email
from .transports import HTTPTransport, SMTPTransport, Transport

__all__ = ('DeliveryFailed', 'EmailPayload', 'SendResult', 'HTTPTransport',
           'SMTPTransport', 'Transport', 'select_transport', 'send_email')
