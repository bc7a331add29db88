"""
Ways of getting a message to an SMTP server.

:class:`SMTPTransport` talks SMTP from this process. :class:`HTTPTransport`
posts the payload to a relay (see :mod:`.relay`) or to a serverless function
with the same contract, which then talks SMTP on our behalf.
"""

from typing import Optional
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
import logging
import smtplib
import ssl

import requests
from pytz import timezone

from ..users import config
from .domain import DeliveryFailed, EmailPayload, IMPLICIT_TLS_PORT

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = 'Missing SMTP configuration or Recipient.'
FOOTER = ('\n\n----------------------------------------\n'
          '{sender} System Notification\nDate: {date}')


class Transport(object):
    """Hands a message over for delivery."""

    def send(self, payload: EmailPayload) -> Optional[str]:
        """
        Send ``payload``.

        Returns
        -------
        str or None
            The message id, if the transport reports one.

        Raises
        ------
        :class:`.DeliveryFailed`

        """
        raise NotImplementedError


def compose(payload: EmailPayload,
            now: Optional[datetime] = None) -> EmailMessage:
    """Build the MIME message for ``payload``, with the notification footer."""
    stamp = now or datetime.now(tz=timezone(config.MAIL_TIMEZONE))
    message = EmailMessage()
    # Sending as anyone but the authenticated account gets us rejected.
    message['From'] = formataddr((config.MAIL_SENDER_NAME,
                                  payload.smtp_user))
    message['To'] = payload.to
    if payload.cc:
        message['Cc'] = payload.cc
    message['Subject'] = payload.subject
    domain = payload.smtp_user.rpartition('@')[2] or None
    message['Message-ID'] = make_msgid(domain=domain)
    message.set_content(payload.text + FOOTER.format(
        sender=config.MAIL_SENDER_NAME,
        date=stamp.strftime('%Y/%m/%d %H:%M:%S')
    ))
    return message


class SMTPTransport(Transport):
    """An SMTP session opened per message."""

    def __init__(self, timeout: float = config.MAIL_TIMEOUT) -> None:
        self._timeout = timeout

    def _new_connection(self, payload: EmailPayload) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if payload.port == IMPLICIT_TLS_PORT:
            return smtplib.SMTP_SSL(host=payload.smtp_host, port=payload.port,
                                    timeout=self._timeout, context=context)
        conn = smtplib.SMTP(host=payload.smtp_host, port=payload.port,
                            timeout=self._timeout)
        conn.ehlo()
        if conn.has_extn('starttls'):
            conn.starttls(context=context)
            conn.ehlo()
        return conn

    def send(self, payload: EmailPayload) -> Optional[str]:
        if payload.missing():
            raise DeliveryFailed(MISSING_FIELDS_MESSAGE)
        message = compose(payload)
        logger.debug('SMTP delivery via %s:%s', payload.smtp_host,
                     payload.port)
        try:
            with self._new_connection(payload) as conn:
                conn.login(payload.smtp_user, payload.smtp_pass)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailed(str(e) or e.__class__.__name__) from e
        return message['Message-ID']


class HTTPTransport(Transport):
    """Posts the payload to a mail endpoint as JSON."""

    def __init__(self, url: str, timeout: float = config.MAIL_TIMEOUT) -> None:
        self.url = url
        self._timeout = timeout

    def send(self, payload: EmailPayload) -> Optional[str]:
        try:
            response = requests.post(self.url, json=payload.to_wire(),
                                     timeout=self._timeout)
        except requests.RequestException as e:
            raise DeliveryFailed(f'Could not reach {self.url}: {e}') from e
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}
        if not response.ok:
            raise DeliveryFailed(
                data.get('message')
                or f'Server responded with {response.status_code}: '
                   f'{response.text}'
            )
        if not data.get('success'):
            raise DeliveryFailed(data.get('message')
                                 or 'Mail service reported a failure')
        return data.get('messageId')
