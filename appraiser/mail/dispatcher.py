"""Picks a transport for the current environment and sends through it."""

from typing import Optional
import logging

from ..users import config
from .domain import DeliveryFailed, EmailPayload, SendResult
from .transports import HTTPTransport, SMTPTransport, Transport

logger = logging.getLogger(__name__)


def select_transport() -> Transport:
    """
    Choose how mail leaves this process.

    ``MAIL_TRANSPORT`` wins if set. Otherwise the desktop shell delivers
    in-process, a serverless deployment posts to its mail function, and
    anything else posts to the local relay.
    """
    mode = config.MAIL_TRANSPORT
    if not mode:
        if config.DESKTOP_SHELL:
            mode = 'smtp'
        elif config.MAIL_API_URL or config.VERCEL:
            mode = 'serverless'
        else:
            mode = 'relay'
    if mode == 'smtp':
        return SMTPTransport()
    if mode == 'serverless':
        return HTTPTransport(config.MAIL_API_URL or config.MAIL_RELAY_URL)
    if mode == 'relay':
        return HTTPTransport(config.MAIL_RELAY_URL)
    raise ValueError(f'Unknown MAIL_TRANSPORT {mode!r}')


def send_email(payload: EmailPayload,
               transport: Optional[Transport] = None) -> SendResult:
    """Send ``payload``. Failures are reported in the result, never raised."""
    logger.info('Sending mail to %s (cc %s)', payload.to, payload.cc or '-')
    try:
        transport = transport or select_transport()
        message_id = transport.send(payload)
    except DeliveryFailed as e:
        logger.error('Mail delivery failed: %s', e)
        return SendResult(False, error=str(e))
    except Exception as e:
        logger.exception('Unexpected error while sending mail')
        return SendResult(False, error=str(e) or e.__class__.__name__)
    logger.debug('Mail accepted, id %s', message_id)
    return SendResult(True, message_id=message_id)
