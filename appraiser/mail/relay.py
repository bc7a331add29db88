"""
HTTP relay for outgoing mail.

Browsers cannot speak SMTP, so the web front end posts an
:class:`.EmailPayload` here and the relay delivers it with an
:class:`.SMTPTransport`. Serverless deployments expose the same contract.
"""

from typing import Optional
from http import HTTPStatus
import logging

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from pydantic import ValidationError

from .domain import DeliveryFailed, EmailPayload
from .transports import MISSING_FIELDS_MESSAGE, SMTPTransport, Transport

logger = logging.getLogger(__name__)
blueprint = Blueprint('relay', __name__, url_prefix='/api')

CORS_HEADERS = {
    'Access-Control-Allow-Credentials': 'true',
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET,OPTIONS,PATCH,DELETE,POST,PUT',
    'Access-Control-Allow-Headers': (
        'X-CSRF-Token, X-Requested-With, Accept, Accept-Version, '
        'Content-Length, Content-MD5, Content-Type, Date, X-Api-Version'
    ),
}


def _failure(message: str, status: HTTPStatus) -> Response:
    response = jsonify(success=False, message=message)
    response.status_code = status
    return response


@blueprint.route('/send-email',
                 methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'])
def send_email() -> Response:
    """Deliver the posted payload."""
    if request.method == 'OPTIONS':
        return Response(status=HTTPStatus.OK)
    if request.method != 'POST':
        return _failure('Method Not Allowed', HTTPStatus.METHOD_NOT_ALLOWED)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _failure(MISSING_FIELDS_MESSAGE, HTTPStatus.BAD_REQUEST)
    try:
        payload = EmailPayload.model_validate(data)
    except ValidationError as e:
        logger.debug('Rejected malformed payload: %s', e)
        return _failure(MISSING_FIELDS_MESSAGE, HTTPStatus.BAD_REQUEST)
    if payload.missing():
        logger.error('Relay request missing %s', ', '.join(payload.missing()))
        return _failure(MISSING_FIELDS_MESSAGE, HTTPStatus.BAD_REQUEST)

    logger.info('Relaying mail to %s (cc %s) via %s', payload.to,
                payload.cc or '-', payload.smtp_host)
    transport: Transport = current_app.config['MAIL_TRANSPORT']
    try:
        message_id = transport.send(payload)
    except DeliveryFailed as e:
        logger.error('Relay delivery failed: %s', e)
        return _failure(str(e), HTTPStatus.INTERNAL_SERVER_ERROR)
    return jsonify(success=True, messageId=message_id)


def _add_cors_headers(response: Response) -> Response:
    response.headers.extend(CORS_HEADERS)
    return response


def create_app(transport: Optional[Transport] = None) -> Flask:
    """Initialize the mail relay application."""
    app = Flask('appraiser.mail.relay')
    app.config['MAIL_TRANSPORT'] = transport or SMTPTransport()
    app.register_blueprint(blueprint)
    app.after_request(_add_cors_headers)
    return app
