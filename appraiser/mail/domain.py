"""Data exchanged with the mail transports."""

from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SMTP_PORT = 587
IMPLICIT_TLS_PORT = 465

REQUIRED_FIELDS = ('smtp_host', 'smtp_user', 'smtp_pass', 'to')


class DeliveryFailed(RuntimeError):
    """A message could not be handed over for delivery."""


class EmailPayload(BaseModel):
    """
    One outgoing message, with the SMTP account that should send it.

    Serialized with camelCase keys (``smtpHost``, ``smtpPort``, ...) when it
    crosses a process boundary.
    """

    model_config = ConfigDict(populate_by_name=True)

    smtp_host: str = Field(default='', alias='smtpHost')
    smtp_port: str = Field(default=str(DEFAULT_SMTP_PORT), alias='smtpPort')
    smtp_user: str = Field(default='', alias='smtpUser')
    smtp_pass: str = Field(default='', alias='smtpPass', repr=False)
    to: str = ''
    cc: Optional[str] = None
    subject: str = ''
    text: str = ''

    @field_validator('smtp_port', mode='before')
    @classmethod
    def _port_as_text(cls, value: Any) -> Any:
        if value is None:
            return str(DEFAULT_SMTP_PORT)
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def port(self) -> int:
        """The SMTP port, falling back to 587 when unset or unreadable."""
        try:
            return int(self.smtp_port) or DEFAULT_SMTP_PORT
        except ValueError:
            return DEFAULT_SMTP_PORT

    def missing(self) -> List[str]:
        """Names of required fields that are empty."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SendResult(NamedTuple):
    """Outcome of :func:`appraiser.mail.send_email`."""

    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None
