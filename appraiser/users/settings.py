"""
Per-user preferences and system-wide settings.

Settings live in two scopes. The user scope holds one person's preferences
under :func:`.storage.user_settings_key`; the system scope holds values shared
by every user (payment, public API key, outgoing mail) under
:data:`.storage.SYSTEM_SETTINGS_KEY`. Only admins write the system scope, and
system keys are never persisted into a user scope.
"""

from typing import Any, Dict, Mapping, Optional
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .domain import User
from .storage import (LANGUAGE_KEY, SYSTEM_SETTINGS_KEY, Storage,
                      user_settings_key)

logger = logging.getLogger(__name__)

LANGUAGES = ('zh-TW', 'zh-CN', 'en', 'ja')
DEFAULT_LANGUAGE = 'zh-TW'
THEMES = ('light', 'dark', 'system')
FONTS = ('sans', 'serif', 'mono', 'kai', 'cursive')


class Settings(BaseModel):
    """Effective settings for one session."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default='', alias='apiKey')
    """The user's own key for the appraisal model."""

    theme: str = 'system'
    language: str = DEFAULT_LANGUAGE
    font: str = 'sans'

    allow_public_api_key: bool = Field(default=False,
                                       alias='allowPublicApiKey')
    """Whether non-admin users may fall back to the public key."""

    public_api_key: str = Field(default='', alias='publicApiKey')
    paypal_client_id: str = Field(default='', alias='paypalClientId')
    system_email: str = Field(default='', alias='systemEmail')
    smtp_host: str = Field(default='', alias='smtpHost')
    smtp_port: str = Field(default='587', alias='smtpPort')
    smtp_user: str = Field(default='', alias='smtpUser')
    smtp_pass: str = Field(default='', alias='smtpPass', repr=False)
    auto_update_cache_on_login: bool = Field(default=True,
                                             alias='autoUpdateCacheOnLogin')

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)


SYSTEM_KEYS = ('paypal_client_id', 'public_api_key', 'allow_public_api_key',
               'system_email', 'smtp_host', 'smtp_port', 'smtp_user',
               'smtp_pass')
"""Settings kept in the system scope, shared by all users."""

_ALIASES = {field.alias: name for name, field in Settings.model_fields.items()
            if field.alias}


def _canonical(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Attribute-named copy of ``data``, dropping unknown keys."""
    out = {}
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name in Settings.model_fields:
            out[name] = value
    return out


class SettingsStore(object):
    """Loads and saves :class:`.Settings` in a :class:`.storage.Storage`."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def _read(self, key: str) -> Dict[str, Any]:
        raw = self.storage.get_item(key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning('Ignoring unreadable %s blob: %s', key, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return _canonical(data)

    def _write(self, key: str, data: Dict[str, Any]) -> None:
        blob = Settings.model_construct(**data).model_dump(
            by_alias=True, include=set(data)
        )
        self.storage.set_item(key, json.dumps(blob))

    def _system(self) -> Dict[str, Any]:
        return {k: v for k, v in self._read(SYSTEM_SETTINGS_KEY).items()
                if k in SYSTEM_KEYS}

    def _build(self, data: Dict[str, Any]) -> Settings:
        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            logger.warning('Falling back to default settings: %s', e)
            return Settings()

    def load(self, user: Optional[User] = None) -> Settings:
        """
        Effective settings for ``user``, or for an anonymous visitor.

        Parameters
        ----------
        user : :class:`.User` or None
            The session's user. Anonymous visitors get the defaults, the
            system scope and the last language chosen on this install.

        Returns
        -------
        :class:`.Settings`

        """
        data: Dict[str, Any] = {}
        if user is not None:
            data.update({
                k: v for k, v in self._read(user_settings_key(user.email))
                .items() if k not in SYSTEM_KEYS
            })
        else:
            language = self.storage.get_item(LANGUAGE_KEY)
            if language:
                data['language'] = language
        if data.get('language') not in LANGUAGES:
            data.pop('language', None)
        data.update(self._system())
        return self._build(data)

    def save(self, changes: Mapping[str, Any],
             user: Optional[User] = None) -> Settings:
        """
        Persist ``changes`` and return the new effective settings.

        String values are trimmed. System keys are only written when ``user``
        is an admin; otherwise they are dropped.
        """
        changes = {
            k: v.strip() if isinstance(v, str) else v
            for k, v in _canonical(changes).items()
        }
        if changes.get('language') is not None \
                and changes['language'] not in LANGUAGES:
            logger.debug('Ignoring unsupported language %s',
                         changes['language'])
            changes.pop('language')

        system = {k: v for k, v in changes.items() if k in SYSTEM_KEYS}
        personal = {k: v for k, v in changes.items() if k not in SYSTEM_KEYS}

        if system:
            if user is not None and user.is_admin:
                stored = self._system()
                stored.update(system)
                self._write(SYSTEM_SETTINGS_KEY, stored)
            else:
                logger.info('Dropping system settings changed by a non-admin')

        if user is not None and personal:
            key = user_settings_key(user.email)
            stored = {k: v for k, v in self._read(key).items()
                      if k not in SYSTEM_KEYS}
            stored.update(personal)
            self._write(key, stored)

        if personal.get('language'):
            self.storage.set_item(LANGUAGE_KEY, personal['language'])
        return self.load(user)


def get_api_key(settings: Settings, user: Optional[User]) -> Optional[str]:
    """
    The API key to use for ``user``'s appraisal requests.

    Admins use their own key, or the public key. Everyone else uses their own
    key, or the public key if public use is allowed.
    """
    if user is None:
        return None
    if settings.api_key:
        return settings.api_key
    if user.is_admin or settings.allow_public_api_key:
        return settings.public_api_key or None
    return None
