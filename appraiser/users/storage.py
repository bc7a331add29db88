"""
Key-value storage for local mode.

Local mode keeps its state the way a browser keeps ``localStorage``: a flat
namespace of string keys, each holding one JSON-serialized blob. Two backends
are provided. :class:`FileStorage` keeps one file per key in a directory and
suits a single desktop install; :class:`RedisStorage` keeps the blobs in Redis
(or FakeRedis, for dev and tests).
"""

from typing import Optional
from pathlib import Path
import hashlib
import logging
import os
import tempfile

import redis

from . import config
from .exceptions import StorageError

logger = logging.getLogger(__name__)

USERS_KEY = 'app_users'
CURRENT_USER_KEY = 'app_current_user'
SYSTEM_SETTINGS_KEY = 'app_system_settings'
LANGUAGE_KEY = 'app_language'
REAL_ESTATE_DATA_KEY = 'imported_real_estate_data'


def user_settings_key(email: str) -> str:
    """Key of the per-user preferences blob."""
    return f'user_settings_{email}'


class Storage(object):
    """Interface shared by the storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        """Get the blob stored under ``key``, or ``None``."""
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous blob."""
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""
        raise NotImplementedError


class FileStorage(Storage):
    """Stores each key as a file in ``directory``."""

    def __init__(self, directory: str) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.debug('File storage at %s', self._dir)

    def _path(self, key: str) -> Path:
        # Keys embed e-mail addresses; hash them into safe file names.
        digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:16]
        safe = ''.join(c if c.isalnum() or c in '_-' else '_' for c in key)
        return self._dir / f'{safe[:64]}-{digest}.json'

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f'Failed to read {key}: {e}') from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            fd, tmp = tempfile.mkstemp(dir=str(self._dir), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f'Failed to write {key}: {e}') from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f'Failed to remove {key}: {e}') from e


class RedisStorage(Storage):
    """
    Stores each key in Redis.

    The StrictRedis instance is thread safe and connections are attached at
    the time a command is executed. This class simply provides a container
    for the connection and error mapping.
    """

    def __init__(self, connection: redis.StrictRedis,
                 prefix: str = 'appraiser:') -> None:
        self.r = connection
        self._prefix = prefix

    def get_item(self, key: str) -> Optional[str]:
        try:
            value = self.r.get(self._prefix + key)
        except redis.exceptions.ConnectionError as e:
            raise StorageError(f'Connection failed: {e}') from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode('utf-8')
        return value

    def set_item(self, key: str, value: str) -> None:
        try:
            self.r.set(self._prefix + key, value)
        except redis.exceptions.ConnectionError as e:
            raise StorageError(f'Connection failed: {e}') from e

    def remove_item(self, key: str) -> None:
        try:
            self.r.delete(self._prefix + key)
        except redis.exceptions.ConnectionError as e:
            raise StorageError(f'Connection failed: {e}') from e


def get_redis_connection() -> redis.StrictRedis:
    """Open a connection to the configured Redis, or to FakeRedis."""
    if config.REDIS_FAKE:
        import fakeredis
        logger.warning('Using FakeRedis for local storage')
        return fakeredis.FakeStrictRedis()
    logger.debug('New Redis connection at %s, port %s',
                 config.REDIS_HOST, config.REDIS_PORT)
    return redis.StrictRedis(host=config.REDIS_HOST,
                             port=int(config.REDIS_PORT),
                             db=int(config.REDIS_DATABASE))


def get_storage() -> Storage:
    """Build the storage backend selected by configuration."""
    if config.STORAGE_BACKEND == 'redis':
        return RedisStorage(get_redis_connection())
    if config.STORAGE_BACKEND == 'file':
        return FileStorage(config.DATA_DIR)
    raise ValueError(f'Unknown STORAGE_BACKEND {config.STORAGE_BACKEND!r}')
