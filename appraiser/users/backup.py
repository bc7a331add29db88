"""Backup, restore and member export for local mode."""

from typing import Any, Dict, Iterable, Optional
from datetime import datetime
import csv
import io
import logging

from . import config
from .domain import User, now as _now
from .exceptions import BackupInvalid
from .storage import (REAL_ESTATE_DATA_KEY, SYSTEM_SETTINGS_KEY, USERS_KEY,
                      Storage)

logger = logging.getLogger(__name__)

BACKUP_FIELDS = {
    'users': USERS_KEY,
    'settings': SYSTEM_SETTINGS_KEY,
    'realEstateData': REAL_ESTATE_DATA_KEY,
}
"""Backup document field -> storage key of the blob it carries."""

CSV_HEADER = ['Email', 'Name', 'Phone', 'Role', 'Subscription Expiry']


def create_backup(storage: Storage,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Snapshot the local stores.

    Blobs are copied as stored, without parsing, so a backup can be restored
    by a release that reads them differently.
    """
    document: Dict[str, Any] = {
        field: storage.get_item(key) for field, key in BACKUP_FIELDS.items()
    }
    document['timestamp'] = (now or _now()).isoformat()
    document['version'] = config.BACKUP_VERSION
    return document


def restore_backup(storage: Storage, document: Any) -> None:
    """
    Overwrite the local stores with the blobs in ``document``.

    Fields missing from the document, or ``null`` in it, leave the
    corresponding store as it is. The caller must reload the identity service
    afterwards.

    Raises
    ------
    :class:`.BackupInvalid`
        If ``document`` is not a backup this release can read.

    """
    if not isinstance(document, dict):
        raise BackupInvalid('Backup is not a JSON object')
    if document.get('version') != config.BACKUP_VERSION:
        raise BackupInvalid(f'Unsupported backup version '
                            f'{document.get("version")!r}')
    for field, key in BACKUP_FIELDS.items():
        blob = document.get(field)
        if blob is None:
            continue
        if not isinstance(blob, str):
            raise BackupInvalid(f'Backup field {field} is not a string')
        storage.set_item(key, blob)
        logger.info('Restored %s', field)


def members_csv(users: Iterable[User]) -> str:
    """Member list as CSV, with a byte-order mark for spreadsheet apps."""
    buffer = io.StringIO()
    buffer.write('\ufeff')
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for user in users:
        expiry = user.subscription_expiry
        writer.writerow([
            user.email,
            user.name or '',
            user.phone or '',
            user.role.value,
            expiry.date().isoformat() if expiry else '-',
        ])
    return buffer.getvalue()
