"""
User backends.

Exactly one backend is chosen when the application starts, by checking
whether the hosted service is configured, and is used for the lifetime of the
process.
"""

from typing import Optional
import logging

from .. import config
from ..storage import Storage, get_storage
from .base import UserBackend, defined_changes
from .cloud import CloudBackend
from .local import LocalBackend, LocalStore

logger = logging.getLogger(__name__)


async def create_backend(storage: Optional[Storage] = None) -> UserBackend:
    """Build the backend selected by configuration."""
    if config.is_cloud_configured():
        from supabase import acreate_client
        client = await acreate_client(config.SUPABASE_URL,
                                      config.SUPABASE_ANON_KEY)
        logger.info('Using hosted backend at %s', config.SUPABASE_URL)
        return CloudBackend(client)
    logger.warning('Hosted backend credentials not found or invalid. '
                   'Running in local-only mode.')
    return LocalBackend(LocalStore(storage or get_storage()))
