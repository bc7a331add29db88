"""Runtime configuration for the accounts layer."""
import os
from pathlib import Path

#################### Hosted backend ####################
SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
"""URL of the hosted auth + profiles backend.

If not set (or left as the placeholder), the accounts layer runs in local
mode and keeps everything in local storage."""

SUPABASE_ANON_KEY = os.environ.get('SUPABASE_ANON_KEY', '')
"""Public (anon) key for the hosted backend."""

SUPABASE_URL_PLACEHOLDER = 'YOUR_SUPABASE_URL'

PROFILES_TABLE = os.environ.get('PROFILES_TABLE', 'profiles')


#################### Local storage ####################
STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'file')
"""Either ``file`` or ``redis``."""

DATA_DIR = os.environ.get('DATA_DIR', str(Path.home() / '.appraiser'))
"""Directory used by the file storage backend."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing and dev."""


#################### Sessions ####################
LOGIN_TIMEOUT = float(os.environ.get('LOGIN_TIMEOUT', '8'))
"""Seconds before a sign-in attempt against the hosted backend times out."""

SESSION_RESTORE_TIMEOUT = float(os.environ.get('SESSION_RESTORE_TIMEOUT', '3'))
"""Seconds allowed for recovering a prior session at startup."""

SIGN_IN_SETTLE_DELAY = float(os.environ.get('SIGN_IN_SETTLE_DELAY', '0.5'))
"""Delay after a sign-in event before the profile row is read.

The profile row is created asynchronously by the backend after sign-up."""

STALE_SESSION_CLEAR_TIMEOUT = float(
    os.environ.get('STALE_SESSION_CLEAR_TIMEOUT', '1')
)
"""Upper bound spent signing out a stale session before a new sign-in."""

QUERY_TIMEOUT = float(os.environ.get('QUERY_TIMEOUT', '10'))
"""Seconds before a read or write of the profiles table times out."""

BOOTSTRAP_ADMIN_EMAIL = os.environ.get('BOOTSTRAP_ADMIN_EMAIL',
                                       'admin@mazylab.com')
"""Reserved address treated as admin when it has no profile row yet."""

BOOTSTRAP_ADMIN_PASSWORD = os.environ.get('BOOTSTRAP_ADMIN_PASSWORD', '')
"""Local mode only. Empty disables the bootstrap login."""


#################### Mail ####################
MAIL_TRANSPORT = os.environ.get('MAIL_TRANSPORT', '')
"""``smtp``, ``relay`` or ``serverless``. Detected from the environment if
empty."""

DESKTOP_SHELL = bool(int(os.environ.get('DESKTOP_SHELL', '0')))
"""Set by the desktop shell, where mail is delivered in-process."""

MAIL_RELAY_URL = os.environ.get('MAIL_RELAY_URL',
                                'http://localhost:3000/api/send-email')
MAIL_API_URL = os.environ.get('MAIL_API_URL', '')
"""Serverless mail function. Setting this selects the serverless transport."""

VERCEL = bool(os.environ.get('VERCEL'))

MAIL_TIMEOUT = float(os.environ.get('MAIL_TIMEOUT', '30'))

RELAY_PORT = int(os.environ.get('RELAY_PORT', '3000'))

MAIL_SENDER_NAME = 'AI Property Appraiser'
MAIL_TIMEZONE = 'Asia/Taipei'


#################### Minor configs ##############################
LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

BACKUP_VERSION = '1.0'


def is_cloud_configured() -> bool:
    """Determine whether the hosted backend is configured."""
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY
                and SUPABASE_URL != SUPABASE_URL_PLACEHOLDER)
