"""Password hashing for local mode."""

import hashlib
import hmac
import secrets
from base64 import b64encode, b64decode

from .exceptions import AuthenticationFailed

PREFIX = 'pbkdf2_sha256$'
ITERATIONS = 260000
SALT_BYTES = 16


def _hash_salt_and_password(salt: bytes, password: str,
                            iterations: int = ITERATIONS) -> bytes:
    return hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt,
                               iterations)


def hash_password(password: str) -> str:
    """Generate a secure hash of a password."""
    salt = secrets.token_bytes(SALT_BYTES)
    hashed = _hash_salt_and_password(salt, password)
    return f'{PREFIX}{ITERATIONS}${b64encode(salt + hashed).decode("ascii")}'


def is_hashed(stored: str) -> bool:
    """Whether ``stored`` was produced by :func:`hash_password`."""
    return stored.startswith(PREFIX)


def check_password(password: str, stored: str) -> None:
    """
    Check a password against a stored value.

    Records written by earlier releases hold the password in clear text;
    those are compared directly so they can be rehashed after a successful
    login.
    """
    if not stored:
        raise AuthenticationFailed('No password set')
    if not is_hashed(stored):
        if not hmac.compare_digest(password.encode('utf-8'),
                                   stored.encode('utf-8')):
            raise AuthenticationFailed('Incorrect password')
        return
    try:
        iterations, encoded = stored[len(PREFIX):].split('$', 1)
        decoded = b64decode(encoded)
        iterations = int(iterations)
    except ValueError as e:
        raise AuthenticationFailed('Malformed password hash') from e
    salt, enc_hashed = decoded[:SALT_BYTES], decoded[SALT_BYTES:]
    pass_hashed = _hash_salt_and_password(salt, password, iterations)
    if not hmac.compare_digest(pass_hashed, enc_hashed):
        raise AuthenticationFailed('Incorrect password')
