"""Exceptions raised by the storage and backend layers.

Each exception carries a ``key``: a machine-readable, localizable reason that
:class:`appraiser.users.identity.IdentityService` returns to callers in place
of the exception itself.
"""


class AccountsError(RuntimeError):
    """Base class for expected failures in the accounts layer."""

    key = 'unexpectedError'

    def __init__(self, message: str = '', key: str = None) -> None:
        super(AccountsError, self).__init__(message)
        if key is not None:
            self.key = key


class ValidationFailed(AccountsError):
    """Input is missing a required field or has an invalid one."""

    key = 'missingRequiredFields'


class NoSuchUser(AccountsError):
    """User does not exist."""

    key = 'userNotFound'


class UserExists(AccountsError):
    """A user with that e-mail address is already registered."""

    key = 'registrationFailed'


class AuthenticationFailed(AccountsError):
    """Failed to authenticate user with provided credentials."""

    key = 'invalidCredentials'


class TransportFailed(AccountsError):
    """The hosted backend could not be reached or gave a bad response."""

    key = 'connectionFailed'


class TimedOut(AccountsError):
    """The hosted backend did not answer within the allotted time."""

    key = 'timedOut'


class SelfDeleteForbidden(AccountsError):
    """The current session's own account cannot be deleted."""

    key = 'cannotDeleteSelf'


class NotSupported(AccountsError):
    """The active backend cannot perform this operation."""

    key = 'registrationFailed'


class BackupInvalid(AccountsError):
    """A backup document is malformed or of an unknown version."""

    key = 'restoreFailed'


class StorageError(AccountsError):
    """Local storage could not be read or written."""

    key = 'storageFailed'
