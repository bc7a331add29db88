"""
Identity and subscriptions for the appraiser.

Users and sessions live either in a hosted backend or, when none is
configured, in local storage. :class:`.identity.IdentityService` hides which
one is in use.
"""

from .domain import Result, Role, SessionStatus, User
from .identity import IdentityService
from .state import AuthState

__all__ = ('AuthState', 'IdentityService', 'Result', 'Role', 'SessionStatus',
           'User')
