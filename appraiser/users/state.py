"""Observable session state shared with presentation layers."""

from typing import Any, Callable, List, Optional
import logging

from .domain import SessionStatus, User

logger = logging.getLogger(__name__)

Observer = Callable[['AuthState'], None]


class AuthState(object):
    """
    The current session and the views that depend on it.

    Presentation code holds a reference to one instance and registers with
    :meth:`subscribe`; every :meth:`update` notifies all observers with the
    new state.
    """

    FIELDS = ('current_user', 'users', 'status', 'login_open',
              'admin_panel_open', 'last_error')

    def __init__(self) -> None:
        self.current_user: Optional[User] = None
        self.users: List[User] = []
        self.status = SessionStatus.ANONYMOUS
        self.login_open = False
        self.admin_panel_open = False
        self.last_error: Optional[str] = None
        self._observers: List[Observer] = []

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer``. Returns a callable that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def update(self, **changes: Any) -> None:
        """Apply ``changes`` and notify observers."""
        for key, value in changes.items():
            if key not in self.FIELDS:
                raise AttributeError(f'AuthState has no field {key}')
            setattr(self, key, value)
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception:
                logger.exception('State observer %r failed', observer)

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None
