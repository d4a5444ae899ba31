# cartsync/services/auth_session.py
from typing import Callable, List, Optional

from cartsync.utils.logging import get_logger

logger = get_logger(__name__)

AuthListener = Callable[[bool], None]


class AuthSession:
    """
    Stan logowania widziany przez koszyk.
    Koszyk i sync bridge tylko czytaja `is_authenticated` i subskrybuja zdarzenia,
    nigdy sami nie zmieniaja trybu.
    """

    def __init__(self):
        self.token: Optional[str] = None
        self.user_id: Optional[str] = None
        self._listeners: List[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def subscribe(self, listener: AuthListener) -> None:
        self._listeners.append(listener)

    def login(self, token: str, user_id: Optional[str] = None) -> None:
        self.token = token
        self.user_id = user_id
        logger.info(f"User {user_id} logged in")
        self._emit(True)

    def refresh_token(self, token: str) -> None:
        # odswiezenie tokena to nie nowe logowanie, bez zdarzenia
        self.token = token

    def logout(self) -> None:
        logger.info(f"User {self.user_id} logged out")
        self.token = None
        self.user_id = None
        self._emit(False)

    def _emit(self, authenticated: bool) -> None:
        for listener in list(self._listeners):
            listener(authenticated)
