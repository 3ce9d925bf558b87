import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """
    Supplies the user identity, possibly some time after construction.

    Listeners registered with `add_listener` are called once, with the
    identity, as soon as it is known. Nothing is called if sign-in fails.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._identity: Optional[str] = None
        self._error: Optional[Exception] = None
        self._listeners: List[Callable[[str], None]] = []
        self._done = threading.Event()

    @abstractmethod
    def start(self):
        pass

    @property
    def identity(self) -> Optional[str]:
        with self._lock:
            return self._identity

    @property
    def error(self) -> Optional[Exception]:
        with self._lock:
            return self._error

    def is_ready(self) -> bool:
        return self.identity is not None

    def add_listener(self, listener: Callable[[str], None]):
        with self._lock:
            identity = self._identity
            if identity is None:
                self._listeners.append(listener)
                return

        self._notify(listener, identity)

    def remove_listener(self, listener: Callable[[str], None]) -> bool:
        """Drop a listener that has not been called yet. Returns False if it was not registered."""
        with self._lock:
            if listener not in self._listeners:
                return False
            self._listeners.remove(listener)
            return True

    def wait_for_identity(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until sign-in finished. Returns None on failure or timeout."""
        self._done.wait(timeout)
        return self.identity

    @staticmethod
    def _notify(listener: Callable[[str], None], identity: str):
        try:
            listener(identity)
        except Exception:
            logger.exception("Identity listener raised an exception")

    def _set_identity(self, identity: str):
        with self._lock:
            self._identity = identity
            listeners = self._listeners
            self._listeners = []

        self._done.set()
        logger.info(f"User identity ready: {identity}")

        for listener in listeners:
            self._notify(listener, identity)

    def _set_error(self, error: Exception):
        with self._lock:
            self._error = error
        self._done.set()


class StaticIdentityProvider(IdentityProvider):
    """Identity known up front, e.g. restored from an existing session."""

    def __init__(self, identity: str):
        if not identity:
            raise ValueError("identity must not be empty")
        super().__init__()
        self._static_identity = identity

    def start(self):
        if self.identity is None:
            self._set_identity(self._static_identity)
