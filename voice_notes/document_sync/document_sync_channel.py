import logging
import threading
from enum import Enum, auto, unique
from typing import Any, Callable, Dict, Optional, Union

from ..config import VoiceNotesConfig
from ..errors import DocumentStoreError, NotReadyError, WriteError
from .document_store import DocumentStore

logger = logging.getLogger(__name__)


class NotFound:
    """Marker delivered in place of the content when the document does not exist."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = NotFound()

DocumentContent = Union[str, NotFound]


def content_of(data: Optional[Dict[str, Any]]) -> DocumentContent:
    if data is None:
        return NOT_FOUND

    content = data.get("content")
    if not isinstance(content, str):
        logger.warning(f"Document has no text content: {sorted(data.keys())}")
        return NOT_FOUND

    return content


class SubscriptionHandle:
    """
    A live subscription to one user's document.

    Every dispatch checks the `closed` flag under the handle lock, so once
    `close()` returns no `on_update` call is running or will start.
    """

    def __init__(
        self,
        identity: str,
        path: str,
        on_update: Callable[[DocumentContent], None],
        on_delivered: Callable[["SubscriptionHandle", DocumentContent], None],
    ):
        self._identity = identity
        self._path = path
        self._on_update = on_update
        self._on_delivered = on_delivered

        # Re-entrant so on_update may close its own subscription
        self._lock = threading.RLock()
        self._closed = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def path(self) -> str:
        return self._path

    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def _attach(self, unsubscribe: Callable[[], None]):
        with self._lock:
            if not self._closed:
                self._unsubscribe = unsubscribe
                return

        # Closed while the store was registering the listener
        unsubscribe()

    def _dispatch(self, data: Optional[Dict[str, Any]]):
        with self._lock:
            if self._closed:
                return

            content = content_of(data)
            self._on_delivered(self, content)

            try:
                self._on_update(content)
            except Exception:
                logger.exception(f"on_update callback failed for {self._path}")

    def close(self) -> bool:
        """Stop delivery. Returns False if the handle was already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            unsubscribe = self._unsubscribe
            self._unsubscribe = None

        if unsubscribe is not None:
            unsubscribe()

        logger.debug(f"Subscription closed: {self._path}")
        return True

    def __repr__(self) -> str:
        return f"SubscriptionHandle({self._path!r}, closed={self._closed})"


class DocumentSyncChannel:
    """
    Keeps a local mirror of one remote document in sync and lets the caller
    overwrite it.

    At most one subscription is active at a time. Writes are last-write-wins
    and write-through: a successful write for the subscribed identity updates
    the mirror immediately, unless the store delivered a snapshot while the
    write was in progress. Whatever the store delivers replaces the mirror.
    """

    @unique
    class State(Enum):
        UNINITIALIZED = auto()
        SUBSCRIBING = auto()
        SYNCED = auto()
        WRITE_PENDING = auto()
        CLOSED = auto()

    def __init__(self, store: DocumentStore, config: Optional[VoiceNotesConfig] = None):
        self._store = store
        self._config = config if config else VoiceNotesConfig()

        # Guards state, handle and mirror. Never held while taking a handle lock.
        self._lock = threading.Lock()
        # Serializes open() calls
        self._subscription_lock = threading.Lock()

        self._state = self.State.UNINITIALIZED
        self._handle: Optional[SubscriptionHandle] = None
        self._mirror: Optional[DocumentContent] = None
        self._synced = False
        # Snapshots delivered to the active handle
        self._deliveries = 0
        self._pending_writes = 0

    @property
    def state(self) -> "DocumentSyncChannel.State":
        with self._lock:
            return self._state

    @property
    def identity(self) -> Optional[str]:
        with self._lock:
            return self._handle.identity if self._handle else None

    @property
    def current_content(self) -> Optional[DocumentContent]:
        """Latest observed content; None until the first snapshot arrives."""
        with self._lock:
            return self._mirror

    def get(self) -> Optional[DocumentContent]:
        return self.current_content

    def _settled_state(self) -> "DocumentSyncChannel.State":
        if self._handle is None:
            return self.State.UNINITIALIZED
        if not self._synced:
            return self.State.SUBSCRIBING
        if self._pending_writes > 0:
            return self.State.WRITE_PENDING
        return self.State.SYNCED

    def _check_ready(self, identity: Optional[str]):
        if not identity:
            raise NotReadyError("User identity is not available yet")

        with self._lock:
            if self._state == self.State.CLOSED:
                raise NotReadyError("Channel is closed")

        if not self._store.is_connected():
            raise NotReadyError("Document store is not connected")

    def _on_delivered(self, handle: SubscriptionHandle, content: DocumentContent):
        with self._lock:
            if handle is not self._handle:
                return

            self._mirror = content
            self._synced = True
            self._deliveries += 1
            self._state = self._settled_state()

        logger.debug(f"Document update received for {handle.path}")

    def open(
        self,
        identity: Optional[str],
        on_update: Callable[[DocumentContent], None],
    ) -> SubscriptionHandle:
        """
        Start a live subscription to the document owned by `identity`.

        Any previous subscription is closed first. `on_update` receives the
        content, or NOT_FOUND, once per change observed by the store.

        Raises:
            NotReadyError: identity missing, store not connected or channel closed.
        """
        self._check_ready(identity)

        with self._subscription_lock:
            with self._lock:
                previous = self._handle
                self._handle = None

            if previous is not None:
                logger.info(f"Replacing subscription for '{previous.identity}'")
                previous.close()

            path = self._config.document_path(identity)
            handle = SubscriptionHandle(
                identity=identity,
                path=path,
                on_update=on_update,
                on_delivered=self._on_delivered,
            )

            with self._lock:
                if self._state == self.State.CLOSED:
                    raise NotReadyError("Channel is closed")
                self._handle = handle
                self._mirror = None
                self._synced = False
                self._deliveries = 0
                self._state = self.State.SUBSCRIBING

            try:
                unsubscribe = self._store.subscribe(path, handle._dispatch)
            except DocumentStoreError as e:
                handle.close()
                with self._lock:
                    if self._handle is handle:
                        self._handle = None
                        self._state = self._settled_state()
                logger.error(f"Unable to subscribe to {path}: {e}")
                raise NotReadyError(f"Unable to subscribe to {path}: {e}") from e

            handle._attach(unsubscribe)

        logger.info(f"Subscribed to {path}")
        return handle

    def write(self, identity: Optional[str], content: str) -> None:
        """
        Overwrite the document owned by `identity` with `content`.

        Raises:
            NotReadyError: identity missing, store not connected or channel closed.
            WriteError: the store rejected the write. Nothing was changed.
        """
        if not isinstance(content, str):
            raise TypeError(f"content must be a str, got {type(content).__name__}")

        self._check_ready(identity)

        path = self._config.document_path(identity)

        with self._lock:
            self._pending_writes += 1
            self._state = self._settled_state()
            handle = self._handle
            deliveries = self._deliveries

        try:
            self._store.set(path, {"content": content})
        except DocumentStoreError as e:
            logger.error(f"Error saving the message to {path}: {e}")
            raise WriteError(f"Unable to write {path}: {e}") from e
        else:
            with self._lock:
                # Whatever the store delivered while set() ran takes precedence
                if (
                    handle is not None
                    and self._handle is handle
                    and handle.identity == identity
                    and self._deliveries == deliveries
                ):
                    self._mirror = content
            logger.info(f"Message saved to {path}")
        finally:
            with self._lock:
                self._pending_writes -= 1
                if self._state != self.State.CLOSED:
                    self._state = self._settled_state()

    def close(self, handle: SubscriptionHandle) -> None:
        """Unregister `handle`. Idempotent."""
        handle.close()

        with self._lock:
            if self._handle is handle:
                self._handle = None
                if self._state != self.State.CLOSED:
                    self._state = self._settled_state()

    def shutdown(self) -> None:
        """Close the active subscription and refuse any further operation."""
        with self._lock:
            handle = self._handle
            self._handle = None
            self._state = self.State.CLOSED

        if handle is not None:
            handle.close()

        logger.info("Document sync channel closed")
