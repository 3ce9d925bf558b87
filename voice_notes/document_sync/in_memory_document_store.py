"""InMemoryDocumentStore: a process-local DocumentStore.

Documents are kept in a dict and change notifications are delivered from a
dispatcher thread, in the order writes were applied, the same way a remote
store pushes snapshots on its own notification channel. Useful for testing
and for running the demo without a Firebase project.
"""

import copy
import itertools
import logging
import queue
import threading
from typing import Any, Dict, Optional

from ..config import VoiceNotesConfig
from ..errors import DocumentStoreError
from .document_store import ChangeListener, DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, config: Optional[VoiceNotesConfig] = None, connected: bool = True):
        """
        Args:
            config: Not used. Accepted so every store can be built the same way.
            connected: Initial connection state.
        """
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._listeners: Dict[int, tuple] = {}
        self._listener_ids = itertools.count()
        self._lock = threading.Lock()
        self._connected = connected

        self._notifications = queue.Queue()
        self._terminated = False
        self._dispatcher_thread = threading.Thread(
            target=self._dispatcher_thread_function,
            daemon=True,
            name='InMemoryDocumentStoreDispatcher',
        )
        self._dispatcher_thread.start()

    @staticmethod
    def name() -> str:
        return "memory"

    def _dispatcher_thread_function(self):
        while not self._terminated:
            try:
                item = self._notifications.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                if item is None:
                    break

                listener_id, data = item
                with self._lock:
                    entry = self._listeners.get(listener_id)

                # Listener removed after the notification was queued
                if entry is None:
                    continue

                _, on_change = entry
                try:
                    on_change(data)
                except Exception:
                    logger.exception("Document change listener raised an exception")
            finally:
                self._notifications.task_done()

    def _check_connected(self):
        if not self._connected:
            raise DocumentStoreError("In-memory store is disconnected")

    def set_connected(self, connected: bool):
        """Simulate losing or regaining the backing connection."""
        with self._lock:
            self._connected = connected

    def is_connected(self) -> bool:
        with self._lock:
            return self._connected and not self._terminated

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._check_connected()
            document = self._documents.get(path)
            return copy.deepcopy(document) if document is not None else None

    def set(self, path: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._check_connected()
            self._documents[path] = copy.deepcopy(data)

            # Queued under the lock so notifications keep write order
            for listener_id, (listener_path, _) in self._listeners.items():
                if listener_path == path:
                    self._notifications.put((listener_id, copy.deepcopy(data)))

        logger.debug(f"Document written: {path}")

    def delete(self, path: str) -> None:
        with self._lock:
            self._check_connected()
            self._documents.pop(path, None)
            for listener_id, (listener_path, _) in self._listeners.items():
                if listener_path == path:
                    self._notifications.put((listener_id, None))

    def subscribe(self, path: str, on_change: ChangeListener):
        with self._lock:
            self._check_connected()
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = (path, on_change)

            # Initial snapshot, like a remote store does on listen
            document = self._documents.get(path)
            self._notifications.put(
                (listener_id, copy.deepcopy(document) if document is not None else None)
            )

        logger.debug(f"Listener {listener_id} subscribed to {path}")

        def unsubscribe():
            with self._lock:
                self._listeners.pop(listener_id, None)
            logger.debug(f"Listener {listener_id} unsubscribed from {path}")

        return unsubscribe

    def listener_count(self, path: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1 for listener_path, _ in self._listeners.values()
                if path is None or listener_path == path
            )

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued notification has been delivered.

        Returns False if the timeout expired first.
        """
        if timeout is None:
            self._notifications.join()
            return True

        done = threading.Event()

        def wait():
            self._notifications.join()
            done.set()

        threading.Thread(target=wait, daemon=True).start()
        return done.wait(timeout)

    def terminate(self) -> None:
        if self._terminated:
            return

        self._terminated = True
        self._notifications.put(None)
        if self._dispatcher_thread.is_alive() and self._dispatcher_thread is not threading.current_thread():
            self._dispatcher_thread.join(timeout=1)

    def __del__(self):
        self.terminate()
