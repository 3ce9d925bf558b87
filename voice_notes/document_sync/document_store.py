from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

# Receives the new document data, or None when the document does not exist.
ChangeListener = Callable[[Optional[Dict[str, Any]]], None]


class DocumentStore(ABC):
    """Abstract interface for remote document stores.

    Implementations must provide:

    - `get`: read a document (None when it does not exist)
    - `set`: overwrite a whole document
    - `subscribe`: push every change of a document to a listener, starting
      with its current state, and return a callable that unsubscribes
    - `is_connected`: whether the backing connection is usable

    Any backend failure must be raised as `DocumentStoreError`.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def set(self, path: str, data: Dict[str, Any]) -> None: ...

    @abstractmethod
    def subscribe(self, path: str, on_change: ChangeListener) -> Callable[[], None]: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    def terminate(self) -> None:
        """Release the backing connection. Optional."""
