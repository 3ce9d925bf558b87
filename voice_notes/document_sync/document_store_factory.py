import logging
import threading
from typing import Type

from .document_store import DocumentStore
from .in_memory_document_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)


class DocumentStoreFactory:
    _stores = {}
    _lock = threading.Lock()

    @classmethod
    def create(cls, store_name: str, **kwargs) -> DocumentStore:
        logger.info(f"Creating document store for '{store_name}'")

        with cls._lock:
            if store_name in cls._stores:
                store_class = cls._stores[store_name]
            else:
                store_class = None

        if store_class is None:
            raise RuntimeError(f"Store '{store_name}' is not available")

        return store_class(**kwargs)

    @classmethod
    def register_store(cls, name: str, store_class: Type[DocumentStore]):
        with cls._lock:
            cls._stores[name] = store_class

    @classmethod
    def unregister_store(cls, name: str):
        with cls._lock:
            if name in cls._stores:
                del cls._stores[name]
            else:
                raise KeyError(f"Document store not found: {name}")

    @classmethod
    def list_stores(cls):
        with cls._lock:
            return list(cls._stores.keys())


# Register built-in stores
DocumentStoreFactory.register_store(InMemoryDocumentStore.name(), InMemoryDocumentStore)

try:
    from .firestore_document_store import FirestoreDocumentStore

    DocumentStoreFactory.register_store(FirestoreDocumentStore.name(), FirestoreDocumentStore)
except ImportError:
    pass
