"""Single-document live sync.

`DocumentSyncChannel` mirrors one remote document per user on top of a
`DocumentStore`. Stores are created through the class-based
`DocumentStoreFactory`::

    from voice_notes.document_sync import DocumentStoreFactory

    store = DocumentStoreFactory.create("memory")

The Firestore store is registered only when google-cloud-firestore is
installed.
"""

from .document_store import DocumentStore
from .document_store_factory import DocumentStoreFactory
from .document_sync_channel import (
    NOT_FOUND,
    DocumentSyncChannel,
    NotFound,
    SubscriptionHandle,
)
from .in_memory_document_store import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "DocumentStoreFactory",
    "DocumentSyncChannel",
    "InMemoryDocumentStore",
    "NOT_FOUND",
    "NotFound",
    "SubscriptionHandle",
]
