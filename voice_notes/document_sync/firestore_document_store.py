import logging
from typing import Any, Dict, Optional

from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from ..config import VoiceNotesConfig
from ..errors import DocumentStoreError
from .document_store import ChangeListener, DocumentStore

logger = logging.getLogger(__name__)

# Missing or expired credentials surface as google.auth errors, not API errors
BACKEND_ERRORS = (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class FirestoreDocumentStore(DocumentStore):
    """
    Cloud Firestore backed document store.

    Snapshot listeners run on the Firestore client's own watch thread, so
    `on_change` is called from there.
    """

    def __init__(
        self,
        config: Optional[VoiceNotesConfig] = None,
        client: Optional[firestore.Client] = None,
    ):
        """Initialize the Firestore store.

        Args:
            config: Used to pick the Firestore project (`firebase_config["projectId"]`).
            client: Optional pre-built Firestore client. If None, one will be created
                with the application default credentials.
        """
        self._config = config if config else VoiceNotesConfig()

        if client is None:
            try:
                client = firestore.Client(project=self._config.project_id)
            except BACKEND_ERRORS as e:
                raise DocumentStoreError(f"Unable to create Firestore client: {e}") from e

        self._client = client
        self._terminated = False

    @staticmethod
    def name() -> str:
        return "firestore"

    def is_connected(self) -> bool:
        return self._client is not None and not self._terminated

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = self._client.document(path).get()
        except BACKEND_ERRORS as e:
            logger.error(f"Firestore read failed for {path}: {e}")
            raise DocumentStoreError(str(e)) from e

        return snapshot.to_dict() if snapshot.exists else None

    def set(self, path: str, data: Dict[str, Any]) -> None:
        logger.debug(f"Writing document {path}")
        try:
            self._client.document(path).set(data)
        except BACKEND_ERRORS as e:
            logger.error(f"Firestore write failed for {path}: {e}")
            raise DocumentStoreError(str(e)) from e

    def subscribe(self, path: str, on_change: ChangeListener):
        def on_snapshot(snapshots, changes, read_time):
            # A document listener always gets a one-element list
            for snapshot in snapshots:
                on_change(snapshot.to_dict() if snapshot.exists else None)

        try:
            watch = self._client.document(path).on_snapshot(on_snapshot)
        except BACKEND_ERRORS as e:
            logger.error(f"Firestore listen failed for {path}: {e}")
            raise DocumentStoreError(str(e)) from e

        logger.debug(f"Listening to {path}")
        return watch.unsubscribe

    def terminate(self) -> None:
        if self._terminated:
            return

        self._terminated = True
        self._client.close()
