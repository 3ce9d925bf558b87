import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from .config import VoiceNotesConfig
from .document_sync import (
    NOT_FOUND,
    DocumentStore,
    DocumentStoreFactory,
    DocumentSyncChannel,
)
from .errors import NotReadyError, VoiceNotesError, WriteError
from .events import (
    AudioFailedEvent,
    AudioReadyEvent,
    IdentityReadyEvent,
    MessageSavedEvent,
    MessageSaveFailedEvent,
    MessageUpdatedEvent,
    NotepadEvent,
)
from .identity import FirebaseIdentityProvider, IdentityProvider
from .speech_synthesis import PlaybackHandle, SpeechSynthesisPipeline, Voice

logger = logging.getLogger(__name__)


class VoiceNotepad:
    """
    One user's notepad: a synced message plus text-to-speech.

    Once the identity provider reports the user, the notepad subscribes to
    that user's document and reports every change as a MessageUpdatedEvent.
    Saving and audio generation report their outcome as events too, so
    `event_callback` is the only place a UI needs to listen to.
    """

    def __init__(
        self,
        event_callback: Callable[[NotepadEvent], None],
        config: Optional[VoiceNotesConfig] = None,
        identity_provider: Optional[IdentityProvider] = None,
        store: Optional[DocumentStore] = None,
        pipeline: Optional[SpeechSynthesisPipeline] = None,
    ):
        self._config = config if config else VoiceNotesConfig()
        self._event_callback = event_callback
        self._terminated = True

        self._identity_provider = identity_provider or FirebaseIdentityProvider(self._config)

        self._owns_store = store is None
        self._store = store or DocumentStoreFactory.create(
            self._config.store_backend, config=self._config
        )
        self._channel = DocumentSyncChannel(self._store, self._config)

        self._pipeline = pipeline or SpeechSynthesisPipeline(self._config)
        self._audio_handle: Optional[PlaybackHandle] = None

        self._lock = threading.Lock()

    def _emit(self, event: NotepadEvent):
        try:
            self._event_callback(event)
        except Exception:
            logger.exception(f"Error in event callback for {event.name}")

    @property
    def identity(self) -> Optional[str]:
        return self._identity_provider.identity

    @property
    def message(self) -> Optional[str]:
        """Latest known message, the empty-message text, or None before the first sync."""
        content = self._channel.current_content
        if content is NOT_FOUND:
            return self._config.empty_message_text
        return content

    @property
    def audio_handle(self) -> Optional[PlaybackHandle]:
        with self._lock:
            return self._audio_handle

    def is_generating_audio(self) -> bool:
        return self._pipeline.is_busy()

    def start(self):
        self._terminated = False
        self._identity_provider.add_listener(self._on_identity)
        self._identity_provider.start()

    def _on_identity(self, identity: str):
        if self._terminated:
            return

        self._emit(IdentityReadyEvent(identity=identity))

        try:
            self._channel.open(identity, self._on_document_update)
        except NotReadyError as e:
            logger.error(f"Unable to subscribe to the user's message: {e}")

    def _on_document_update(self, content):
        if content is NOT_FOUND:
            self._emit(MessageUpdatedEvent(content=self._config.empty_message_text, exists=False))
        else:
            self._emit(MessageUpdatedEvent(content=content, exists=True))

    def save_message(self, text: str) -> bool:
        """Overwrite the user's message. Returns False (and emits an event) on failure."""
        try:
            self._channel.write(self.identity, text)
        except (NotReadyError, WriteError) as e:
            logger.error(f"Error saving the message: {e}")
            self._emit(MessageSaveFailedEvent(content=text, error=e))
            return False

        self._emit(MessageSavedEvent(content=text))
        return True

    def generate_audio(self, text: str, voice: Optional[Voice] = None) -> Optional[Future]:
        """
        Start generating audio for `text`.

        The previous audio is released once the new request is accepted.
        Returns the pipeline Future, or None when the request was refused.
        """
        try:
            future = self._pipeline.synthesize(text, voice=voice)
        except VoiceNotesError as e:
            logger.error(f"Unable to generate audio: {e}")
            self._emit(AudioFailedEvent(text=text, error=e))
            return None

        # Registered after the release so the new handle is never the one dropped
        self._release_audio()
        future.add_done_callback(lambda f: self._on_audio_done(text, f))
        return future

    def _on_audio_done(self, text: str, future: Future):
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            self._emit(AudioFailedEvent(text=text, error=error))
            return

        handle = future.result()
        with self._lock:
            if self._terminated:
                handle.release()
                return
            previous = self._audio_handle
            self._audio_handle = handle

        if previous is not None:
            previous.release()

        self._emit(AudioReadyEvent(text=text, handle=handle))

    def _release_audio(self):
        with self._lock:
            handle = self._audio_handle
            self._audio_handle = None

        if handle is not None:
            handle.release()

    def play_audio(self, player):
        """Play the current audio on `player` (a voice_notes.audio_io.Player)."""
        handle = self.audio_handle
        if handle is None:
            raise NotReadyError("No audio has been generated yet")
        player.play_handle(handle)

    def terminate(self):
        with self._lock:
            self._terminated = True

        self._identity_provider.remove_listener(self._on_identity)
        self._pipeline.cancel()
        self._channel.shutdown()
        self._release_audio()

        if self._owns_store:
            self._store.terminate()
