from .config import VoiceNotesConfig
from .document_sync import NOT_FOUND, DocumentSyncChannel, SubscriptionHandle
from .errors import (
    AuthError,
    BusyError,
    DocumentStoreError,
    InvalidInputError,
    MalformedResponseError,
    NotReadyError,
    SynthesisError,
    TransportError,
    VoiceNotesError,
    WriteError,
)
from .events import (
    AudioFailedEvent,
    AudioReadyEvent,
    IdentityReadyEvent,
    MessageSavedEvent,
    MessageSaveFailedEvent,
    MessageUpdatedEvent,
    NotepadEvent,
)
from .speech_synthesis import PlaybackHandle, SpeechSynthesisPipeline, Voice
from .voice_notepad import VoiceNotepad

__all__ = [
    "VoiceNotepad",
    "VoiceNotesConfig",
    "DocumentSyncChannel",
    "SubscriptionHandle",
    "NOT_FOUND",
    "SpeechSynthesisPipeline",
    "PlaybackHandle",
    "Voice",
    "NotepadEvent",
    "IdentityReadyEvent",
    "MessageUpdatedEvent",
    "MessageSavedEvent",
    "MessageSaveFailedEvent",
    "AudioReadyEvent",
    "AudioFailedEvent",
    "VoiceNotesError",
    "NotReadyError",
    "WriteError",
    "AuthError",
    "DocumentStoreError",
    "SynthesisError",
    "InvalidInputError",
    "BusyError",
    "TransportError",
    "MalformedResponseError",
]
