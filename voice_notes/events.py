"""
Events reported by VoiceNotepad through its single event callback.
"""

from dataclasses import dataclass, fields

from .speech_synthesis import PlaybackHandle


class NotepadEvent:
    """Base class of the notepad events. Payload fields are also readable as `event['field']`."""

    def __new__(cls, *args, **kwargs):
        if cls is NotepadEvent:
            raise TypeError('NotepadEvent is an abstract class and cannot be instantiated directly')
        return super().__new__(cls)

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def get(self, key: str, default=None):
        try:
            return self[key]
        except KeyError:
            return default

    def __getitem__(self, key: str):
        if key not in {f.name for f in fields(self)}:
            raise KeyError(key)
        return getattr(self, key)


@dataclass(frozen=True)
class IdentityReadyEvent(NotepadEvent):
    identity: str


@dataclass(frozen=True)
class MessageUpdatedEvent(NotepadEvent):
    content: str
    exists: bool


@dataclass(frozen=True)
class MessageSavedEvent(NotepadEvent):
    content: str


@dataclass(frozen=True)
class MessageSaveFailedEvent(NotepadEvent):
    content: str
    error: Exception


@dataclass(frozen=True)
class AudioReadyEvent(NotepadEvent):
    text: str
    handle: PlaybackHandle


@dataclass(frozen=True)
class AudioFailedEvent(NotepadEvent):
    text: str
    error: Exception
