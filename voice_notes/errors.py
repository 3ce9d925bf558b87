from typing import Optional


class VoiceNotesError(Exception):
    """Base class for every error raised by voice_notes."""


class NotReadyError(VoiceNotesError):
    """Identity, backing connection or API credential is not available yet."""


class WriteError(VoiceNotesError):
    """The document store rejected a write."""


class AuthError(VoiceNotesError):
    pass


class DocumentStoreError(VoiceNotesError):
    """Raised by DocumentStore implementations for any backend failure."""


class SynthesisError(VoiceNotesError):
    pass


class InvalidInputError(SynthesisError):
    pass


class BusyError(SynthesisError):
    """A synthesis request is already in flight."""


class TransportError(SynthesisError):
    def __init__(self, status_code: Optional[int], message: str = ""):
        self.status_code = status_code
        if not message:
            message = (
                f"HTTP error status: {status_code}"
                if status_code is not None
                else "Connection to the synthesis service failed"
            )
        super().__init__(message)


class MalformedResponseError(SynthesisError):
    """The synthesis response does not carry a valid audio payload."""
