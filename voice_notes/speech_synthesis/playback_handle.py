import logging
import mimetypes
import os
import tempfile
import threading
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Raw PCM types; these get a WAV header so the file is playable as is
PCM_MIME_TYPES = ("audio/l16", "audio/pcm")

DEFAULT_SAMPLE_RATE = 24_000

AUDIO_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/ogg": ".ogg",
    "audio/opus": ".opus",
    "audio/flac": ".flac",
    "audio/aac": ".aac",
    "audio/webm": ".webm",
}


@dataclass(frozen=True)
class SynthesisResult:
    audio_bytes: bytes
    mime_type: str


def parse_mime_type(mime_type: str) -> Tuple[str, Dict[str, str]]:
    """Split 'audio/L16;codec=pcm;rate=24000' into ('audio/l16', {'codec': 'pcm', 'rate': '24000'})."""
    base, *raw_params = [p.strip() for p in mime_type.split(";")]

    params = {}
    for param in raw_params:
        key, sep, value = param.partition("=")
        if sep:
            params[key.strip().lower()] = value.strip().strip('"')

    return base.lower(), params


def pcm_format(params: Dict[str, str]) -> Tuple[int, int]:
    """Sample rate and channel count of a raw PCM type. Raises ValueError unless both are positive integers."""
    rate = params.get("rate", str(DEFAULT_SAMPLE_RATE))
    channels = params.get("channels", "1")

    if not rate.isdecimal() or int(rate) <= 0:
        raise ValueError(f"Invalid PCM sample rate: {rate!r}")
    if not channels.isdecimal() or int(channels) <= 0:
        raise ValueError(f"Invalid PCM channel count: {channels!r}")

    return int(rate), int(channels)


class PlaybackHandle:
    """
    Decoded audio ready for playback.

    The audio is written to a temporary file when the handle is created. The
    caller owns the handle and must `release()` it (or use it as a context
    manager) to delete that file.
    """

    def __init__(self, result: SynthesisResult, directory: Optional[Path] = None):
        if not result.audio_bytes:
            raise ValueError("Cannot create a playback handle without audio")

        base_type, params = parse_mime_type(result.mime_type)

        self._result = result
        self._is_pcm = base_type in PCM_MIME_TYPES
        if self._is_pcm:
            self._sample_rate, self._channels = pcm_format(params)
        else:
            self._sample_rate, self._channels = DEFAULT_SAMPLE_RATE, 1
        self._lock = threading.Lock()
        self._released = False

        if self._is_pcm:
            suffix = ".wav"
        else:
            suffix = AUDIO_EXTENSIONS.get(base_type) or mimetypes.guess_extension(base_type) or ".bin"

        with tempfile.NamedTemporaryFile(
            prefix="voice-notes-",
            suffix=suffix,
            dir=directory,
            delete=False,
        ) as f:
            if self._is_pcm:
                # Gemini labels its output L16 but sends little-endian samples
                with wave.open(f, "wb") as wf:
                    wf.setnchannels(self._channels)
                    wf.setsampwidth(2)
                    wf.setframerate(self._sample_rate)
                    wf.writeframes(result.audio_bytes)
            else:
                f.write(result.audio_bytes)

            self._path = Path(f.name)

        logger.debug(f"Audio written to {self._path} ({len(result.audio_bytes)} bytes)")

    def _check_not_released(self):
        if self._released:
            raise ValueError("Playback handle has been released")

    @property
    def path(self) -> Path:
        with self._lock:
            self._check_not_released()
            return self._path

    @property
    def audio_bytes(self) -> bytes:
        with self._lock:
            self._check_not_released()
            return self._result.audio_bytes

    @property
    def mime_type(self) -> str:
        return self._result.mime_type

    @property
    def is_pcm(self) -> bool:
        return self._is_pcm

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def is_released(self) -> bool:
        with self._lock:
            return self._released

    def release(self):
        """Delete the playable file and drop the audio. Idempotent."""
        with self._lock:
            if self._released:
                return
            self._released = True
            self._result = SynthesisResult(audio_bytes=b"", mime_type=self._result.mime_type)

        try:
            os.remove(self._path)
        except FileNotFoundError:
            pass

        logger.debug(f"Playback handle released: {self._path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    def __repr__(self) -> str:
        return f"PlaybackHandle({str(self._path)!r}, {self.mime_type!r}, released={self._released})"
