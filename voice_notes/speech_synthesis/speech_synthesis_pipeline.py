import json
import logging
import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from enum import Enum, StrEnum, auto, unique
from typing import Callable, Dict, List, Optional

import requests

from ..config import VoiceNotesConfig
from ..errors import (
    BusyError,
    InvalidInputError,
    MalformedResponseError,
    NotReadyError,
    SynthesisError,
    TransportError,
)
from .audio_payload import build_request_payload, extract_synthesis_result
from .playback_handle import PlaybackHandle

logger = logging.getLogger(__name__)

RESPONSE_CHUNK_SIZE = 64 * 1024


@unique
class Voice(StrEnum):
    ZEPHYR = "Zephyr"
    PUCK = "Puck"
    CHARON = "Charon"
    KORE = "Kore"
    FENRIR = "Fenrir"
    LEDA = "Leda"
    ORUS = "Orus"
    AOEDE = "Aoede"
    CALLIRRHOE = "Callirrhoe"
    AUTONOE = "Autonoe"
    ENCELADUS = "Enceladus"
    IAPETUS = "Iapetus"
    UMBRIEL = "Umbriel"
    ALGIEBA = "Algieba"
    DESPINA = "Despina"
    ERINOME = "Erinome"
    ALGENIB = "Algenib"
    RASALGETHI = "Rasalgethi"
    LAOMEDEIA = "Laomedeia"
    ACHERNAR = "Achernar"
    ALNILAM = "Alnilam"
    SCHEDAR = "Schedar"
    GACRUX = "Gacrux"
    PULCHERRIMA = "Pulcherrima"
    ACHIRD = "Achird"
    ZUBENELGENUBI = "Zubenelgenubi"
    VINDEMIATRIX = "Vindemiatrix"
    SADACHBIA = "Sadachbia"
    SADALTAGER = "Sadaltager"
    SULAFAT = "Sulafat"


VOICE_STYLES = {
    Voice.ZEPHYR: "Bright",
    Voice.PUCK: "Upbeat",
    Voice.CHARON: "Informative",
    Voice.KORE: "Firm",
    Voice.FENRIR: "Excitable",
    Voice.LEDA: "Youthful",
    Voice.ORUS: "Firm",
    Voice.AOEDE: "Breezy",
    Voice.CALLIRRHOE: "Easy-going",
    Voice.AUTONOE: "Bright",
    Voice.ENCELADUS: "Breathy",
    Voice.IAPETUS: "Clear",
    Voice.UMBRIEL: "Easy-going",
    Voice.ALGIEBA: "Smooth",
    Voice.DESPINA: "Smooth",
    Voice.ERINOME: "Clear",
    Voice.ALGENIB: "Gravelly",
    Voice.RASALGETHI: "Informative",
    Voice.LAOMEDEIA: "Upbeat",
    Voice.ACHERNAR: "Soft",
    Voice.ALNILAM: "Firm",
    Voice.SCHEDAR: "Even",
    Voice.GACRUX: "Mature",
    Voice.PULCHERRIMA: "Forward",
    Voice.ACHIRD: "Friendly",
    Voice.ZUBENELGENUBI: "Casual",
    Voice.VINDEMIATRIX: "Gentle",
    Voice.SADACHBIA: "Lively",
    Voice.SADALTAGER: "Knowledgeable",
    Voice.SULAFAT: "Warm",
}


@dataclass(frozen=True)
class SynthesisRequest:
    text: str
    voice: Voice


@dataclass
class _InFlightRequest:
    future: Future
    cancelled: threading.Event = field(default_factory=threading.Event)
    session: Optional[requests.Session] = None
    response: Optional[requests.Response] = None


class SpeechSynthesisPipeline:
    """
    Turns text into a PlaybackHandle through the Gemini text-to-speech API.

    The pipeline is single-flight: `synthesize()` raises BusyError while a
    request is in flight, and also while a cancelled request is still letting
    go of its connection. Each request runs on its own worker thread and its
    outcome is delivered through the returned Future. The pipeline is back
    to IDLE before that Future completes.
    """

    @unique
    class State(Enum):
        IDLE = auto()
        IN_FLIGHT = auto()
        CANCELLING = auto()

    def __init__(
        self,
        config: Optional[VoiceNotesConfig] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Endpoint, model, default voice, timeout and API key.
            session_factory: Builds the HTTP session used for one request.
                Defaults to `requests.Session`.
        """
        self._config = config if config else VoiceNotesConfig()
        self._session_factory = session_factory or requests.Session

        self._lock = threading.Lock()
        self._state = self.State.IDLE
        self._in_flight: Optional[_InFlightRequest] = None
        self._terminated = False

        self._idle = threading.Event()
        self._idle.set()

    @staticmethod
    def name() -> str:
        return "gemini-tts"

    @property
    def state(self) -> "SpeechSynthesisPipeline.State":
        with self._lock:
            return self._state

    def is_busy(self) -> bool:
        return self.state != self.State.IDLE

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no request is in flight or being cancelled. Returns False on timeout."""
        return self._idle.wait(timeout)

    def available_voices(self) -> List[Dict]:
        return [{"name": voice, "style": VOICE_STYLES[voice]} for voice in Voice]

    def _resolve_voice(self, voice) -> Voice:
        try:
            return Voice(voice if voice else self._config.voice_name)
        except ValueError as e:
            raise InvalidInputError(f"Unknown voice: {voice or self._config.voice_name}") from e

    def synthesize(self, text: str, voice: Optional[Voice] = None) -> "Future[PlaybackHandle]":
        """
        Start synthesizing `text`.

        Returns:
            A Future resolving to a PlaybackHandle, or failing with
            TransportError or MalformedResponseError.

        Raises:
            InvalidInputError: `text` is empty or the voice is unknown.
            BusyError: another request is in flight or still being cancelled.
            NotReadyError: no API key configured, or the pipeline was terminated.
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("Please enter some text to generate audio")

        if not self._config.gemini_api_key:
            raise NotReadyError("No API key configured for speech synthesis")

        request = SynthesisRequest(text=text, voice=self._resolve_voice(voice))

        with self._lock:
            if self._terminated:
                raise NotReadyError("Speech synthesis pipeline was terminated")
            if self._state == self.State.IN_FLIGHT:
                raise BusyError("A speech synthesis request is already in flight")
            if self._state == self.State.CANCELLING:
                raise BusyError("The cancelled request has not released its connection yet")

            in_flight = _InFlightRequest(future=Future())
            self._in_flight = in_flight
            self._state = self.State.IN_FLIGHT
            self._idle.clear()

        # Cancelling the Future directly cancels the request too
        in_flight.future.add_done_callback(
            lambda f: self._cancel_request(in_flight) if f.cancelled() else None
        )

        logger.debug(f'Synthesizing text with voice {request.voice}: "{text}"')

        threading.Thread(
            target=self._worker_thread_function,
            args=(in_flight, request),
            daemon=True,
            name='SpeechSynthesisThread',
        ).start()

        return in_flight.future

    def _worker_thread_function(self, in_flight: _InFlightRequest, request: SynthesisRequest):
        handle = None
        error = None

        try:
            handle = self._perform_request(in_flight, request)
        except Exception as e:
            error = e

        with self._lock:
            if self._in_flight is in_flight:
                self._in_flight = None
                self._state = self.State.IDLE
                self._idle.set()

        if in_flight.cancelled.is_set():
            logger.debug("Discarding the result of a cancelled request")
            if handle is not None:
                handle.release()
            return

        if error is not None:
            logger.error(f"Error generating audio: {error}")

        try:
            if error is not None:
                in_flight.future.set_exception(error)
            else:
                in_flight.future.set_result(handle)
        except InvalidStateError:
            # Cancelled through the Future after we left IN_FLIGHT
            if handle is not None:
                handle.release()

    def _perform_request(self, in_flight: _InFlightRequest, request: SynthesisRequest) -> PlaybackHandle:
        url = f"{self._config.tts_endpoint}/models/{self._config.tts_model}:generateContent"
        payload = build_request_payload(
            text=request.text,
            voice_name=str(request.voice),
            model=self._config.tts_model,
        )

        session = self._session_factory()
        with self._lock:
            in_flight.session = session
        if in_flight.cancelled.is_set():
            session.close()
            raise SynthesisError("Request cancelled")

        try:
            logger.debug("Making the API request")

            # Streamed so that cancel() can drop the connection while the body is read
            response = session.post(
                url,
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self._config.gemini_api_key,
                },
                json=payload,
                timeout=self._config.request_timeout,
                stream=True,
            )

            with self._lock:
                in_flight.response = response

            try:
                logger.debug("API Response received")

                if not 200 <= response.status_code < 300:
                    logger.debug(f"Response status: {response.status_code} {response.reason}")
                    raise TransportError(response.status_code)

                body = self._read_body(in_flight, response)
            finally:
                response.close()

        except requests.exceptions.RequestException as e:
            raise TransportError(None, str(e)) from e

        finally:
            session.close()

        result = extract_synthesis_result(body)
        logger.debug(f"Received {len(result.audio_bytes)} bytes of {result.mime_type}")

        try:
            return PlaybackHandle(result)
        except ValueError as e:
            raise MalformedResponseError(f"Unusable audio: {e}") from e

    @staticmethod
    def _read_body(in_flight: _InFlightRequest, response: requests.Response):
        chunks = []
        for chunk in response.iter_content(chunk_size=RESPONSE_CHUNK_SIZE):
            if in_flight.cancelled.is_set():
                break
            chunks.append(chunk)

        if in_flight.cancelled.is_set():
            raise SynthesisError("Request cancelled")

        try:
            return json.loads(b"".join(chunks))
        except ValueError as e:
            raise MalformedResponseError(f"Response is not JSON: {e}") from e

    def _cancel_request(self, in_flight: Optional[_InFlightRequest]) -> bool:
        with self._lock:
            current = self._in_flight
            if current is None or current.cancelled.is_set():
                return False
            if in_flight is not None and current is not in_flight:
                return False

            # Stays CANCELLING until the worker has let go of the connection
            current.cancelled.set()
            self._state = self.State.CANCELLING
            session = current.session
            response = current.response

        if response is not None:
            response.close()
        if session is not None:
            session.close()

        current.future.cancel()

        logger.info("Speech synthesis request cancelled")
        return True

    def cancel(self) -> bool:
        """
        Cancel the request in flight, if any.

        The connection is closed, the Future is cancelled and never gets a
        result. The pipeline is CANCELLING, and refuses new requests, until
        the worker thread has finished with the connection; then it is IDLE.

        Returns:
            False if nothing was in flight, or it was already cancelled.
        """
        return self._cancel_request(None)

    def terminate(self):
        """Cancel any request in flight and refuse new ones."""
        with self._lock:
            self._terminated = True
        self.cancel()
