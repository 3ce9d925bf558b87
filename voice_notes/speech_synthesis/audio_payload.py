"""Wire format of the Gemini text-to-speech endpoint.

Requests are plain dicts serialized by requests. Responses are validated
against a pydantic schema before anything is read from them, so any shape
mismatch fails with MalformedResponseError instead of a KeyError or a
silently missing value.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from ..errors import MalformedResponseError
from .playback_handle import PCM_MIME_TYPES, SynthesisResult, parse_mime_type, pcm_format

logger = logging.getLogger(__name__)


class _ResponseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InlineData(_ResponseModel):
    data: StrictStr
    mime_type: StrictStr = Field(alias="mimeType")


class Part(_ResponseModel):
    inline_data: Optional[InlineData] = Field(default=None, alias="inlineData")
    text: Optional[StrictStr] = None


class Content(_ResponseModel):
    parts: List[Part] = Field(min_length=1)


class Candidate(_ResponseModel):
    content: Content


class GenerateContentResponse(_ResponseModel):
    candidates: List[Candidate] = Field(min_length=1)


def build_request_payload(text: str, voice_name: str, model: str) -> Dict[str, Any]:
    return {
        "contents": [
            {
                "parts": [{"text": text}],
            }
        ],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {
                    "prebuiltVoiceConfig": {"voiceName": voice_name},
                },
            },
        },
        "model": model,
    }


def encode_audio_payload(audio_bytes: bytes) -> str:
    return base64.b64encode(audio_bytes).decode("ascii")


def decode_audio_payload(data: str) -> bytes:
    """Decode standard base64, rejecting bad alphabet, bad padding and empty audio."""
    try:
        audio_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedResponseError(f"Audio payload is not valid base64: {e}") from e

    if not audio_bytes:
        raise MalformedResponseError("Audio payload is empty")

    return audio_bytes


def extract_synthesis_result(body: Any) -> SynthesisResult:
    """Pull the first audio part out of a generateContent response body."""
    try:
        response = GenerateContentResponse.model_validate(body)
    except ValidationError as e:
        logger.debug(f"Response validation errors: {e.errors()}")
        raise MalformedResponseError(
            f"Unexpected response shape ({e.error_count()} validation errors)"
        ) from e

    inline_data = next(
        (part.inline_data for part in response.candidates[0].content.parts if part.inline_data),
        None,
    )
    if inline_data is None:
        raise MalformedResponseError("Audio data not found in the API response")

    if not inline_data.mime_type.lower().startswith("audio/"):
        raise MalformedResponseError(f"Response part is not audio: {inline_data.mime_type}")

    base_type, params = parse_mime_type(inline_data.mime_type)
    if base_type in PCM_MIME_TYPES:
        try:
            pcm_format(params)
        except ValueError as e:
            raise MalformedResponseError(f"Unusable audio format {inline_data.mime_type!r}: {e}") from e

    return SynthesisResult(
        audio_bytes=decode_audio_payload(inline_data.data),
        mime_type=inline_data.mime_type,
    )
