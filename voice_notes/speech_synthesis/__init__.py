"""Speech synthesis package public API.

`SpeechSynthesisPipeline` sends text to the Gemini text-to-speech endpoint
and returns a Future of a `PlaybackHandle`::

    from voice_notes.speech_synthesis import SpeechSynthesisPipeline, Voice

    pipeline = SpeechSynthesisPipeline(config)
    with pipeline.synthesize("Hello", voice=Voice.KORE).result() as handle:
        print(handle.path)
"""

from .audio_payload import decode_audio_payload, encode_audio_payload
from .playback_handle import PlaybackHandle, SynthesisResult
from .speech_synthesis_pipeline import SpeechSynthesisPipeline, SynthesisRequest, Voice

__all__ = [
    "PlaybackHandle",
    "SpeechSynthesisPipeline",
    "SynthesisRequest",
    "SynthesisResult",
    "Voice",
    "decode_audio_payload",
    "encode_audio_payload",
]
