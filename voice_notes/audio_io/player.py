import logging
from typing import Optional, Tuple

import pyaudio
from pydub import AudioSegment

from ..speech_synthesis.playback_handle import PlaybackHandle

logger = logging.getLogger(__name__)


class Player:
    """Plays PlaybackHandles on a local output device."""

    def __init__(
        self,
        device_name: Optional[str] = None,
        device_index: Optional[int] = None,
        chunk_size: int = 4096,
    ):
        self._audio_interface = pyaudio.PyAudio()
        self._chunk_size = chunk_size

        if device_name is not None:
            device_index = self.find_device_index(device_name)

        self._device_index = device_index

    def terminate(self):
        if getattr(self, "_audio_interface", None) is not None:
            self._audio_interface.terminate()
            self._audio_interface = None

    def __del__(self):
        self.terminate()

    def get_devices(self, capture_devices: bool = False) -> Tuple[str, ...]:
        device_count = self._audio_interface.get_device_count()
        devices = []

        for i in range(device_count):
            info = self._audio_interface.get_device_info_by_index(i)
            if (capture_devices and info["maxInputChannels"] > 0) or (
                not capture_devices and info["maxOutputChannels"] > 0
            ):
                devices.append(info["name"])

        return tuple(devices)

    def find_device_index(self, device_name: str) -> int:
        for i in range(self._audio_interface.get_device_count()):
            info = self._audio_interface.get_device_info_by_index(i)
            if info["name"] == device_name:
                return i
        raise RuntimeError(f"Device `{device_name}` not found")

    def play_handle(self, handle: PlaybackHandle):
        """
        Decode and play the audio behind `handle`. Blocks until done.

        Raises:
            ValueError: the handle was released.
        """
        if handle.is_released():
            raise ValueError("Cannot play a released playback handle")

        # WAV is decoded natively; other containers need ffmpeg
        segment = AudioSegment.from_file(handle.path)
        logger.debug(
            f"Playing {len(segment)} ms of audio "
            f"({segment.frame_rate} Hz, {segment.channels} channel(s))"
        )
        self.play_segment(segment)

    def play_segment(self, segment: AudioSegment):
        stream = self._audio_interface.open(
            format=self._audio_interface.get_format_from_width(segment.sample_width),
            channels=segment.channels,
            rate=segment.frame_rate,
            output=True,
            output_device_index=self._device_index,
        )

        data = segment.raw_data
        step = self._chunk_size * segment.frame_width
        try:
            for offset in range(0, len(data), step):
                stream.write(data[offset:offset + step])
        finally:
            stream.stop_stream()
            stream.close()
