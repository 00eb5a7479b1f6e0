from __future__ import annotations

import threading
from typing import Any, Iterator, Optional

from speechtranslator.asr.base import AudioCaptureProvider
from speechtranslator.contracts import AudioChunk
from speechtranslator.errors import ProviderUnavailable


class MicError(ProviderUnavailable):
    default_message = "Microphone is unavailable"


def _sounddevice():
    try:
        import sounddevice as sd
    except ImportError as e:
        raise MicError(
            "sounddevice is not installed. Install with: python -m pip install sounddevice"
        ) from e
    return sd


class SoundDeviceMicSource(AudioCaptureProvider):
    """
    Live microphone capture using the `sounddevice` package (PortAudio).
    Produces raw PCM16 chunks of fixed duration between start() and stop().
    """

    def __init__(
        self,
        *,
        chunk_seconds: float = 0.5,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[int] = None,
    ) -> None:
        if chunk_seconds <= 0:
            raise ValueError("chunk_seconds must be > 0")
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if channels not in (1, 2):
            raise ValueError("channels must be 1 or 2 (for now)")

        self.chunk_seconds = float(chunk_seconds)
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.device = device
        self._lock = threading.Lock()
        self._stream: Any = None
        self._stopped = threading.Event()
        self._stopped.set()

    @staticmethod
    def list_devices() -> str:
        return str(_sounddevice().query_devices())

    @property
    def is_capturing(self) -> bool:
        return not self._stopped.is_set()

    def request_record_permission(self) -> bool:
        # PortAudio exposes no permission API; an openable input device is the grant.
        try:
            sd = _sounddevice()
            sd.query_devices(self.device, kind="input")
        except Exception:
            return False
        return True

    def start(self) -> None:
        sd = _sounddevice()
        with self._lock:
            if self._stream is not None:
                return
            try:
                stream = sd.RawInputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    device=self.device,
                    blocksize=0,  # let PortAudio choose
                )
                stream.start()
            except Exception as e:
                raise MicError(
                    "Failed to open microphone stream. "
                    "Try --list-devices and select a device id with --device."
                ) from e
            self._stream = stream
            self._stopped.clear()

    def stop(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
            self._stopped.set()
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def chunks(self) -> Iterator[AudioChunk]:
        frames_per_chunk = max(1, int(round(self.chunk_seconds * self.sample_rate)))
        frames_seen = 0
        stream = self._stream
        if stream is None:
            return

        # A restart opens a new stream; iterators bound to the old one end.
        while self._stream is stream and not self._stopped.is_set():
            try:
                data, _overflowed = stream.read(frames_per_chunk)
            except Exception as e:
                if self._stopped.is_set() or self._stream is not stream:
                    return
                raise MicError("Microphone read failed") from e

            start_time = frames_seen / self.sample_rate
            frames_seen += frames_per_chunk

            yield AudioChunk(
                pcm16=bytes(data),
                sample_rate=self.sample_rate,
                channels=self.channels,
                start_time=start_time,
                duration=frames_per_chunk / self.sample_rate,
            )
