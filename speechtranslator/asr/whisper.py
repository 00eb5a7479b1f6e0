from __future__ import annotations

import logging
import os
import tempfile
import threading
import wave
from typing import Iterator, List, Optional

from speechtranslator.asr.base import AudioCaptureProvider, RecognitionProvider, RecognitionStream
from speechtranslator.audio.utterances import UtteranceConfig, iter_utterances
from speechtranslator.audio.vad import EnergyVAD, pcm16_to_float32
from speechtranslator.contracts import AudioChunk, Locale, RecognitionResult
from speechtranslator.errors import RecognizerUnavailable

WHISPER_SAMPLE_RATE = 16000


def _write_pcm16_wav(path: str, pcm16: bytes, sample_rate: int, channels: int) -> None:
    with wave.open(path, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16)


class FasterWhisperRecognizer(RecognitionProvider):
    """
    Local recognizer backed by faster-whisper. Audio is cut into utterances
    with an energy VAD and each utterance becomes one recognition result.
    """

    def __init__(
        self,
        *,
        model_size: str = "tiny",
        device: str = "cpu",
        compute_type: str = "int8",
        beam_size: int = 1,
        vad: Optional[EnergyVAD] = None,
        utterances: Optional[UtteranceConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__()
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.beam_size = beam_size
        self.vad = vad or EnergyVAD()
        self.utterances = utterances or UtteranceConfig()
        self.logger = logger
        self._model = None
        self._available = True
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "faster-whisper"

    @property
    def is_available(self) -> bool:
        return self._available

    def _set_available(self, value: bool) -> None:
        if value == self._available:
            return
        self._available = value
        self.availability.emit(value)

    def _get_model(self):
        with self._lock:
            if self._model is not None:
                return self._model
            try:
                from faster_whisper import WhisperModel

                self._model = WhisperModel(
                    self.model_size,
                    device=self.device,
                    compute_type=self.compute_type,
                )
            except Exception as e:
                if self.logger is not None:
                    self.logger.exception("whisper_model_load_failed", extra={"model": self.model_size})
                self._set_available(False)
                raise RecognizerUnavailable(f"Failed to load whisper model '{self.model_size}'") from e
            self._set_available(True)
            return self._model

    def warm_up(self) -> bool:
        try:
            self._get_model()
        except RecognizerUnavailable:
            return False
        return True

    def request_authorization(self) -> bool:
        # Local inference; nothing to authorize.
        return True

    def supported_locales(self) -> List[Locale]:
        try:
            model = self._get_model()
        except RecognizerUnavailable:
            return []
        return [Locale(code) for code in model.supported_languages]

    def transcribe_utterance(self, utterance: AudioChunk, language: Optional[str]) -> str:
        if not utterance.pcm16:
            return ""
        model = self._get_model()

        if utterance.sample_rate == WHISPER_SAMPLE_RATE:
            segments, _info = model.transcribe(
                pcm16_to_float32(utterance.pcm16, utterance.channels),
                language=language,
                beam_size=self.beam_size,
                vad_filter=False,
                condition_on_previous_text=False,
            )
            return " ".join((s.text or "").strip() for s in segments).strip()

        fd, tmp_path = tempfile.mkstemp(suffix=".wav", prefix="speechtranslator_utter_")
        os.close(fd)
        try:
            _write_pcm16_wav(
                tmp_path,
                utterance.pcm16,
                sample_rate=utterance.sample_rate,
                channels=utterance.channels,
            )
            segments, _info = model.transcribe(
                tmp_path,
                language=language,
                beam_size=self.beam_size,
                vad_filter=False,
                condition_on_previous_text=False,
            )
            return " ".join((s.text or "").strip() for s in segments).strip()
        finally:
            try:
                os.remove(tmp_path)
            except OSError:
                pass

    def start_stream(self, locale: Locale, audio: AudioCaptureProvider) -> RecognitionStream:
        return WhisperRecognitionStream(self, locale, audio)


class WhisperRecognitionStream(RecognitionStream):
    def __init__(self, recognizer: FasterWhisperRecognizer, locale: Locale, audio: AudioCaptureProvider) -> None:
        self.recognizer = recognizer
        self.locale = locale
        self.audio = audio
        self._cancelled = threading.Event()

    def _audio_chunks(self) -> Iterator[AudioChunk]:
        for chunk in self.audio.chunks():
            if self._cancelled.is_set():
                return
            yield chunk

    def __iter__(self) -> Iterator[RecognitionResult]:
        language = self.locale.language.code
        for utterance in iter_utterances(self._audio_chunks(), self.recognizer.vad, self.recognizer.utterances):
            if self._cancelled.is_set():
                return
            text = self.recognizer.transcribe_utterance(utterance, language)
            if text and not self._cancelled.is_set():
                yield RecognitionResult(text=text)

    def cancel(self) -> None:
        self._cancelled.set()
