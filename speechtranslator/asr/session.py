from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from speechtranslator.asr.base import AudioCaptureProvider, RecognitionProvider, RecognitionStream
from speechtranslator.contracts import Locale, RecognitionState
from speechtranslator.errors import (
    PermissionDenied,
    ProviderUnavailable,
    RecognizerUnavailable,
    SpeechTranslatorError,
)
from speechtranslator.logs import log_event
from speechtranslator.signals import Signal


class TranscriptionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    STREAMING = "streaming"
    STOPPED = "stopped"
    FAILED = "failed"


ACTIVE_STATES = (TranscriptionState.STARTING, TranscriptionState.STREAMING)


def _as_provider_error(exc: BaseException) -> SpeechTranslatorError:
    if isinstance(exc, SpeechTranslatorError):
        return exc
    err = ProviderUnavailable(str(exc) or type(exc).__name__)
    err.__cause__ = exc
    return err


class TranscriptionSession:
    """
    Owns one live recognition stream at a time.

    start() blocks on the availability and authorization checks, then hands the
    provider stream to a reader thread. Every result is appended to the
    transcript on its own line. A final result, a provider error, or the end of
    the stream releases audio capture and returns the session to STOPPED.

    Each start/stop bumps a generation counter; work tagged with an older
    generation is discarded, so a late result from a torn-down stream never
    reaches the transcript.

    State and transcript changes are emitted while holding `_emit_lock`, so
    listeners see them in the order they were applied.
    """

    def __init__(
        self,
        *,
        recognition: RecognitionProvider,
        audio: AudioCaptureProvider,
        logger: Optional[logging.Logger] = None,
        join_timeout: float = 1.0,
    ) -> None:
        self.recognition = recognition
        self.audio = audio
        self.logger = logger
        self.join_timeout = float(join_timeout)

        self.transcripts: Signal[str] = Signal("transcription.transcript")
        self.states: Signal[TranscriptionState] = Signal("transcription.state")
        self.availability: Signal[bool] = Signal("transcription.availability")
        self.errors: Signal[SpeechTranslatorError] = Signal("transcription.error")

        # Always taken before _lock.
        self._emit_lock = threading.RLock()
        self._lock = threading.RLock()
        self._state = TranscriptionState.IDLE
        self._generation = 0
        self._stream: Optional[RecognitionStream] = None
        self._reader: Optional[threading.Thread] = None
        self._transcript = ""
        self._locale: Optional[Locale] = None
        self._is_available = bool(recognition.is_available)
        self.last_error: Optional[SpeechTranslatorError] = None
        self._unsubscribe = recognition.availability.subscribe(self._on_availability)

    @property
    def state(self) -> TranscriptionState:
        return self._state

    @property
    def locale(self) -> Optional[Locale]:
        return self._locale

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def is_available(self) -> bool:
        return self._is_available

    @property
    def is_active(self) -> bool:
        return self._state in ACTIVE_STATES

    def snapshot(self) -> RecognitionState:
        return RecognitionState(transcript=self._transcript, is_available=self._is_available)

    def _set_state(self, state: TranscriptionState) -> bool:
        if state == self._state:
            return False
        self._state = state
        return True

    def _emit_state(self, state: TranscriptionState) -> None:
        log_event(self.logger, logging.INFO, "transcription_state", state=state.value)
        self.states.emit(state)

    def start(self, locale: Locale) -> bool:
        """
        Begin streaming for `locale`. Returns False when a concurrent stop()
        cancelled this start before audio capture began.
        """
        self.stop()
        self._join_reader()

        with self._emit_lock:
            with self._lock:
                self._generation += 1
                gen = self._generation
                self._locale = locale
                self.last_error = None
                changed = self._set_state(TranscriptionState.STARTING)
            if changed:
                self._emit_state(TranscriptionState.STARTING)

        try:
            if not self.recognition.is_locale_usable(locale):
                raise RecognizerUnavailable(f"Recognizer is unavailable for {locale}")
            if not self.recognition.request_authorization():
                raise PermissionDenied.recognition()
            if not self.audio.request_record_permission():
                raise PermissionDenied.recording()
        except Exception as e:
            err = _as_provider_error(e)
            self._fail(gen, err)
            raise err

        with self._emit_lock:
            with self._lock:
                if gen != self._generation:
                    log_event(self.logger, logging.INFO, "transcription_start_cancelled", locale=str(locale))
                    return False
                try:
                    self.audio.start()
                    stream = self.recognition.start_stream(locale, self.audio)
                except Exception as e:
                    self.audio.stop()
                    err = _as_provider_error(e)
                    self._fail(gen, err)
                    raise err
                self._stream = stream
                reader = threading.Thread(
                    target=self._read_stream,
                    args=(gen, stream),
                    name="speechtranslator-recognition",
                    daemon=True,
                )
                self._reader = reader
                self._set_state(TranscriptionState.STREAMING)
            self._emit_state(TranscriptionState.STREAMING)

        log_event(
            self.logger,
            logging.INFO,
            "transcription_start",
            locale=str(locale),
            recognizer=self.recognition.name,
        )
        reader.start()
        return True

    def change_locale(self, locale: Locale) -> bool:
        self.stop()
        return self.start(locale)

    def stop(self) -> None:
        with self._emit_lock:
            with self._lock:
                if self._state == TranscriptionState.IDLE:
                    return
                was_active = self._state in ACTIVE_STATES
                self._generation += 1
                stream, self._stream = self._stream, None
                changed = self._set_state(TranscriptionState.STOPPED)
            if stream is not None:
                stream.cancel()
            if was_active:
                self.audio.stop()
            if changed:
                self._emit_state(TranscriptionState.STOPPED)

    def clear(self) -> None:
        with self._emit_lock:
            with self._lock:
                self._transcript = ""
            self.transcripts.emit("")

    def dispose(self) -> None:
        self.stop()
        self._unsubscribe()
        self._join_reader()

    def _join_reader(self) -> None:
        reader = self._reader
        if reader is None or reader is threading.current_thread():
            return
        reader.join(timeout=self.join_timeout)
        if reader.is_alive():
            log_event(self.logger, logging.WARNING, "transcription_reader_still_running")

    def _fail(self, gen: int, err: SpeechTranslatorError) -> None:
        with self._emit_lock:
            with self._lock:
                if gen != self._generation:
                    return
                self.last_error = err
                changed = self._set_state(TranscriptionState.FAILED)
            log_event(self.logger, logging.WARNING, "transcription_start_failed", error=err.message)
            if changed:
                self._emit_state(TranscriptionState.FAILED)
            self.errors.emit(err)

    def _append(self, gen: int, text: str) -> None:
        # A stop() or clear() that lands after the update still emits after it.
        with self._emit_lock:
            with self._lock:
                if gen != self._generation:
                    return
                self._transcript = text if not self._transcript else f"{self._transcript}\n{text}"
                transcript = self._transcript
            self.transcripts.emit(transcript)

    def _read_stream(self, gen: int, stream: RecognitionStream) -> None:
        error: Optional[SpeechTranslatorError] = None
        try:
            for result in stream:
                if gen != self._generation:
                    return
                text = (result.text or "").strip()
                if text:
                    self._append(gen, text)
                if result.is_final:
                    break
        except Exception as e:
            error = _as_provider_error(e)
        self._finish(gen, stream, error)

    def _finish(self, gen: int, stream: RecognitionStream, error: Optional[SpeechTranslatorError]) -> None:
        with self._emit_lock:
            with self._lock:
                if gen != self._generation:
                    return
                self._generation += 1
                self._stream = None
                if error is not None:
                    self.last_error = error
                changed = self._set_state(TranscriptionState.STOPPED)
            stream.cancel()
            self.audio.stop()
            if error is not None:
                log_event(self.logger, logging.WARNING, "transcription_error", error=error.message)
                self.errors.emit(error)
            else:
                log_event(self.logger, logging.INFO, "transcription_stream_end")
            if changed:
                self._emit_state(TranscriptionState.STOPPED)

    def _on_availability(self, available: bool) -> None:
        self._is_available = bool(available)
        log_event(self.logger, logging.INFO, "recognizer_availability", available=self._is_available)
        self.availability.emit(self._is_available)
