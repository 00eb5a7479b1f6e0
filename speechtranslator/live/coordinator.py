from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from speechtranslator.asr.session import TranscriptionSession, TranscriptionState
from speechtranslator.contracts import Language, Locale, PipelineState, TranslationPairSupport
from speechtranslator.errors import SpeechTranslatorError, TranslationFailed, UnsupportedPair
from speechtranslator.live.debounce import Debouncer, TimerFactory
from speechtranslator.live.mailbox import SerialMailbox
from speechtranslator.live.oracle import CapabilityOracle
from speechtranslator.logs import log_event
from speechtranslator.nlp.translator.session import TranslationSession, TranslationSessionState
from speechtranslator.signals import Signal

DEFAULT_DEBOUNCE_SEC = 0.5


class Executor(Protocol):
    def submit(self, fn: Callable[..., Any], *args: Any) -> Any:
        ...


SessionFactory = Callable[[Language, Language], TranslationSession]


@dataclass(frozen=True)
class PipelineError:
    kind: str
    message: str
    stage: str  # "transcription" | "translation"


def _error_event(stage: str, err: SpeechTranslatorError) -> PipelineError:
    return PipelineError(kind=type(err).__name__, message=err.message, stage=stage)


class PipelineCoordinator:
    """
    Ties one TranscriptionSession, at most one TranslationSession and the
    capability oracle into a single published PipelineState.

    Every state change runs on one SerialMailbox. Commands wait for their
    mailbox job, so cancellations they perform are complete when they
    return. Engine callbacks and timer fires only post. Blocking provider
    work runs on `jobs` (pair checks), on the single-worker
    `recognition_jobs` (starting and restarting transcription) or on the
    single-worker `translate_jobs` (all translate calls).
    """

    def __init__(
        self,
        *,
        transcription: TranscriptionSession,
        oracle: CapabilityOracle,
        input_locale: Locale,
        target_language: Language,
        debounce_sec: float = DEFAULT_DEBOUNCE_SEC,
        clear_transcript_on_start: bool = False,
        session_factory: Optional[SessionFactory] = None,
        mailbox: Optional[SerialMailbox] = None,
        jobs: Optional[Executor] = None,
        recognition_jobs: Optional[Executor] = None,
        translate_jobs: Optional[Executor] = None,
        timer_factory: TimerFactory = threading.Timer,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.transcription = transcription
        self.oracle = oracle
        self.clear_transcript_on_start = bool(clear_transcript_on_start)
        self.logger = logger
        self.session_factory: SessionFactory = session_factory or (
            lambda source, target: TranslationSession(oracle.translation, source, target, logger=logger)
        )

        self._owned_executors: list[ThreadPoolExecutor] = []
        if jobs is None:
            jobs = ThreadPoolExecutor(max_workers=2, thread_name_prefix="speechtranslator-jobs")
            self._owned_executors.append(jobs)
        if recognition_jobs is None:
            recognition_jobs = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="speechtranslator-recognition-jobs",
            )
            self._owned_executors.append(recognition_jobs)
        if translate_jobs is None:
            translate_jobs = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speechtranslator-translate")
            self._owned_executors.append(translate_jobs)
        self._jobs = jobs
        self._recognition_jobs = recognition_jobs
        self._translate_jobs = translate_jobs
        self._mailbox = mailbox or SerialMailbox(logger=logger)
        self._debouncer = Debouncer(debounce_sec, self._on_debounce_fired, timer_factory=timer_factory)

        self.states: Signal[PipelineState] = Signal("pipeline.state")
        self.errors: Signal[PipelineError] = Signal("pipeline.error")

        self._locale = input_locale
        self._target = target_language
        self._pair_generation = 0
        self._recognition_token = 0
        self._start_pending = False
        self._translation: Optional[TranslationSession] = None
        self._state = PipelineState()
        self._started = False
        self._disposed = False
        self._metrics: dict[str, int | float] = {
            "translate_ok": 0,
            "translate_failed": 0,
            "translate_ms_total": 0.0,
            "pair_checks": 0,
            "pair_checks_stale": 0,
        }

        self._unsubscribers = [
            transcription.transcripts.subscribe(self._post_transcript),
            transcription.states.subscribe(self._post_transcription_state),
            transcription.errors.subscribe(self._post_transcription_error),
        ]

    # -- observation ---------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def input_locale(self) -> Locale:
        return self._locale

    @property
    def target_language(self) -> Language:
        return self._target

    @property
    def recognizer_available(self) -> bool:
        return self.transcription.is_available

    @property
    def translation_session(self) -> Optional[TranslationSession]:
        return self._translation

    @property
    def debounce_pending(self) -> bool:
        return self._debouncer.pending

    def metrics(self) -> dict[str, int | float]:
        return dict(self._metrics)

    # -- commands ------------------------------------------------------

    def start(self) -> None:
        """Bring up the mailbox thread and run the first pair check."""
        if self._started:
            return
        self._started = True
        self._mailbox.start()
        self._mailbox.call(self._handle_start)

    def start_recording(self) -> None:
        self._mailbox.call(self._handle_start_recording)

    def stop_recording(self) -> None:
        self._mailbox.call(self._handle_stop_recording)

    def set_input_locale(self, locale: Locale) -> None:
        self._mailbox.call(lambda: self._handle_set_input_locale(locale))

    def set_target_language(self, language: Language) -> None:
        self._mailbox.call(lambda: self._handle_set_target_language(language))

    def reset(self) -> None:
        self._mailbox.call(self._handle_reset)

    def flush(self, timeout: Optional[float] = 5.0) -> None:
        """Wait until every job posted so far has been applied."""
        self._mailbox.call(lambda: None, timeout=timeout)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._mailbox.call(self._handle_dispose)
        self._mailbox.close()
        for executor in self._owned_executors:
            executor.shutdown(wait=False)

    close = dispose

    def __enter__(self) -> "PipelineCoordinator":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()

    # -- mailbox handlers ----------------------------------------------

    def _publish(self, **changes: Any) -> None:
        new_state = dataclasses.replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        self.states.emit(new_state)

    def _submit(self, executor: Executor, fn: Callable[..., None], *args: Any) -> None:
        def _guarded() -> None:
            try:
                fn(*args)
            except Exception:
                if self.logger is not None:
                    self.logger.exception("pipeline_job_failed", extra={"job": fn.__name__})

        executor.submit(_guarded)

    def _handle_start(self) -> None:
        log_event(
            self.logger,
            logging.INFO,
            "pipeline_start",
            input_locale=str(self._locale),
            target_language=str(self._target),
            debounce_sec=self._debouncer.delay_sec,
        )
        self._request_pair_check("start")

    def _is_recording(self) -> bool:
        return self._start_pending or self.transcription.is_active

    def _handle_start_recording(self) -> None:
        if self._disposed or self._is_recording():
            return
        if self.clear_transcript_on_start:
            self.transcription.clear()
        self._publish(recording=True, last_error=None)
        self._request_recognition()

    def _handle_stop_recording(self) -> None:
        if self._disposed:
            return
        if not self._state.recording and not self._is_recording():
            return
        self._cancel_recognition()
        self.transcription.stop()
        self._publish(recording=False)

    def _handle_set_input_locale(self, locale: Locale) -> None:
        if self._disposed or locale == self._locale:
            return
        self._locale = locale
        self._request_pair_check("input_locale")
        if self._is_recording():
            self._request_recognition()

    def _handle_set_target_language(self, language: Language) -> None:
        if self._disposed or language == self._target:
            return
        self._target = language
        self._request_pair_check("target_language")

    def _handle_reset(self) -> None:
        if self._disposed:
            return
        self._cancel_recognition()
        self.transcription.stop()
        self.transcription.clear()
        self._request_pair_check("reset")
        self._publish(
            source_text="",
            target_text="",
            translation_enabled=False,
            recording=False,
            last_error=None,
        )
        log_event(self.logger, logging.INFO, "pipeline_reset")

    def _handle_dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel_recognition()
        self._debouncer.cancel()
        self._pair_generation += 1
        self._drop_translation()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self.transcription.dispose()
        self._publish(recording=False, translation_enabled=False)
        avg_ms = (
            float(self._metrics["translate_ms_total"]) / int(self._metrics["translate_ok"])
            if int(self._metrics["translate_ok"]) > 0
            else 0.0
        )
        log_event(
            self.logger,
            logging.INFO,
            "pipeline_dispose",
            translate_ok=int(self._metrics["translate_ok"]),
            translate_failed=int(self._metrics["translate_failed"]),
            translate_avg_ms=round(avg_ms, 2),
            pair_checks=int(self._metrics["pair_checks"]),
            pair_checks_stale=int(self._metrics["pair_checks_stale"]),
        )

    def _request_recognition(self) -> None:
        # Supersedes any queued start; the job reads the locale when it runs.
        self._recognition_token += 1
        self._start_pending = True
        self._submit(self._recognition_jobs, self._sync_recognition, self._recognition_token)

    def _cancel_recognition(self) -> None:
        self._recognition_token += 1
        self._start_pending = False

    def _on_recognition_settled(self, token: int) -> None:
        if self._disposed or token != self._recognition_token:
            return
        self._start_pending = False
        self._publish(recording=self.transcription.is_active)

    def _drop_translation(self) -> None:
        session, self._translation = self._translation, None
        if session is not None:
            session.invalidate()

    def _request_pair_check(self, reason: str) -> None:
        # Fail closed until the new pair resolves; anything tied to the old pair is void.
        self._pair_generation += 1
        self._debouncer.cancel()
        self._drop_translation()
        self._publish(translation_enabled=False)
        self._metrics["pair_checks"] = int(self._metrics["pair_checks"]) + 1
        self._submit(
            self._jobs,
            self._query_pair,
            self._pair_generation,
            self._locale.language,
            self._target,
            reason,
        )

    def _on_pair_resolved(self, gen: int, support: TranslationPairSupport, reason: str) -> None:
        if self._disposed:
            return
        if gen != self._pair_generation:
            self._metrics["pair_checks_stale"] = int(self._metrics["pair_checks_stale"]) + 1
            log_event(
                self.logger,
                logging.INFO,
                "pair_check_stale",
                source=support.source.code,
                target=support.target.code,
                reason=reason,
            )
            return
        log_event(
            self.logger,
            logging.INFO,
            "pair_check_done",
            source=support.source.code,
            target=support.target.code,
            supported=support.supported,
            reason=reason,
        )
        if not support.supported:
            self._debouncer.cancel()
            self._publish(translation_enabled=False)
            return
        self._publish(translation_enabled=True)
        if self._state.source_text.strip():
            self._debouncer.schedule()

    def _on_transcript(self, transcript: str) -> None:
        if self._disposed:
            return
        self._publish(source_text=transcript)
        if transcript.strip():
            self._debouncer.schedule()
        else:
            self._debouncer.cancel()

    def _on_transcription_state(self, state: TranscriptionState) -> None:
        if self._disposed:
            return
        # Events can arrive after a later stop/start; the session's live state is authoritative.
        self._publish(recording=self._is_recording())

    def _on_transcription_error(self, err: SpeechTranslatorError) -> None:
        if self._disposed:
            return
        self._publish(last_error=err.message)
        self.errors.emit(_error_event("transcription", err))

    def _attempt_translation(self, debounce_gen: int) -> None:
        if self._disposed or not self._debouncer.is_current(debounce_gen):
            return
        text = self._state.source_text
        if not self._state.translation_enabled or not text.strip():
            return
        session = self._translation
        if session is None or session.state == TranslationSessionState.INVALIDATED:
            session = self.session_factory(self._locale.language, self._target)
            self._translation = session
        self._submit(self._translate_jobs, self._run_translation, session, self._pair_generation, text)

    def _on_translated(self, gen: int, text: str, translated: str, ms: float) -> None:
        if self._disposed or gen != self._pair_generation:
            return
        self._metrics["translate_ok"] = int(self._metrics["translate_ok"]) + 1
        self._metrics["translate_ms_total"] = float(self._metrics["translate_ms_total"]) + ms
        log_event(
            self.logger,
            logging.INFO,
            "translate_done",
            chars_source=len(text),
            chars_target=len(translated),
            ms=round(ms, 2),
        )
        self._publish(target_text=translated, last_error=None)

    def _on_translation_failed(self, gen: int, session: TranslationSession, err: SpeechTranslatorError) -> None:
        if self._disposed or gen != self._pair_generation:
            return
        self._metrics["translate_failed"] = int(self._metrics["translate_failed"]) + 1
        log_event(
            self.logger,
            logging.WARNING,
            "translate_failed",
            kind=type(err).__name__,
            error=err.message,
        )
        if isinstance(err, UnsupportedPair):
            if self._translation is session:
                self._drop_translation()
            self._publish(translation_enabled=False)
        self._publish(last_error=err.message)
        self.errors.emit(_error_event("translation", err))

    # -- off-mailbox work ------------------------------------------------

    def _post_transcript(self, transcript: str) -> None:
        self._mailbox.post(lambda: self._on_transcript(transcript))

    def _post_transcription_state(self, state: TranscriptionState) -> None:
        self._mailbox.post(lambda: self._on_transcription_state(state))

    def _post_transcription_error(self, err: SpeechTranslatorError) -> None:
        self._mailbox.post(lambda: self._on_transcription_error(err))

    def _on_debounce_fired(self, debounce_gen: int) -> None:
        self._mailbox.post(lambda: self._attempt_translation(debounce_gen))

    def _query_pair(self, gen: int, source: Language, target: Language, reason: str) -> None:
        support = self.oracle.check_pair(source, target)
        self._mailbox.post(lambda: self._on_pair_resolved(gen, support, reason))

    def _sync_recognition(self, token: int) -> None:
        # Only the newest request runs. Anything issued after it was queued wins.
        if token != self._recognition_token:
            return
        locale = self._locale
        restart = self.transcription.is_active
        try:
            if restart:
                self.transcription.change_locale(locale)
            else:
                self.transcription.start(locale)
        except SpeechTranslatorError as e:
            # Already delivered through transcription.errors.
            log_event(
                self.logger,
                logging.INFO,
                "recording_restart_rejected" if restart else "recording_start_rejected",
                locale=str(locale),
                error=e.message,
            )
        else:
            if token != self._recognition_token:
                self.transcription.stop()
        finally:
            self._mailbox.post(lambda: self._on_recognition_settled(token))

    def _run_translation(self, session: TranslationSession, gen: int, text: str) -> None:
        if gen != self._pair_generation or not self._state.translation_enabled:
            return
        t0 = time.perf_counter()
        try:
            if session.state == TranslationSessionState.CLOSED:
                session.open()
            if not session.is_ready:
                session.prepare()
            translated = session.translate(text)
        except SpeechTranslatorError as e:
            failure = e
        except Exception as e:
            failure = TranslationFailed(str(e) or type(e).__name__)
            failure.__cause__ = e
        else:
            ms = (time.perf_counter() - t0) * 1000.0
            self._mailbox.post(lambda: self._on_translated(gen, text, translated, ms))
            return
        self._mailbox.post(lambda: self._on_translation_failed(gen, session, failure))
