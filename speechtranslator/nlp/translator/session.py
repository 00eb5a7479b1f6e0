from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional, Tuple

from .base import TranslationProvider
from speechtranslator.contracts import Language, TranslationRequest
from speechtranslator.errors import (
    ProviderUnavailable,
    SessionNotReady,
    SpeechTranslatorError,
    TranslationFailed,
    UnsupportedPair,
)


class TranslationSessionState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    INVALIDATED = "invalidated"


class TranslationSession:
    """
    One translation channel for a fixed (source, target) pair.

    The pair never changes in place: a different pair needs a new session,
    and the old one must be invalidated. Provider calls on one session are
    serialised.
    """

    def __init__(
        self,
        provider: TranslationProvider,
        source: Language,
        target: Language,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.source = source
        self.target = target
        self.logger = logger
        self._lock = threading.Lock()
        self._call_lock = threading.Lock()
        self._state = TranslationSessionState.CLOSED
        self._ready = False

    @property
    def pair(self) -> Tuple[Language, Language]:
        return self.source, self.target

    @property
    def state(self) -> TranslationSessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._ready and self._state == TranslationSessionState.OPEN

    def open(self) -> None:
        with self._lock:
            if self._state == TranslationSessionState.INVALIDATED:
                raise SessionNotReady("Translation session was invalidated")
            if self._state == TranslationSessionState.OPEN:
                return
        try:
            status = self.provider.pair_status(self.source, self.target)
        except Exception as e:
            raise UnsupportedPair(f"Could not resolve {self.source}->{self.target}") from e
        if not status.usable:
            raise UnsupportedPair(f"{self.source}->{self.target} is not supported")
        with self._lock:
            if self._state == TranslationSessionState.CLOSED:
                self._state = TranslationSessionState.OPEN

    def prepare(self) -> None:
        with self._lock:
            if self._state != TranslationSessionState.OPEN:
                raise SessionNotReady(f"Cannot prepare a {self._state.value} session")
            if self._ready:
                return
        try:
            self.provider.prepare(self.source, self.target)
        except ProviderUnavailable:
            raise
        except Exception as e:
            raise ProviderUnavailable(f"{self.provider.name} could not prepare {self.source}->{self.target}") from e
        with self._lock:
            if self._state == TranslationSessionState.OPEN:
                self._ready = True

    def translate(self, text: str) -> str:
        with self._call_lock:
            with self._lock:
                if self._state != TranslationSessionState.OPEN:
                    raise SessionNotReady(f"Cannot translate on a {self._state.value} session")
                if not self._ready:
                    raise SessionNotReady("Translation session has not been prepared")
            try:
                res = self.provider.translate(
                    TranslationRequest(text=text, source=self.source, target=self.target)
                )
            except SpeechTranslatorError as e:
                raise TranslationFailed(e.message) from e
            except Exception as e:
                raise TranslationFailed(str(e) or type(e).__name__) from e
            return str(res.translated_text)

    def invalidate(self) -> None:
        with self._lock:
            if self._state == TranslationSessionState.INVALIDATED:
                return
            was_ready = self._ready
            self._state = TranslationSessionState.INVALIDATED
            self._ready = False
        if not was_ready:
            return
        try:
            self.provider.release(self.source, self.target)
        except Exception:
            if self.logger is not None:
                self.logger.exception(
                    "translation_release_failed",
                    extra={"source": self.source.code, "target": self.target.code},
                )
