from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterator, List

from speechtranslator.contracts import AudioChunk, Locale, RecognitionResult
from speechtranslator.signals import Signal


class AudioCaptureProvider(ABC):
    @abstractmethod
    def request_record_permission(self) -> bool: ...

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def chunks(self) -> Iterator[AudioChunk]:
        """Yield captured audio until stop() is called."""
        raise NotImplementedError


class RecognitionStream(ABC):
    """
    Live recognition task. Iterating yields results in engine order; the
    iteration ends when the task finishes or cancel() is called.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[RecognitionResult]: ...

    @abstractmethod
    def cancel(self) -> None: ...


class RecognitionProvider(ABC):
    def __init__(self) -> None:
        self.availability: Signal[bool] = Signal("recognizer.availability")

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    def request_authorization(self) -> bool: ...

    @abstractmethod
    def supported_locales(self) -> List[Locale]: ...

    def is_locale_usable(self, locale: Locale) -> bool:
        if not self.is_available:
            return False
        codes = {loc.language for loc in self.supported_locales()}
        return locale.language in codes

    @abstractmethod
    def start_stream(self, locale: Locale, audio: AudioCaptureProvider) -> RecognitionStream: ...
