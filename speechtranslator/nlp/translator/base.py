from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from speechtranslator.contracts import Language, TranslationRequest, TranslationResult


class PairStatus(str, Enum):
    INSTALLED = "installed"
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"

    @property
    def usable(self) -> bool:
        return self in (PairStatus.INSTALLED, PairStatus.SUPPORTED)


class TranslationProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def supported_languages(self) -> List[Language]: ...

    @abstractmethod
    def pair_status(self, source: Language, target: Language) -> PairStatus: ...

    @abstractmethod
    def prepare(self, source: Language, target: Language) -> None:
        """Warm up the pair so translate() can run without further setup."""
        raise NotImplementedError

    @abstractmethod
    def translate(self, req: TranslationRequest) -> TranslationResult: ...

    def release(self, source: Language, target: Language) -> None:
        return None
