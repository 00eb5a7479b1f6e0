from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from .base import PairStatus, TranslationProvider
from speechtranslator.contracts import Language, TranslationRequest, TranslationResult

DEFAULT_STUB_LANGUAGES = ("en", "ja", "es", "fr", "de")


class StubTranslationProvider(TranslationProvider):
    """Deterministic, test-friendly provider. Every distinct pair of its languages is supported."""

    def __init__(self, languages: Optional[Iterable[str]] = None) -> None:
        self.languages = [Language(code) for code in (languages or DEFAULT_STUB_LANGUAGES)]
        self.prepared: Set[Tuple[str, str]] = set()

    @property
    def name(self) -> str:
        return "stub"

    def supported_languages(self) -> List[Language]:
        return list(self.languages)

    def pair_status(self, source: Language, target: Language) -> PairStatus:
        if source == target or source not in self.languages or target not in self.languages:
            return PairStatus.UNSUPPORTED
        return PairStatus.INSTALLED

    def prepare(self, source: Language, target: Language) -> None:
        self.prepared.add((source.code, target.code))

    def translate(self, req: TranslationRequest) -> TranslationResult:
        out = f"[{req.source}->{req.target}] {req.text}"
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)

    def release(self, source: Language, target: Language) -> None:
        self.prepared.discard((source.code, target.code))
