from __future__ import annotations

import threading
from typing import Any, Dict, List, Tuple

from .base import PairStatus, TranslationProvider
from speechtranslator.contracts import Language, TranslationRequest, TranslationResult
from speechtranslator.errors import ProviderUnavailable, SessionNotReady


class ArgosTranslationProvider(TranslationProvider):
    """
    Offline translation through installed Argos Translate packages.
    Packages are installed out of band (argospm); a pair without an installed
    package reports UNSUPPORTED.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._prepared: Dict[Tuple[str, str], Any] = {}

    @property
    def name(self) -> str:
        return "argos"

    @staticmethod
    def _installed_languages():
        import argostranslate.translate

        return argostranslate.translate.get_installed_languages()

    def supported_languages(self) -> List[Language]:
        out: List[Language] = []
        seen = set()
        for lang in self._installed_languages():
            code = Language(lang.code)
            if code not in seen:
                seen.add(code)
                out.append(code)
        return out

    def _find_translation(self, source: Language, target: Language):
        installed = self._installed_languages()
        from_lang = next((l for l in installed if Language(l.code) == source), None)
        to_lang = next((l for l in installed if Language(l.code) == target), None)
        if from_lang is None or to_lang is None:
            return None
        return from_lang.get_translation(to_lang)

    def pair_status(self, source: Language, target: Language) -> PairStatus:
        if source == target:
            return PairStatus.UNSUPPORTED
        if self._find_translation(source, target) is None:
            return PairStatus.UNSUPPORTED
        return PairStatus.INSTALLED

    def prepare(self, source: Language, target: Language) -> None:
        key = (source.code, target.code)
        with self._lock:
            if key in self._prepared:
                return
        try:
            translation = self._find_translation(source, target)
        except Exception as e:
            raise ProviderUnavailable(f"Argos lookup failed for {source}->{target}") from e
        if translation is None:
            raise ProviderUnavailable(f"No Argos package installed for {source}->{target}")
        with self._lock:
            self._prepared[key] = translation

    def translate(self, req: TranslationRequest) -> TranslationResult:
        with self._lock:
            translation = self._prepared.get((req.source.code, req.target.code))
        if translation is None:
            raise SessionNotReady(f"Argos pair {req.source}->{req.target} was not prepared")
        out = translation.translate(req.text)
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)

    def release(self, source: Language, target: Language) -> None:
        with self._lock:
            self._prepared.pop((source.code, target.code), None)
