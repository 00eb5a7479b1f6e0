from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from speechtranslator.asr.base import RecognitionProvider
from speechtranslator.contracts import Language, Locale, TranslationPairSupport
from speechtranslator.logs import log_event
from speechtranslator.nlp.translator.base import PairStatus, TranslationProvider


@dataclass(frozen=True)
class LocaleSupport:
    locale: Locale
    translatable: bool

    @property
    def label(self) -> str:
        if self.translatable:
            return "Supported by both Speech and Translation."
        return "Supported only by Speech."


class SupportedLanguages:
    """Restartable view over the provider's current target languages."""

    def __init__(self, oracle: "CapabilityOracle") -> None:
        self._oracle = oracle

    def __iter__(self) -> Iterator[Language]:
        # Materialised first: a catalog that fails partway yields nothing.
        try:
            languages = list(self._oracle.translation.supported_languages())
        except Exception as e:
            log_event(self._oracle.logger, logging.WARNING, "supported_languages_failed", error=str(e))
            return
        seen = set()
        for language in languages:
            if language in seen:
                continue
            seen.add(language)
            yield language


class CapabilityOracle:
    """
    Read-only capability checks. Every query is fail-closed: provider errors
    and unknown answers come back as False or as an empty sequence.
    """

    def __init__(
        self,
        *,
        recognition: RecognitionProvider,
        translation: TranslationProvider,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.recognition = recognition
        self.translation = translation
        self.logger = logger

    def is_pair_supported(self, source: Language, target: Language) -> bool:
        try:
            status = self.translation.pair_status(source, target)
        except Exception as e:
            log_event(
                self.logger,
                logging.WARNING,
                "pair_status_failed",
                source=source.code,
                target=target.code,
                error=str(e),
            )
            return False
        return isinstance(status, PairStatus) and status.usable

    def check_pair(self, source: Language, target: Language) -> TranslationPairSupport:
        return TranslationPairSupport(
            source=source,
            target=target,
            supported=self.is_pair_supported(source, target),
        )

    def supported_target_languages(self) -> SupportedLanguages:
        return SupportedLanguages(self)

    def is_locale_usable(self, locale: Locale) -> bool:
        try:
            return bool(self.recognition.is_locale_usable(locale))
        except Exception as e:
            log_event(self.logger, logging.WARNING, "locale_check_failed", locale=str(locale), error=str(e))
            return False

    def supported_input_locales(self) -> List[Locale]:
        try:
            locales = list(self.recognition.supported_locales())
        except Exception as e:
            log_event(self.logger, logging.WARNING, "supported_locales_failed", error=str(e))
            return []
        return sorted(set(locales), key=lambda loc: loc.identifier)

    def support_report(self) -> List[LocaleSupport]:
        translatable = set(self.supported_target_languages())
        return [
            LocaleSupport(locale=locale, translatable=locale.language in translatable)
            for locale in self.supported_input_locales()
        ]
