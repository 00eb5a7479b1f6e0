from __future__ import annotations
import os
from .base import TranslationProvider
from .argos import ArgosTranslationProvider
from .stub import StubTranslationProvider


def get_translation_provider(provider: str | None = None) -> TranslationProvider:
    provider = (provider or os.getenv("SPEECHTRANSLATOR_TRANSLATOR", "argos")).lower().strip()

    if provider == "argos":
        return ArgosTranslationProvider()
    if provider == "stub":
        return StubTranslationProvider()

    raise ValueError(f"Unknown translator provider: {provider}")
