from __future__ import annotations

import pytest

from speechtranslator.contracts import Language, TranslationRequest
from speechtranslator.nlp.translator.argos import ArgosTranslationProvider
from speechtranslator.nlp.translator.base import PairStatus
from speechtranslator.nlp.translator.factory import get_translation_provider
from speechtranslator.nlp.translator.stub import StubTranslationProvider


def test_stub_translator_is_deterministic() -> None:
    tr = StubTranslationProvider()
    req = TranslationRequest(text="Hello world.", source=Language("en"), target=Language("ja"))
    res = tr.translate(req)
    assert res.source_text == "Hello world."
    assert res.translated_text == "[en->ja] Hello world."
    assert res.provider == "stub"


def test_stub_pair_status() -> None:
    tr = StubTranslationProvider(languages=["en", "fr"])
    assert tr.pair_status(Language("en"), Language("fr")) == PairStatus.INSTALLED
    assert tr.pair_status(Language("en"), Language("en")) == PairStatus.UNSUPPORTED
    assert tr.pair_status(Language("en"), Language("ja")) == PairStatus.UNSUPPORTED


def test_factory_selects_provider(monkeypatch) -> None:
    assert isinstance(get_translation_provider("stub"), StubTranslationProvider)
    assert isinstance(get_translation_provider(" ARGOS "), ArgosTranslationProvider)

    monkeypatch.setenv("SPEECHTRANSLATOR_TRANSLATOR", "stub")
    assert isinstance(get_translation_provider(), StubTranslationProvider)

    with pytest.raises(ValueError):
        get_translation_provider("google")
