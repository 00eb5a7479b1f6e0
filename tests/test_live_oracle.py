from __future__ import annotations

from typing import List

from speechtranslator.asr.base import RecognitionProvider
from speechtranslator.contracts import Language, Locale
from speechtranslator.live.oracle import CapabilityOracle
from speechtranslator.nlp.translator.base import PairStatus
from speechtranslator.nlp.translator.stub import StubTranslationProvider


class FakeRecognizer(RecognitionProvider):
    def __init__(self, locales=("en-US", "ja-JP", "en-GB"), available=True, fail=False):
        super().__init__()
        self.locales = [Locale(x) for x in locales]
        self.available = available
        self.fail = fail

    @property
    def name(self) -> str:
        return "fake"

    @property
    def is_available(self) -> bool:
        return self.available

    def request_authorization(self) -> bool:
        return True

    def supported_locales(self) -> List[Locale]:
        if self.fail:
            raise RuntimeError("engine offline")
        return list(self.locales)

    def start_stream(self, locale, audio):
        raise NotImplementedError


class FlakyTranslator(StubTranslationProvider):
    def __init__(self, languages=None):
        super().__init__(languages)
        self.fail = False

    def supported_languages(self):
        if self.fail:
            raise RuntimeError("catalog offline")
        return super().supported_languages()

    def pair_status(self, source, target):
        if self.fail:
            raise RuntimeError("catalog offline")
        return super().pair_status(source, target)


class WeirdTranslator(StubTranslationProvider):
    def pair_status(self, source, target):
        return "maybe"


class LazyCatalogTranslator(StubTranslationProvider):
    def supported_languages(self):
        yield Language("en")
        raise RuntimeError("catalog went away")


def _oracle(recognizer=None, translator=None) -> CapabilityOracle:
    return CapabilityOracle(
        recognition=recognizer or FakeRecognizer(),
        translation=translator or FlakyTranslator(),
    )


def test_pair_support_follows_provider() -> None:
    oracle = _oracle()
    assert oracle.is_pair_supported(Language("en"), Language("ja")) is True
    assert oracle.is_pair_supported(Language("en"), Language("en")) is False
    assert oracle.is_pair_supported(Language("en"), Language("xx")) is False

    support = oracle.check_pair(Language("en-US"), Language("ja"))
    assert support.source == Language("en")
    assert support.supported is True


def test_pair_support_fails_closed() -> None:
    translator = FlakyTranslator()
    translator.fail = True
    oracle = _oracle(translator=translator)
    assert oracle.is_pair_supported(Language("en"), Language("ja")) is False
    assert oracle.check_pair(Language("en"), Language("ja")).supported is False
    assert list(oracle.supported_target_languages()) == []

    assert _oracle(translator=WeirdTranslator()).is_pair_supported(Language("en"), Language("ja")) is False


def test_supported_target_languages_is_restartable_and_live() -> None:
    translator = FlakyTranslator(languages=["en", "ja"])
    oracle = _oracle(translator=translator)
    langs = oracle.supported_target_languages()

    assert list(langs) == [Language("en"), Language("ja")]
    assert list(langs) == [Language("en"), Language("ja")]

    translator.languages.append(Language("de"))
    assert Language("de") in list(langs)


def test_supported_target_languages_dedupes() -> None:
    oracle = _oracle(translator=FlakyTranslator(languages=["en", "en-US", "ja"]))
    assert list(oracle.supported_target_languages()) == [Language("en"), Language("ja")]


def test_supported_target_languages_lazy_catalog_failure_yields_nothing() -> None:
    oracle = _oracle(translator=LazyCatalogTranslator())
    assert list(oracle.supported_target_languages()) == []
    assert Language("en") not in oracle.supported_target_languages()


def test_supported_input_locales_sorted_and_fail_closed() -> None:
    oracle = _oracle(recognizer=FakeRecognizer(locales=("ja-JP", "en-US", "en_US", "en-GB")))
    assert [loc.identifier for loc in oracle.supported_input_locales()] == ["en-GB", "en-US", "ja-JP"]

    assert _oracle(recognizer=FakeRecognizer(fail=True)).supported_input_locales() == []


def test_is_locale_usable() -> None:
    oracle = _oracle()
    assert oracle.is_locale_usable(Locale("en-AU")) is True
    assert oracle.is_locale_usable(Locale("fr-FR")) is False
    assert _oracle(recognizer=FakeRecognizer(available=False)).is_locale_usable(Locale("en-US")) is False
    assert _oracle(recognizer=FakeRecognizer(fail=True)).is_locale_usable(Locale("en-US")) is False


def test_support_report_labels() -> None:
    oracle = _oracle(
        recognizer=FakeRecognizer(locales=("en-US", "ko-KR")),
        translator=FlakyTranslator(languages=["en", "ja"]),
    )
    report = {entry.locale.identifier: entry for entry in oracle.support_report()}
    assert report["en-US"].translatable is True
    assert report["en-US"].label == "Supported by both Speech and Translation."
    assert report["ko-KR"].translatable is False
    assert report["ko-KR"].label == "Supported only by Speech."


def test_pair_status_usable_flags() -> None:
    assert PairStatus.INSTALLED.usable
    assert PairStatus.SUPPORTED.usable
    assert not PairStatus.UNSUPPORTED.usable
