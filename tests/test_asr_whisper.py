from __future__ import annotations

import sys
import types
from dataclasses import dataclass

import numpy as np

from speechtranslator.asr.base import AudioCaptureProvider
from speechtranslator.asr.whisper import FasterWhisperRecognizer
from speechtranslator.audio.utterances import UtteranceConfig
from speechtranslator.audio.vad import EnergyVAD
from speechtranslator.contracts import AudioChunk, Locale, RecognitionResult


@dataclass
class FakeSegment:
    text: str


class FakeModel:
    supported_languages = ["en", "ja", "fr"]

    def __init__(self, texts=("hello",)):
        self.texts = list(texts)
        self.calls: list[dict] = []

    def transcribe(self, audio, **kwargs):
        self.calls.append({"audio": audio, **kwargs})
        text = self.texts.pop(0) if self.texts else ""
        return [FakeSegment(f" {text} ")], None


class FakeAudio(AudioCaptureProvider):
    def __init__(self, chunks):
        self._chunks = chunks

    def request_record_permission(self) -> bool:
        return True

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def chunks(self):
        return iter(self._chunks)


def _chunk(value: int, start: float, sr: int = 16000) -> AudioChunk:
    n = sr // 2
    return AudioChunk(
        pcm16=np.full(n, value, dtype="<i2").tobytes(),
        sample_rate=sr,
        channels=1,
        start_time=start,
        duration=0.5,
    )


def _recognizer(model: FakeModel) -> FasterWhisperRecognizer:
    rec = FasterWhisperRecognizer(
        vad=EnergyVAD(rms_threshold=250.0),
        utterances=UtteranceConfig(silence_chunks=1, min_utter_sec=0.4, max_utter_sec=None),
    )
    rec._model = model
    return rec


def test_supported_locales_come_from_the_model() -> None:
    rec = _recognizer(FakeModel())
    assert rec.supported_locales() == [Locale("en"), Locale("ja"), Locale("fr")]
    assert rec.is_locale_usable(Locale("ja-JP"))
    assert not rec.is_locale_usable(Locale("de-DE"))
    assert rec.request_authorization() is True


def test_transcribe_utterance_passes_float_samples_at_16k() -> None:
    model = FakeModel(texts=["good morning"])
    rec = _recognizer(model)
    text = rec.transcribe_utterance(_chunk(1000, 0.0), "en")
    assert text == "good morning"
    call = model.calls[0]
    assert isinstance(call["audio"], np.ndarray)
    assert call["language"] == "en"
    assert call["vad_filter"] is False


def test_transcribe_utterance_other_rates_go_through_wav(tmp_path) -> None:
    model = FakeModel(texts=["bonjour"])
    rec = _recognizer(model)
    assert rec.transcribe_utterance(_chunk(1000, 0.0, sr=8000), "fr") == "bonjour"
    assert isinstance(model.calls[0]["audio"], str)
    assert model.calls[0]["audio"].endswith(".wav")


def test_stream_yields_one_result_per_utterance() -> None:
    model = FakeModel(texts=["first", "second"])
    rec = _recognizer(model)
    audio = FakeAudio([_chunk(1000, 0.0), _chunk(0, 0.5), _chunk(1000, 1.0), _chunk(0, 1.5)])
    results = list(rec.start_stream(Locale("en-US"), audio))
    assert results == [RecognitionResult(text="first"), RecognitionResult(text="second")]
    assert [c["language"] for c in model.calls] == ["en", "en"]


def test_cancelled_stream_yields_nothing() -> None:
    rec = _recognizer(FakeModel(texts=["first"]))
    stream = rec.start_stream(Locale("en-US"), FakeAudio([_chunk(1000, 0.0), _chunk(0, 0.5)]))
    stream.cancel()
    assert list(stream) == []


def test_model_load_failure_marks_recognizer_unavailable(monkeypatch) -> None:
    def _broken_model(*args, **kwargs):
        raise RuntimeError("no weights")

    monkeypatch.setitem(
        sys.modules,
        "faster_whisper",
        types.SimpleNamespace(WhisperModel=_broken_model),
    )
    rec = FasterWhisperRecognizer(model_size="tiny")
    seen: list[bool] = []
    rec.availability.subscribe(seen.append)

    assert rec.warm_up() is False
    assert rec.is_available is False
    assert seen == [False]
    assert rec.supported_locales() == []
    assert not rec.is_locale_usable(Locale("en-US"))
