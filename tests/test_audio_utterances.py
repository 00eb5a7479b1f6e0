from __future__ import annotations

import numpy as np
import pytest

from speechtranslator.audio.utterances import UtteranceConfig, iter_utterances
from speechtranslator.audio.vad import EnergyVAD, pcm16_rms, pcm16_to_float32
from speechtranslator.contracts import AudioChunk

SR = 16000
CHUNK_SEC = 0.5


def _pcm(value: int, seconds: float = CHUNK_SEC) -> bytes:
    n = int(SR * seconds)
    return np.full(n, value, dtype="<i2").tobytes()


def _chunks(pattern: str) -> list[AudioChunk]:
    # "S" = speech, "." = silence, one 0.5s chunk each
    out = []
    for i, ch in enumerate(pattern):
        out.append(
            AudioChunk(
                pcm16=_pcm(1000 if ch == "S" else 0),
                sample_rate=SR,
                channels=1,
                start_time=i * CHUNK_SEC,
                duration=CHUNK_SEC,
            )
        )
    return out


def test_pcm16_rms_and_vad() -> None:
    assert pcm16_rms(_pcm(1000)) == pytest.approx(1000.0)
    assert pcm16_rms(b"") == 0.0
    vad = EnergyVAD(rms_threshold=250.0)
    assert vad.is_speech(_pcm(1000))
    assert not vad.is_speech(_pcm(10))
    with pytest.raises(ValueError):
        EnergyVAD(rms_threshold=-1)


def test_pcm16_to_float32_downmixes_stereo() -> None:
    stereo = np.array([16384, 0, -16384, 0], dtype="<i2").tobytes()
    out = pcm16_to_float32(stereo, channels=2)
    assert out.dtype == np.float32
    assert out.tolist() == pytest.approx([0.25, -0.25])


def test_utterance_ends_after_silence_and_excludes_trailing_silence() -> None:
    cfg = UtteranceConfig(silence_chunks=2, min_utter_sec=0.6, max_utter_sec=None)
    utts = list(iter_utterances(_chunks("..SS..S"), EnergyVAD(), cfg))
    assert len(utts) == 1
    assert utts[0].start_time == pytest.approx(1.0)
    assert utts[0].duration == pytest.approx(1.0)


def test_short_utterances_are_dropped() -> None:
    cfg = UtteranceConfig(silence_chunks=1, min_utter_sec=0.6, max_utter_sec=None)
    assert list(iter_utterances(_chunks("S.S."), EnergyVAD(), cfg)) == []


def test_max_utterance_forces_finalize() -> None:
    cfg = UtteranceConfig(silence_chunks=2, min_utter_sec=0.0, max_utter_sec=1.0)
    utts = list(iter_utterances(_chunks("SSSSS"), EnergyVAD(), cfg))
    assert [u.duration for u in utts] == pytest.approx([1.0, 1.0, 0.5])
    assert [u.start_time for u in utts] == pytest.approx([0.0, 1.0, 2.0])


def test_end_of_input_flushes_open_utterance() -> None:
    cfg = UtteranceConfig(silence_chunks=3, min_utter_sec=0.5, max_utter_sec=None)
    utts = list(iter_utterances(_chunks(".SS."), EnergyVAD(), cfg))
    assert len(utts) == 1
    assert utts[0].duration == pytest.approx(1.0)


def test_utterance_config_validation() -> None:
    with pytest.raises(ValueError):
        UtteranceConfig(silence_chunks=0)
    with pytest.raises(ValueError):
        UtteranceConfig(max_utter_sec=0)
