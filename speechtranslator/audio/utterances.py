from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from speechtranslator.audio.vad import EnergyVAD
from speechtranslator.contracts import AudioChunk


@dataclass(frozen=True)
class UtteranceConfig:
    silence_chunks: int = 2        # finalize after this many non-speech chunks
    min_utter_sec: float = 0.6     # drop utterances shorter than this
    max_utter_sec: Optional[float] = 6.0  # force finalize while continuously speaking

    def __post_init__(self) -> None:
        if self.silence_chunks <= 0:
            raise ValueError("silence_chunks must be > 0")
        if self.min_utter_sec < 0:
            raise ValueError("min_utter_sec must be >= 0")
        if self.max_utter_sec is not None and self.max_utter_sec <= 0:
            raise ValueError("max_utter_sec must be > 0 when set")


def _duration_from_pcm16(pcm16: bytes, sample_rate: int, channels: int) -> float:
    bytes_per_second = sample_rate * channels * 2
    if bytes_per_second <= 0:
        return 0.0
    return len(pcm16) / float(bytes_per_second)


class _Utterance:
    def __init__(self, first: AudioChunk) -> None:
        self.t0 = float(first.start_time)
        self.sample_rate = int(first.sample_rate)
        self.channels = int(first.channels)
        self.parts: list[bytes] = []
        self.size = 0
        self.trailing_silence = 0

    def append(self, pcm16: bytes) -> None:
        self.parts.append(pcm16)
        self.size += len(pcm16)

    @property
    def seconds(self) -> float:
        return self.size / float(self.sample_rate * self.channels * 2)

    def to_chunk(self) -> AudioChunk:
        pcm16 = b"".join(self.parts)
        return AudioChunk(
            pcm16=pcm16,
            sample_rate=self.sample_rate,
            channels=self.channels,
            start_time=self.t0,
            duration=_duration_from_pcm16(pcm16, self.sample_rate, self.channels),
        )


def iter_utterances(
    chunks: Iterable[AudioChunk],
    vad: EnergyVAD,
    cfg: UtteranceConfig = UtteranceConfig(),
) -> Iterator[AudioChunk]:
    """
    Group fixed-size capture chunks into utterances using an energy VAD.
    Trailing silence chunks stay out of the emitted utterance.
    """
    current: Optional[_Utterance] = None

    def _finish(utt: _Utterance) -> Optional[AudioChunk]:
        if utt.seconds < cfg.min_utter_sec or not utt.parts:
            return None
        return utt.to_chunk()

    for chunk in chunks:
        if vad.is_speech(chunk.pcm16):
            if current is None:
                current = _Utterance(chunk)
            current.append(chunk.pcm16)
            current.trailing_silence = 0
            if cfg.max_utter_sec is not None and current.seconds >= cfg.max_utter_sec:
                out = _finish(current)
                current = None
                if out is not None:
                    yield out
            continue

        if current is None:
            continue
        current.trailing_silence += 1
        if current.trailing_silence >= cfg.silence_chunks:
            out = _finish(current)
            current = None
            if out is not None:
                yield out

    if current is not None:
        out = _finish(current)
        if out is not None:
            yield out
