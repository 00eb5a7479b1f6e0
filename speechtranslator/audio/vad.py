from __future__ import annotations

import numpy as np


def pcm16_to_float32(pcm16: bytes, channels: int = 1) -> np.ndarray:
    """Decode little-endian int16 PCM into mono float32 samples in [-1, 1]."""
    samples = np.frombuffer(pcm16, dtype="<i2")
    if channels > 1 and samples.size:
        usable = samples.size - (samples.size % channels)
        samples = samples[:usable].reshape(-1, channels).mean(axis=1)
    return samples.astype(np.float32) / 32768.0


def pcm16_rms(pcm16: bytes) -> float:
    """Return RMS energy for little-endian int16 PCM bytes."""
    if len(pcm16) < 2:
        return 0.0
    samples = np.frombuffer(pcm16[: len(pcm16) - (len(pcm16) % 2)], dtype="<i2").astype(np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples * samples)))


class EnergyVAD:
    def __init__(self, rms_threshold: float = 250.0) -> None:
        if rms_threshold < 0:
            raise ValueError("rms_threshold must be >= 0")
        self.rms_threshold = float(rms_threshold)

    def is_speech(self, pcm16: bytes) -> bool:
        return pcm16_rms(pcm16) >= self.rms_threshold
