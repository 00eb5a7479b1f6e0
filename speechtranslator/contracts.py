from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


def base_language_code(identifier: str) -> str:
    """Return the primary language subtag of an identifier ("en-AU" -> "en")."""
    text = str(identifier or "").strip().replace("_", "-")
    return text.split("-", 1)[0].lower()


@dataclass(frozen=True)
class Language:
    code: str

    def __post_init__(self) -> None:
        code = base_language_code(self.code)
        if not code:
            raise ValueError("language code must not be empty")
        object.__setattr__(self, "code", code)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class Locale:
    """
    Region-qualified identifier used to pick a recognition model.
    Separators are normalised to "-", so "en_US" and "en-US" compare equal.
    """
    identifier: str

    def __post_init__(self) -> None:
        ident = str(self.identifier or "").strip().replace("_", "-")
        parts = ident.split("-")
        if not parts[0]:
            raise ValueError(f"locale identifier needs a language subtag: {self.identifier!r}")
        parts[0] = parts[0].lower()
        object.__setattr__(self, "identifier", "-".join(parts))

    @property
    def language(self) -> Language:
        return Language(self.identifier)

    @property
    def region(self) -> Optional[str]:
        for part in self.identifier.split("-")[1:]:
            if len(part) == 2 and part.isalpha():
                return part.upper()
            if len(part) == 3 and part.isdigit():
                return part
        return None

    def __str__(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio chunk captured from a live source (e.g., microphone).
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int
    start_time: float  # seconds since capture start
    duration: float    # seconds


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source: Language
    target: Language


@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str


@dataclass(frozen=True)
class RecognitionResult:
    text: str
    is_final: bool = False  # final ends the recognition task


@dataclass(frozen=True)
class RecognitionState:
    transcript: str = ""
    is_available: bool = False


@dataclass(frozen=True)
class TranslationPairSupport:
    source: Language
    target: Language
    supported: bool


@dataclass(frozen=True)
class PipelineState:
    source_text: str = ""
    target_text: str = ""
    translation_enabled: bool = False
    recording: bool = False
    last_error: Optional[str] = None
