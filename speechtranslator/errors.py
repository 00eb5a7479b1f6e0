from __future__ import annotations


class SpeechTranslatorError(RuntimeError):
    default_message = "Speech translator error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class PermissionDenied(SpeechTranslatorError):
    default_message = "Permission denied"

    @classmethod
    def recognition(cls) -> "PermissionDenied":
        return cls("Not authorized to recognize speech")

    @classmethod
    def recording(cls) -> "PermissionDenied":
        return cls("Not permitted to record audio")


class RecognizerUnavailable(SpeechTranslatorError):
    default_message = "Recognizer is unavailable"


class UnsupportedPair(SpeechTranslatorError):
    default_message = "Translation pair is not supported"


class SessionNotReady(SpeechTranslatorError):
    default_message = "Translation session is not ready"


class TranslationFailed(SpeechTranslatorError):
    default_message = "Translation failed"


class ProviderUnavailable(SpeechTranslatorError):
    default_message = "Capability provider is unavailable"
