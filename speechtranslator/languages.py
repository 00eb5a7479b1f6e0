"""
Display names for language identifiers.
"""
from __future__ import annotations

from speechtranslator.contracts import Language, Locale, base_language_code

LANGUAGE_NAMES: dict[str, str] = {
    "ar": "Arabic",
    "bg": "Bulgarian",
    "ca": "Catalan",
    "cs": "Czech",
    "da": "Danish",
    "de": "German",
    "el": "Greek",
    "en": "English",
    "es": "Spanish",
    "et": "Estonian",
    "fa": "Persian",
    "fi": "Finnish",
    "fr": "French",
    "he": "Hebrew",
    "hi": "Hindi",
    "hr": "Croatian",
    "hu": "Hungarian",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "ms": "Malay",
    "nl": "Dutch",
    "no": "Norwegian",
    "pl": "Polish",
    "pt": "Portuguese",
    "ro": "Romanian",
    "ru": "Russian",
    "sk": "Slovak",
    "sl": "Slovenian",
    "sr": "Serbian",
    "sv": "Swedish",
    "th": "Thai",
    "tl": "Tagalog",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "ur": "Urdu",
    "vi": "Vietnamese",
    "zh": "Chinese",
}


def describe_language(identifier: str | Language | Locale) -> str:
    """Readable name for a language or locale identifier ("en-AU" -> "English")."""
    code = base_language_code(str(identifier))
    name = LANGUAGE_NAMES.get(code)
    if name:
        return name
    return code.upper()


def describe_locale(locale: Locale) -> str:
    name = describe_language(locale)
    region = locale.region
    if region:
        return f"{name} ({region})"
    return name
