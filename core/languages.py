"""Language codes and script-based language detection for titles."""

import re
from collections.abc import Iterable

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES: dict[str, str] = {
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "ja": "Japanese",
    "ko": "Korean",
    "ur": "Urdu",
}

_NAME_TO_CODE: dict[str, str] = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}
_NAME_TO_CODE.update(
    {
        "italian": "it",
        "chinese": "zh",
        "portuguese": "pt",
        "russian": "ru",
        "arabic": "ar",
        "turkish": "tr",
    }
)

# Scripts that unambiguously identify a language
_SCRIPT_DETECTORS: dict[str, re.Pattern] = {
    "hi": re.compile(r"[\u0900-\u097F]"),
    "ja": re.compile(r"[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]"),
    "ko": re.compile(r"[\uAC00-\uD7AF\u1100-\u11FF\u3130-\u318F]"),
    "ur": re.compile(r"[\u0600-\u06FF]"),
}

# Accented letters that point to a single Latin-script language
_ACCENT_DETECTORS: dict[str, re.Pattern] = {
    "de": re.compile(r"[äöß]", re.IGNORECASE),
    "es": re.compile(r"[áíóúñ¿¡]", re.IGNORECASE),
    "fr": re.compile(r"[àâèêëîïôùûÿçœæ]", re.IGNORECASE),
}

# Accented letters used by several of them, most likely language first
_SHARED_ACCENTS: dict[str, tuple[str, ...]] = {
    "é": ("fr", "es"),
    "ü": ("de", "es", "fr"),
}

# Permissive: plain ASCII letters, digits and common title punctuation
_ASCII_ONLY = re.compile(r"^[a-zA-Z0-9\s.,:;!?'\"()&/-]+$")


def to_language_code(language: str) -> str:
    """Map an English language name or code to an ISO-639-1 code.

    Unknown values are lower-cased and passed through.
    """
    value = language.strip().lower()
    return _NAME_TO_CODE.get(value, value)


def normalize_languages(languages: Iterable[str] | None) -> list[str]:
    """Convert names to codes, dropping blanks and duplicates while keeping order."""
    codes: list[str] = []
    for language in languages or []:
        if not language or not language.strip():
            continue
        code = to_language_code(language)
        if code not in codes:
            codes.append(code)
    return codes


def _accent_language(title: str, candidates: Iterable[str]) -> str | None:
    """Latin-script language among ``candidates`` suggested by the title's accents."""
    candidates = list(candidates)
    for code in candidates:
        pattern = _ACCENT_DETECTORS.get(code)
        if pattern and pattern.search(title):
            return code

    lowered = title.lower()
    for letter, codes in _SHARED_ACCENTS.items():
        if letter in lowered:
            for code in codes:
                if code in candidates:
                    return code
    return None


def detect_language(title: str, requested: list[str] | None = None) -> str:
    """Infer the original language of a title from the characters it uses.

    Detection order:
    1. Requested languages with a script test (requested order)
    2. Requested Latin-script languages by accent: letters unique to one
       language first, then letters several languages share
    3. Unambiguous non-Latin scripts of other languages
    4. ASCII-only titles are English, when English is acceptable
    5. Accented Latin letters, only when no language was requested
    6. Default: first requested language, else "en"

    The ASCII rule runs late because it also matches romanized titles of
    non-English works, which the model often emits.
    """
    requested = requested or []

    for code in requested:
        pattern = _SCRIPT_DETECTORS.get(code)
        if pattern and pattern.search(title):
            return code

    accent = _accent_language(title, requested)
    if accent:
        return accent

    for code, pattern in _SCRIPT_DETECTORS.items():
        if code not in requested and pattern.search(title):
            return code

    if _ASCII_ONLY.match(title) and (not requested or "en" in requested):
        return "en"

    if not requested:
        accent = _accent_language(title, _ACCENT_DETECTORS)
        if accent:
            return accent

    return requested[0] if requested else DEFAULT_LANGUAGE
