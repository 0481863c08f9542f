from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[“”’‘]")
_EMAIL_RE = re.compile(r"[A-Za-z0-9_.+-]+@[A-Za-z0-9-]+\.[A-Za-z0-9.-]+")
_PHONE_RE = re.compile(r"\+?\d[\d\s-]{7,}\d")
_FULL_NAME_RE = re.compile(r"\b([A-Z][a-z]+\s+[A-Z][a-z]+)\b")


def strip_accents(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_punctuation(text: str) -> str:
    return _PUNCT_RE.sub("'", text)


def normalize_for_matching(text: str | None) -> str:
    """Lowercase, accent-free, single-spaced text for substring keyword rules."""
    if not text:
        return ""
    cleaned = strip_accents(text.lower())
    cleaned = normalize_punctuation(cleaned)
    return normalize_whitespace(cleaned)


def find_stems(text: str | None, stems: Iterable[str]) -> List[str]:
    """Return the stems that occur in ``text`` (case-insensitive substring match), in table order."""
    haystack = normalize_for_matching(text)
    if not haystack:
        return []
    return [stem for stem in stems if stem in haystack]


def redact_pii(text_value: str) -> str:
    """Redact email addresses, phone numbers, and proper names."""
    if not text_value:
        return text_value
    s = _EMAIL_RE.sub("[REDACTED]", text_value)
    s = _PHONE_RE.sub("[REDACTED]", s)
    # Proper names/capitalized phrases (simplified)
    s = _FULL_NAME_RE.sub("[REDACTED]", s)
    return s


def excerpt(text_value: str | None, limit: int = 200) -> str:
    if not text_value:
        return ""
    flat = normalize_whitespace(text_value)
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3].rstrip() + "..."
