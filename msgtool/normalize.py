"""
Text normalization utilities used by the keyword search.

These helpers perform the query and tag cleaning (unicode
normalization, whitespace collapsing, lowercasing), compound-tag
decomposition, and the optional stemming capability.  Keeping the
normalization logic centralized here ensures keywords and tags are
always treated the same way.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .config import TAG_SEPARATORS_RE
from .errors import StemmingUnavailable

# nltk is optional at runtime; without it matching degrades to substrings.
try:
    from nltk.stem import PorterStemmer  # type: ignore[import-untyped]
except ImportError:
    PorterStemmer = None  # type: ignore


# ---------------------------
# Basic helpers
# ---------------------------

def normalize_unicode(text: str) -> str:
    """
    Normalize weird unicode (fancy quotes, etc.) into a more stable
    form.  NFC keeps things mostly intact but canonicalized.
    """
    if not text:
        return ""
    return unicodedata.normalize("NFC", text)


def normalize_whitespace(text: str) -> str:
    """Collapse all whitespace runs into a single space and strip edges."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def normalize_text(text: str) -> str:
    """Unicode + whitespace cleanup, then lowercase.  Used for keywords and tags alike."""
    if text is None:
        return ""
    return normalize_whitespace(normalize_unicode(str(text))).lower()


def normalize_terms(terms: Iterable[str]) -> List[str]:
    """Normalize, drop empties and de-duplicate while preserving order."""
    out: List[str] = []
    seen = set()
    for term in terms:
        norm = normalize_text(term)
        if norm and norm not in seen:
            seen.add(norm)
            out.append(norm)
    return out


def decompose_tag(tag: str) -> List[str]:
    """
    Split a compound tag into sub-tokens.

    Returns an empty list for tags that have nothing to split, so
    callers can tell a compound match from a plain one.
    """
    parts = [p for p in TAG_SEPARATORS_RE.split(tag) if p]
    return parts if len(parts) > 1 else []


def flatten_tag(text: str) -> str:
    """Replace compound separators with spaces: ``password-reset`` -> ``password reset``."""
    return " ".join(p for p in TAG_SEPARATORS_RE.split(text) if p)


# ---------------------------
# Stemming
# ---------------------------

class TextStemmer:
    """Porter stemmer with caching.  Multi-word phrases are stemmed word by word."""

    def __init__(self) -> None:
        if PorterStemmer is None:
            raise StemmingUnavailable("nltk is not installed")
        self._stemmer = PorterStemmer()
        self._cache: Dict[str, str] = {}

    def stem(self, word: str) -> str:
        if not word:
            return ""
        word = word.lower()
        cached = self._cache.get(word)
        if cached is None:
            cached = " ".join(self._stemmer.stem(w) for w in word.split())
            self._cache[word] = cached
        return cached


def build_stemmer(enabled: bool = True) -> Optional[TextStemmer]:
    """
    Return a stemmer, or None when stemming is disabled by configuration.

    Raises :class:`StemmingUnavailable` when stemming is wanted but nltk
    is not installed.
    """
    if not enabled:
        logger.info("Stemming disabled by configuration")
        return None
    return TextStemmer()
