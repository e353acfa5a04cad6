"""
Tag-based keyword search.

Every keyword must hit some tag of an entry (AND across keywords).
A keyword hits a tag in one of three modes, strongest first:

* exact: keyword and tag are equal after normalization;
* stemmed: both reduce to the same root via the stemmer.  Without a
  stemmer this degrades to the keyword being a substring of the tag,
  so ``run`` finds ``running`` but ``running`` does not find ``run``;
* decomposed: the tag is compound (``ai-studio``) and one of its
  parts equals, or stems like, the keyword.

An entry scores the sum of each keyword's best mode weight.  Results
are ordered by score, then by ascending id, and cut to the limit.

Example::

    from msgtool.search import KeywordSearch
    engine = KeywordSearch(stemmer=None)
    for hit in engine.search(["billing"], store, limit=5):
        print(hit.entry.id, hit.score)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from .config import DECOMPOSED_WEIGHT, EXACT_WEIGHT, STEM_WEIGHT
from .models import Entry
from .normalize import decompose_tag, flatten_tag, normalize_terms, normalize_text


class Stemmer(Protocol):
    def stem(self, word: str) -> str: ...


class MatchMode(IntEnum):
    """Match modes; the value is the weight a keyword contributes."""

    DECOMPOSED = DECOMPOSED_WEIGHT
    STEMMED = STEM_WEIGHT
    EXACT = EXACT_WEIGHT


@dataclass(frozen=True)
class ScoredEntry:
    entry: Entry
    score: int
    modes: Tuple[Tuple[str, MatchMode], ...] = ()

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (-self.score, self.entry.key)


class KeywordSearch:
    def __init__(self, stemmer: Optional[Stemmer] = None) -> None:
        self.stemmer = stemmer

    @property
    def degraded(self) -> bool:
        """True when stemmed matching has fallen back to substring containment."""
        return self.stemmer is None

    def _stem(self, text: str) -> str:
        return self.stemmer.stem(text) if self.stemmer is not None else text

    def _mode(self, keyword: str, tag: str) -> Optional[MatchMode]:
        # both arguments already normalized
        if keyword == tag:
            return MatchMode.EXACT
        # "password reset" and "password-reset" compare as the same phrase
        flat_kw, flat_tag = flatten_tag(keyword), flatten_tag(tag)
        if flat_kw:
            if self.stemmer is None:
                if flat_kw in flat_tag:
                    return MatchMode.STEMMED
            elif self._stem(flat_kw) == self._stem(flat_tag):
                return MatchMode.STEMMED
        for part in decompose_tag(tag):
            if part == keyword:
                return MatchMode.DECOMPOSED
            if self.stemmer is not None and self._stem(part) == self._stem(keyword):
                return MatchMode.DECOMPOSED
        return None

    def match_mode(self, keyword: str, tag: str) -> Optional[MatchMode]:
        """Best mode in which ``keyword`` hits ``tag``, or None."""
        keyword, tag = normalize_text(keyword), normalize_text(tag)
        if not keyword or not tag:
            return None
        return self._mode(keyword, tag)

    def score_entry(self, keywords: Sequence[str], entry: Entry) -> Optional[ScoredEntry]:
        """
        Score ``entry`` against already-normalized ``keywords``.

        Returns None as soon as one keyword hits no tag.
        """
        if not keywords:
            return None
        tags = normalize_terms(entry.tags)
        total = 0
        modes: List[Tuple[str, MatchMode]] = []
        for kw in keywords:
            best: Optional[MatchMode] = None
            for tag in tags:
                mode = self._mode(kw, tag)
                if mode is not None and (best is None or mode > best):
                    best = mode
                    if best is MatchMode.EXACT:
                        break
            if best is None:
                return None
            total += int(best)
            modes.append((kw, best))
        return ScoredEntry(entry=entry, score=total, modes=tuple(modes))

    def search(self, keywords: Iterable[str], entries: Iterable[Entry], limit: Optional[int] = None) -> List[ScoredEntry]:
        """Rank every entry that all ``keywords`` hit; an empty query matches nothing."""
        terms = normalize_terms(keywords)
        if not terms:
            return []

        hits: List[ScoredEntry] = []
        for entry in entries:
            scored = self.score_entry(terms, entry)
            if scored is not None:
                hits.append(scored)
        hits.sort(key=lambda h: h.sort_key)

        for hit in hits:
            logger.debug(
                "{} score={} ({})",
                hit.entry.id,
                hit.score,
                ", ".join(f"{kw}:{mode.name.lower()}" for kw, mode in hit.modes),
            )
        logger.info("Keyword search {} matched {} entr(ies)", terms, len(hits))

        if limit is not None:
            hits = hits[: max(0, limit)]
        return hits
