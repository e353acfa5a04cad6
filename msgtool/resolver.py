"""Exact, case-insensitive lookup of requested template ids."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from loguru import logger

from .loader import EntryStore
from .models import CATEGORY_SPECS, Entry

_PREFIXES = sorted((s.prefix for s in CATEGORY_SPECS.values()), key=len, reverse=True)
IDENTIFIER_RE = re.compile(rf"^(?:{'|'.join(_PREFIXES)})[._-]?\d[\w.-]*$", re.IGNORECASE)


def looks_like_identifier(token: str) -> bool:
    """True for tokens shaped like ``rsp1``, ``esc.12`` or ``graf-3``."""
    return bool(IDENTIFIER_RE.match(token.strip()))


@dataclass
class Resolution:
    matched: List[Entry] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)


def resolve_identifiers(tokens: Sequence[str], store: EntryStore) -> Resolution:
    """
    Look every token up in ``store``.

    Matches keep the order tokens were given in; a token repeated in
    any letter case resolves once.  Tokens with no entry are returned
    in ``unmatched`` (also de-duplicated) so the caller can search
    them as keywords.
    """
    res = Resolution()
    seen = set()
    for token in tokens:
        key = token.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        entry = store.get(key)
        if entry is None:
            logger.debug("Identifier {} not found; treating it as a keyword", token)
            res.unmatched.append(token.strip())
        else:
            res.matched.append(entry)
    logger.info("Resolved {} identifier(s), {} unmatched", len(res.matched), len(res.unmatched))
    return res
