"""
Result aggregation for one invocation.

A session merges the two ways of asking for templates:

* identifier hits are a direct request.  They are always shown in
  full, in the order asked, whatever the limit;
* keyword hits are ranked suggestions.  They fill whatever budget the
  identifier hits leave (``max(0, limit - len(identifier_hits))``) and
  never repeat an entry already requested by id.

Unmatched identifier-shaped tokens are searched as keywords, so
``msg rsp1 payment`` works as "id + keyword" in one call.  With no
ids and no keywords the session runs in list mode: every entry in the
active categories, unranked, in id order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from .config import EffectiveConfig
from .loader import EntryStore
from .models import Entry, QueryDescriptor
from .resolver import resolve_identifiers
from .search import KeywordSearch, ScoredEntry


@dataclass
class SessionResult:
    entries: List[Entry] = field(default_factory=list)
    identifier_hits: List[Entry] = field(default_factory=list)
    keyword_hits: List[ScoredEntry] = field(default_factory=list)
    unmatched_identifiers: List[str] = field(default_factory=list)
    effective_limit: Optional[int] = None
    list_mode: bool = False

    @property
    def empty(self) -> bool:
        return not self.entries


class Session:
    def __init__(self, store: EntryStore, search: KeywordSearch) -> None:
        self.store = store
        self.search = search

    def run(self, query: QueryDescriptor, config: EffectiveConfig) -> SessionResult:
        if query.list_mode:
            return self._list(query)

        limit = config.resolve_limit(query.limit)
        resolution = resolve_identifiers(query.identifiers, self.store)
        id_hits = resolution.matched

        keywords = list(resolution.unmatched) + list(query.keywords)
        remaining = max(0, limit - len(id_hits))
        requested = {e.key for e in id_hits}
        candidates = [e for e in self.store if e.key not in requested]
        kw_hits = self.search.search(keywords, candidates, limit=remaining) if keywords else []

        entries = id_hits + [h.entry for h in kw_hits]
        logger.info(
            "Session: {} id hit(s) + {} keyword hit(s) (limit={}, remaining={})",
            len(id_hits),
            len(kw_hits),
            limit,
            remaining,
        )
        return SessionResult(
            entries=entries,
            identifier_hits=id_hits,
            keyword_hits=kw_hits,
            unmatched_identifiers=resolution.unmatched,
            effective_limit=limit,
        )

    def _list(self, query: QueryDescriptor) -> SessionResult:
        entries = self.store.listing()
        if query.limit is not None:
            entries = entries[: max(0, query.limit)]
        logger.info("List mode: {} entr(ies)", len(entries))
        return SessionResult(entries=entries, effective_limit=query.limit, list_mode=True)
