"""
Entry store: load, validate and merge template sources.

Each configured source is a JSON array of records.  Records are
validated one at a time into :class:`~msgtool.models.Entry` objects;
a bad record is skipped, a bad source is skipped, and only a corpus
with no surviving entries is fatal.  Sources are read on a small
thread pool but merged in plan order (base files in category-filter
order, then custom files by name), so the first-loaded entry always
wins an id collision.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .config import MAX_LOAD_WORKERS, AppPaths
from .errors import EmptyCorpusError, LoadError, ValidationError
from .models import CONTENT_FIELDS, Category, Entry, make_content

REQUIRED_FIELDS = ("id", "description", "tags")


@dataclass(frozen=True)
class SourceFile:
    path: Path
    category: Optional[Category]  # None for custom sources (any category)
    custom: bool = False


@dataclass
class SourceResult:
    source: SourceFile
    entries: List[Entry] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    failure: Optional[LoadError] = None


@dataclass
class LoadReport:
    sources_loaded: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


# ---------------------------
# Record validation
# ---------------------------

def entry_from_record(record: object, source: Path, position: int, expected: Optional[Category] = None) -> Entry:
    """
    Convert one raw record into an :class:`Entry`.

    Raises :class:`ValidationError` when required fields are missing,
    when the record does not carry exactly one recognized content
    field, or when the content belongs to another category than the
    source file.
    """
    if not isinstance(record, dict):
        raise ValidationError(source, position, "record is not an object")
    record_id = record.get("id") if isinstance(record.get("id"), str) else None

    missing = [f for f in REQUIRED_FIELDS if f not in record]
    if missing:
        raise ValidationError(source, position, f"missing required field(s): {', '.join(missing)}", record_id)

    present = [f for f in CONTENT_FIELDS if f in record]
    if len(present) != 1:
        reason = "no content field" if not present else f"several content fields: {', '.join(present)}"
        raise ValidationError(source, position, reason, record_id)

    content_field = present[0]
    category = CONTENT_FIELDS[content_field]
    if expected is not None and category is not expected:
        raise ValidationError(
            source,
            position,
            f"content field {content_field!r} belongs to {category.spec.label}, not {expected.spec.label}",
            record_id,
        )

    value = record[content_field]
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(source, position, f"{content_field!r} must be a non-empty string", record_id)

    try:
        return Entry(
            id=record["id"],
            description=record["description"],
            tags=record["tags"],
            category=category,
            content=make_content(category, value),
        )
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(source, position, problems, record_id) from e


def load_source(source: SourceFile) -> SourceResult:
    """Parse one source file.  A structurally invalid file fails as a whole."""
    result = SourceResult(source=source)
    path = source.path
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        result.failure = LoadError(path, f"unreadable ({e.strerror or e})")
        return result
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        result.failure = LoadError(path, f"not valid JSON ({e})")
        return result

    if not isinstance(raw, list):
        result.failure = LoadError(path, "top level must be a JSON array")
        return result

    for position, record in enumerate(raw, 1):
        try:
            result.entries.append(entry_from_record(record, path, position, source.category))
        except ValidationError as e:
            result.errors.append(e)
    return result


# ---------------------------
# Store
# ---------------------------

class EntryStore:
    """Read-only, case-insensitive id -> Entry lookup in load order."""

    def __init__(self, entries: Sequence[Entry]) -> None:
        self._by_key: Dict[str, Entry] = {}
        for entry in entries:
            if entry.key in self._by_key:
                raise ValueError(f"duplicate entry id {entry.id!r}")
            self._by_key[entry.key] = entry
        self._entries: Tuple[Entry, ...] = tuple(self._by_key.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return isinstance(entry_id, str) and entry_id.strip().lower() in self._by_key

    def get(self, entry_id: str) -> Optional[Entry]:
        return self._by_key.get(entry_id.strip().lower())

    def by_category(self, category: Category) -> List[Entry]:
        return [e for e in self._entries if e.category is category]

    def listing(self) -> List[Entry]:
        """Every entry in ascending id order."""
        return sorted(self._entries, key=lambda e: e.key)


def plan_sources(paths: AppPaths, categories: Sequence[Category], report: LoadReport) -> List[SourceFile]:
    """Base files for the active categories, then all custom files by name."""
    plan: List[SourceFile] = []
    for cat in categories:
        path = paths.base_sources_dir / cat.spec.filename
        if path.is_file():
            plan.append(SourceFile(path=path, category=cat))
        else:
            report.warn(f"Base source for {cat.spec.label} not found: {path}")

    custom_dir = paths.custom_sources_dir
    if custom_dir.is_dir():
        for path in sorted(custom_dir.glob("*.json")):
            plan.append(SourceFile(path=path, category=None, custom=True))
    return plan


def merge_results(
    results: Sequence[SourceResult],
    categories: Sequence[Category],
    report: LoadReport,
) -> List[Entry]:
    """Merge per-source results in order; the first entry loaded for an id wins."""
    active = set(categories)
    merged: List[Entry] = []
    owners: Dict[str, Path] = {}

    for res in results:
        if res.failure is not None:
            report.warn(f"Skipped source {res.failure}")
            continue
        report.sources_loaded.append(res.source.path)
        for err in res.errors:
            report.warn(f"Skipped {err}")
        for entry in res.entries:
            if entry.category not in active:
                continue
            if entry.key in owners:
                report.warn(
                    f"Duplicate id {entry.id!r} in {res.source.path.name} dropped; "
                    f"already loaded from {owners[entry.key].name}"
                )
                continue
            owners[entry.key] = res.source.path
            merged.append(entry)
    return merged


def build_store(paths: AppPaths, categories: Sequence[Category], report: Optional[LoadReport] = None) -> Tuple[EntryStore, LoadReport]:
    """
    Load every planned source and build the :class:`EntryStore`.

    Raises :class:`EmptyCorpusError` if no valid entry survives.
    """
    report = report if report is not None else LoadReport()
    plan = plan_sources(paths, categories, report)
    logger.info("Loading {} source file(s) for {}", len(plan), [c.value for c in categories])

    results: List[SourceResult] = []
    if plan:
        workers = min(MAX_LOAD_WORKERS, len(plan))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # map() yields in submission order regardless of completion order
            results = list(pool.map(load_source, plan))

    entries = merge_results(results, categories, report)
    if not entries:
        raise EmptyCorpusError(
            "no valid entries loaded for " + ", ".join(c.spec.label for c in categories)
        )
    store = EntryStore(entries)
    logger.info("Entry store built with {} entries from {} source(s)", len(store), len(report.sources_loaded))
    for cat in categories:
        logger.debug("  {}: {} entr(ies)", cat.spec.label, len(store.by_category(cat)))
    return store, report
