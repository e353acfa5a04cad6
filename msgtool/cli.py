"""
Command-line dispatcher for ``msg``.

    msg [flags] [identifier|keyword ...] [limit]

Tokens shaped like a template id (``rsp1``, ``esc.12``) are looked up
directly; everything else is a keyword.  A trailing bare integer
overrides ``max_display_results``.  With no tokens at all every entry
in the active categories is listed.

Exit codes: 0 on success (no matches included), 1 on a fatal error,
2 when the run completed but something was skipped or degraded.
"""

from __future__ import annotations

import argparse
import re
import sys
from typing import List, Optional, Sequence

from loguru import logger

from . import __version__
from .config import EXIT_FATAL, EXIT_OK, EXIT_WARNINGS, AppPaths, EffectiveConfig, default_paths, load_config
from .errors import ConfigError, EmptyCorpusError, RendererUnavailable, StemmingUnavailable
from .loader import LoadReport, build_store
from .logging import configure_logging
from .models import CATEGORY_ORDER, QueryDescriptor
from .normalize import build_stemmer
from .render import build_renderer, render_raw
from .resolver import looks_like_identifier
from .search import KeywordSearch
from .session import Session

LIMIT_RE = re.compile(r"^\d+$")

_AUTO = object()


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        # keep exit code 2 reserved for "completed with warnings"
        self.print_usage(sys.stderr)
        self.exit(EXIT_FATAL, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    ap = _Parser(
        prog="msg",
        description="Fetch support message templates by id or keyword.",
    )
    for cat in CATEGORY_ORDER:
        spec = cat.spec
        ap.add_argument(
            f"-{spec.label[0].lower()}",
            f"--{cat.value}",
            dest="categories",
            action="append_const",
            const=cat,
            help=f"search {spec.label} templates ({spec.filename})",
        )
    ap.add_argument("-a", "--all-files", action="store_true", help="search every category")
    ap.add_argument("--raw", action="store_true", help="print matched entries as JSON")
    ap.add_argument("-v", "--verbose", action="store_true", help="show pipeline and scoring details")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("terms", nargs="*", metavar="ID|KEYWORD", help="template ids, keywords, and an optional trailing limit")
    return ap


def build_query(args: argparse.Namespace, config: EffectiveConfig) -> QueryDescriptor:
    """Turn parsed arguments into a :class:`QueryDescriptor`."""
    terms: List[str] = [t for t in (args.terms or []) if t.strip()]
    limit: Optional[int] = None
    if terms and LIMIT_RE.match(terms[-1].strip()):
        limit = int(terms.pop().strip())

    identifiers: List[str] = []
    keywords: List[str] = []
    for term in terms:
        if looks_like_identifier(term):
            identifiers.append(term.strip())
        else:
            keywords.append(term)

    return QueryDescriptor(
        identifiers=identifiers,
        keywords=keywords,
        limit=limit,
        categories=config.resolve_categories(args.categories or (), args.all_files),
        list_mode=not identifiers and not keywords,
        raw=args.raw,
    )


def run(
    argv: Optional[Sequence[str]] = None,
    paths: Optional[AppPaths] = None,
    stemmer=_AUTO,
    renderer=_AUTO,
) -> int:
    """Run one invocation and return its exit code."""
    # flags may sit between terms: msg payment -r billing
    args = build_parser().parse_intermixed_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")
    paths = paths or default_paths()
    warnings: List[str] = []

    try:
        config = load_config(paths.base_config, paths.custom_config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL
    if not args.verbose:
        configure_logging(config.log_level)

    query = build_query(args, config)

    stemming_problem: Optional[StemmingUnavailable] = None
    if stemmer is _AUTO:
        try:
            stemmer = build_stemmer(config.enable_stemming)
        except StemmingUnavailable as e:
            stemmer, stemming_problem = None, e

    report = LoadReport()
    try:
        store, report = build_store(paths, query.categories, report)
    except EmptyCorpusError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL

    result = Session(store, KeywordSearch(stemmer)).run(query, config)
    if stemmer is None and (query.keywords or result.unmatched_identifiers):
        cause = stemming_problem or ("disabled by configuration" if not config.enable_stemming else "no stemmer")
        warnings.append(f"stemming unavailable ({cause}); keywords were matched by substring")

    if renderer is _AUTO:
        renderer = None if query.raw else build_renderer()
        if renderer is None and not query.raw:
            warnings.append("rich unavailable; printed raw JSON")

    try:
        if renderer is None:
            render_raw(result.entries)
        else:
            try:
                renderer.render(result.entries)
            except (RendererUnavailable, OSError) as e:
                warnings.append(f"renderer failed ({e}); printed raw JSON")
                render_raw(result.entries)
    except RendererUnavailable as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL

    for msg in warnings:
        logger.warning(msg)
    total = len(report.warnings) + len(warnings)
    if total:
        logger.warning("Completed with {} warning(s)", total)
        return EXIT_WARNINGS
    return EXIT_OK


def main() -> None:
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
