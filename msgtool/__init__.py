"""
Top-level package for the ``msg`` support-template retrieval tool.

This package loads categorized JSON template sources (responses,
escalations, workflows, dashboard links, service info and general
URLs), resolves requested template ids, runs a tag-based keyword
search with stemming and compound-tag decomposition, and renders the
merged result list in the terminal.  There are no side-effects on
import; the command-line entrypoint lives in :mod:`msgtool.cli`.
"""

__version__ = "1.0.0"
