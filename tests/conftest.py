import json

import pytest
from loguru import logger

from msgtool.config import AppPaths, EffectiveConfig
from msgtool.models import Category, Entry, make_content

DEFAULT_BASE_CONFIG = "default_loaded_response_files: [response]\nmax_display_results: 10\n"


class SuffixStemmer:
    """Deterministic stand-in for the Porter stemmer."""

    SUFFIXES = ("ing", "ed", "es", "s")

    def stem(self, word):
        out = []
        for w in word.lower().split():
            for suf in self.SUFFIXES:
                if w.endswith(suf) and len(w) - len(suf) >= 3:
                    w = w[: -len(suf)]
                    break
            out.append(w)
        return " ".join(out)


def record(entry_id, tags, field="response", value=None, description=None):
    return {
        "id": entry_id,
        "description": description or f"{entry_id} description",
        "tags": tags,
        field: value or f"{entry_id} body",
    }


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        path.write_text(content, encoding="utf-8")
    else:
        path.write_text(json.dumps(content), encoding="utf-8")


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # sinks may point at a captured stream that pytest has closed
    logger.remove()


@pytest.fixture()
def stemmer():
    return SuffixStemmer()


@pytest.fixture()
def make_entry():
    def _make(entry_id, tags, category=Category.RESPONSE, value=None):
        if value is None:
            value = f"https://example.com/{entry_id}" if category.spec.kind == "link" else f"{entry_id} body"
        return Entry(
            id=entry_id,
            description=f"{entry_id} description",
            tags=tags,
            category=category,
            content=make_content(category, value),
        )

    return _make


@pytest.fixture()
def config():
    return EffectiveConfig(default_categories=(Category.RESPONSE,), max_display_results=10)


@pytest.fixture()
def make_paths(tmp_path):
    """Lay out base sources, custom sources and both settings documents under tmp_path."""

    def _make(base=None, custom=None, base_config=DEFAULT_BASE_CONFIG, custom_config=None):
        base_dir = tmp_path / "base"
        base_dir.mkdir(exist_ok=True)
        home = tmp_path / "home"
        for filename, content in (base or {}).items():
            _write(base_dir / filename, content)
        for filename, content in (custom or {}).items():
            _write(home / "custom_load" / filename, content)

        base_cfg = tmp_path / "config.yaml"
        if base_config is not None:
            _write(base_cfg, base_config)
        custom_cfg = home / "config" / "custom_config.yaml"
        if custom_config is not None:
            _write(custom_cfg, custom_config)

        return AppPaths(
            base_config=base_cfg,
            custom_config=custom_cfg,
            base_sources_dir=base_dir,
            custom_sources_dir=home / "custom_load",
        )

    return _make


@pytest.fixture()
def billing_records():
    return [
        record("rsp1", ["payment", "billing"]),
        record("rsp2", ["billing", "refund"]),
    ]
