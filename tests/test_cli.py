import io
import json
import sys

import pytest
from conftest import SuffixStemmer, record

from msgtool import render
from msgtool.cli import build_parser, build_query, run
from msgtool.config import EXIT_FATAL, EXIT_OK, EXIT_WARNINGS, EffectiveConfig
from msgtool.errors import RendererUnavailable
from msgtool.models import Category

BASE = {
    "response.json": [
        record("rsp1", ["payment", "billing"]),
        record("rsp2", ["payment", "refund"]),
        record("rsp3", ["ai-studio", "quota"]),
    ],
    "escalate.json": [record("esc1", ["outage", "payment"], field="message")],
    "grafana.json": [record("graf1", ["latency"], field="grafana_url", value="https://grafana.example/d/1")],
}


def _run(paths, argv, capsys, stemmer=None, renderer=None):
    code = run(argv, paths=paths, stemmer=stemmer if stemmer is not None else SuffixStemmer(), renderer=renderer)
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else None


def _ids(records):
    return [r["id"] for r in records]


def test_identifier_lookup(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["rsp1"], capsys)

    assert code == EXIT_OK
    assert _ids(out) == ["rsp1"]
    assert out[0] == record("rsp1", ["payment", "billing"])


def test_keyword_search_and_semantics(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["payment", "billing"], capsys)

    assert code == EXIT_OK
    assert _ids(out) == ["rsp1"]


def test_identifier_and_keyword_together(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["rsp1", "payment"], capsys)

    assert code == EXIT_OK
    assert _ids(out) == ["rsp1", "rsp2"]


def test_trailing_limit(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["payment", "1"], capsys)

    assert code == EXIT_OK
    assert _ids(out) == ["rsp1"]


def test_decomposed_tag_match(make_paths, capsys):
    _, out = _run(make_paths(base=BASE), ["studio"], capsys)

    assert _ids(out) == ["rsp3"]


def test_no_matches_is_success_with_empty_output(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["nonexistent"], capsys)

    assert code == EXIT_OK
    assert out == []


def test_category_flags_and_all_files(make_paths, capsys):
    paths = make_paths(base=BASE)

    _, out = _run(paths, ["-e", "payment"], capsys)
    assert _ids(out) == ["esc1"]

    _, out = _run(paths, ["-g", "latency"], capsys)
    assert out[0]["grafana_url"] == "https://grafana.example/d/1"

    _, out = _run(paths, ["--all-files", "payment"], capsys)
    assert _ids(out) == ["esc1", "rsp1", "rsp2"]


def test_custom_overlay_picks_default_categories(make_paths, capsys):
    paths = make_paths(base=BASE, custom_config="default_loaded_response_files: [escalate]\n")

    _, out = _run(paths, ["payment"], capsys)

    assert _ids(out) == ["esc1"]


def test_list_mode(make_paths, capsys):
    paths = make_paths(base=BASE)

    code, out = _run(paths, [], capsys)
    assert code == EXIT_OK
    assert _ids(out) == ["rsp1", "rsp2", "rsp3"]

    _, out = _run(paths, ["2"], capsys)
    assert _ids(out) == ["rsp1", "rsp2"]


def test_empty_corpus_is_fatal(make_paths, capsys):
    code = run(["payment"], paths=make_paths(base={"response.json": []}), stemmer=SuffixStemmer(), renderer=None)

    assert code == EXIT_FATAL
    assert "error:" in capsys.readouterr().err


def test_bad_config_is_fatal(make_paths, capsys):
    paths = make_paths(base=BASE, custom_config="max_display_results: -3\n")

    code = run(["payment"], paths=paths, stemmer=SuffixStemmer(), renderer=None)

    assert code == EXIT_FATAL
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error:" in captured.err


def test_skipped_records_exit_with_warnings(make_paths, capsys):
    paths = make_paths(
        base=BASE,
        custom={"mine.json": [record("rsp1", ["payment"], value="shadowed"), {"id": "rsp9"}]},
    )

    code, out = _run(paths, ["rsp1"], capsys)

    assert code == EXIT_WARNINGS
    assert out[0]["response"] == "rsp1 body"


def test_missing_stemmer_is_a_warning_only_when_searching(make_paths, capsys):
    paths = make_paths(base=BASE)

    code = run(["payment"], paths=paths, stemmer=None, renderer=None)
    assert code == EXIT_WARNINGS
    assert _ids(json.loads(capsys.readouterr().out)) == ["rsp1", "rsp2"]

    assert run(["rsp2"], paths=paths, stemmer=None, renderer=None) == EXIT_OK
    capsys.readouterr()
    assert run([], paths=paths, stemmer=None, renderer=None) == EXIT_OK


def test_stemming_disabled_by_config_still_warns_when_searching(make_paths, capsys):
    base = {"response.json": [record("rsp1", ["billing"]), record("rsp2", ["running"])]}
    paths = make_paths(base=base, custom_config="enable_stemming: false\n")

    code = run(["run"], paths=paths, renderer=None)
    captured = capsys.readouterr()
    assert code == EXIT_WARNINGS
    assert _ids(json.loads(captured.out)) == ["rsp2"]
    assert "disabled by configuration" in captured.err

    assert run([], paths=paths, renderer=None) == EXIT_OK


class _BrokenRenderer:
    def render(self, entries):
        raise RendererUnavailable("terminal went away")


def test_renderer_failure_falls_back_to_raw(make_paths, capsys):
    code = run(["rsp2"], paths=make_paths(base=BASE), stemmer=SuffixStemmer(), renderer=_BrokenRenderer())

    assert code == EXIT_WARNINGS
    assert _ids(json.loads(capsys.readouterr().out)) == ["rsp2"]


class _ClosedStdout(io.StringIO):
    def write(self, s):
        raise BrokenPipeError("stdout closed")


def test_renderer_and_raw_fallback_both_failing_is_fatal(make_paths, capsys, monkeypatch):
    paths = make_paths(base=BASE)
    monkeypatch.setattr(sys, "stdout", _ClosedStdout())

    code = run(["rsp2"], paths=paths, stemmer=SuffixStemmer(), renderer=_BrokenRenderer())

    assert code == EXIT_FATAL
    assert "cannot write raw output" in capsys.readouterr().err


def test_missing_rich_is_reported_once(make_paths, capsys, monkeypatch):
    monkeypatch.setattr(render, "Console", None)

    code = run(["rsp2"], paths=make_paths(base=BASE), stemmer=SuffixStemmer())

    captured = capsys.readouterr()
    assert code == EXIT_WARNINGS
    assert _ids(json.loads(captured.out)) == ["rsp2"]
    assert captured.err.count("rich unavailable") == 1
    assert captured.err.count("rich") == 1


def test_flags_may_follow_terms(make_paths, capsys):
    code, out = _run(make_paths(base=BASE), ["payment", "-e", "outage"], capsys)

    assert code == EXIT_OK
    assert _ids(out) == ["esc1"]


def test_build_query_splits_tokens():
    cfg = EffectiveConfig(default_categories=(Category.RESPONSE,), max_display_results=10)
    args = build_parser().parse_args(["-w", "RSP1", "billing", "esc.2", "5"])

    q = build_query(args, cfg)

    assert q.identifiers == ["RSP1", "esc.2"]
    assert q.keywords == ["billing"]
    assert q.limit == 5
    assert q.categories == [Category.WORKFLOW]
    assert not q.list_mode


def test_lone_limit_is_list_mode():
    cfg = EffectiveConfig(default_categories=(Category.RESPONSE,), max_display_results=10)

    q = build_query(build_parser().parse_args(["3"]), cfg)

    assert q.list_mode
    assert q.limit == 3


def test_usage_errors_exit_fatal(capsys):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["--bogus"])

    assert exc.value.code == EXIT_FATAL
