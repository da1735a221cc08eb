from __future__ import annotations

import json

from quickfind.app import config
from quickfind.core.models import ScopeOptions, SearchContext


def test_defaults_when_file_missing(isolated_config):
    assert not isolated_config.exists()
    assert config.load_quiet_window_ms() == 100
    assert config.load_page_size_cap(250) == 250
    assert config.load_last_query() == ""
    assert config.load_scope_options() == ScopeOptions()


def test_corrupt_file_falls_back_to_defaults(isolated_config):
    isolated_config.write_text("{not json", encoding="utf-8")
    assert config.load_quiet_window_ms() == 100
    isolated_config.write_text("[1, 2]", encoding="utf-8")
    assert config.load_search_config(50).page_size_cap == 50


def test_values_are_clamped(isolated_config):
    isolated_config.write_text(json.dumps({"quiet_window_ms": 99999, "page_size_cap": 0}), encoding="utf-8")
    assert config.load_quiet_window_ms() == config.MAX_QUIET_WINDOW_MS
    assert config.load_page_size_cap() == 1
    isolated_config.write_text(json.dumps({"quiet_window_ms": "soon"}), encoding="utf-8")
    assert config.load_quiet_window_ms() == 100


def test_save_merges_with_existing_values(isolated_config):
    config.save_quiet_window_ms(250)
    config.save_page_size_cap(40)
    config.save_last_query("needle")
    payload = json.loads(isolated_config.read_text(encoding="utf-8"))
    assert payload == {"quiet_window_ms": 250, "page_size_cap": 40, "last_query": "needle"}
    search_config = config.load_search_config()
    assert (search_config.quiet_window_ms, search_config.page_size_cap) == (250, 40)
    config.save_page_size_cap(None)
    assert config.load_page_size_cap(77) == 77


def test_scope_options_round_trip(isolated_config):
    options = ScopeOptions(
        case_sensitive=True,
        regex=True,
        file_mask="*.py",
        search_context=SearchContext.EXCEPT_COMMENTS,
    )
    config.save_scope_options(options)
    assert config.load_scope_options() == options
