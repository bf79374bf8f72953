from __future__ import annotations

from pathlib import Path

import pytest

import compcache.paths as paths


def test_sanitize_stem_drops_extension_and_non_word_characters():
    assert paths.sanitize_stem("/src/my-test.spec.ts") == "mytestspec"
    assert paths.sanitize_stem("a.ts") == "a"
    assert paths.sanitize_stem("under_score.js") == "under_score"


def test_resolve_cache_paths_layout(tmp_path):
    result = paths.resolve_cache_paths("/project/tests/a.spec.ts", "abcdef", tmp_path)

    assert result.shard_dir == tmp_path / "ab"
    assert result.code_path == tmp_path / "ab" / "aspec_abcdef.js"
    assert result.source_map_path == tmp_path / "ab" / "aspec_abcdef.map"


def test_resolve_cache_paths_is_deterministic(tmp_path):
    first = paths.resolve_cache_paths("/p/a.ts", "h1xx", tmp_path)
    second = paths.resolve_cache_paths("/p/a.ts", "h1xx", tmp_path)
    assert first == second


def test_different_hash_gives_different_paths(tmp_path):
    first = paths.resolve_cache_paths("/p/a.ts", "h1", tmp_path)
    second = paths.resolve_cache_paths("/p/a.ts", "h2", tmp_path)
    assert first.code_path != second.code_path
    assert first.source_map_path != second.source_map_path


def test_same_sanitized_name_disambiguated_by_hash(tmp_path):
    first = paths.resolve_cache_paths("/one/a-b.ts", "aa11", tmp_path)
    second = paths.resolve_cache_paths("/two/ab.ts", "aa22", tmp_path)
    assert first.code_path.name == "ab_aa11.js"
    assert second.code_path.name == "ab_aa22.js"


def test_resolve_cache_paths_uses_configured_root(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPCACHE_CACHE_DIR", str(tmp_path / "env-root"))
    result = paths.resolve_cache_paths("/p/a.ts", "ff00")
    assert result.code_path == (tmp_path / "env-root").resolve() / "ff" / "a_ff00.js"


@pytest.mark.parametrize("bad_hash", ["", "a"])
def test_resolve_cache_paths_rejects_short_hash(tmp_path, bad_hash):
    with pytest.raises(ValueError):
        paths.resolve_cache_paths("/p/a.ts", bad_hash, tmp_path)


def test_content_hash_changes_with_source_and_salt():
    base = paths.content_hash("print(1)")
    assert base == paths.content_hash("print(1)")
    assert base != paths.content_hash("print(2)")
    assert base != paths.content_hash("print(1)", "esm")
    assert paths.content_hash("print(1)", "a", "b") != paths.content_hash("print(1)", "ab")
    assert len(base) == 40
    assert Path(f"/x/{base}").name == base
