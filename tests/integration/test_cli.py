import logging
import re

import pytest
from rich.logging import RichHandler
from typer.testing import CliRunner

from compcache import __version__
from compcache.cli import app, expand_affected
from compcache.deps import DependencyGraph, ImmutableDependencyFilter
from compcache.paths import content_hash
from compcache.store import CompilationCache
from compcache.transfer import dumps_state


ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def output_lines(text: str) -> list[str]:
    return [line.strip() for line in strip_ansi(text).splitlines() if line.strip()]


@pytest.fixture(autouse=True)
def temp_cache_root(tmp_path, monkeypatch):
    root = tmp_path / "cache"
    monkeypatch.setenv("COMPCACHE_CACHE_DIR", str(root))
    monkeypatch.delenv("COMPCACHE_DEBUG", raising=False)
    monkeypatch.setattr("compcache.config.CACHE_DIR", None)
    return root


def _graph_cache(root) -> CompilationCache:
    return CompilationCache(
        root,
        dependencies=DependencyGraph(immutable_filter=ImmutableDependencyFilter()),
    )


@pytest.fixture
def snapshot(tmp_path, temp_cache_root):
    """a depends on b, b depends on c, d (bundled) depends on c."""

    cache = _graph_cache(temp_cache_root)
    files = {name: str(tmp_path / name) for name in ("a.ts", "b.ts", "c.ts", "d.ts")}
    for name, dep in (("a.ts", "b.ts"), ("b.ts", "c.ts")):
        cache.begin_collecting()
        lookup = cache.lookup(files[name], content_hash(name))
        cache.current_collector().add(files[dep])
        lookup.populate(f"code-{name}")
        cache.end_collecting(files[name])
    cache.set_external_dependencies(files["d.ts"], [files["c.ts"]])

    snapshot_path = tmp_path / "snapshot.json"
    snapshot_path.write_text(dumps_state(cache), encoding="utf-8")
    return snapshot_path, files


def test_version_flag():
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"compcache v{__version__}" in result.stdout


def test_info_reports_missing_root():
    result = CliRunner().invoke(app, ["info"])
    assert result.exit_code == 0
    stdout = strip_ansi(result.stdout)
    assert "Cache root does not exist yet." in stdout
    assert "COMPCACHE_CACHE_DIR" in stdout


def test_info_reports_counts(tmp_path, temp_cache_root):
    cache = CompilationCache(temp_cache_root)
    cache.lookup(str(tmp_path / "a.ts"), "aa11").populate("code", {"version": 3})

    result = CliRunner().invoke(app, ["info"])

    assert result.exit_code == 0
    stdout = strip_ansi(result.stdout)
    assert "Shards: 1" in stdout
    assert "Code files: 1" in stdout
    assert "Source maps: 1" in stdout
    assert "Cache root writable" in stdout


def test_path_shows_artifacts(tmp_path):
    result = CliRunner().invoke(app, ["path", str(tmp_path / "a.spec.ts"), "ab12"])
    assert result.exit_code == 0
    stdout = strip_ansi(result.stdout)
    assert "source map" in stdout
    assert "code" in stdout


def test_path_rejects_short_hash(tmp_path):
    result = CliRunner().invoke(app, ["path", str(tmp_path / "a.ts"), "a"])
    assert result.exit_code == 1
    assert "Invalid content hash" in strip_ansi(result.stdout)


def test_hash_matches_library(tmp_path):
    source = tmp_path / "a.ts"
    source.write_text("export const a = 1;\n", encoding="utf-8")

    plain = CliRunner().invoke(app, ["hash", str(source)])
    salted = CliRunner().invoke(app, ["hash", str(source), "--salt", "esm", "--salt", "v2"])

    assert plain.exit_code == 0
    assert output_lines(plain.stdout) == [content_hash("export const a = 1;\n")]
    assert output_lines(salted.stdout) == [content_hash("export const a = 1;\n", "esm", "v2")]


def test_hash_missing_file(tmp_path):
    result = CliRunner().invoke(app, ["hash", str(tmp_path / "missing.ts")])
    assert result.exit_code == 1
    assert "Unable to read" in strip_ansi(result.stdout)


def test_clear_with_yes(tmp_path, temp_cache_root):
    cache = CompilationCache(temp_cache_root)
    cache.lookup(str(tmp_path / "a.ts"), "aa11").populate("code")

    result = CliRunner().invoke(app, ["clear", "--yes"])

    assert result.exit_code == 0
    assert "Removed 1 cached entry" in strip_ansi(result.stdout)
    assert not temp_cache_root.exists()


def test_clear_aborts_without_confirmation(tmp_path, temp_cache_root):
    cache = CompilationCache(temp_cache_root)
    cache.lookup(str(tmp_path / "a.ts"), "aa11").populate("code")

    result = CliRunner().invoke(app, ["clear"], input="n\n")

    assert result.exit_code == 1
    assert "Aborted." in strip_ansi(result.stdout)
    assert temp_cache_root.exists()


def test_clear_without_cache():
    result = CliRunner().invoke(app, ["clear", "--yes"])
    assert result.exit_code == 0
    assert "No cache found" in strip_ansi(result.stdout)


def test_deps_lists_internal_dependencies(snapshot):
    snapshot_path, files = snapshot
    result = CliRunner().invoke(app, ["deps", str(snapshot_path), files["a.ts"]])
    assert result.exit_code == 0
    assert output_lines(result.stdout) == [files["b.ts"]]


def test_deps_reports_none(snapshot):
    snapshot_path, files = snapshot
    result = CliRunner().invoke(app, ["deps", str(snapshot_path), files["c.ts"]])
    assert result.exit_code == 0
    assert "No dependencies recorded" in strip_ansi(result.stdout)


def test_affected_single_hop(snapshot):
    snapshot_path, files = snapshot
    result = CliRunner().invoke(app, ["affected", str(snapshot_path), files["c.ts"]])
    assert result.exit_code == 0
    assert set(output_lines(result.stdout)) == {files["b.ts"], files["c.ts"], files["d.ts"]}


def test_affected_transitive(snapshot):
    snapshot_path, files = snapshot
    result = CliRunner().invoke(
        app,
        ["affected", str(snapshot_path), files["c.ts"], "--transitive"],
    )
    assert result.exit_code == 0
    assert set(output_lines(result.stdout)) == set(files.values())


def test_affected_invalid_snapshot(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    result = CliRunner().invoke(app, ["affected", str(bad), str(tmp_path / "a.ts")])
    assert result.exit_code == 1
    assert "Invalid snapshot" in strip_ansi(result.stdout)


def test_affected_missing_snapshot(tmp_path):
    result = CliRunner().invoke(app, ["deps", str(tmp_path / "nope.json"), "a.ts"])
    assert result.exit_code == 1
    assert "Unable to read snapshot" in strip_ansi(result.stdout)


def test_expand_affected_handles_cycles(tmp_path):
    cache = _graph_cache(tmp_path / "cache")
    a, b = str(tmp_path / "a.ts"), str(tmp_path / "b.ts")
    cache.set_external_dependencies(a, [b])
    cache.set_external_dependencies(b, [a])

    assert expand_affected(cache, [a], transitive=True) == {a, b}
    assert expand_affected(cache, [], transitive=True) == set()


def test_verbose_installs_rich_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    level = logging.getLogger("compcache").level
    try:
        result = CliRunner().invoke(app, ["--verbose", "clear", "--yes"])
        assert result.exit_code == 0
        added = [h for h in root.handlers if h not in before]
        assert any(isinstance(h, RichHandler) for h in added)
        assert logging.getLogger("compcache").level == logging.DEBUG
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
        logging.getLogger("compcache").setLevel(level)
