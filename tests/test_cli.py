from __future__ import annotations

from pathlib import Path

import pytest

from loadgauge.cli import _open_storage, build_parser

BASE_ARGS = ["--target", "http://svc.local/", "--rate", "2", "--duration", "1"]


def test_default_storage_used_without_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    args = build_parser().parse_args(BASE_ARGS)
    storage = _open_storage(args)
    assert storage is not None
    assert storage.db_path == Path(".loadgauge/loadgauge.duckdb")
    assert (tmp_path / ".loadgauge").is_dir()


def test_explicit_db_and_no_store(tmp_path: Path) -> None:
    db = tmp_path / "runs.duckdb"
    storage = _open_storage(build_parser().parse_args([*BASE_ARGS, "--db", str(db)]))
    assert storage is not None
    assert storage.db_path == db
    assert _open_storage(build_parser().parse_args([*BASE_ARGS, "--no-store"])) is None


def test_log_level_is_case_insensitive() -> None:
    args = build_parser().parse_args([*BASE_ARGS, "--log-level", "debug"])
    assert args.log_level == "DEBUG"


def test_unknown_log_level_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args([*BASE_ARGS, "--log-level", "chatty"])
    assert excinfo.value.code == 2
