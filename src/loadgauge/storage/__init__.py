from __future__ import annotations

from pathlib import Path

from loadgauge.storage.duckdb_store import Storage, append_csv


def default_storage() -> Storage:
    return Storage(Path(".loadgauge/loadgauge.duckdb"))


__all__ = ["Storage", "append_csv", "default_storage"]
