"""Shared file handling for the JSON-backed repositories.

Each repository owns one file holding a JSON list of records. Reads and
read-modify-write cycles hold the file's ``ProcessLock`` (a sidecar
``.lock`` file), so several engine processes can share a data directory,
and writes replace the file atomically so a reader never sees a
half-written document.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from ims.infrastructure.persistence.file_lock import ProcessLock


class JsonFileStore:

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._file_path = file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        self.lock = ProcessLock(file_path.with_suffix(file_path.suffix + ".lock"), lock_timeout)
        self._ensure_file()

    def load(self) -> list[dict]:
        with self.lock:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def persist(self, records: list[dict]) -> None:
        with self.lock:
            tmp = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
            tmp.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
            os.replace(tmp, self._file_path)

    def upsert(self, record: dict, key_fields: tuple[str, ...]) -> None:
        with self.lock:
            records = self.load()
            for i, raw in enumerate(records):
                if all(raw[k] == record[k] for k in key_fields):
                    records[i] = record
                    break
            else:
                records.append(record)
            self.persist(records)

    def next_id(self) -> int:
        """Next free id; call it under ``lock`` together with the write that uses it."""
        records = self.load()
        if not records:
            return 1
        return max(r["id"] for r in records) + 1

    def _ensure_file(self) -> None:
        with self.lock:
            if not self._file_path.exists():
                self._file_path.write_text("[]", encoding="utf-8")
