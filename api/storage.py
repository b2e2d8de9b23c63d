"""Key-value persistence for published tests and evaluation results.

Records are opaque JSON blobs stored one file per key under ``DATA_DIR``;
``test_<id>`` holds a published test and ``result_<id>`` an evaluation.
An index file keeps small per-key metadata so results can be listed per
test without opening every record. There is no schema versioning and no
expiry.
"""

from __future__ import annotations

import json
import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from assess_core.records import utcnow_iso


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()

_KEY_RX = re.compile(r"^[A-Za-z0-9_\-]{1,200}$")
_LOCK = threading.Lock()


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def valid_key(key: str) -> bool:
    return bool(_KEY_RX.match(key or ""))


class FileRecordStore:
    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root).resolve() if root is not None else DATA_ROOT
        self.records_dir = self.root / "records"
        self.index_path = self.root / "records_index.json"

    def _path(self, key: str) -> Path:
        return self.records_dir / f"{key}.json"

    def save(self, key: str, payload: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> None:
        """Persist ``payload`` under ``key`` and record its index metadata."""

        if not valid_key(key):
            raise ValueError(f"invalid record key: {key!r}")
        self.records_dir.mkdir(parents=True, exist_ok=True)
        with _LOCK:
            _write_json(self._path(key), payload)
            index: Dict[str, Dict[str, Any]] = _read_json(self.index_path, {})
            meta = dict(metadata or {})
            meta.setdefault("savedAt", utcnow_iso())
            index[key] = meta
            _write_json(self.index_path, index)

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        if not valid_key(key):
            return None
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except Exception:
            return None
        return data if isinstance(data, dict) else None

    def delete(self, key: str) -> bool:
        if not valid_key(key):
            return False
        removed = False
        with _LOCK:
            index: Dict[str, Dict[str, Any]] = _read_json(self.index_path, {})
            if key in index:
                index.pop(key, None)
                _write_json(self.index_path, index)
                removed = True
            path = self._path(key)
            if path.exists():
                path.unlink()
                removed = True
        return removed

    def list_records(self, *, kind: Optional[str] = None, test_id: Optional[str] = None) -> List[Dict[str, Any]]:
        index: Dict[str, Dict[str, Any]] = _read_json(self.index_path, {})
        out: List[Dict[str, Any]] = []
        for key, meta in index.items():
            if kind and meta.get("kind") != kind:
                continue
            if test_id and meta.get("testId") != test_id:
                continue
            item = {"key": key}
            item.update({k: v for k, v in meta.items() if k != "key"})
            out.append(item)
        out.sort(key=lambda r: r.get("createdAt") or r.get("savedAt", ""), reverse=True)
        return out
