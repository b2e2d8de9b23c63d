"""Key layout, record ids and typed access for the two persisted record kinds."""
from __future__ import annotations

import logging
import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from .types import EvaluationResult, TestConfig

log = logging.getLogger(__name__)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_record_id(prefix: str) -> str:
    """``<prefix>_<unix ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class RecordStore(Protocol):
    def save(self, key: str, payload: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> None: ...

    def load(self, key: str) -> Optional[Dict[str, Any]]: ...


def key_for_test(test_id: str) -> str:
    return f"test_{test_id}"


def key_for_result(result_id: str) -> str:
    return f"result_{result_id}"


def save_test(store: RecordStore, config: TestConfig) -> None:
    store.save(
        key_for_test(config.id),
        config.to_dict(),
        {"kind": "test", "testId": config.id, "title": config.title, "createdAt": config.created_at},
    )


def load_test(store: RecordStore, test_id: str) -> Optional[TestConfig]:
    raw = store.load(key_for_test(test_id))
    if raw is None:
        return None
    try:
        return TestConfig.from_dict(raw)
    except Exception:
        log.warning("unreadable test record %s", test_id, exc_info=True)
        return None


def save_result(store: RecordStore, result: EvaluationResult) -> None:
    store.save(
        key_for_result(result.id),
        result.to_dict(),
        {
            "kind": "result",
            "testId": result.test_id,
            "candidateName": result.candidate_name,
            "overallScore": result.overall_score,
            "createdAt": result.completed_at,
        },
    )


def load_result(store: RecordStore, result_id: str) -> Optional[EvaluationResult]:
    raw = store.load(key_for_result(result_id))
    if raw is None:
        return None
    try:
        return EvaluationResult.from_dict(raw)
    except Exception:
        log.warning("unreadable result record %s", result_id, exc_info=True)
        return None
