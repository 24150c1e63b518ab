"""Append-only bypass audit log (JSON lines).

Every granted bypass, whether a commit-message prefix, an environment
override, a gate waiver or a detected force push, is written here. Entries
are never rewritten or deleted.
"""

from __future__ import annotations

import json
from pathlib import Path

from hookwarden.core.errors import BypassRecord
from hookwarden.core.logging import get_logger
from hookwarden.execution.locking import LockManager

_logger = get_logger("recovery.audit")

LOCK_NAME = "bypass-audit"


class BypassAuditLog:
    """JSONL file of BypassRecord entries guarded by the ``bypass-audit`` lock."""

    def __init__(self, path: Path, locks: LockManager) -> None:
        self.path = path
        self.locks = locks

    def append(self, record: BypassRecord) -> BypassRecord:
        line = json.dumps(record.to_dict(), default=str)
        with self.locks.hold(LOCK_NAME):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        _logger.info(
            "bypass.recorded",
            hook_type=record.hook_type,
            bypass_method=record.bypass_method,
            error_category=record.error_category,
        )
        return record

    def read_all(self) -> list[BypassRecord]:
        """Replay the log in write order, skipping unparseable lines."""
        if not self.path.exists():
            return []
        records: list[BypassRecord] = []
        with open(self.path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    records.append(BypassRecord.from_dict(json.loads(line)))
                except (json.JSONDecodeError, TypeError) as e:
                    _logger.warning(
                        "bypass.audit_line_invalid",
                        path=str(self.path),
                        line=line_number,
                        error=str(e),
                    )
        return records
