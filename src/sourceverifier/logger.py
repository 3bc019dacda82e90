"""Structured JSON audit logger for workflow transitions and batches."""

import json
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from sourceverifier.constants import AUDIT_ID_SAMPLE

__all__ = ["AuditLogger"]


class AuditLogger:
    """Append-only JSON lines audit trail, one record per action."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("sourceverifier.audit")
        self._logger.setLevel(getattr(logging, level.upper()))

        if not self._logger.handlers:
            handler = logging.FileHandler(log_dir / "audit.log")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    def log_transition(
        self,
        submission_id: str,
        actor_id: str,
        action: str,
        from_status: str,
        to_status: str,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "transition",
                "timestamp": datetime.now(UTC).isoformat(),
                "submission_id": submission_id,
                "actor_id": actor_id,
                "action": action,
                "from": from_status,
                "to": to_status,
            })
        )

    def log_batch(
        self,
        actor_id: str,
        operation: str,
        submission_ids: Sequence[str],
        succeeded: int,
        failed: int,
        notes: str | None = None,
    ) -> None:
        """Record a batch; only the first few ids are kept."""
        self._logger.info(
            json.dumps({
                "type": "batch",
                "timestamp": datetime.now(UTC).isoformat(),
                "actor_id": actor_id,
                "operation": operation,
                "submission_count": len(submission_ids),
                "submission_ids": list(
                    submission_ids[:AUDIT_ID_SAMPLE]
                ),
                "succeeded": succeeded,
                "failed": failed,
                "notes": notes,
            })
        )

    def log_deletion(
        self,
        submission_id: str,
        actor_id: str,
        status: str,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "deletion",
                "timestamp": datetime.now(UTC).isoformat(),
                "submission_id": submission_id,
                "actor_id": actor_id,
                "status": status,
            })
        )
