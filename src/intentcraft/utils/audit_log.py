"""Audit logging for applied configuration changes.

One JSON line per applied change, written to a dedicated logger so it can
be routed to its own file:

    {"timestamp": "...", "device_id": "pe1-east", "operation": "firewall_policy", ...}
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Dedicated audit logger
audit_logger = logging.getLogger("intentcraft.audit")


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.intentcraft/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.path.expanduser("~/.intentcraft")

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to the console
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """Record of one applied change."""
    timestamp: str
    device_id: str
    operation: str  # Compiler action, e.g. "firewall_policy"
    description: str
    success: bool
    paths: list[str] = field(default_factory=list)
    applied: int = 0
    failed_index: Optional[int] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        return cls(**json.loads(json_str))


def log_change(
    device_id: str,
    operation: str,
    description: str,
    paths: list[str],
    applied: int,
    error: Optional[str] = None,
    failed_index: Optional[int] = None,
) -> ChangeRecord:
    """Write one change record to the audit log.

    Args:
        device_id: Device the change was applied to
        operation: Compiler action name
        description: Human summary of the change
        paths: Paths of every operation in the change, in order
        applied: Number of operations written successfully
        error: Error message if the change failed part-way
        failed_index: Index of the failing operation

    Returns:
        The ChangeRecord that was logged
    """
    record = ChangeRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        device_id=device_id,
        operation=operation,
        description=description,
        success=error is None,
        paths=list(paths),
        applied=applied,
        failed_index=failed_index,
        error=error,
    )
    audit_logger.info(record.to_json())
    return record


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log, most recent first."""
    if log_file is None:
        log_file = os.path.expanduser("~/.intentcraft/audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines
            if device_id and record.device_id != device_id:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
