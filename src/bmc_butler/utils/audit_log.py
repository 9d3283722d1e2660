"""Audit logging for actions taken on assets.

One JSON line per configure/execute outcome, written to a separate file so
the record of what was done to which controller survives log rotation of the
main log.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("butler.audit")


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.bmc-butler/
    """
    if log_dir is None:
        log_dir = os.path.expanduser("~/.bmc-butler")

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to the console/main log
    audit_logger.propagate = False


@dataclass
class ActionRecord:
    """Record of one action attempted on an asset."""
    timestamp: str
    serial: str
    ip_address: str
    asset_type: str
    vendor: str
    action: str  # configure, execute
    command: str
    dry_run: bool
    success: bool
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)


def log_action(
    asset,
    action: str,
    success: bool,
    error: Optional[str] = None,
    dry_run: bool = False,
) -> ActionRecord:
    """Write an audit record for an action on ``asset`` and return it."""
    record = ActionRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        serial=asset.serial,
        ip_address=asset.ip_address,
        asset_type=asset.type,
        vendor=asset.vendor,
        action=action,
        command=asset.command if action == "execute" else "",
        dry_run=dry_run,
        success=success,
        error=error,
    )
    audit_logger.info(record.to_json())
    return record
