"""Audit logging utilities for Kafka user lifecycle events."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "user-events.jsonl"

EventType = Literal[
    "user_create",
    "user_delete",
    "user_update_rejected",
    "user_reconcile_failed",
]


def _get_signing_key() -> bytes:
    """Get the audit signing key from environment (loaded lazily so settings can export it)."""
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_user_event(
    event_type: EventType,
    username: str,
    *,
    operator: str = "system",
    provider_config: str = "default",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append a user lifecycle event to the audit trail.

    Args:
        event_type: Kind of lifecycle event
        username: Kafka user affected
        operator: Who triggered the operation
        provider_config: ProviderConfig (cluster) the user lives in
        details: Additional context (mechanism, iterations, error...)
        success: Whether the operation succeeded

    Never pass generated passwords in ``details``.
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "provider_config": provider_config,
        "username": username,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_user_event(
    event_type: EventType,
    username: str,
    *,
    operator: str = "system",
    provider_config: str = "default",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log a user event without ever raising.

    Audit failures are reported on stderr so they never break a
    reconciliation pass.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_user_event(
            event_type,
            username,
            operator=operator,
            provider_config=provider_config,
            details=details,
            success=success,
        )
        return True
    except OSError as e:
        print(
            f"[audit] Warning: Failed to log {event_type} event for {username}: {e}",
            file=sys.stderr,
        )
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
