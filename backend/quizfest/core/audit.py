"""
Audit trail for security-relevant admin actions.

Every authentication decision, search and export is recorded on the
``quizfest.audit`` logger with who did what, when, from where, and how it
ended. Records must identify, not reveal: registration numbers and counts
are fine, names, phones, emails and addresses are not.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from quizfest.core.logging_config import get_logger, log_with_context

audit_logger = get_logger("quizfest.audit")

# Bound on attacker-controlled identity strings (submitted usernames)
MAX_ACTOR_LENGTH = 64


def audit_event(
    action: str,
    *,
    outcome: str,
    actor: Optional[str],
    client_ip: Optional[str],
    request_id: Optional[str] = None,
    level: str = "info",
    **fields: Any,
) -> None:
    """
    Write one audit record.

    Args:
        action: Dotted action name, e.g. "admin.login" or "registrations.export"
        outcome: "success", "failure", "denied", ...
        actor: Admin identity (or the submitted username for failed logins)
        client_ip: Resolved client address
        request_id: Correlation ID of the request
        level: Log level name
        **fields: Additional non-PII fields (category, count, ...)
    """
    if actor is not None and len(actor) > MAX_ACTOR_LENGTH:
        actor = actor[:MAX_ACTOR_LENGTH]

    log_with_context(
        audit_logger,
        level,
        f"{action} {outcome}",
        request_id=request_id,
        client_ip=client_ip,
        action=action,
        actor=actor or "anonymous",
        outcome=outcome,
        occurred_at=datetime.now(timezone.utc).isoformat(),
        **fields,
    )
