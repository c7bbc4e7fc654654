"""Audit sink for access denials.

Usage:
    evaluator = AccessEvaluator(store, on_denied=log_denial)

The evaluator never writes audit records itself; it hands each denial to
the callback it was constructed with. This sink writes one line per denial
to the `deskguard.audit` logger.
"""

from __future__ import annotations

import logging

from deskguard.auth.evaluator import AccessDenial

audit_logger = logging.getLogger("deskguard.audit")


def log_denial(denial: AccessDenial) -> None:
    """Record a denied check on the audit logger."""
    if denial.view_id is not None:
        target = f"view {denial.view_id}"
    else:
        target = f"{denial.module}.{denial.action}"
    audit_logger.info(
        f"Access denied: user={denial.user_id} role={denial.role} target={target}",
        extra={
            "user_id": denial.user_id,
            "role": denial.role,
            "perm_module": denial.module,
            "perm_action": denial.action,
            "view_id": denial.view_id,
        },
    )
