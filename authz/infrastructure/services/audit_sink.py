"""Audit sink that writes authorization decisions to a dedicated logger.

Default IAuditSink. Grants log at DEBUG, denials at INFO and fail-closed
errors at WARNING so operators can alert on the logger name alone.
"""

import logging

from authz.application.dtos.decision import AuthorizationDecision
from authz.domain.enums import DecisionReason

AUDIT_LOGGER_NAME = "authz.audit"


class LoggingAuditSink:
    """IAuditSink backed by stdlib logging."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    async def record_decision(self, decision: AuthorizationDecision) -> None:
        if decision.reason is DecisionReason.ERROR:
            level = logging.WARNING
        elif decision.allowed:
            level = logging.DEBUG
        else:
            level = logging.INFO
        self._logger.log(
            level,
            "decision=%s reason=%s principal=%s roles=%s %s %s (%s) matched=%s error=%s",
            "allow" if decision.allowed else "deny",
            decision.reason.value,
            decision.principal_id,
            ",".join(decision.roles),
            decision.action,
            decision.resource,
            decision.application,
            decision.matched_role,
            decision.error,
        )
