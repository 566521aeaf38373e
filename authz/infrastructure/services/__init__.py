"""Infrastructure services: adapters for application service interfaces."""

from authz.infrastructure.services.audit_sink import LoggingAuditSink

__all__ = ["LoggingAuditSink"]
