"""Shared telemetry: tracing helpers.

Logging setup lives in authz.shared.telemetry.logging; it is not re-exported
here because it depends on settings and the audit sink.
"""

from authz.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "traced",
    "add_span_attributes",
]
