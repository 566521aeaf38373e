"""Cross-cutting helpers: actor context, telemetry, utilities."""
