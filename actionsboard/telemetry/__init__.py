from actionsboard.telemetry.audit import AuditLogger
from actionsboard.telemetry.logging import configure_logging

__all__ = ["AuditLogger", "configure_logging"]
