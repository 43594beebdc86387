"""Audit logging package."""

from timeledger.audit.log_config import get_logger
from timeledger.audit.logger import AuditLogger, create_correlation_id

__all__ = ["AuditLogger", "create_correlation_id", "get_logger"]
