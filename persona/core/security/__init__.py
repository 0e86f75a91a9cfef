"""Outbound safety filtering and audit logging."""

from .safety_filter import SafetyFilter
from .audit_logger import AuditLogger

__all__ = ['SafetyFilter', 'AuditLogger']
