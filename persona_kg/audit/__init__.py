"""
Audit Logging

Append-only record of state mutations (VFS, GRAPH) and tool outcomes
(AGENT_ACTION). One AuditLog is created per process; components accept an
explicit log for isolation and fall back to the process-wide instance.
"""

from persona_kg.audit.log import AuditListener, AuditLog, get_audit_log, resolve_audit

__all__ = ["AuditLog", "AuditListener", "get_audit_log", "resolve_audit"]
