"""
Audit Log

Process-wide, append-only sink for audit events. Every VFS and graph
mutation and every tool invocation outcome is recorded here. There is no
deletion or compaction API; observers may read a copy of the events or
subscribe to new ones.

Example:
    >>> audit = get_audit_log()
    >>> audit.log_event(AuditDomain.VFS, "MKDIR", {"path": "/notes"})
    >>> [e.action for e in audit.events(AuditDomain.VFS)]
    ['MKDIR']
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from persona_kg.types.results import AuditDomain, AuditEvent

logger = logging.getLogger(__name__)

AuditListener = Callable[[AuditEvent], None]

_default_log: AuditLog | None = None
_default_lock = threading.Lock()


class AuditLog:
    """Append-only event sink."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._listeners: list[AuditListener] = []
        self._lock = threading.Lock()

    def log_event(
        self,
        domain: AuditDomain | str,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Append one event and notify listeners."""
        event = AuditEvent(domain=AuditDomain(domain), action=action, details=details or {})
        with self._lock:
            self._events.append(event)
            listeners = list(self._listeners)

        logger.debug(f"[{event.domain.value}] {event.action} {event.details}")
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Audit listener failed for {event.action}: {e}")
        return event

    def events(self, domain: AuditDomain | str | None = None) -> list[AuditEvent]:
        """Copy of recorded events, optionally filtered by domain."""
        with self._lock:
            events = list(self._events)
        if domain is None:
            return events
        wanted = AuditDomain(domain)
        return [e for e in events if e.domain == wanted]

    def subscribe(self, listener: AuditListener) -> None:
        """Call listener for every event logged from now on."""
        with self._lock:
            self._listeners.append(listener)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


def get_audit_log() -> AuditLog:
    """Get or create the process-wide audit log."""
    global _default_log
    if _default_log is None:
        with _default_lock:
            if _default_log is None:
                _default_log = AuditLog()
    return _default_log


def resolve_audit(audit: AuditLog | None) -> AuditLog:
    """Explicit audit log if given, else the process-wide one."""
    return audit if audit is not None else get_audit_log()
