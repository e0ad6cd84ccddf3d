"""
Node Id Generation

Ids are "<prefix>_<stamp>" where stamp is a process-wide millisecond clock
that never repeats: two ids minted inside the same millisecond get
consecutive stamps, so ids are pairwise distinct and never reissued.
"""

from __future__ import annotations

import re
import threading
import time

_SLUG_MAX = 20
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")

_lock = threading.Lock()
_last_stamp = 0


def next_stamp() -> int:
    """Monotonic millisecond stamp, strictly increasing per process."""
    global _last_stamp
    with _lock:
        _last_stamp = max(int(time.time() * 1000), _last_stamp + 1)
        return _last_stamp


def slugify(name: str, max_length: int = _SLUG_MAX) -> str:
    """Replace every non-alphanumeric character with "_" and truncate."""
    return _NON_ALNUM.sub("_", name)[:max_length]


def node_id_for(name: str) -> str:
    """Id for an agent-created node: "<slug>_<stamp>"."""
    return f"{slugify(name)}_{next_stamp()}"


def file_node_id_for(filename: str) -> str:
    """Id for a file-reference node: "file_<slug>_<stamp>"."""
    return f"file_{_NON_ALNUM.sub('_', filename)}_{next_stamp()}"


def prefixed_id(prefix: str) -> str:
    """Id with a fixed prefix, e.g. "insight_<stamp>" or "merged_<stamp>"."""
    return f"{prefix}_{next_stamp()}"
