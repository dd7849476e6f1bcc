"""
Operational activity log.

Entries are plain strings, newest last. The store persists the tail of this
list alongside the collections so the dashboard can show recent activity.
"""
from typing import List

MAX_PERSISTED_ENTRIES = 200

logs: List[str] = []


def log_event(message: str) -> None:
    logs.append(message)


def recent(count: int = 10) -> List[str]:
    """Latest entries, newest first."""
    return list(reversed(logs[-count:]))
