"""Remembered sessions across API endpoints."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Session


def merge_current_session(new_session: Session, history: Iterable[Session]) -> list[Session]:
    """Return a history headed by ``new_session``.

    Entries with a different identity keep their relative order behind the head;
    entries sharing the new session's identity are superseded and dropped.
    """
    merged = [new_session]
    merged.extend(entry for entry in history if entry.identity != new_session.identity)
    return merged


def find_instance(history: Iterable[Session], pattern: str) -> Session | None:
    """Return the first remembered session whose auth endpoint contains ``pattern``."""
    for entry in history:
        if pattern in entry.auth_endpoint:
            return entry
    return None
