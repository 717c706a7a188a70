from __future__ import annotations

import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from approval_rules.observability.tracing import log_event

from .entities import PendingAction, PendingActionKind

Clock = Callable[[], datetime]

_TOKEN_PREFIXES = {
    PendingActionKind.CREATE: "pending_",
    PendingActionKind.MODIFY: "pending_mod_",
    PendingActionKind.DELETE: "pending_del_",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_token(kind: PendingActionKind) -> str:
    """Timestamp plus random suffix. Unique, not secret."""
    return f"{_TOKEN_PREFIXES[kind]}{time.time_ns() // 1_000_000}_{uuid.uuid4().hex[:9]}"


class PendingActionStore:
    """
    In-memory registry of staged rule actions.

    Expiry is checked lazily on every read and eagerly by ``sweep``.
    Confirmations go through ``claim``: a claimed action is invisible to
    everyone else until it is either deleted (committed) or released
    (commit failed), so it can never be confirmed twice.

    No I/O happens while the lock is held.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(minutes=5),
        clock: Clock = utc_now,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._actions: dict[str, PendingAction] = {}
        self._claimed: dict[str, PendingAction] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def now(self) -> datetime:
        return self._clock()

    def new_action(
        self,
        *,
        kind: PendingActionKind,
        payload,
        user_id: str,
        tenant_id: str,
        original_text: str | None = None,
    ) -> PendingAction:
        created_at = self._clock()
        return PendingAction(
            kind=kind,
            payload=payload,
            user_id=user_id,
            tenant_id=tenant_id,
            created_at=created_at,
            expires_at=created_at + self._ttl,
            original_text=original_text,
        )

    def put(self, action: PendingAction) -> str:
        with self._lock:
            token = new_token(action.kind)
            while token in self._actions or token in self._claimed:
                token = new_token(action.kind)
            self._actions[token] = replace(action, token=token)
        return token

    def get(self, token: str) -> PendingAction | None:
        now = self._clock()
        with self._lock:
            action = self._actions.get(token)
            if action is None:
                return None
            if action.is_expired(now):
                del self._actions[token]
                return None
            return action

    def peek(self, token: str) -> PendingAction | None:
        """Return the stored entry even if it has expired but was not swept yet."""
        with self._lock:
            return self._actions.get(token)

    def claim(self, token: str) -> PendingAction | None:
        """Atomically take a live action out of circulation for confirmation."""
        now = self._clock()
        with self._lock:
            action = self._actions.pop(token, None)
            if action is None:
                return None
            if action.is_expired(now):
                return None
            self._claimed[token] = action
            return action

    def release(self, token: str) -> None:
        """Return a claimed action after a failed commit."""
        with self._lock:
            action = self._claimed.pop(token, None)
            if action is not None:
                self._actions[token] = action

    def delete(self, token: str) -> bool:
        with self._lock:
            removed = self._actions.pop(token, None)
            claimed = self._claimed.pop(token, None)
        return removed is not None or claimed is not None

    def pending_for_user(self, user_id: str) -> list[PendingAction]:
        now = self._clock()
        with self._lock:
            return [
                a for a in self._actions.values()
                if a.user_id == user_id and not a.is_expired(now)
            ]

    def sweep(self, now: datetime | None = None) -> int:
        """Remove every expired, unclaimed entry. Returns how many were removed."""
        now = now or self._clock()
        with self._lock:
            expired = [t for t, a in self._actions.items() if a.is_expired(now)]
            for token in expired:
                del self._actions[token]

        for token in expired:
            log_event("pending.expired", token=token)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

    def __contains__(self, token: str) -> bool:
        return self.get(token) is not None
