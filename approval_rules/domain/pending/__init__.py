"""Staged rule actions awaiting confirmation."""
from .entities import (
    PendingAction,
    PendingActionKind,
    PendingPayload,
    RuleDeletion,
    RuleModification,
)
from .store import PendingActionStore, new_token, utc_now
from .sweeper import PendingActionSweeper
