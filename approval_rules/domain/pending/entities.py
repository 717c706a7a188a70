# ============================================================
# Pending (staged, not yet committed) rule actions
# ============================================================
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from approval_rules.domain.rules.entities import ApprovalRule, RuleAttributes, RuleDraft


class PendingActionKind(str, enum.Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass(frozen=True)
class RuleModification:
    rule_id: str
    attributes: RuleAttributes
    original: ApprovalRule


@dataclass(frozen=True)
class RuleDeletion:
    rule: ApprovalRule
    in_progress_workflows: int = 0


PendingPayload = Union[RuleDraft, RuleModification, RuleDeletion]


@dataclass(frozen=True)
class PendingAction:
    """
    A rule operation waiting for explicit confirmation.

    Ownership (user and tenant) is what authorizes a confirmation. The token
    is only a lookup key.
    """
    kind: PendingActionKind
    payload: PendingPayload
    user_id: str
    tenant_id: str
    created_at: datetime
    expires_at: datetime
    original_text: Optional[str] = None
    token: str = ""

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_owned_by(self, *, user_id: str, tenant_id: str) -> bool:
        return self.user_id == user_id and self.tenant_id == tenant_id
