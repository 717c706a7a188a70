"""Structured action dispatch.

Whatever sits in front of the core (a chat agent, an HTTP handler, a CLI)
hands over an already-parsed ``RuleAction``; ``dispatch`` routes it to the
matching lifecycle, query or analysis operation.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field

from approval_rules.core.errors import RuleErrorKind
from approval_rules.domain.rules.entities import RuleChanges, RulePayload

from .lifecycle import RuleLifecycleManager
from .results import RuleOperationResult


class RuleActionKind(str, enum.Enum):
    CREATE = "create"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    MODIFY = "modify"
    DELETE = "delete"
    LIST = "list"
    EXPLAIN = "explain"
    SUGGEST = "suggest"


class RuleAction(BaseModel):
    action: RuleActionKind
    token: Optional[str] = None
    identifier: Optional[str] = None
    rule: RulePayload = Field(default_factory=RulePayload)
    changes: RuleChanges = Field(default_factory=RuleChanges)
    document_type: Optional[str] = None


def dispatch(
    manager: RuleLifecycleManager,
    action: RuleAction,
    *,
    user_id: str,
    tenant_id: str,
    original_text: str | None = None,
) -> RuleOperationResult:
    kind = action.action

    if kind == RuleActionKind.CREATE:
        return manager.prepare_create(action.rule, user_id, tenant_id, original_text)

    if kind == RuleActionKind.CONFIRM:
        if not action.token:
            return RuleOperationResult(
                success=False,
                message="No se especificó qué regla confirmar.",
                error=RuleErrorKind.MISSING_PENDING_TOKEN,
            )
        return manager.confirm(action.token, user_id, tenant_id)

    if kind == RuleActionKind.CANCEL:
        return manager.cancel(action.token, user_id, tenant_id)

    if kind == RuleActionKind.MODIFY:
        return manager.prepare_modify(
            action.identifier, action.changes, user_id, tenant_id, original_text
        )

    if kind == RuleActionKind.DELETE:
        return manager.prepare_delete(action.identifier, user_id, tenant_id)

    if kind == RuleActionKind.LIST:
        return manager.list_rules(tenant_id, action.document_type)

    if kind == RuleActionKind.EXPLAIN:
        return manager.explain_rule(tenant_id, action.identifier)

    return manager.suggest_rules(tenant_id)
