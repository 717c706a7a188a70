from decimal import Decimal
from unittest.mock import MagicMock

from approval_rules.domain.rules.entities import ApprovalRule, DocumentType


def make_rule(
    *,
    id: str = "rule_1",
    tenant_id: str = "tenant_a",
    name: str = "Regla",
    document_type: DocumentType = DocumentType.PURCHASE_REQUEST,
    min_amount: int | None = None,
    max_amount: int | None = None,
    priority: int = 0,
    is_active: bool = True,
) -> ApprovalRule:
    return ApprovalRule(
        id=id,
        tenant_id=tenant_id,
        name=name,
        document_type=document_type,
        min_amount=Decimal(min_amount) if min_amount is not None else None,
        max_amount=Decimal(max_amount) if max_amount is not None else None,
        priority=priority,
        is_active=is_active,
    )


def mock_rule_repository(
    *,
    rules: list[ApprovalRule] | None = None,
    workflows=None,
    document_counts: dict[DocumentType, int] | None = None,
    amounts: list | None = None,
    categories: dict[str, int] | None = None,
) -> MagicMock:
    """Read-only repository double for the analyzer."""
    repo = MagicMock()
    rules = rules or []
    counts = document_counts or {}

    def list_rules(tenant_id, *, document_type=None, active_only=False):
        return [
            r for r in rules
            if (not active_only or r.is_active)
            and (document_type is None or r.document_type == document_type)
        ]

    repo.list_rules.side_effect = list_rules
    repo.get_rule.side_effect = lambda rule_id: next((r for r in rules if r.id == rule_id), None)
    repo.list_completed_workflows.return_value = workflows or []
    repo.list_workflows_for_rule.return_value = workflows or []
    repo.count_documents.side_effect = lambda tenant_id, document_type: counts.get(document_type, 0)
    repo.list_estimated_amounts.return_value = amounts or []
    repo.category_counts.return_value = categories or {}
    return repo
