from __future__ import annotations

from datetime import datetime, timedelta

from approval_rules.domain.analysis import RuleAnalyzer
from approval_rules.domain.rules import (
    ApprovalDecisionRecord,
    DocumentType,
    WorkflowHistoryRecord,
    WorkflowStatus,
)
from approval_rules.runtime import RuleLifecycleManager
from approval_rules.domain.pending import PendingActionStore
from tests.fixtures.mock_rule_repository import make_rule, mock_rule_repository

T0 = datetime(2025, 1, 10, 9, 0)


def _approved_by(user_id: str, n: int) -> list[WorkflowHistoryRecord]:
    return [
        WorkflowHistoryRecord(
            id=f"wf_{i}",
            status=WorkflowStatus.APPROVED,
            created_at=T0,
            completed_at=T0 + timedelta(hours=1),
            decisions=[ApprovalDecisionRecord(
                decided_by_id=user_id,
                decided_by_name="María",
                decision=WorkflowStatus.APPROVED,
                created_at=T0,
                decided_at=T0 + timedelta(hours=1),
            )],
        )
        for i in range(n)
    ]


def test_no_rule_gaps_skip_empty_invoice_pipeline() -> None:
    gaps = RuleAnalyzer(mock_rule_repository()).detect_coverage_gaps("tenant_a")

    assert [(g.kind, g.document_type) for g in gaps] == [
        ("no_rule", DocumentType.PURCHASE_REQUEST),
        ("no_rule", DocumentType.PURCHASE_ORDER),
    ]


def test_invoices_reported_once_documents_exist() -> None:
    repo = mock_rule_repository(document_counts={DocumentType.INVOICE: 4})
    gaps = RuleAnalyzer(repo).detect_coverage_gaps("tenant_a")

    invoice = [g for g in gaps if g.document_type == DocumentType.INVOICE]
    assert invoice[0].affected_documents == 4


def test_partial_coverage_gap() -> None:
    repo = mock_rule_repository(rules=[
        make_rule(id="a", min_amount=0, max_amount=50000),
        make_rule(id="b", min_amount=100000),
        make_rule(id="c", document_type=DocumentType.PURCHASE_ORDER),
        make_rule(id="d", document_type=DocumentType.INVOICE),
    ])

    gaps = RuleAnalyzer(repo).detect_coverage_gaps("tenant_a")

    assert len(gaps) == 1
    gap = gaps[0]
    assert gap.kind == "partial_coverage"
    assert gap.description == "Documentos con monto entre $50.000 y $100.000 no tienen regla"


def test_inactive_rules_do_not_cover() -> None:
    repo = mock_rule_repository(rules=[
        make_rule(document_type=DocumentType.PURCHASE_ORDER, is_active=False),
    ])
    gaps = RuleAnalyzer(repo).detect_coverage_gaps("tenant_a")
    assert DocumentType.PURCHASE_ORDER in [g.document_type for g in gaps]


def test_suggestions_are_ranked_by_confidence() -> None:
    repo = mock_rule_repository(
        workflows=_approved_by("u_maria", 6),
        amounts=[600000, 700000, 800000],
        categories={"IT": 7, "Limpieza": 2},
    )

    suggestions = RuleAnalyzer(repo).generate_rule_suggestions("tenant_a")

    assert [(s.based_on.pattern, s.confidence) for s in suggestions] == [
        ("coverage_gap", 90),
        ("coverage_gap", 90),
        ("high_amount_transactions", 75),
        ("category_concentration", 65),
        ("frequent_approver", 60),
    ]
    assert suggestions[0].suggested_rule.document_type == DocumentType.PURCHASE_REQUEST
    assert suggestions[3].suggested_rule.category == "IT"
    assert suggestions[4].suggested_rule.approvers[0].value == "u_maria"


def test_suggestions_respect_the_limit() -> None:
    repo = mock_rule_repository(workflows=_approved_by("u_maria", 5), amounts=[600000] * 3)
    suggestions = RuleAnalyzer(repo, suggestion_limit=2).generate_rule_suggestions("tenant_a")

    assert len(suggestions) == 2
    assert all(s.confidence == 90 for s in suggestions)


def test_frequent_approver_confidence_is_capped() -> None:
    repo = mock_rule_repository(
        rules=[make_rule(document_type=t) for t in DocumentType],
        workflows=_approved_by("u_maria", 15),
    )
    suggestions = RuleAnalyzer(repo).generate_rule_suggestions("tenant_a")
    assert [s.confidence for s in suggestions] == [100]


def test_below_thresholds_nothing_is_suggested() -> None:
    repo = mock_rule_repository(
        rules=[make_rule(document_type=t) for t in DocumentType],
        workflows=_approved_by("u_maria", 4),
        amounts=[600000, 600000],
        categories={"IT": 4},
    )
    assert RuleAnalyzer(repo).generate_rule_suggestions("tenant_a") == []


def test_suggest_rules_message() -> None:
    repo = mock_rule_repository()
    manager = RuleLifecycleManager(repository=repo, store=PendingActionStore())

    result = manager.suggest_rules("tenant_a")

    assert result.success is True
    assert len(result.data) == 2
    assert result.message.startswith("💡 **Sugerencias basadas en tu historial**")
    assert "1. 💡 **Crear regla para requerimientos de compra**" in result.message


def test_suggest_rules_without_suggestions() -> None:
    repo = mock_rule_repository(rules=[make_rule(document_type=t) for t in DocumentType])
    manager = RuleLifecycleManager(repository=repo, store=PendingActionStore())

    result = manager.suggest_rules("tenant_a")

    assert result.data == []
    assert "No tengo sugerencias" in result.message
