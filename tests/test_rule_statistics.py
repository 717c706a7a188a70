from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from approval_rules.domain.analysis import RuleAnalyzer
from approval_rules.domain.rules import WorkflowStatus
from approval_rules.runtime import RuleLifecycleManager
from tests.fixtures.seed import seed_rule, seed_workflow

T0 = datetime(2025, 2, 1, 8, 0)


def test_statistics_for_a_used_rule(repository, db) -> None:
    rule = seed_rule(repository, name="Con historia")
    seed_workflow(db, rule_id=rule.id, status=WorkflowStatus.APPROVED,
                  created_at=T0, completed_at=T0 + timedelta(hours=2))
    seed_workflow(db, rule_id=rule.id, status=WorkflowStatus.APPROVED,
                  created_at=T0 + timedelta(days=1), completed_at=T0 + timedelta(days=1, hours=4))
    seed_workflow(db, rule_id=rule.id, status=WorkflowStatus.REJECTED,
                  created_at=T0, completed_at=T0 + timedelta(hours=30))
    seed_workflow(db, rule_id=rule.id, status=WorkflowStatus.IN_PROGRESS,
                  created_at=T0 + timedelta(days=3))
    seed_workflow(db, rule_id="otra", status=WorkflowStatus.APPROVED, created_at=T0)

    stats = RuleAnalyzer(repository).get_rule_statistics(rule.id)

    assert stats.rule_name == "Con historia"
    assert stats.total_workflows == 4
    assert stats.approved_count == 2
    assert stats.rejected_count == 1
    assert stats.pending_count == 1
    assert stats.avg_approval_time_hours == pytest.approx(3.0)
    assert stats.last_used == T0 + timedelta(days=3)
    assert stats.documents_covered == 4


def test_unused_rule(repository) -> None:
    rule = seed_rule(repository, name="Nueva")
    stats = RuleAnalyzer(repository).get_rule_statistics(rule.id)

    assert stats.total_workflows == 0
    assert stats.avg_approval_time_hours == 0
    assert stats.last_used is None


def test_unknown_rule(repository, manager: RuleLifecycleManager) -> None:
    assert RuleAnalyzer(repository).get_rule_statistics("nope") is None

    result = manager.rule_statistics("nope")
    assert result.success is True
    assert result.data is None
