from __future__ import annotations

from decimal import Decimal

from approval_rules.core.errors import RuleErrorKind
from approval_rules.domain.rules import DocumentType
from approval_rules.runtime import RuleLifecycleManager
from tests.fixtures.fake_clock import FakeClock
from tests.fixtures.seed import seed_rule


def test_priority_change_is_the_only_preview_line(manager: RuleLifecycleManager, repository) -> None:
    seed_rule(repository, name="Finance Review", priority=2, min_amount=100000)

    result = manager.prepare_modify("finance", {"priority": 5}, "u1", "tenant_a")

    assert result.success is True
    assert result.requires_confirmation is True
    assert result.token.startswith("pending_mod_")
    change_lines = [line for line in result.message.splitlines() if line.startswith("• ")]
    assert change_lines == ["• Prioridad: 2 → 5"]


def test_confirm_modify_updates_only_top_level_attributes(manager: RuleLifecycleManager, repository) -> None:
    rule = seed_rule(repository, name="Finance Review", priority=2, min_amount=100000)
    token = manager.prepare_modify(rule.id, {"priority": 5, "active": False}, "u1", "tenant_a").token

    result = manager.confirm_modify(token, "u1", "tenant_a")

    assert result.success is True
    updated = repository.get_rule(rule.id)
    assert updated.priority == 5
    assert updated.is_active is False
    assert updated.min_amount == Decimal(100000)
    assert updated.name == "Finance Review"
    assert [lvl.id for lvl in updated.levels] == [lvl.id for lvl in rule.levels]


def test_explicit_none_clears_and_empty_name_keeps(manager: RuleLifecycleManager, repository) -> None:
    seed_rule(repository, name="Topes", min_amount=1000, max_amount=5000, description="vieja")

    result = manager.prepare_modify(
        "topes",
        {"name": "", "max_amount": None, "description": "nueva", "document_type": ""},
        "u1",
        "tenant_a",
    )

    attributes = result.pending.attributes
    assert attributes.name == "Topes"
    assert attributes.document_type == DocumentType.PURCHASE_REQUEST
    assert attributes.max_amount is None
    assert attributes.min_amount == Decimal(1000)
    assert "• Monto máximo: $5.000 → $∞" in result.message
    assert "• Descripción: actualizada" in result.message


def test_no_changes(manager: RuleLifecycleManager, repository) -> None:
    seed_rule(repository, name="Quieta")
    result = manager.prepare_modify("quieta", {}, "u1", "tenant_a")
    assert "• Sin cambios detectados" in result.message


def test_missing_identifier_and_unknown_rule(manager: RuleLifecycleManager) -> None:
    missing = manager.prepare_modify(None, {"priority": 1}, "u1", "tenant_a")
    assert missing.error == RuleErrorKind.MISSING_IDENTIFIER

    unknown = manager.prepare_modify("nada", {"priority": 1}, "u1", "tenant_a")
    assert unknown.error == RuleErrorKind.RULE_NOT_FOUND
    assert unknown.message == 'No encontré ninguna regla con "nada".'


def test_rule_of_another_tenant_is_not_resolved(manager: RuleLifecycleManager, repository) -> None:
    seed_rule(repository, tenant_id="tenant_b", name="Ajena")
    result = manager.prepare_modify("ajena", {"priority": 1}, "u1", "tenant_a")
    assert result.error == RuleErrorKind.RULE_NOT_FOUND


def test_confirm_modify_checks_owner_and_expiry(
    manager: RuleLifecycleManager, repository, clock: FakeClock,
) -> None:
    rule = seed_rule(repository, name="Finance Review", priority=2)
    token = manager.prepare_modify(rule.id, {"priority": 9}, "u1", "tenant_a").token

    assert manager.confirm_modify(token, "u1", "tenant_b").error == RuleErrorKind.UNAUTHORIZED

    clock.advance(minutes=6)
    expired = manager.confirm_modify(token, "u1", "tenant_a")
    assert expired.error == RuleErrorKind.PENDING_RULE_NOT_FOUND
    assert expired.message == "La modificación expiró. Por favor, volvé a indicar los cambios."
    assert repository.get_rule(rule.id).priority == 2


def test_generic_confirm_routes_by_kind(manager: RuleLifecycleManager, repository) -> None:
    rule = seed_rule(repository, name="Finance Review", priority=2)
    token = manager.prepare_modify(rule.id, {"priority": 3}, "u1", "tenant_a").token

    result = manager.confirm(token, "u1", "tenant_a")

    assert result.success is True
    assert repository.get_rule(rule.id).priority == 3


def test_wrong_kind_token_is_not_found(manager: RuleLifecycleManager, repository) -> None:
    rule = seed_rule(repository, name="Finance Review")
    token = manager.prepare_modify(rule.id, {"priority": 3}, "u1", "tenant_a").token
    assert manager.confirm_delete(token, "u1", "tenant_a").error == RuleErrorKind.PENDING_RULE_NOT_FOUND
