from __future__ import annotations

import pytest
from pydantic import ValidationError

from approval_rules.core.errors import RuleErrorKind
from approval_rules.runtime import RuleAction, RuleLifecycleManager, dispatch
from tests.fixtures.seed import seed_rule


def _dispatch(manager: RuleLifecycleManager, payload: dict, user_id: str = "u1"):
    return dispatch(manager, RuleAction.model_validate(payload), user_id=user_id, tenant_id="tenant_a")


def test_create_then_confirm(manager: RuleLifecycleManager, rule_payload: dict, repository) -> None:
    staged = _dispatch(manager, {"action": "create", "rule": rule_payload})
    confirmed = _dispatch(manager, {"action": "confirm", "token": staged.token})

    assert confirmed.success is True
    assert [r.name for r in repository.list_rules("tenant_a")] == ["Finance Review"]


def test_confirm_without_token(manager: RuleLifecycleManager) -> None:
    result = _dispatch(manager, {"action": "confirm"})
    assert result.error == RuleErrorKind.MISSING_PENDING_TOKEN


def test_modify_and_delete_route_through_confirm(manager: RuleLifecycleManager, repository) -> None:
    rule = seed_rule(repository, name="Ruteada", priority=1)

    modify = _dispatch(manager, {"action": "modify", "identifier": "ruteada", "changes": {"priority": 4}})
    assert _dispatch(manager, {"action": "confirm", "token": modify.token}).success is True
    assert repository.get_rule(rule.id).priority == 4

    delete = _dispatch(manager, {"action": "delete", "identifier": rule.id})
    assert _dispatch(manager, {"action": "confirm", "token": delete.token}).success is True
    assert repository.get_rule(rule.id) is None


def test_cancel(manager: RuleLifecycleManager, rule_payload: dict) -> None:
    staged = _dispatch(manager, {"action": "create", "rule": rule_payload})
    assert _dispatch(manager, {"action": "cancel", "token": staged.token}).message.startswith("Regla cancelada")
    assert manager.get_pending_for_user("u1") == []


def test_read_actions(manager: RuleLifecycleManager, repository) -> None:
    seed_rule(repository, name="Lectura")

    assert _dispatch(manager, {"action": "list"}).data[0].name == "Lectura"
    assert _dispatch(manager, {"action": "explain", "identifier": "lectura"}).success is True
    assert _dispatch(manager, {"action": "suggest"}).success is True


def test_unknown_action_is_rejected_when_parsing() -> None:
    with pytest.raises(ValidationError):
        RuleAction.model_validate({"action": "approve"})
