from __future__ import annotations

from approval_rules.core.errors import RuleNotFoundError
from approval_rules.domain.rules.classifiers import classify_document_type
from approval_rules.domain.rules.entities import DocumentType
from approval_rules.domain.rules.rendering import build_rule_explanation, build_rules_list
from approval_rules.domain.rules.repository import RuleRepositoryProtocol

from .results import RuleOperationResult


class RuleQueryService:
    """Read-only views over a tenant's rules."""

    def __init__(self, repository: RuleRepositoryProtocol) -> None:
        self._repo = repository

    def list_rules(
        self,
        tenant_id: str,
        document_type: str | DocumentType | None = None,
    ) -> RuleOperationResult:
        rules = self._repo.list_rules(
            tenant_id,
            document_type=classify_document_type(document_type) if document_type else None,
        )
        return RuleOperationResult.ok(build_rules_list(rules), data=rules)

    def explain_rule(self, tenant_id: str, identifier: str | None = None) -> RuleOperationResult:
        """Explain one rule, or every active rule when no identifier is given."""
        if not identifier:
            rules = self._repo.list_rules(tenant_id, active_only=True)
            if not rules:
                return RuleOperationResult.ok(
                    "📖 **No hay reglas activas configuradas**\n\n"
                    "Actualmente los documentos no pasan por ningún proceso de aprobación.",
                    data=[],
                )
            explanations = "\n\n---\n\n".join(build_rule_explanation(r) for r in rules)
            return RuleOperationResult.ok(
                f"📖 **Reglas de Aprobación Activas**\n\n{explanations}",
                data=rules,
            )

        rule = self._repo.find_rule(tenant_id, identifier)
        if rule is None:
            raise RuleNotFoundError(identifier)

        return RuleOperationResult.ok(
            f"📖 **Explicación de la Regla**\n\n{build_rule_explanation(rule)}",
            data=rule,
        )
