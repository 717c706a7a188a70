"""Historical pattern analysis over workflow history and active rules.

The analyzer only reads. It produces:
- aggregate approval statistics (rate, durations, top approvers)
- coverage gaps (document types without rules, amount holes)
- ranked, confidence-scored rule suggestions
- per-rule usage statistics
"""

from __future__ import annotations

import time
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from approval_rules.domain.rules.entities import (
    DocumentType,
    WorkflowHistoryRecord,
    WorkflowStatus,
)
from approval_rules.domain.rules.rendering import DOCUMENT_TYPE_LABELS, format_amount
from approval_rules.domain.rules.repository import RuleRepositoryProtocol
from approval_rules.observability.tracing import log_event

from .entities import (
    INFINITY,
    AmountBucket,
    AmountRange,
    ApproverStat,
    CoverageGap,
    PatternAnalysis,
    RuleStatistics,
    RuleSuggestion,
    SuggestedApprover,
    SuggestedRule,
    SuggestionBasis,
)
from .gaps import find_amount_gaps

_SECONDS_PER_HOUR = 3600.0

AMOUNT_BUCKETS: list[tuple[str, AmountRange]] = [
    ("Bajo (<$50K)", AmountRange(Decimal(0), Decimal(50_000))),
    ("Medio ($50K-$200K)", AmountRange(Decimal(50_000), Decimal(200_000))),
    ("Alto ($200K-$500K)", AmountRange(Decimal(200_000), Decimal(500_000))),
    ("Muy alto (>$500K)", AmountRange(Decimal(500_000), INFINITY)),
]

# Case-sensitive: matches "Muy alto (>$500K)" only
HIGH_AMOUNT_MARKER = "alto"

TOP_APPROVERS = 5
FREQUENT_APPROVER_MIN = 5
HIGH_AMOUNT_MIN = 3
CATEGORY_CONCENTRATION_MIN = 5
MAX_GAP_SUGGESTIONS = 2


def _hours_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / _SECONDS_PER_HOUR


def _mean_duration_hours(workflows: Iterable[WorkflowHistoryRecord]) -> float:
    """Mean creation-to-completion time; workflows missing a timestamp are skipped."""
    durations = [
        d for d in (_hours_between(w.created_at, w.completed_at) for w in workflows)
        if d is not None
    ]
    return sum(durations) / len(durations) if durations else 0.0


class RuleAnalyzer:
    def __init__(
        self,
        repository: RuleRepositoryProtocol,
        *,
        suggestion_limit: int = 5,
    ) -> None:
        self._repo = repository
        self._suggestion_limit = suggestion_limit

    # ------------------------------------
    # Patterns
    # ------------------------------------

    def analyze_approval_patterns(self, tenant_id: str) -> PatternAnalysis:
        workflows = self._repo.list_completed_workflows(tenant_id)

        total = len(workflows)
        approved = sum(1 for w in workflows if w.status == WorkflowStatus.APPROVED)
        approval_rate = (approved / total) * 100 if total > 0 else 0.0

        return PatternAnalysis(
            total_workflows=total,
            approval_rate=approval_rate,
            avg_approval_time_hours=_mean_duration_hours(workflows),
            top_approvers=self._top_approvers(workflows),
            amount_distribution=self._amount_distribution(tenant_id),
            category_breakdown=self._repo.category_counts(tenant_id),
        )

    @staticmethod
    def _top_approvers(workflows: list[WorkflowHistoryRecord]) -> list[ApproverStat]:
        counts: dict[str, int] = defaultdict(int)
        total_hours: dict[str, float] = defaultdict(float)
        names: dict[str, str] = {}

        for workflow in workflows:
            for decision in workflow.decisions:
                if not decision.decided_by_id or decision.decision != WorkflowStatus.APPROVED:
                    continue
                user_id = decision.decided_by_id
                counts[user_id] += 1
                names.setdefault(user_id, decision.decided_by_name or "Usuario")
                response = _hours_between(decision.created_at, decision.decided_at)
                if response is not None:
                    total_hours[user_id] += response

        stats = [
            ApproverStat(
                user_id=user_id,
                user_name=names[user_id],
                approval_count=count,
                avg_response_time_hours=total_hours[user_id] / count,
            )
            for user_id, count in counts.items()
        ]
        stats.sort(key=lambda s: s.approval_count, reverse=True)
        return stats[:TOP_APPROVERS]

    def _amount_distribution(self, tenant_id: str) -> list[AmountBucket]:
        amounts = [
            Decimal(a) if a is not None else Decimal(0)
            for a in self._repo.list_estimated_amounts(tenant_id)
        ]
        return [
            AmountBucket(range=label, count=sum(1 for a in amounts if bucket.contains(a)))
            for label, bucket in AMOUNT_BUCKETS
        ]

    # ------------------------------------
    # Coverage
    # ------------------------------------

    def detect_coverage_gaps(self, tenant_id: str) -> list[CoverageGap]:
        rules = self._repo.list_rules(tenant_id, active_only=True)
        gaps: list[CoverageGap] = []

        for document_type in DocumentType:
            rules_for_type = [r for r in rules if r.document_type == document_type]
            label = DOCUMENT_TYPE_LABELS[document_type]

            if not rules_for_type:
                affected = self._repo.count_documents(tenant_id, document_type)
                # An empty invoice pipeline is not reported
                if affected > 0 or document_type != DocumentType.INVOICE:
                    gaps.append(CoverageGap(
                        kind="no_rule",
                        description=f"No hay reglas de aprobación para {label}",
                        document_type=document_type,
                        affected_documents=affected,
                        suggestion=f"Crear una regla básica para aprobar {label}",
                    ))

            for hole in find_amount_gaps(rules_for_type):
                low, high = format_amount(hole.min), format_amount(hole.max)
                gaps.append(CoverageGap(
                    kind="partial_coverage",
                    description=f"Documentos con monto entre ${low} y ${high} no tienen regla",
                    document_type=document_type,
                    amount_range=hole,
                    suggestion=f"Crear regla para montos de ${low} a ${high}",
                ))

        log_event("analyzer.coverage_gaps", tenant_id=tenant_id, gaps=len(gaps))
        return gaps

    # ------------------------------------
    # Suggestions
    # ------------------------------------

    def generate_rule_suggestions(self, tenant_id: str) -> list[RuleSuggestion]:
        patterns = self.analyze_approval_patterns(tenant_id)
        gaps = self.detect_coverage_gaps(tenant_id)
        stamp = time.time_ns() // 1_000_000

        suggestions: list[RuleSuggestion] = []

        if patterns.top_approvers:
            top = patterns.top_approvers[0]
            if top.approval_count >= FREQUENT_APPROVER_MIN:
                suggestions.append(RuleSuggestion(
                    id=f"sug_{stamp}_1",
                    title=f"Asignar {top.user_name} como aprobador principal",
                    reason=(
                        f"{top.user_name} ha aprobado {top.approval_count} documentos con un tiempo "
                        f"promedio de {top.avg_response_time_hours:.1f} horas."
                    ),
                    confidence=min(top.approval_count / 10, 1) * 100,
                    suggested_prompt=f"Crea una regla donde {top.user_name} apruebe todos los requerimientos",
                    based_on=SuggestionBasis("frequent_approver", top.approval_count),
                    suggested_rule=SuggestedRule(
                        name=f"Aprobación por {top.user_name}",
                        document_type=DocumentType.PURCHASE_REQUEST,
                        approvers=[SuggestedApprover("user", top.user_id)],
                    ),
                ))

        high = next(
            (b for b in patterns.amount_distribution if HIGH_AMOUNT_MARKER in b.range),
            None,
        )
        if high is not None and high.count >= HIGH_AMOUNT_MIN:
            suggestions.append(RuleSuggestion(
                id=f"sug_{stamp}_2",
                title="Aprobación gerencial para montos altos",
                reason=(
                    f"Se detectaron {high.count} documentos con montos altos que podrían "
                    "requerir aprobación especial."
                ),
                confidence=75,
                suggested_prompt="Crea una regla que requiera aprobación de gerente para compras mayores a $500,000",
                based_on=SuggestionBasis("high_amount_transactions", high.count),
                suggested_rule=SuggestedRule(
                    name="Aprobación Gerencial +$500K",
                    document_type=DocumentType.PURCHASE_REQUEST,
                    min_amount=Decimal(500_000),
                    approvers=[SuggestedApprover("role", "PURCHASE_ADMIN")],
                ),
            ))

        no_rule_gaps = [g for g in gaps if g.kind == "no_rule"][:MAX_GAP_SUGGESTIONS]
        for gap in no_rule_gaps:
            suggestions.append(RuleSuggestion(
                id=f"sug_{stamp}_gap_{gap.document_type.value}",
                title=f"Crear regla para {DOCUMENT_TYPE_LABELS[gap.document_type]}",
                reason=gap.description,
                confidence=90,
                suggested_prompt=gap.suggestion,
                based_on=SuggestionBasis("coverage_gap", gap.affected_documents),
                suggested_rule=SuggestedRule(
                    name=f"Regla básica {gap.document_type.value}",
                    document_type=gap.document_type,
                    approvers=[SuggestedApprover("role", "PURCHASE_APPROVER")],
                ),
            ))

        categories = sorted(
            patterns.category_breakdown.items(), key=lambda item: item[1], reverse=True
        )
        if categories and categories[0][1] >= CATEGORY_CONCENTRATION_MIN:
            category, count = categories[0]
            suggestions.append(RuleSuggestion(
                id=f"sug_{stamp}_cat",
                title=f"Regla especializada para {category}",
                reason=(
                    f'La categoría "{category}" tiene {count} documentos y podría '
                    "beneficiarse de una regla específica."
                ),
                confidence=65,
                suggested_prompt=f"Crea una regla específica para compras de categoría {category}",
                based_on=SuggestionBasis("category_concentration", count),
                suggested_rule=SuggestedRule(
                    name=f"Aprobación {category}",
                    document_type=DocumentType.PURCHASE_REQUEST,
                    category=category,
                    approvers=[SuggestedApprover("role", "PURCHASE_APPROVER")],
                ),
            ))

        # sorted() is stable: equal confidences keep generation order
        ranked = sorted(suggestions, key=lambda s: s.confidence, reverse=True)
        return ranked[:self._suggestion_limit]

    # ------------------------------------
    # Per-rule statistics
    # ------------------------------------

    def get_rule_statistics(self, rule_id: str) -> RuleStatistics | None:
        rule = self._repo.get_rule(rule_id)
        if rule is None:
            return None

        workflows = self._repo.list_workflows_for_rule(rule_id)
        approved = [w for w in workflows if w.status == WorkflowStatus.APPROVED]
        created = [w.created_at for w in workflows if w.created_at is not None]

        return RuleStatistics(
            rule_id=rule_id,
            rule_name=rule.name,
            total_workflows=len(workflows),
            approved_count=len(approved),
            rejected_count=sum(1 for w in workflows if w.status == WorkflowStatus.REJECTED),
            pending_count=sum(1 for w in workflows if w.status == WorkflowStatus.IN_PROGRESS),
            avg_approval_time_hours=_mean_duration_hours(approved),
            last_used=max(created) if created else None,
            documents_covered=len(workflows),
        )
