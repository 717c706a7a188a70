# ============================================================
# Analyzer outputs
# ============================================================
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from approval_rules.domain.rules.entities import DocumentType

GapKindLiteral = Literal["no_rule", "partial_coverage"]
PatternLiteral = Literal[
    "frequent_approver",
    "high_amount_transactions",
    "coverage_gap",
    "category_concentration",
]

INFINITY = Decimal("Infinity")


@dataclass(frozen=True)
class AmountRange:
    """Half-open interval ``[min, max)``; ``max`` may be infinite."""
    min: Decimal
    max: Decimal

    def contains(self, amount: Decimal) -> bool:
        return self.min <= amount < self.max


@dataclass(frozen=True)
class ApproverStat:
    user_id: str
    user_name: str
    approval_count: int
    avg_response_time_hours: float


@dataclass(frozen=True)
class AmountBucket:
    range: str
    count: int
    avg_approval_time_hours: float = 0.0


@dataclass(frozen=True)
class PatternAnalysis:
    total_workflows: int
    approval_rate: float
    avg_approval_time_hours: float
    top_approvers: list[ApproverStat]
    amount_distribution: list[AmountBucket]
    category_breakdown: dict[str, int]


@dataclass(frozen=True)
class CoverageGap:
    kind: GapKindLiteral
    description: str
    document_type: DocumentType
    suggestion: str
    affected_documents: int = 0
    amount_range: Optional[AmountRange] = None


@dataclass(frozen=True)
class SuggestedApprover:
    type: Literal["role", "user"]
    value: str


@dataclass(frozen=True)
class SuggestedRule:
    name: str
    document_type: DocumentType
    approvers: list[SuggestedApprover]
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class SuggestionBasis:
    pattern: PatternLiteral
    data_points: int


@dataclass(frozen=True)
class RuleSuggestion:
    id: str
    title: str
    reason: str
    confidence: float
    suggested_prompt: str
    based_on: SuggestionBasis
    suggested_rule: SuggestedRule


@dataclass(frozen=True)
class RuleStatistics:
    rule_id: str
    rule_name: str
    total_workflows: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    pending_count: int = 0
    avg_approval_time_hours: float = 0.0
    last_used: Optional[datetime] = None
    documents_covered: int = 0
