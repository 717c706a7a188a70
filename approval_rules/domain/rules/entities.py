# ============================================================
# Rule domain entities
# ============================================================
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DocumentType(str, enum.Enum):
    PURCHASE_REQUEST = "PURCHASE_REQUEST"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    INVOICE = "INVOICE"


class PurchaseType(str, enum.Enum):
    DIRECT = "DIRECT"
    WITH_QUOTE = "WITH_QUOTE"
    WITH_BID = "WITH_BID"
    WITH_ADVANCE = "WITH_ADVANCE"


class ApprovalMode(str, enum.Enum):
    ANY = "ANY"
    ALL = "ALL"


class LevelType(str, enum.Enum):
    GENERAL = "GENERAL"
    SPECIFICATIONS = "SPECIFICATIONS"


class WorkflowStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ------------------------------------
# Incoming payloads
# ------------------------------------

class ApproverSpec(BaseModel):
    """A specific user or a role. Exactly one of the two is set."""
    user_id: Optional[str] = None
    role: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ApproverSpec":
        if bool(self.user_id) == bool(self.role):
            raise ValueError("approver must reference either a user or a role")
        return self

    @property
    def is_role(self) -> bool:
        return self.role is not None


class LevelSpec(BaseModel):
    name: str = ""
    order: Optional[int] = None
    mode: ApprovalMode = ApprovalMode.ANY
    level_type: LevelType = LevelType.GENERAL
    approvers: list[ApproverSpec] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> ApprovalMode:
        # Anything other than an explicit ALL settles on the first decision
        if isinstance(value, ApprovalMode):
            return value
        return ApprovalMode.ALL if str(value).upper() == "ALL" else ApprovalMode.ANY

    @field_validator("level_type", mode="before")
    @classmethod
    def _coerce_level_type(cls, value: Any) -> LevelType:
        if isinstance(value, LevelType):
            return value
        if str(value).upper() == LevelType.SPECIFICATIONS.value:
            return LevelType.SPECIFICATIONS
        return LevelType.GENERAL


class RuleConditions(BaseModel):
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    purchase_type: Optional[str] = None
    sector: Optional[str] = None


class RulePayload(BaseModel):
    """Structured create request, as handed over by the calling layer."""
    name: Optional[str] = None
    description: Optional[str] = None
    document_type: Optional[str] = None
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    levels: list[LevelSpec] = Field(default_factory=list)
    priority: Optional[int] = None
    active: Optional[bool] = None


class RuleChanges(BaseModel):
    """
    Partial update of a rule's top-level attributes.

    Only fields that were explicitly set take part in the merge, so an
    explicit ``None`` clears a value while an omitted field keeps it.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    document_type: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    purchase_type: Optional[str] = None
    sector: Optional[str] = None
    priority: Optional[int] = None
    active: Optional[bool] = None


# ------------------------------------
# Normalized, staged drafts
# ------------------------------------

class LevelDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    level_order: int
    approval_mode: ApprovalMode
    level_type: LevelType
    approvers: list[ApproverSpec]


class RuleAttributes(BaseModel):
    """Top-level attributes of a rule, without its levels."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    document_type: DocumentType = DocumentType.PURCHASE_REQUEST
    purchase_type: Optional[PurchaseType] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    sector: Optional[str] = None
    priority: int = 0
    is_active: bool = True


class RuleDraft(RuleAttributes):
    levels: list[LevelDraft]


# ------------------------------------
# Committed rules (read from persistence)
# ------------------------------------

class Approver(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    role: Optional[str] = None
    sequence_order: int = 1


class ApprovalLevel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    level_order: int
    approval_mode: ApprovalMode = ApprovalMode.ANY
    level_type: LevelType = LevelType.GENERAL
    approvers: list[Approver] = Field(default_factory=list)


class ApprovalRule(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    document_type: DocumentType
    purchase_type: Optional[PurchaseType] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    sector: Optional[str] = None
    priority: int = 0
    is_active: bool = True
    created_by_ai: bool = False
    original_prompt: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    levels: list[ApprovalLevel] = Field(default_factory=list)

    def attributes(self) -> RuleAttributes:
        return RuleAttributes(
            name=self.name,
            description=self.description,
            document_type=self.document_type,
            purchase_type=self.purchase_type,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            sector=self.sector,
            priority=self.priority,
            is_active=self.is_active,
        )


# ------------------------------------
# Workflow history (read-only input)
# ------------------------------------

class ApprovalDecisionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    decided_by_id: Optional[str] = None
    decided_by_name: Optional[str] = None
    decision: Optional[WorkflowStatus] = None
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None


class WorkflowHistoryRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    rule_id: Optional[str] = None
    status: WorkflowStatus
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    decisions: list[ApprovalDecisionRecord] = Field(default_factory=list)
