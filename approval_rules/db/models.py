import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from approval_rules.domain.rules.entities import (
    ApprovalMode,
    DocumentType,
    LevelType,
    PurchaseType,
    WorkflowStatus,
)

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalRuleRow(Base):
    __tablename__ = "approval_rules"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    document_type = Column(Enum(DocumentType), nullable=False, default=DocumentType.PURCHASE_REQUEST)
    purchase_type = Column(Enum(PurchaseType), nullable=True)
    min_amount = Column(Numeric(18, 2), nullable=True)
    max_amount = Column(Numeric(18, 2), nullable=True)
    sector = Column(String, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_ai = Column(Boolean, nullable=False, default=False)
    original_prompt = Column(Text, nullable=True)
    created_by_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    levels = relationship(
        "ApprovalLevelRow",
        back_populates="rule",
        order_by="ApprovalLevelRow.level_order",
    )


class ApprovalLevelRow(Base):
    __tablename__ = "approval_levels"
    __table_args__ = (UniqueConstraint("approval_rule_id", "level_order"),)

    id = Column(String, primary_key=True, default=_uuid)
    approval_rule_id = Column(String, ForeignKey("approval_rules.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    level_order = Column(Integer, nullable=False)
    approval_mode = Column(Enum(ApprovalMode), nullable=False, default=ApprovalMode.ANY)
    level_type = Column(Enum(LevelType), nullable=False, default=LevelType.GENERAL)

    rule = relationship("ApprovalRuleRow", back_populates="levels")
    approvers = relationship(
        "ApprovalLevelApproverRow",
        back_populates="level",
        order_by="ApprovalLevelApproverRow.sequence_order",
    )


class ApprovalLevelApproverRow(Base):
    __tablename__ = "approval_level_approvers"

    id = Column(String, primary_key=True, default=_uuid)
    approval_level_id = Column(String, ForeignKey("approval_levels.id"), index=True, nullable=False)
    user_id = Column(String, nullable=True)
    role = Column(String, nullable=True)
    sequence_order = Column(Integer, nullable=False, default=1)

    level = relationship("ApprovalLevelRow", back_populates="approvers")


class ApprovalWorkflowRow(Base):
    __tablename__ = "approval_workflows"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = Column(String, index=True, nullable=False)
    # Not a foreign key: running workflows outlive a deleted rule
    approval_rule_id = Column(String, index=True, nullable=True)
    status = Column(Enum(WorkflowStatus), nullable=False, default=WorkflowStatus.IN_PROGRESS)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    decisions = relationship("ApprovalDecisionRow", back_populates="workflow")

    @property
    def rule_id(self) -> str | None:
        return self.approval_rule_id


class ApprovalDecisionRow(Base):
    __tablename__ = "approval_decisions"

    id = Column(String, primary_key=True, default=_uuid)
    workflow_id = Column(String, ForeignKey("approval_workflows.id"), index=True, nullable=False)
    decided_by_id = Column(String, nullable=True)
    decided_by_name = Column(String, nullable=True)
    decision = Column(Enum(WorkflowStatus), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    workflow = relationship("ApprovalWorkflowRow", back_populates="decisions")


class PurchaseDocumentRow(Base):
    __tablename__ = "purchase_documents"

    id = Column(String, primary_key=True, default=_uuid)
    tenant_id = Column(String, index=True, nullable=False)
    document_type = Column(Enum(DocumentType), nullable=False, default=DocumentType.PURCHASE_REQUEST)
    estimated_amount = Column(Numeric(18, 2), nullable=True)
    category = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
