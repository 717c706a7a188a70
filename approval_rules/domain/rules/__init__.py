"""Approval rules: entities, classification and rendering."""
from .entities import (
    ApprovalDecisionRecord,
    ApprovalLevel,
    ApprovalMode,
    ApprovalRule,
    Approver,
    ApproverSpec,
    DocumentType,
    LevelDraft,
    LevelSpec,
    LevelType,
    PurchaseType,
    RuleAttributes,
    RuleChanges,
    RuleConditions,
    RuleDraft,
    RulePayload,
    WorkflowHistoryRecord,
    WorkflowStatus,
)
from .classifiers import classify_document_type, classify_purchase_type
