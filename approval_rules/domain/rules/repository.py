# ============================================================
# DB access layer
# ============================================================
from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from approval_rules.db.connection import session_scope
from approval_rules.db.models import (
    ApprovalLevelApproverRow,
    ApprovalLevelRow,
    ApprovalRuleRow,
    ApprovalWorkflowRow,
    PurchaseDocumentRow,
)
from .entities import (
    ApprovalRule,
    DocumentType,
    RuleAttributes,
    RuleDraft,
    WorkflowHistoryRecord,
    WorkflowStatus,
)


class RuleRepositoryProtocol(Protocol):
    def create_rule(
            self,
            *,
            tenant_id: str,
            draft: RuleDraft,
            created_by_id: str | None,
            original_prompt: str | None,
    ) -> ApprovalRule:
        """Create a rule with its levels and approvers as one unit"""
        ...

    def update_rule(self, rule_id: str, attributes: RuleAttributes) -> ApprovalRule:
        """Update top-level attributes of a rule"""
        ...

    def delete_rule(self, rule_id: str) -> None:
        """Delete approvers, levels and the rule as one unit"""
        ...

    def get_rule(self, rule_id: str) -> ApprovalRule | None:
        """Get a rule by id"""
        ...

    def find_rule(self, tenant_id: str, identifier: str) -> ApprovalRule | None:
        """Find a rule by exact id or case-insensitive name substring"""
        ...

    def list_rules(
            self,
            tenant_id: str,
            *,
            document_type: DocumentType | None = None,
            active_only: bool = False,
    ) -> list[ApprovalRule]:
        """List rules, active first then by descending priority"""
        ...

    def count_in_progress_workflows(self, rule_id: str) -> int:
        ...

    def list_completed_workflows(self, tenant_id: str) -> list[WorkflowHistoryRecord]:
        ...

    def list_workflows_for_rule(self, rule_id: str) -> list[WorkflowHistoryRecord]:
        ...

    def count_documents(self, tenant_id: str, document_type: DocumentType) -> int:
        ...

    def list_estimated_amounts(self, tenant_id: str) -> list[Decimal | None]:
        ...

    def category_counts(self, tenant_id: str) -> dict[str, int]:
        ...


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RuleRepository(RuleRepositoryProtocol):
    """
    SQLAlchemy implementation of the rule persistence contract.

    Every method runs in its own session, so one repository can serve
    concurrent callers. Results are detached pydantic snapshots.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # --- Rules ---

    def _rule_query(self):
        return select(ApprovalRuleRow).options(
            selectinload(ApprovalRuleRow.levels).selectinload(ApprovalLevelRow.approvers)
        )

    def _load_rule(self, db: Session, rule_id: str) -> ApprovalRule | None:
        row = db.execute(
            self._rule_query().where(ApprovalRuleRow.id == rule_id)
        ).scalar_one_or_none()
        return ApprovalRule.model_validate(row) if row is not None else None

    def create_rule(
            self,
            *,
            tenant_id: str,
            draft: RuleDraft,
            created_by_id: str | None,
            original_prompt: str | None,
    ) -> ApprovalRule:
        """Create a rule with its levels and approvers as one unit"""
        row = ApprovalRuleRow(
            tenant_id=tenant_id,
            name=draft.name,
            description=draft.description,
            document_type=draft.document_type,
            purchase_type=draft.purchase_type,
            min_amount=draft.min_amount,
            max_amount=draft.max_amount,
            sector=draft.sector,
            priority=draft.priority,
            is_active=draft.is_active,
            created_by_ai=True,
            original_prompt=original_prompt,
            created_by_id=created_by_id,
        )
        for level in draft.levels:
            level_row = ApprovalLevelRow(
                name=level.name,
                level_order=level.level_order,
                approval_mode=level.approval_mode,
                level_type=level.level_type,
            )
            for idx, approver in enumerate(level.approvers):
                level_row.approvers.append(
                    ApprovalLevelApproverRow(
                        user_id=approver.user_id,
                        role=approver.role,
                        sequence_order=idx + 1,
                    )
                )
            row.levels.append(level_row)

        with session_scope(self._session_factory) as db:
            db.add(row)
            db.flush()
            rule_id = row.id
            db.expire_all()
            return self._load_rule(db, rule_id)

    def update_rule(self, rule_id: str, attributes: RuleAttributes) -> ApprovalRule:
        """Update top-level attributes of a rule"""
        with session_scope(self._session_factory) as db:
            row = db.get(ApprovalRuleRow, rule_id)
            if row is None:
                raise LookupError(f"approval rule {rule_id} does not exist")

            for field_name, value in attributes.model_dump().items():
                setattr(row, field_name, value)
            db.flush()
            return self._load_rule(db, rule_id)

    def delete_rule(self, rule_id: str) -> None:
        """Delete approvers, levels and the rule as one unit"""
        level_ids = select(ApprovalLevelRow.id).where(
            ApprovalLevelRow.approval_rule_id == rule_id
        )
        no_sync = {"synchronize_session": False}
        with session_scope(self._session_factory) as db:
            db.execute(
                delete(ApprovalLevelApproverRow).where(
                    ApprovalLevelApproverRow.approval_level_id.in_(level_ids)
                ),
                execution_options=no_sync,
            )
            db.execute(
                delete(ApprovalLevelRow).where(ApprovalLevelRow.approval_rule_id == rule_id),
                execution_options=no_sync,
            )
            result = db.execute(
                delete(ApprovalRuleRow).where(ApprovalRuleRow.id == rule_id),
                execution_options=no_sync,
            )
            if result.rowcount == 0:
                raise LookupError(f"approval rule {rule_id} does not exist")

    def get_rule(self, rule_id: str) -> ApprovalRule | None:
        """Get a rule by id"""
        with self._session_factory() as db:
            return self._load_rule(db, rule_id)

    def find_rule(self, tenant_id: str, identifier: str) -> ApprovalRule | None:
        """
        Find a rule by exact id or case-insensitive name substring.

        An exact id match wins. Otherwise the first name match returned by
        the database is used.
        """
        pattern = f"%{_escape_like(identifier)}%"
        with self._session_factory() as db:
            rows = db.execute(
                self._rule_query().where(
                    ApprovalRuleRow.tenant_id == tenant_id,
                    or_(
                        ApprovalRuleRow.id == identifier,
                        ApprovalRuleRow.name.ilike(pattern, escape="\\"),
                    ),
                )
            ).scalars().all()

            if not rows:
                return None
            exact = [r for r in rows if r.id == identifier]
            return ApprovalRule.model_validate(exact[0] if exact else rows[0])

    def list_rules(
            self,
            tenant_id: str,
            *,
            document_type: DocumentType | None = None,
            active_only: bool = False,
    ) -> list[ApprovalRule]:
        """List rules, active first then by descending priority"""
        query = self._rule_query().where(ApprovalRuleRow.tenant_id == tenant_id)
        if document_type is not None:
            query = query.where(ApprovalRuleRow.document_type == document_type)
        if active_only:
            query = query.where(ApprovalRuleRow.is_active.is_(True))
        query = query.order_by(
            ApprovalRuleRow.is_active.desc(),
            ApprovalRuleRow.priority.desc(),
        )

        with self._session_factory() as db:
            return [
                ApprovalRule.model_validate(row)
                for row in db.execute(query).scalars()
            ]

    # --- Workflows ---

    def count_in_progress_workflows(self, rule_id: str) -> int:
        query = select(func.count()).select_from(ApprovalWorkflowRow).where(
            ApprovalWorkflowRow.approval_rule_id == rule_id,
            ApprovalWorkflowRow.status == WorkflowStatus.IN_PROGRESS,
        )
        with self._session_factory() as db:
            return int(db.execute(query).scalar_one())

    def _workflows(self, *conditions) -> list[WorkflowHistoryRecord]:
        query = select(ApprovalWorkflowRow).options(
            selectinload(ApprovalWorkflowRow.decisions)
        ).where(*conditions)
        with self._session_factory() as db:
            return [
                WorkflowHistoryRecord.model_validate(row)
                for row in db.execute(query).scalars()
            ]

    def list_completed_workflows(self, tenant_id: str) -> list[WorkflowHistoryRecord]:
        return self._workflows(
            ApprovalWorkflowRow.tenant_id == tenant_id,
            ApprovalWorkflowRow.status.in_(
                [WorkflowStatus.APPROVED, WorkflowStatus.REJECTED]
            ),
        )

    def list_workflows_for_rule(self, rule_id: str) -> list[WorkflowHistoryRecord]:
        return self._workflows(ApprovalWorkflowRow.approval_rule_id == rule_id)

    # --- Documents ---

    def count_documents(self, tenant_id: str, document_type: DocumentType) -> int:
        query = select(func.count()).select_from(PurchaseDocumentRow).where(
            PurchaseDocumentRow.tenant_id == tenant_id,
            PurchaseDocumentRow.document_type == document_type,
        )
        with self._session_factory() as db:
            return int(db.execute(query).scalar_one())

    def list_estimated_amounts(self, tenant_id: str) -> list[Decimal | None]:
        query = select(PurchaseDocumentRow.estimated_amount).where(
            PurchaseDocumentRow.tenant_id == tenant_id,
            PurchaseDocumentRow.document_type == DocumentType.PURCHASE_REQUEST,
        )
        with self._session_factory() as db:
            return list(db.execute(query).scalars())

    def category_counts(self, tenant_id: str) -> dict[str, int]:
        query = (
            select(PurchaseDocumentRow.category, func.count())
            .where(
                PurchaseDocumentRow.tenant_id == tenant_id,
                PurchaseDocumentRow.document_type == DocumentType.PURCHASE_REQUEST,
                PurchaseDocumentRow.category.is_not(None),
                PurchaseDocumentRow.category != "",
            )
            .group_by(PurchaseDocumentRow.category)
        )
        with self._session_factory() as db:
            return {category: int(count) for category, count in db.execute(query)}
