"""Two-phase (prepare -> confirm/cancel) lifecycle of approval rules.

Every change to a rule is first staged in the pending-action store and only
written once the same user, in the same tenant, confirms the returned token
within its time window.

Confirmation order:
1. look the token up (not found / wrong kind -> PENDING_RULE_NOT_FOUND)
2. check owner and tenant (mismatch -> UNAUTHORIZED, even once expired)
3. check expiry (expired -> PENDING_RULE_NOT_FOUND, as if it never existed)
4. claim the token, commit through the repository, then delete it
   (the claim is released if the commit fails)

Nothing here raises to the caller: expected failures become structured
results and anything unexpected becomes an INTERNAL_ERROR result.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from approval_rules.core.errors import (
    PendingActionNotFoundError,
    RuleAuthorizationError,
    RuleErrorKind,
    RuleNotFoundError,
    RuleOperationError,
    RuleValidationError,
)
from approval_rules.domain.analysis.analyzer import RuleAnalyzer
from approval_rules.domain.pending.entities import (
    PendingAction,
    PendingActionKind,
    RuleDeletion,
    RuleModification,
)
from approval_rules.domain.pending.store import PendingActionStore
from approval_rules.domain.rules.classifiers import (
    classify_document_type,
    classify_purchase_type,
)
from approval_rules.domain.rules.entities import (
    ApprovalRule,
    DocumentType,
    LevelDraft,
    RuleAttributes,
    RuleChanges,
    RuleDraft,
    RulePayload,
)
from approval_rules.domain.rules import rendering
from approval_rules.domain.rules.repository import RuleRepositoryProtocol
from approval_rules.observability.tracing import Span, log_event, new_trace_id

from .queries import RuleQueryService
from .results import RuleOperationResult

_NOT_FOUND_MESSAGES = {
    PendingActionKind.CREATE: "La regla pendiente expiró o no existe. Por favor, volvé a crear la regla.",
    PendingActionKind.MODIFY: "La modificación expiró. Por favor, volvé a indicar los cambios.",
    PendingActionKind.DELETE: "La solicitud de eliminación expiró.",
}

_UNAUTHORIZED_MESSAGES = {
    PendingActionKind.CREATE: "No tenés permisos para confirmar esta regla.",
    PendingActionKind.MODIFY: "No tenés permisos para confirmar esta modificación.",
    PendingActionKind.DELETE: "No tenés permisos para eliminar esta regla.",
}


class RuleLifecycleManager:
    def __init__(
        self,
        *,
        repository: RuleRepositoryProtocol,
        store: PendingActionStore,
        analyzer: RuleAnalyzer | None = None,
        queries: RuleQueryService | None = None,
    ) -> None:
        self._repo = repository
        self._store = store
        self._analyzer = analyzer or RuleAnalyzer(repository)
        self._queries = queries or RuleQueryService(repository)

    # ------------------------------------
    # Operation boundary
    # ------------------------------------

    def _run(
        self,
        operation: str,
        failure_message: str,
        fn: Callable[[str], RuleOperationResult],
        **context: Any,
    ) -> RuleOperationResult:
        trace_id = new_trace_id()
        try:
            result = fn(trace_id)
        except RuleOperationError as exc:
            log_event(
                f"rules.{operation}.rejected",
                trace_id=trace_id,
                error=exc.kind.value,
                **context,
            )
            return RuleOperationResult.from_error(exc)
        except Exception as exc:
            log_event(
                f"rules.{operation}.error",
                trace_id=trace_id,
                level=logging.ERROR,
                error=str(exc),
                error_type=type(exc).__name__,
                **context,
            )
            return RuleOperationResult.internal(failure_message, exc)

        log_event(f"rules.{operation}.ok", trace_id=trace_id, **context)
        return result

    # ------------------------------------
    # Create
    # ------------------------------------

    def prepare_create(
        self,
        payload: RulePayload | dict[str, Any],
        user_id: str,
        tenant_id: str,
        original_text: str | None = None,
    ) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            request = _parse_payload(payload)
            _validate_payload(request)
            draft = _normalize_payload(request)
            _validate_level_order(draft)

            token = self._store.put(self._store.new_action(
                kind=PendingActionKind.CREATE,
                payload=draft,
                user_id=user_id,
                tenant_id=tenant_id,
                original_text=original_text,
            ))
            log_event("rules.pending.created", trace_id=trace_id, token=token)

            return RuleOperationResult.ok(
                rendering.build_preview_message(draft),
                requires_confirmation=True,
                token=token,
                pending=draft,
            )

        return self._run(
            "prepare_create",
            "Error al preparar la regla de aprobación.",
            _op,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    def confirm_create(self, token: str, user_id: str, tenant_id: str) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            action = self._claim(token, PendingActionKind.CREATE, user_id, tenant_id)
            span = Span(
                name="rules.commit_create",
                trace_id=trace_id,
                attributes={"token": token, "tenant_id": tenant_id},
            )
            rule = self._commit(token, lambda: self._repo.create_rule(
                tenant_id=tenant_id,
                draft=action.payload,
                created_by_id=user_id,
                original_prompt=action.original_text,
            ))
            span.end()
            span.attributes["rule_id"] = rule.id
            log_event("rules.created", trace_id=trace_id, span=span, rule_id=rule.id)

            return RuleOperationResult.ok(rendering.build_created_message(rule), data=rule)

        return self._run(
            "confirm_create",
            "Error al guardar la regla de aprobación.",
            _op,
            token=token,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    # ------------------------------------
    # Cancel
    # ------------------------------------

    def cancel(self, token: str | None, user_id: str, tenant_id: str) -> RuleOperationResult:
        """Drop a pending action. Nothing to cancel is not an error."""
        def _op(trace_id: str) -> RuleOperationResult:
            action = self._store.peek(token) if token else None
            if (
                action is None
                or not action.is_owned_by(user_id=user_id, tenant_id=tenant_id)
                or action.is_expired(self._store.now())
                or not self._store.delete(token)
            ):
                return RuleOperationResult.ok("No hay regla pendiente para cancelar.")

            return RuleOperationResult.ok("Regla cancelada. ¿En qué más puedo ayudarte?")

        return self._run(
            "cancel",
            "Error al cancelar la regla pendiente.",
            _op,
            token=token,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    # ------------------------------------
    # Modify
    # ------------------------------------

    def prepare_modify(
        self,
        identifier: str | None,
        changes: RuleChanges | dict[str, Any],
        user_id: str,
        tenant_id: str,
        original_text: str | None = None,
    ) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            if not identifier:
                raise RuleValidationError(
                    RuleErrorKind.MISSING_IDENTIFIER,
                    "Necesito saber qué regla querés modificar. ¿Podrías indicarme el nombre o ID?",
                )
            requested = _parse_changes(changes)
            existing = self._resolve(tenant_id, identifier)
            modification = RuleModification(
                rule_id=existing.id,
                attributes=_merge_changes(existing, requested),
                original=existing,
            )

            token = self._store.put(self._store.new_action(
                kind=PendingActionKind.MODIFY,
                payload=modification,
                user_id=user_id,
                tenant_id=tenant_id,
                original_text=original_text,
            ))
            log_event("rules.pending.created", trace_id=trace_id, token=token, rule_id=existing.id)

            return RuleOperationResult.ok(
                rendering.build_modification_preview(existing, modification.attributes),
                requires_confirmation=True,
                token=token,
                pending=modification,
            )

        return self._run(
            "prepare_modify",
            "Error al preparar la modificación de la regla.",
            _op,
            identifier=identifier,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    def confirm_modify(self, token: str, user_id: str, tenant_id: str) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            action = self._claim(token, PendingActionKind.MODIFY, user_id, tenant_id)
            modification: RuleModification = action.payload
            span = Span(
                name="rules.commit_modify",
                trace_id=trace_id,
                attributes={"token": token, "rule_id": modification.rule_id},
            )
            # Top-level attributes only; levels are left untouched
            rule = self._commit(token, lambda: self._repo.update_rule(
                modification.rule_id, modification.attributes,
            ), rule_id=modification.rule_id)
            span.end()
            log_event("rules.modified", trace_id=trace_id, span=span, rule_id=rule.id)

            return RuleOperationResult.ok(rendering.build_modified_message(rule), data=rule)

        return self._run(
            "confirm_modify",
            "Error al aplicar la modificación.",
            _op,
            token=token,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    # ------------------------------------
    # Delete
    # ------------------------------------

    def prepare_delete(
        self,
        identifier: str | None,
        user_id: str,
        tenant_id: str,
    ) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            if not identifier:
                raise RuleValidationError(
                    RuleErrorKind.MISSING_IDENTIFIER,
                    "¿Qué regla querés eliminar? Indicame el nombre o ID.",
                )
            rule = self._resolve(tenant_id, identifier)
            deletion = RuleDeletion(
                rule=rule,
                in_progress_workflows=self._repo.count_in_progress_workflows(rule.id),
            )

            token = self._store.put(self._store.new_action(
                kind=PendingActionKind.DELETE,
                payload=deletion,
                user_id=user_id,
                tenant_id=tenant_id,
            ))
            log_event(
                "rules.pending.created",
                trace_id=trace_id,
                token=token,
                rule_id=rule.id,
                in_progress_workflows=deletion.in_progress_workflows,
            )

            return RuleOperationResult.ok(
                rendering.build_deletion_preview(rule, deletion.in_progress_workflows),
                requires_confirmation=True,
                token=token,
                pending=deletion,
            )

        return self._run(
            "prepare_delete",
            "Error al buscar la regla.",
            _op,
            identifier=identifier,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    def confirm_delete(self, token: str, user_id: str, tenant_id: str) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            action = self._claim(token, PendingActionKind.DELETE, user_id, tenant_id)
            rule: ApprovalRule = action.payload.rule
            span = Span(
                name="rules.commit_delete",
                trace_id=trace_id,
                attributes={"token": token, "rule_id": rule.id},
            )
            self._commit(token, lambda: self._repo.delete_rule(rule.id), rule_id=rule.id)
            span.end()
            log_event("rules.deleted", trace_id=trace_id, span=span, rule_id=rule.id)

            return RuleOperationResult.ok(rendering.build_deleted_message(rule), data=rule)

        return self._run(
            "confirm_delete",
            "Error al eliminar la regla.",
            _op,
            token=token,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    def confirm(self, token: str | None, user_id: str, tenant_id: str) -> RuleOperationResult:
        """Confirm whatever kind of action the token stands for."""
        if not token:
            return RuleOperationResult(
                success=False,
                message="No se especificó qué regla confirmar.",
                error=RuleErrorKind.MISSING_PENDING_TOKEN,
            )

        action = self._store.peek(token)
        kind = action.kind if action is not None else PendingActionKind.CREATE
        handlers = {
            PendingActionKind.CREATE: self.confirm_create,
            PendingActionKind.MODIFY: self.confirm_modify,
            PendingActionKind.DELETE: self.confirm_delete,
        }
        return handlers[kind](token, user_id, tenant_id)

    # ------------------------------------
    # Read helpers
    # ------------------------------------

    def list_rules(
        self,
        tenant_id: str,
        document_type: str | DocumentType | None = None,
    ) -> RuleOperationResult:
        return self._run(
            "list",
            "Error al obtener las reglas.",
            lambda trace_id: self._queries.list_rules(tenant_id, document_type),
            tenant_id=tenant_id,
        )

    def explain_rule(self, tenant_id: str, identifier: str | None = None) -> RuleOperationResult:
        return self._run(
            "explain",
            "Error al explicar la regla.",
            lambda trace_id: self._queries.explain_rule(tenant_id, identifier),
            tenant_id=tenant_id,
            identifier=identifier,
        )

    def get_pending_for_user(self, user_id: str) -> list[PendingAction]:
        """Snapshot of the user's live pending actions. Nothing is consumed."""
        return self._store.pending_for_user(user_id)

    def suggest_rules(self, tenant_id: str) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            suggestions = self._analyzer.generate_rule_suggestions(tenant_id)
            return RuleOperationResult.ok(
                rendering.build_suggestions_message(suggestions),
                data=suggestions,
            )

        return self._run("suggest", "Error al generar sugerencias.", _op, tenant_id=tenant_id)

    def rule_statistics(self, rule_id: str) -> RuleOperationResult:
        def _op(trace_id: str) -> RuleOperationResult:
            stats = self._analyzer.get_rule_statistics(rule_id)
            if stats is None:
                return RuleOperationResult.ok("La regla no tiene historial de uso.", data=None)
            return RuleOperationResult.ok(
                f"📊 **{stats.rule_name}**: {stats.total_workflows} workflow(s), "
                f"{stats.approved_count} aprobados, {stats.rejected_count} rechazados, "
                f"{stats.pending_count} en progreso.",
                data=stats,
            )

        return self._run("statistics", "Error al obtener estadísticas.", _op, rule_id=rule_id)

    # ------------------------------------
    # Internals
    # ------------------------------------

    def _resolve(self, tenant_id: str, identifier: str) -> ApprovalRule:
        rule = self._repo.find_rule(tenant_id, identifier)
        if rule is None:
            raise RuleNotFoundError(identifier)
        return rule

    def _claim(
        self,
        token: str,
        kind: PendingActionKind,
        user_id: str,
        tenant_id: str,
    ) -> PendingAction:
        action = self._store.peek(token) if token else None
        if action is None or action.kind != kind:
            raise PendingActionNotFoundError(_NOT_FOUND_MESSAGES[kind])
        if not action.is_owned_by(user_id=user_id, tenant_id=tenant_id):
            raise RuleAuthorizationError(_UNAUTHORIZED_MESSAGES[kind])
        if action.is_expired(self._store.now()):
            self._store.delete(token)
            raise PendingActionNotFoundError(_NOT_FOUND_MESSAGES[kind])

        # A concurrent confirm may have claimed it in the meantime
        claimed = self._store.claim(token)
        if claimed is None:
            raise PendingActionNotFoundError(_NOT_FOUND_MESSAGES[kind])
        return claimed

    def _commit(self, token: str, write: Callable[[], Any], rule_id: str | None = None) -> Any:
        try:
            result = write()
        except LookupError as exc:
            # The rule vanished between prepare and confirm
            self._store.delete(token)
            raise RuleNotFoundError(rule_id or token) from exc
        except Exception:
            self._store.release(token)
            raise
        self._store.delete(token)
        return result


# ------------------------------------
# Payload handling
# ------------------------------------

def _parse_payload(payload: RulePayload | dict[str, Any]) -> RulePayload:
    if isinstance(payload, RulePayload):
        return payload
    try:
        return RulePayload.model_validate(payload)
    except ValidationError as exc:
        raise RuleValidationError(
            RuleErrorKind.INVALID_PAYLOAD,
            f"La regla enviada no es válida: {exc.errors()[0]['msg']}",
        ) from exc


def _parse_changes(changes: RuleChanges | dict[str, Any]) -> RuleChanges:
    if isinstance(changes, RuleChanges):
        return changes
    try:
        return RuleChanges.model_validate(changes or {})
    except ValidationError as exc:
        raise RuleValidationError(
            RuleErrorKind.INVALID_PAYLOAD,
            f"Los cambios enviados no son válidos: {exc.errors()[0]['msg']}",
        ) from exc


def _validate_payload(payload: RulePayload) -> None:
    if not (payload.name or "").strip():
        raise RuleValidationError(
            RuleErrorKind.MISSING_NAME,
            "El nombre de la regla es requerido.",
        )
    if not payload.levels:
        raise RuleValidationError(
            RuleErrorKind.MISSING_LEVELS,
            "La regla debe tener al menos un nivel de aprobación.",
        )
    for idx, level in enumerate(payload.levels, start=1):
        if not level.approvers:
            raise RuleValidationError(
                RuleErrorKind.MISSING_APPROVERS,
                f"El nivel {idx} ({level.name}) debe tener al menos un aprobador.",
            )


def _validate_level_order(draft: RuleDraft) -> None:
    orders = [level.level_order for level in draft.levels]
    if any(order < 1 for order in orders) or len(set(orders)) != len(orders):
        raise RuleValidationError(
            RuleErrorKind.INVALID_PAYLOAD,
            "Los niveles deben tener un orden único y mayor a cero.",
        )


def _normalize_payload(payload: RulePayload) -> RuleDraft:
    conditions = payload.conditions
    return RuleDraft(
        name=payload.name,
        description=payload.description or None,
        document_type=classify_document_type(payload.document_type),
        purchase_type=classify_purchase_type(conditions.purchase_type),
        min_amount=conditions.min_amount or None,
        max_amount=conditions.max_amount or None,
        sector=conditions.sector or None,
        priority=payload.priority or 0,
        is_active=payload.active is not False,
        levels=[
            LevelDraft(
                name=level.name,
                level_order=level.order if level.order is not None else idx,
                approval_mode=level.mode,
                level_type=level.level_type,
                approvers=list(level.approvers),
            )
            for idx, level in enumerate(payload.levels, start=1)
        ],
    )


def _merge_changes(existing: ApprovalRule, changes: RuleChanges) -> RuleAttributes:
    """Fields not present in ``changes`` keep the rule's current value."""
    given = changes.model_fields_set
    current = existing.attributes()

    def pick(field_name: str):
        source = changes if field_name in given else current
        return getattr(source, field_name)

    return RuleAttributes(
        name=changes.name if "name" in given and changes.name else current.name,
        description=pick("description"),
        document_type=(
            classify_document_type(changes.document_type)
            if "document_type" in given and changes.document_type
            else current.document_type
        ),
        purchase_type=(
            classify_purchase_type(changes.purchase_type)
            if "purchase_type" in given
            else current.purchase_type
        ),
        min_amount=pick("min_amount"),
        max_amount=pick("max_amount"),
        sector=pick("sector"),
        priority=changes.priority if changes.priority is not None else current.priority,
        is_active=changes.active if changes.active is not None else current.is_active,
    )
