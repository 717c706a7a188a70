"""Human-readable (es-AR) renderings of rules, previews and suggestions."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from .entities import (
    ApprovalLevel,
    ApprovalMode,
    ApprovalRule,
    DocumentType,
    PurchaseType,
    RuleAttributes,
    RuleDraft,
)

if TYPE_CHECKING:
    from approval_rules.domain.analysis.entities import RuleSuggestion

DOCUMENT_TYPE_TITLES = {
    DocumentType.PURCHASE_REQUEST: "Requerimientos de Compra",
    DocumentType.PURCHASE_ORDER: "Órdenes de Compra",
    DocumentType.INVOICE: "Facturas",
}

DOCUMENT_TYPE_LABELS = {
    DocumentType.PURCHASE_REQUEST: "requerimientos de compra",
    DocumentType.PURCHASE_ORDER: "órdenes de compra",
    DocumentType.INVOICE: "facturas",
}

DOCUMENT_TYPE_SHORT = {
    DocumentType.PURCHASE_REQUEST: "REQ",
    DocumentType.PURCHASE_ORDER: "OC",
    DocumentType.INVOICE: "FAC",
}

PURCHASE_TYPE_LABELS = {
    PurchaseType.DIRECT: "compra directa",
    PurchaseType.WITH_QUOTE: "con cotización",
    PurchaseType.WITH_BID: "con licitación",
    PurchaseType.WITH_ADVANCE: "con anticipo",
}


def format_amount(value: Decimal | int | float | None) -> str:
    """Format an amount with es-AR separators: 1500000 -> '1.500.000'."""
    if value is None:
        return "0"
    amount = Decimal(value)
    if amount.is_infinite():
        return "∞"
    if amount == amount.to_integral_value():
        text = f"{int(amount):,}"
    else:
        text = f"{amount:,.2f}".rstrip("0")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _state(is_active: bool) -> str:
    return "Activa" if is_active else "Inactiva"


# ------------------------------------
# Create
# ------------------------------------

def build_preview_message(draft: RuleDraft) -> str:
    conditions = []
    if draft.min_amount:
        conditions.append(f"Monto mínimo: ${format_amount(draft.min_amount)}")
    if draft.max_amount:
        conditions.append(f"Monto máximo: ${format_amount(draft.max_amount)}")
    if draft.purchase_type:
        conditions.append(f"Tipo de compra: {draft.purchase_type.value}")
    if draft.sector:
        conditions.append(f"Sector: {draft.sector}")

    levels_text = "\n".join(
        "   {idx}. **{name}** ({mode}) → {approvers}".format(
            idx=idx,
            name=level.name,
            mode="Todos deben aprobar" if level.approval_mode == ApprovalMode.ALL else "Cualquiera aprueba",
            approvers=", ".join(
                f"Rol: {a.role}" if a.is_role else f"Usuario: {a.user_id}"
                for a in level.approvers
            ),
        )
        for idx, level in enumerate(draft.levels, start=1)
    )

    lines = ["📋 **Vista previa de la regla**", "", f"**Nombre:** {draft.name}"]
    if draft.description:
        lines.append(f"**Descripción:** {draft.description}")
    lines += [
        f"**Aplica a:** {DOCUMENT_TYPE_TITLES[draft.document_type]}",
        f"**Prioridad:** {draft.priority}",
        f"**Estado:** {'✅ Activa' if draft.is_active else '❌ Inactiva'}",
        "",
    ]
    if conditions:
        lines.append("**Condiciones:**")
        lines += [f"• {c}" for c in conditions]
    else:
        lines.append("**Condiciones:** Sin condiciones específicas (aplica a todos)")
    lines += [
        "",
        "**Niveles de Aprobación:**",
        levels_text,
        "",
        "---",
        "¿Confirmás la creación de esta regla?",
    ]
    return "\n".join(lines)


def build_created_message(rule: ApprovalRule) -> str:
    return "\n".join([
        f'✅ **Regla "{rule.name}" creada exitosamente**',
        "",
        "📋 **Resumen:**",
        f"• **ID:** {rule.id}",
        f"• **Niveles de aprobación:** {len(rule.levels)}",
        f"• **Prioridad:** {rule.priority}",
        f"• **Estado:** {_state(rule.is_active)}",
        "",
        "La regla ya está activa y se aplicará a los nuevos documentos que coincidan con las condiciones.",
        "",
        "💡 **¿Qué podés hacer ahora?**",
        '• "Mostrame las reglas activas"',
        f'• "Modificar la regla {rule.name}"',
        '• "Crear otra regla para..."',
    ])


# ------------------------------------
# Modify / delete
# ------------------------------------

def modification_changes(original: ApprovalRule, modified: RuleAttributes) -> list[str]:
    """Only the fields that actually change, one line each."""
    changes = []
    if original.name != modified.name:
        changes.append(f'Nombre: "{original.name}" → "{modified.name}"')
    if original.description != modified.description:
        changes.append("Descripción: actualizada")
    if original.min_amount != modified.min_amount:
        changes.append(
            f"Monto mínimo: ${format_amount(original.min_amount)} → ${format_amount(modified.min_amount)}"
        )
    if original.max_amount != modified.max_amount:
        before = format_amount(original.max_amount) if original.max_amount is not None else "∞"
        after = format_amount(modified.max_amount) if modified.max_amount is not None else "∞"
        changes.append(f"Monto máximo: ${before} → ${after}")
    if original.priority != modified.priority:
        changes.append(f"Prioridad: {original.priority} → {modified.priority}")
    if original.is_active != modified.is_active:
        changes.append(f"Estado: {_state(original.is_active)} → {_state(modified.is_active)}")
    return changes


def build_modification_preview(original: ApprovalRule, modified: RuleAttributes) -> str:
    changes = modification_changes(original, modified) or ["Sin cambios detectados"]
    return "\n".join([
        f"✏️ **Modificación de regla: {original.name}**",
        "",
        "**Cambios detectados:**",
        *[f"• {c}" for c in changes],
        "",
        "¿Confirmás estos cambios?",
    ])


def build_modified_message(rule: ApprovalRule) -> str:
    return f'✅ **Regla "{rule.name}" actualizada exitosamente**\n\nLos cambios ya están activos.'


def build_deletion_preview(rule: ApprovalRule, in_progress_workflows: int) -> str:
    lines = [
        "🗑️ **¿Eliminar esta regla?**",
        "",
        f"📋 **{rule.name}**",
        f"• Niveles de aprobación: {len(rule.levels)}",
        f"• Prioridad: {rule.priority}",
        f"• Estado: {_state(rule.is_active)}",
    ]
    if in_progress_workflows > 0:
        lines += [
            "",
            f"⚠️ **Advertencia:** Esta regla tiene {in_progress_workflows} workflow(s) de aprobación "
            "en progreso. Eliminarla no afectará esos workflows, pero no se aplicará a nuevos documentos.",
        ]
    lines += ["", "**Esta acción no se puede deshacer.**"]
    return "\n".join(lines)


def build_deleted_message(rule: ApprovalRule) -> str:
    return f'✅ **Regla "{rule.name}" eliminada exitosamente**'


# ------------------------------------
# Listing / explanation
# ------------------------------------

def build_rules_list(rules: list[ApprovalRule]) -> str:
    if not rules:
        return (
            "📋 **No hay reglas de aprobación configuradas**\n\n"
            "¿Querés que te ayude a crear una? Solo decime qué condiciones necesitás."
        )

    entries = []
    for idx, rule in enumerate(rules, start=1):
        status = "✅" if rule.is_active else "❌"
        condition = ""
        if rule.min_amount or rule.max_amount:
            low = f"${format_amount(rule.min_amount)}" if rule.min_amount else "$0"
            high = f"${format_amount(rule.max_amount)}" if rule.max_amount else "∞"
            condition = f" | {low} - {high}"
        entries.append(
            f"{idx}. {status} **{rule.name}** [{DOCUMENT_TYPE_SHORT[rule.document_type]}]"
            f"{condition} ({len(rule.levels)} niveles)"
        )

    return (
        f"📋 **Reglas de Aprobación** ({len(rules)})\n\n"
        + "\n".join(entries)
        + "\n\n💡 Decime el nombre de una regla para ver más detalles o modificarla."
    )


def condition_clause(rule: ApprovalRule) -> str:
    """Applicability clause, e.g. 'montos mayores a $50.000, sector "IT"'."""
    conditions = []
    if rule.min_amount and rule.max_amount:
        conditions.append(
            f"montos entre ${format_amount(rule.min_amount)} y ${format_amount(rule.max_amount)}"
        )
    elif rule.min_amount:
        conditions.append(f"montos mayores a ${format_amount(rule.min_amount)}")
    elif rule.max_amount:
        conditions.append(f"montos hasta ${format_amount(rule.max_amount)}")

    if rule.purchase_type:
        conditions.append(f"tipo {PURCHASE_TYPE_LABELS[rule.purchase_type]}")
    if rule.sector:
        conditions.append(f'sector "{rule.sector}"')

    return ", ".join(conditions) if conditions else "todos los documentos"


def _explain_level(idx: int, level: ApprovalLevel) -> str:
    approvers = " o ".join(
        f"usuarios con rol **{a.role}**" if a.role else "usuario específico"
        for a in level.approvers
    )
    mode = "todos deben aprobar" if level.approval_mode == ApprovalMode.ALL else "cualquiera puede aprobar"
    return f"{idx}. **{level.name}**: {approvers} ({mode})"


def build_rule_explanation(rule: ApprovalRule) -> str:
    levels = "\n".join(
        _explain_level(idx, level)
        for idx, level in enumerate(sorted(rule.levels, key=lambda l: l.level_order), start=1)
    )
    return "\n".join([
        f"**{rule.name}** {'(Activa)' if rule.is_active else '(Inactiva)'}",
        "",
        f"Esta regla aplica a **{DOCUMENT_TYPE_LABELS[rule.document_type]}** con {condition_clause(rule)}.",
        "",
        "**Proceso de aprobación:**",
        levels,
        "",
        f"**Prioridad:** {rule.priority} (mayor = se evalúa primero)",
    ])


# ------------------------------------
# Suggestions
# ------------------------------------

def build_suggestions_message(suggestions: Iterable["RuleSuggestion"]) -> str:
    entries = [
        f"{idx}. 💡 **{s.title}**\n   {s.reason}\n   → \"{s.suggested_prompt}\""
        for idx, s in enumerate(suggestions, start=1)
    ]
    if not entries:
        return (
            "💡 **No tengo sugerencias en este momento**\n\n"
            "Necesito más datos históricos de aprobaciones para poder sugerir reglas. "
            "Seguí usando el sistema y pronto podré darte recomendaciones personalizadas."
        )
    return (
        "💡 **Sugerencias basadas en tu historial**\n\n"
        + "\n\n".join(entries)
        + "\n\n¿Querés que cree alguna de estas reglas?"
    )
