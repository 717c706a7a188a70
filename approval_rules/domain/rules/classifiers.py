"""Free-text classification of document and purchase types."""

from __future__ import annotations

import re

from .entities import DocumentType, PurchaseType

_DOCUMENT_TYPE_MARKERS: list[tuple[DocumentType, tuple[str, ...]]] = [
    (DocumentType.INVOICE, ("INVOICE", "FACTURA")),
    (DocumentType.PURCHASE_ORDER, ("ORDER", "OC", "ORDEN")),
]

_PURCHASE_TYPE_MARKERS: list[tuple[PurchaseType, tuple[str, ...]]] = [
    (PurchaseType.DIRECT, ("DIRECT", "DIRECTA")),
    (PurchaseType.WITH_QUOTE, ("QUOTE", "COTIZ")),
    (PurchaseType.WITH_BID, ("BID", "LICITA")),
    (PurchaseType.WITH_ADVANCE, ("ADVANCE", "ANTICIP")),
]


def classify_document_type(value: str | DocumentType | None) -> DocumentType:
    """Map a label such as "orden de compra" or "factura" to a DocumentType.

    Unknown or empty labels fall back to purchase requests.
    """
    if isinstance(value, DocumentType):
        return value
    if not value:
        return DocumentType.PURCHASE_REQUEST

    normalized = re.sub(r"\s+", "_", value.upper())
    for document_type, markers in _DOCUMENT_TYPE_MARKERS:
        if any(m in normalized for m in markers):
            return document_type
    return DocumentType.PURCHASE_REQUEST


def classify_purchase_type(value: str | PurchaseType | None) -> PurchaseType | None:
    if isinstance(value, PurchaseType):
        return value
    if not value:
        return None

    normalized = value.upper()
    for purchase_type, markers in _PURCHASE_TYPE_MARKERS:
        if any(m in normalized for m in markers):
            return purchase_type
    return None
