from __future__ import annotations

import pytest

from approval_rules.domain.rules import (
    DocumentType,
    PurchaseType,
    classify_document_type,
    classify_purchase_type,
)


@pytest.mark.parametrize(
    "label, expected",
    [
        (None, DocumentType.PURCHASE_REQUEST),
        ("", DocumentType.PURCHASE_REQUEST),
        ("requerimiento de compra", DocumentType.PURCHASE_REQUEST),
        ("Factura", DocumentType.INVOICE),
        ("invoice", DocumentType.INVOICE),
        ("orden de compra", DocumentType.PURCHASE_ORDER),
        ("purchase order", DocumentType.PURCHASE_ORDER),
        ("OC", DocumentType.PURCHASE_ORDER),
        (DocumentType.INVOICE, DocumentType.INVOICE),
    ],
)
def test_classify_document_type(label, expected) -> None:
    assert classify_document_type(label) == expected


@pytest.mark.parametrize(
    "label, expected",
    [
        ("directa", PurchaseType.DIRECT),
        ("con cotización", PurchaseType.WITH_QUOTE),
        ("licitación", PurchaseType.WITH_BID),
        ("with_advance", PurchaseType.WITH_ADVANCE),
        ("otra cosa", None),
        (None, None),
    ],
)
def test_classify_purchase_type(label, expected) -> None:
    assert classify_purchase_type(label) == expected
