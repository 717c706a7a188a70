"""Amount-range coverage gaps.

Rules are placed on the amount axis (absent minimum = 0, absent maximum =
unbounded) and sorted by minimum. One linear pass then reports the hole
before the first rule and every hole between neighbours. Overlapping or
touching ranges produce nothing.

Known simplification: only adjacent pairs are compared, so a rule nested
inside a wider, earlier rule can hide or report holes the union would not.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

from .entities import INFINITY, AmountRange

_ZERO = Decimal(0)


class AmountBounded(Protocol):
    min_amount: Decimal | None
    max_amount: Decimal | None


def _effective_min(rule: AmountBounded) -> Decimal:
    return Decimal(rule.min_amount) if rule.min_amount is not None else _ZERO


def _effective_max(rule: AmountBounded) -> Decimal:
    return Decimal(rule.max_amount) if rule.max_amount is not None else INFINITY


def find_amount_gaps(rules: Iterable[AmountBounded]) -> list[AmountRange]:
    bounded = sorted(
        (r for r in rules if r.min_amount is not None or r.max_amount is not None),
        key=_effective_min,
    )
    if not bounded:
        return []

    gaps: list[AmountRange] = []

    first_min = _effective_min(bounded[0])
    if first_min > _ZERO:
        gaps.append(AmountRange(min=_ZERO, max=first_min))

    for current, following in zip(bounded, bounded[1:]):
        current_max = _effective_max(current)
        next_min = _effective_min(following)
        if current_max < next_min:
            gaps.append(AmountRange(min=current_max, max=next_min))

    return gaps
