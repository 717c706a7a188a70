from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from approval_rules.core.errors import RuleErrorKind, RuleOperationError


@dataclass(frozen=True)
class RuleOperationResult:
    """
    Outcome of every lifecycle, query and analysis operation.

    ``error`` is a stable RuleErrorKind callers can branch on; ``message`` is
    for humans. ``detail`` carries the underlying text of internal failures.
    """
    success: bool
    message: str
    data: Any = None
    error: Optional[RuleErrorKind] = None
    detail: Optional[str] = None
    requires_confirmation: bool = False
    token: Optional[str] = None
    pending: Any = None

    @classmethod
    def ok(cls, message: str, **kwargs: Any) -> "RuleOperationResult":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def from_error(cls, exc: RuleOperationError) -> "RuleOperationResult":
        return cls(success=False, message=exc.message, error=exc.kind)

    @classmethod
    def internal(cls, message: str, exc: BaseException) -> "RuleOperationResult":
        return cls(
            success=False,
            message=message,
            error=RuleErrorKind.INTERNAL_ERROR,
            detail=str(exc),
        )
