# ---------------------------------
# TYPED EXCEPTIONS
# ---------------------------------
from enum import Enum


class RuleErrorKind(str, Enum):
    MISSING_NAME = "MISSING_NAME"
    MISSING_LEVELS = "MISSING_LEVELS"
    MISSING_APPROVERS = "MISSING_APPROVERS"
    MISSING_IDENTIFIER = "MISSING_IDENTIFIER"
    MISSING_PENDING_TOKEN = "MISSING_PENDING_TOKEN"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    PENDING_RULE_NOT_FOUND = "PENDING_RULE_NOT_FOUND"
    RULE_NOT_FOUND = "RULE_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RuleOperationError(Exception):
    """Expected, user-facing failure of a rule operation."""

    def __init__(self, kind: RuleErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)


class RuleValidationError(RuleOperationError):
    pass


class RuleNotFoundError(RuleOperationError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            RuleErrorKind.RULE_NOT_FOUND,
            f'No encontré ninguna regla con "{identifier}".',
        )


class PendingActionNotFoundError(RuleOperationError):
    def __init__(self, message: str):
        super().__init__(RuleErrorKind.PENDING_RULE_NOT_FOUND, message)


class RuleAuthorizationError(RuleOperationError):
    def __init__(self, message: str):
        super().__init__(RuleErrorKind.UNAUTHORIZED, message)
