"""Operation boundary: lifecycle, queries and action dispatch."""
from .actions import RuleAction, RuleActionKind, dispatch
from .lifecycle import RuleLifecycleManager
from .queries import RuleQueryService
from .results import RuleOperationResult
