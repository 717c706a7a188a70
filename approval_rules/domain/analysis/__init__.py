"""Historical approval pattern analysis and rule suggestions."""
from .analyzer import AMOUNT_BUCKETS, RuleAnalyzer
from .entities import (
    INFINITY,
    AmountBucket,
    AmountRange,
    ApproverStat,
    CoverageGap,
    PatternAnalysis,
    RuleStatistics,
    RuleSuggestion,
    SuggestedApprover,
    SuggestedRule,
    SuggestionBasis,
)
from .gaps import find_amount_gaps
