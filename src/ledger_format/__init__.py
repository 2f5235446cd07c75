"""
Ledger format classification package.

This package contains:

- the prioritized heuristic rule table
- the fallback classifier (prompt + parsing + LLM calls)
- the reconciler that merges both decisions
- the cached classification service and its command-line entrypoint
"""

from .errors import (
    ClassificationError,
    InputError,
    MalformedResult,
    ServiceError,
    ServiceUnavailable,
)
from .heuristics import RULES, HeuristicRule, classify_heuristically
from .models import ClassificationResult, DecidedBy, HeuristicDecision, LedgerType
from .provider import FallbackClassifier, parse_classification_response
from .reconcile import reconcile
from .service import ClassificationOutcome, ClassificationService

__all__ = [
    "RULES",
    "ClassificationError",
    "ClassificationOutcome",
    "ClassificationResult",
    "ClassificationService",
    "DecidedBy",
    "FallbackClassifier",
    "HeuristicDecision",
    "HeuristicRule",
    "InputError",
    "LedgerType",
    "MalformedResult",
    "ServiceError",
    "ServiceUnavailable",
    "classify_heuristically",
    "parse_classification_response",
    "reconcile",
]
