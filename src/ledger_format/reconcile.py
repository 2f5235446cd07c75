"""Merge heuristic and fallback decisions into one result."""

from __future__ import annotations

from dataclasses import replace

from .models import ClassificationResult, DecidedBy, HeuristicDecision


def reconcile(
    heuristic: HeuristicDecision | None,
    fallback: ClassificationResult | None,
) -> ClassificationResult:
    """
    Combine the two classifier outputs.

    The heuristic's exchange and ledger type always win over the fallback's;
    the column mapping can only come from the fallback. Confidence is the
    larger of the two.
    """
    if heuristic is not None and fallback is not None:
        return replace(
            fallback,
            source_system=heuristic.source_system,
            ledger_type=heuristic.ledger_type,
            confidence=max(heuristic.confidence, fallback.confidence),
            decided_by=DecidedBy.HYBRID,
        )
    if heuristic is not None:
        return ClassificationResult(
            source_system=heuristic.source_system,
            ledger_type=heuristic.ledger_type,
            confidence=heuristic.confidence,
            column_mapping={},
            decided_by=DecidedBy.HEURISTIC,
        )
    if fallback is not None:
        return replace(fallback, decided_by=DecidedBy.FALLBACK)
    raise ValueError("reconcile() needs at least one decision")
