import pytest

from ledger_format.models import (
    ClassificationResult,
    DecidedBy,
    HeuristicDecision,
    LedgerType,
)
from ledger_format.reconcile import reconcile

HEURISTIC = HeuristicDecision("CoinDCX", LedgerType.DERIVATIVES, 0.95, "coindcx_futures_income_type")
FALLBACK = ClassificationResult(
    source_system="Binance",
    ledger_type=LedgerType.SPOT,
    confidence=0.6,
    column_mapping={"symbol": "symbol", "timestamp": "timestamp"},
    missing_fields=("price",),
    warnings=("low confidence",),
)


def test_heuristic_wins_exchange_and_type_fallback_supplies_mapping():
    result = reconcile(HEURISTIC, FALLBACK)

    assert result.source_system == "CoinDCX"
    assert result.ledger_type == LedgerType.DERIVATIVES
    assert result.column_mapping == {"symbol": "symbol", "timestamp": "timestamp"}
    assert result.missing_fields == ("price",)
    assert result.warnings == ("low confidence",)
    assert result.decided_by == DecidedBy.HYBRID


@pytest.mark.parametrize(
    ("heuristic_confidence", "fallback_confidence", "expected"),
    [(0.95, 0.6, 0.95), (0.85, 0.99, 0.99)],
)
def test_hybrid_confidence_is_the_maximum(heuristic_confidence, fallback_confidence, expected):
    heuristic = HeuristicDecision("CoinDCX", LedgerType.SPOT, heuristic_confidence)
    fallback = ClassificationResult("CoinDCX", LedgerType.SPOT, fallback_confidence)

    assert reconcile(heuristic, fallback).confidence == expected


def test_fallback_only_is_used_unchanged():
    result = reconcile(None, FALLBACK)

    assert result == FALLBACK
    assert result.decided_by == DecidedBy.FALLBACK


def test_heuristic_only_has_no_mapping():
    result = reconcile(HEURISTIC, None)

    assert result.source_system == "CoinDCX"
    assert result.confidence == 0.95
    assert result.column_mapping == {}
    assert result.decided_by == DecidedBy.HEURISTIC


def test_reconcile_requires_a_decision():
    with pytest.raises(ValueError):
        reconcile(None, None)
