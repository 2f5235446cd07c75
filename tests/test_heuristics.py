import pytest

from ledger_format.heuristics import RULES, classify_heuristically
from ledger_format.models import LedgerType


@pytest.mark.parametrize(
    ("headers", "source_system", "ledger_type", "confidence", "rule"),
    [
        (
            ["timestamp", "symbol", "income_type", "income", "asset", "info"],
            "CoinDCX",
            LedgerType.DERIVATIVES,
            0.95,
            "coindcx_futures_income_type",
        ),
        (
            ["Date", "Realized Profit", "Symbol"],
            "Binance",
            LedgerType.DERIVATIVES,
            0.90,
            "binance_futures_realized_profit",
        ),
        (
            ["Time", "Symbol", "Income", "Asset"],
            "CoinDCX",
            LedgerType.DERIVATIVES,
            0.85,
            "coindcx_futures_income_asset",
        ),
        (
            ["Date(UTC)", "Pair", "Type", "Order Price", "AvgTrading Price", "Filled", "status"],
            "Binance",
            LedgerType.SPOT,
            0.85,
            "binance_spot_order_history",
        ),
        (
            ["Date", "Pair", "Executed", "Fee"],
            "CoinDCX",
            LedgerType.SPOT,
            0.85,
            "coindcx_spot_pair_executed",
        ),
    ],
)
def test_known_signatures(headers, source_system, ledger_type, confidence, rule):
    decision = classify_heuristically(headers)

    assert decision is not None
    assert decision.source_system == source_system
    assert decision.ledger_type == ledger_type
    assert decision.confidence == confidence
    assert decision.rule == rule


def test_unrecognised_headers_yield_no_decision():
    assert classify_heuristically(["Foo", "Bar", "Baz"]) is None


def test_pair_and_executed_with_type_is_not_coindcx_spot():
    assert classify_heuristically(["Pair", "Executed", "Type"]) is None


def test_matching_ignores_case_and_whitespace():
    decision = classify_heuristically(["  INCOME_TYPE  ", "Symbol"])

    assert decision is not None
    assert decision.rule == "coindcx_futures_income_type"


def test_more_specific_rule_wins_when_several_match():
    # Matches income_type, realized profit and pair+executed at once.
    headers = ["income_type", "Realized Profit", "Pair", "Executed"]

    decision = classify_heuristically(headers)

    assert decision.rule == "coindcx_futures_income_type"


def test_rule_table_is_ordered_and_well_formed():
    priorities = [rule.priority for rule in RULES]
    names = [rule.name for rule in RULES]

    assert priorities == sorted(priorities)
    assert len(set(priorities)) == len(priorities)
    assert len(set(names)) == len(names)
    assert names == [
        "coindcx_futures_income_type",
        "binance_futures_realized_profit",
        "coindcx_futures_income_asset",
        "binance_spot_order_history",
        "coindcx_spot_pair_executed",
    ]
    for rule in RULES:
        assert 0.0 <= rule.confidence <= 1.0


def test_custom_rule_table_is_respected():
    reversed_rules = list(reversed(RULES))
    headers = ["income_type", "Realized Profit"]

    decision = classify_heuristically(headers, rules=reversed_rules)

    assert decision.rule == "binance_futures_realized_profit"
