"""
Heuristic Ledger Format Rules
=============================

Fast, local recognition of well-known exchange exports from their column
headers alone.

``RULES`` is an explicit table evaluated in ascending ``priority``; the first
matching rule wins. Rarer, more distinctive signatures must carry a lower
priority number than generic ones so a specific match is never shadowed by a
looser one. Confidence is fixed per rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

import structlog

from response_cache.fingerprint import normalize_item

from .models import HeuristicDecision, LedgerType

log = structlog.get_logger(__name__)

COINDCX = "CoinDCX"
BINANCE = "Binance"


@dataclass(frozen=True)
class HeuristicRule:
    name: str
    priority: int
    predicate: Callable[[frozenset[str]], bool]
    source_system: str
    ledger_type: LedgerType
    confidence: float

    def decision(self) -> HeuristicDecision:
        return HeuristicDecision(
            source_system=self.source_system,
            ledger_type=self.ledger_type,
            confidence=self.confidence,
            rule=self.name,
        )


def _has_all(*names: str) -> Callable[[frozenset[str]], bool]:
    required = frozenset(names)
    return lambda headers: required <= headers


def _coindcx_spot(headers: frozenset[str]) -> bool:
    # Binance spot exports also carry "pair" but always have an order "type".
    return {"pair", "executed"} <= headers and "type" not in headers


RULES: tuple[HeuristicRule, ...] = tuple(
    sorted(
        (
            HeuristicRule(
                "coindcx_futures_income_type",
                10,
                _has_all("income_type"),
                COINDCX,
                LedgerType.DERIVATIVES,
                0.95,
            ),
            HeuristicRule(
                "binance_futures_realized_profit",
                20,
                _has_all("realized profit"),
                BINANCE,
                LedgerType.DERIVATIVES,
                0.90,
            ),
            HeuristicRule(
                "coindcx_futures_income_asset",
                30,
                _has_all("income", "asset"),
                COINDCX,
                LedgerType.DERIVATIVES,
                0.85,
            ),
            HeuristicRule(
                "binance_spot_order_history",
                40,
                _has_all("type", "avgtrading price", "status"),
                BINANCE,
                LedgerType.SPOT,
                0.85,
            ),
            HeuristicRule(
                "coindcx_spot_pair_executed",
                50,
                _coindcx_spot,
                COINDCX,
                LedgerType.SPOT,
                0.85,
            ),
        ),
        key=lambda rule: rule.priority,
    )
)


def normalize_headers(headers: Iterable[str]) -> frozenset[str]:
    return frozenset(normalize_item(h) for h in headers)


def classify_heuristically(
    headers: Iterable[str],
    rules: Iterable[HeuristicRule] = RULES,
) -> HeuristicDecision | None:
    """
    Return the decision of the first matching rule, or ``None``.

    ``headers`` must already be validated as strings.
    """
    normalized = normalize_headers(headers)
    for rule in rules:
        if rule.predicate(normalized):
            log.debug("Heuristic rule matched", rule=rule.name)
            return rule.decision()
    return None
