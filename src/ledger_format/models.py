from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class LedgerType(str, Enum):
    SPOT = "spot"
    DERIVATIVES = "derivatives"


class DecidedBy(str, Enum):
    HEURISTIC = "heuristic"
    FALLBACK = "fallback"
    HYBRID = "hybrid"


# Canonical trade fields a column mapping may target.
CANONICAL_FIELDS = (
    "symbol",
    "side",
    "timestamp",
    "price",
    "quantity",
    "fee",
    "total",
    "positionSide",
    "realizedPnl",
)
REQUIRED_FIELDS = ("symbol", "side", "timestamp", "price", "quantity")


@dataclass(frozen=True)
class HeuristicDecision:
    source_system: str
    ledger_type: LedgerType
    confidence: float
    rule: str = ""


@dataclass(frozen=True)
class ClassificationResult:
    """
    Final (or fallback) classification of one header set.

    Instances are stored in the response cache and shared between callers,
    so ``column_mapping`` is frozen into a read-only view on construction.
    """

    source_system: str
    ledger_type: LedgerType
    confidence: float
    column_mapping: Mapping[str, str] = field(default_factory=dict)
    decided_by: DecidedBy = DecidedBy.FALLBACK
    missing_fields: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "column_mapping", MappingProxyType(dict(self.column_mapping)))
        object.__setattr__(self, "missing_fields", tuple(self.missing_fields))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def to_dict(self) -> dict:
        return {
            "source_system": self.source_system,
            "ledger_type": self.ledger_type.value,
            "confidence": self.confidence,
            "column_mapping": dict(self.column_mapping),
            "decided_by": self.decided_by.value,
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
        }
