"""
Fallback Ledger Format Classifier
=================================

This module classifies a trade export with a text-only LLM prompt. It
provides a parsing layer that validates the JSON response against the
expected shape and a provider class used by the classification pipeline.

The provider is asked for the full column mapping even when the heuristic
rules already know the exchange; in that case the heuristic decision is
passed along as an advisory hint.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Sequence

import openai
import structlog

from common.config import Settings
from common.llm import FATAL_OPENAI_EXCEPTIONS, OpenAIChatMixin

from .errors import ClassificationError, MalformedResult, ServiceError, ServiceUnavailable
from .models import (
    CANONICAL_FIELDS,
    ClassificationResult,
    DecidedBy,
    HeuristicDecision,
    LedgerType,
)

log = structlog.get_logger(__name__)

DETECTION_PROMPT = """
You identify cryptocurrency trade-history CSV exports. Given the column
headers and a few sample rows, decide which exchange produced the file,
whether it is a spot or a futures ledger, and which column holds each
standard field.

- Reply only with a single, valid JSON object that matches the schema below.
Do not wrap it in markdown or add explanations.

----------  Standard fields  ----------
symbol        trading pair (BTC/USDT, BTCUSDT, BTC-USD)
side          trade direction (BUY, SELL, Long, Short)
timestamp     date/time of the trade
price         execution price per unit
quantity      amount traded
fee           trading fee (optional)
total         total value in quote currency (optional)
positionSide  LONG/SHORT for futures (optional)
realizedPnl   realised profit or loss (optional)

----------  Known exports  ----------
CoinDCX spot:      Date(UTC), Pair, Side, Price, Executed, Amount, Fee
                   pairs look like BTCINR, sides are lowercase
CoinDCX futures:   timestamp, symbol, income_type, income, asset, info,
                   tran_id, trade_id; symbols like BTCUSD_PERP
Binance spot:      Date(UTC), Pair, Type, Order Price, Order Amount,
                   AvgTrading Price, Filled, Total, status
Binance futures:   Time, Symbol, Side, Price, Executed, Amount, Fee,
                   Realized Profit

----------  JSON schema  ----------
{
  "mapping": {
    "symbol": string|null, "side": string|null, "timestamp": string|null,
    "price": string|null, "quantity": string|null, "fee": string|null,
    "total": string|null, "positionSide": string|null,
    "realizedPnl": string|null
  },
  "confidence":       number,    # 0.0 - 1.0
  "detectedExchange": string|null,
  "detectedType":     "spot"|"futures",
  "missingFields":    string[],  # required fields you could not map
  "warnings":         string[]
}
-----------------------------------

Rules
-----
1. Mapping values must be header names exactly as given, or null.
2. Only map fields you are more than 70% sure about.
3. Use a confidence below 0.6 if no known export pattern matches.
""".strip()

_LEDGER_TYPES = {
    "spot": LedgerType.SPOT,
    "futures": LedgerType.DERIVATIVES,
    "perpetual": LedgerType.DERIVATIVES,
    "derivatives": LedgerType.DERIVATIVES,
}

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

UNKNOWN_SOURCE = "unknown"


def _extract_json(text: str) -> Any:
    """Parse JSON from raw model output, trimming fences or surrounding text."""
    fenced = _CODE_FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def _string_list(data: Mapping, key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list of strings.")
    items = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{key}' must contain only strings, got {type(item).__name__}.")
        if item.strip():
            items.append(item.strip())
    return tuple(items)


def _parse_mapping(value: Any, warnings: list[str]) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ValueError("Classification response has no 'mapping' object.")

    mapping = {}
    for canonical, header in value.items():
        if canonical not in CANONICAL_FIELDS:
            warnings.append(f"Ignored unknown mapping field '{canonical}'.")
            continue
        if header is None:
            continue
        if not isinstance(header, str):
            raise ValueError(f"Mapping for '{canonical}' is not a string.")
        if header.strip():
            mapping[canonical] = header.strip()
    return mapping


def _parse_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("'confidence' must be a number.")
    if not 0.0 <= float(value) <= 1.0:
        raise ValueError(f"'confidence' {value} is outside [0, 1].")
    return float(value)


def _parse_ledger_type(value: Any) -> LedgerType:
    key = value.strip().lower() if isinstance(value, str) else None
    if key not in _LEDGER_TYPES:
        raise ValueError(f"Unsupported 'detectedType': {value!r}.")
    return _LEDGER_TYPES[key]


def _parse_source_system(value: Any) -> str:
    if value is None:
        return UNKNOWN_SOURCE
    if not isinstance(value, str):
        raise ValueError("'detectedExchange' must be a string or null.")
    value = value.strip()
    if not value or value.lower() == "null":
        return UNKNOWN_SOURCE
    return value


def parse_classification_response(text: str) -> ClassificationResult:
    """
    Parse and validate the classification response.

    Raises ``ValueError`` (``json.JSONDecodeError`` included) when the
    response does not match the expected shape.
    """
    raw = text.strip()
    if not raw:
        raise ValueError("Classification response is empty.")

    data = _extract_json(raw)
    if not isinstance(data, dict):
        raise ValueError("Classification response is not a JSON object.")

    warnings = list(_string_list(data, "warnings"))
    mapping = _parse_mapping(data.get("mapping"), warnings)

    return ClassificationResult(
        source_system=_parse_source_system(data.get("detectedExchange")),
        ledger_type=_parse_ledger_type(data.get("detectedType")),
        confidence=_parse_confidence(data.get("confidence")),
        column_mapping=mapping,
        decided_by=DecidedBy.FALLBACK,
        missing_fields=_string_list(data, "missingFields"),
        warnings=tuple(warnings),
    )


def build_user_content(
    headers: Sequence[str],
    sample_rows: Sequence[Any] | None,
    hint: HeuristicDecision | None,
    sample_limit: int,
) -> str:
    lines = ["CSV headers:"]
    lines.extend(f'{i}. "{header}"' for i, header in enumerate(headers, start=1))

    rows = list(sample_rows or [])[:sample_limit]
    lines.append("")
    if rows:
        lines.append(f"Sample data (first {len(rows)} rows):")
        lines.extend(json.dumps(row, ensure_ascii=True, default=str) for row in rows)
    else:
        lines.append("No sample data provided.")

    if hint is not None:
        lines.append("")
        lines.append(
            "A local rule already identified this file as "
            f"{hint.source_system} {hint.ledger_type.value} "
            f"(confidence {hint.confidence:.2f}). Treat this as advisory and "
            "still map every column."
        )
    return "\n".join(lines)


class FallbackClassifier(OpenAIChatMixin):
    """
    Ledger format classifier that uses OpenAI-compatible chat completions.

    Transient transport errors are retried per model by the mixin and an
    invalid reply is re-requested up to ``MAX_RETRIES`` times. After that, or
    on any other API error, classification moves on to the next model in
    ``settings.AI_MODELS``. When every model has failed, the last failure
    decides whether ``ServiceError`` or ``MalformedResult`` is raised.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return self.settings.FALLBACK_CONFIGURED

    def classify(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[Any] | None = None,
        hint: HeuristicDecision | None = None,
    ) -> ClassificationResult:
        if not self.configured:
            raise ServiceUnavailable(
                "Fallback classifier is not configured. Set OPENAI_API_KEY "
                "or use LLM_PROVIDER=ollama."
            )

        messages = [
            {"role": "system", "content": DETECTION_PROMPT},
            {
                "role": "user",
                "content": build_user_content(
                    headers, sample_rows, hint, self.settings.CLASSIFY_SAMPLE_ROWS
                ),
            },
        ]

        last_error: ClassificationError | None = None
        for model in self.settings.AI_MODELS:
            try:
                return self._classify_with_model(model, messages)
            except FATAL_OPENAI_EXCEPTIONS as e:
                log.warning("Completion service rejected the request", model=model, error=str(e))
                raise ServiceError(f"Completion service rejected the request: {e}") from e
            except (ServiceError, MalformedResult) as e:
                last_error = e

        if isinstance(last_error, MalformedResult):
            log.error(
                "All classification models returned malformed results",
                models=self.settings.AI_MODELS,
                error=last_error.message,
            )
        else:
            log.warning("All classification models failed", models=self.settings.AI_MODELS)
        raise last_error or ServiceError("No classification model is configured.")

    def _classify_with_model(self, model: str, messages: list[dict]) -> ClassificationResult:
        """
        Ask one model, re-asking up to ``MAX_RETRIES`` times on invalid replies.

        Raises ``ServiceError`` when the model call fails and ``MalformedResult``
        when every reply failed validation. Authentication and permission
        errors propagate unchanged so the caller stops trying other models.
        """
        params = self._completion_params(model, messages)
        error: MalformedResult | None = None
        for attempt in range(1, self.settings.MAX_RETRIES + 1):
            try:
                response = self._create_completion(**params)
            except FATAL_OPENAI_EXCEPTIONS:
                raise
            except openai.APIError as e:
                log.warning("Classification model failed", model=model, error=str(e))
                raise ServiceError(f"Model {model} failed: {e}") from e

            content = self._completion_text(response)
            try:
                result = parse_classification_response(content)
            except ValueError as e:
                log.warning(
                    "Classification response invalid",
                    model=model,
                    attempt=attempt,
                    error=str(e),
                )
                error = MalformedResult(f"Model {model} returned an invalid result: {e}")
                continue

            log.info(
                "Fallback classification complete",
                model=model,
                source_system=result.source_system,
                ledger_type=result.ledger_type.value,
                confidence=result.confidence,
            )
            return result

        raise error
