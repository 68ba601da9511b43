"""Decision pipeline: external advice raced against a local fallback.

``generate_insight`` issues one advisory request and waits at most
``timeout`` seconds for it. Whatever happens (timeout, transport error,
malformed response) the caller gets a usable Insight tagged with its
provenance; errors never propagate.
"""

import asyncio
import json
import logging
import math
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from pydantic import BaseModel, ValidationError

from quantpilot.exceptions import AdvisoryError
from quantpilot.indicators.trend import MIN_POINTS, analyze_trend
from quantpilot.models import (
    AdvisoryResponse,
    AuditSummary,
    Insight,
    PerformanceAudit,
    Provenance,
    Trade,
    TradeStatus,
)

logger = logging.getLogger(__name__)

# Seconds the external advisor is given before the fallback takes over
DEFAULT_TIMEOUT = 6.5

# 24h change (%) beyond which the heuristic fallback takes a side
HEURISTIC_CHANGE_THRESHOLD = 2.0
HEURISTIC_CONFIDENCE = 70

# Prices used for key levels when no quote is available
REFERENCE_PRICES = {"BTC": 96500.0, "ETH": 2650.0}
DEFAULT_REFERENCE_PRICE = 198.0


def volatility_for(pair: str) -> float:
    """Fixed per-asset volatility used to synthesize key levels."""
    return 0.02 if "BTC" in pair.upper() else 0.04


def reference_price(pair: str) -> float:
    for asset, price in REFERENCE_PRICES.items():
        if asset in pair.upper():
            return price
    return DEFAULT_REFERENCE_PRICE


def parse_change(change_24h: Union[float, str, None]) -> float:
    """Parse a 24h change given as a number or a string like "+1.20%"."""
    if change_24h is None:
        return 0.0
    if isinstance(change_24h, str):
        try:
            return float(change_24h.strip().replace("%", "") or 0)
        except ValueError:
            return 0.0
    return float(change_24h)


def sanitize_json(text: str) -> str:
    """Extract the JSON object from model text that may include prose or fences."""
    if not text:
        return "{}"
    first_open = text.find("{")
    last_close = text.rfind("}")
    if first_open != -1 and last_close > first_open:
        return text[first_open:last_close + 1]
    return text.replace("```json", "").replace("```", "").strip()


def _coerce_payload(raw: Any) -> dict:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            raise AdvisoryError("Empty advisory response")
        try:
            data = json.loads(sanitize_json(raw))
        except json.JSONDecodeError as e:
            raise AdvisoryError(f"Advisory response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise AdvisoryError("Advisory response is not a JSON object")
        return data
    raise AdvisoryError(f"Unexpected advisory response type: {type(raw).__name__}")


def parse_advisory(raw: Any) -> AdvisoryResponse:
    """Validate an external advisory response.

    Raises:
        AdvisoryError: If the response is empty or malformed.
    """
    data = _coerce_payload(raw)
    if not data:
        raise AdvisoryError("Empty advisory response")
    try:
        return AdvisoryResponse.model_validate(data)
    except ValidationError as e:
        raise AdvisoryError(f"Advisory response failed validation: {e}") from e


def parse_audit(raw: Any) -> AuditSummary:
    """Validate an external audit response.

    Raises:
        AdvisoryError: If the response is empty or malformed.
    """
    data = _coerce_payload(raw)
    try:
        return AuditSummary.model_validate(data)
    except ValidationError as e:
        raise AdvisoryError(f"Audit response failed validation: {e}") from e


def _discard(task: asyncio.Future) -> None:
    # Mark the abandoned task's outcome as retrieved
    if not task.cancelled():
        task.exception()


async def first_settled(start: Callable[[], Awaitable[Any]], timeout: float) -> Any:
    """Run ``start()`` and return its result if it settles within ``timeout``.

    The request is abandoned on timeout: it is cancelled best-effort and
    never awaited.

    Raises:
        AdvisoryError: On timeout.
        Exception: Whatever the request raised.
    """
    task = asyncio.ensure_future(start())
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task not in done:
        task.cancel()
        task.add_done_callback(_discard)
        raise AdvisoryError(f"Advisory request timed out after {timeout:.1f}s")
    return task.result()


def fallback_insight(
    pair: str,
    current_price: Optional[float] = None,
    change_24h: Union[float, str, None] = None,
    history: Optional[list[float]] = None,
) -> Insight:
    """Build an insight from local analysis only.

    Uses the trend analyzer when at least MIN_POINTS prices are available,
    otherwise a 24h-change heuristic.
    """
    base_price = current_price or reference_price(pair)

    if history and len(history) >= MIN_POINTS:
        signal = analyze_trend(history)
        action, confidence, reason = signal.action, signal.confidence, signal.reason
    else:
        change = parse_change(change_24h)
        if change > HEURISTIC_CHANGE_THRESHOLD:
            action = "BUY"
        elif change < -HEURISTIC_CHANGE_THRESHOLD:
            action = "SELL"
        else:
            action = "HOLD"
        confidence = HEURISTIC_CONFIDENCE
        reason = "Momentum read from 24h price deviation."

    volatility = volatility_for(pair)
    return Insight(
        pair=pair,
        confidence=confidence,
        action=action,
        reasoning=f"[LOCAL ENGINE] {reason}",
        support=math.floor(base_price * (1 - volatility)),
        resistance=math.floor(base_price * (1 + volatility)),
        provenance=Provenance.FALLBACK,
    )


async def generate_insight(
    pair: str,
    current_price: Optional[float] = None,
    change_24h: Union[float, str, None] = None,
    history: Optional[list[float]] = None,
    advisor: Optional[Any] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Insight:
    """Produce a recommendation for ``pair``.

    Args:
        pair: Asset pair.
        current_price: Latest price, if known.
        change_24h: 24h change in percent (number or "+1.2%").
        history: Recent prices, oldest first.
        advisor: AdvisoryService; None skips straight to the fallback.
        timeout: Seconds to wait for the advisor.

    Returns:
        Insight with provenance EXTERNAL or FALLBACK.
    """
    if advisor is not None:
        context = {"current_price": current_price, "change_24h": parse_change(change_24h)}
        try:
            raw = await first_settled(lambda: advisor.request(pair, context), timeout)
            response = parse_advisory(raw)
            return Insight(
                pair=pair,
                confidence=response.confidence,
                action=response.action,
                reasoning=response.reasoning,
                support=response.keyLevels.support,
                resistance=response.keyLevels.resistance,
                provenance=Provenance.EXTERNAL,
            )
        except Exception as e:
            logger.warning("Advisory for %s unavailable, using local engine: %s", pair, e)

    return fallback_insight(pair, current_price, change_24h, history)


def performance_stats(trades: Iterable[Trade]) -> dict:
    """Win rate and net realized P&L over CLOSED trades."""
    closed = [t for t in trades if t.status is TradeStatus.CLOSED]
    wins = sum(1 for t in closed if (t.pnl or 0) > 0)
    win_rate = wins / len(closed) * 100 if closed else 0.0
    net_pnl = sum(t.pnl or 0 for t in closed)
    return {"closed_trades": len(closed), "win_rate": win_rate, "net_pnl": net_pnl}


def fallback_audit(win_rate: float, net_pnl: float) -> PerformanceAudit:
    """Deterministic rating used when the advisor cannot audit."""
    if win_rate > 60 and net_pnl > 0:
        rating = "A"
        critique = "Alpha generation confirmed. Positive expectancy."
    elif net_pnl < 0:
        rating = "F"
        critique = "Negative expectancy detected. Tighten stop-loss logic."
    else:
        rating = "C"
        critique = "Performance is following market baseline. Edge is neutral."

    return PerformanceAudit(
        rating=rating,
        efficiency_score=math.floor(win_rate),
        critique=f"[LOCAL AUDIT] {critique}",
        recommended_adjustment="Continue standard operation with adjusted risk sizing.",
        win_rate=win_rate,
        net_pnl=net_pnl,
        provenance=Provenance.FALLBACK,
    )


async def audit_performance(
    trades: Iterable[Trade],
    advisor: Optional[Any] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> PerformanceAudit:
    """Rate realized performance over CLOSED trades.

    Args:
        trades: Trades to audit; OPEN trades are ignored.
        advisor: AdvisoryService; None skips straight to the fallback.
        timeout: Seconds to wait for the advisor.

    Returns:
        PerformanceAudit with provenance EXTERNAL or FALLBACK.
    """
    stats = performance_stats(trades)

    if advisor is not None:
        try:
            raw = await first_settled(lambda: advisor.summarize(stats), timeout)
            summary = parse_audit(raw)
            return PerformanceAudit(
                rating=summary.rating.upper(),
                efficiency_score=int(summary.efficiencyScore),
                critique=summary.critique,
                recommended_adjustment=summary.recommendedAdjustment,
                win_rate=stats["win_rate"],
                net_pnl=stats["net_pnl"],
                provenance=Provenance.EXTERNAL,
            )
        except Exception as e:
            logger.warning("Advisory audit unavailable, using local rules: %s", e)

    return fallback_audit(stats["win_rate"], stats["net_pnl"])
