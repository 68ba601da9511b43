"""Tests for the advisory decision pipeline and its local fallback."""

import asyncio
import json
import time

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from quantpilot.agents.pipeline import (
    audit_performance,
    fallback_audit,
    fallback_insight,
    generate_insight,
    parse_change,
    performance_stats,
    sanitize_json,
)
from quantpilot.models import AccountMode, Provenance, Side, Trade, TradeStatus


VALID_RESPONSE = {
    "pair": "BTC/USDT",
    "confidence": 82,
    "action": "buy",
    "reasoning": "Higher lows on rising volume.",
    "keyLevels": {"support": 95000, "resistance": 98000},
}


class StubAdvisor:
    """Advisory service returning canned responses after an optional delay."""

    def __init__(self, response=None, audit=None, delay: float = 0.0, error: Exception = None):
        self.response = response
        self.audit = audit
        self.delay = delay
        self.error = error
        self.calls = 0

    async def request(self, pair, context):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.response

    async def summarize(self, stats):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.audit


def closed_trade(pnl: float) -> Trade:
    return Trade(
        id=f"T{abs(hash(pnl)) % 10**8}",
        pair="BTC/USDT",
        side=Side.BUY,
        entry_price=100.0,
        exit_price=100.0 + pnl / 2,
        amount=100.0,
        status=TradeStatus.CLOSED,
        pnl=pnl,
        stop_loss=98.0,
        take_profit=105.0,
        stop_loss_pct=2.0,
        take_profit_pct=5.0,
        mode=AccountMode.TRIAL,
    )


class TestAdvisoryRace:
    """
    *For any* advisor outcome, generate_insight returns an insight within
    the timeout: EXTERNAL for a valid response, FALLBACK otherwise.
    """

    def test_valid_response_is_external(self):
        advisor = StubAdvisor(response=VALID_RESPONSE)
        insight = asyncio.run(generate_insight("BTC/USDT", 96000.0, 1.2, advisor=advisor, timeout=1.0))

        assert insight.provenance is Provenance.EXTERNAL
        assert insight.action == "BUY"
        assert insight.confidence == 82
        assert insight.support == 95000
        assert insight.resistance == 98000

    def test_json_string_response_is_external(self):
        text = "Here you go:\n```json\n" + json.dumps(VALID_RESPONSE) + "\n```"
        advisor = StubAdvisor(response=text)
        insight = asyncio.run(generate_insight("BTC/USDT", 96000.0, 1.2, advisor=advisor, timeout=1.0))
        assert insight.provenance is Provenance.EXTERNAL

    def test_never_responding_advisor_falls_back_in_time(self):
        advisor = StubAdvisor(response=VALID_RESPONSE, delay=60.0)

        started = time.monotonic()
        insight = asyncio.run(generate_insight("BTC/USDT", 96000.0, 1.2, advisor=advisor, timeout=0.2))
        elapsed = time.monotonic() - started

        assert insight.provenance is Provenance.FALLBACK
        assert insight.reasoning.startswith("[LOCAL ENGINE]")
        assert elapsed < 5.0

    @pytest.mark.parametrize("response", [
        None,
        "",
        "not json at all",
        {},
        {"pair": "BTC/USDT", "action": "MOON", "confidence": 50, "reasoning": "x",
         "keyLevels": {"support": 1, "resistance": 2}},
        {"pair": "BTC/USDT", "action": "BUY", "confidence": 150, "reasoning": "x",
         "keyLevels": {"support": 1, "resistance": 2}},
        {"pair": "BTC/USDT", "action": "BUY", "confidence": 50, "reasoning": "x"},
    ])
    def test_malformed_response_falls_back(self, response):
        advisor = StubAdvisor(response=response)
        insight = asyncio.run(generate_insight("ETH/USDT", 2680.0, 0.45, advisor=advisor, timeout=1.0))
        assert insight.provenance is Provenance.FALLBACK

    def test_transport_error_falls_back(self):
        advisor = StubAdvisor(error=ConnectionError("network down"))
        insight = asyncio.run(generate_insight("SOL/USDT", 198.5, -0.15, advisor=advisor, timeout=1.0))
        assert insight.provenance is Provenance.FALLBACK

    def test_no_advisor_uses_fallback(self):
        insight = asyncio.run(generate_insight("SOL/USDT", 198.5, -0.15))
        assert insight.provenance is Provenance.FALLBACK


class TestFallbackInsight:
    """
    *For any* 24h change without usable history, the heuristic takes a
    side only beyond +/-2%; key levels bracket the price.
    """

    @given(change=st.floats(min_value=-50, max_value=50, allow_nan=False))
    @settings(max_examples=100)
    def test_heuristic_action(self, change: float):
        insight = fallback_insight("ETH/USDT", 2680.0, change)
        if change > 2:
            assert insight.action == "BUY"
        elif change < -2:
            assert insight.action == "SELL"
        else:
            assert insight.action == "HOLD"
        assert insight.confidence == 70
        assert insight.provenance is Provenance.FALLBACK

    def test_key_levels_use_asset_volatility(self):
        btc = fallback_insight("BTC/USDT", 100000.0, 0.0)
        assert 97990 <= btc.support <= 98000
        assert 101990 <= btc.resistance <= 102000

        eth = fallback_insight("ETH/USDT", 1000.0, 0.0)
        assert 950 <= eth.support <= 960
        assert 1030 <= eth.resistance <= 1040
        assert float(eth.support).is_integer()

    def test_reference_price_without_quote(self):
        insight = fallback_insight("BTC/USDT")
        assert insight.support < 96500 < insight.resistance
        assert insight.action == "HOLD"

    def test_history_drives_trend_signal(self):
        history = [100.0 + i for i in range(40)]
        insight = fallback_insight("SOL/USDT", 139.0, -10.0, history)
        assert insight.action == "BUY"

    def test_change_string_parsing(self):
        assert parse_change("+3.5%") == 3.5
        assert parse_change("-2.25%") == -2.25
        assert parse_change("garbage") == 0.0
        assert parse_change(None) == 0.0

    def test_sanitize_json_strips_fences(self):
        assert sanitize_json('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert sanitize_json("") == "{}"


class TestPerformanceAudit:
    """
    *For any* set of closed trades, the local audit rates A for win rate
    above 60% with positive P&L, F for negative P&L, C otherwise.
    """

    @given(pnls=st.lists(
        st.floats(min_value=-100, max_value=100, allow_nan=False).filter(lambda x: x != 0),
        min_size=0,
        max_size=20,
    ))
    @settings(max_examples=100)
    def test_rating_rules(self, pnls: list[float]):
        stats = performance_stats([closed_trade(p) for p in pnls])
        report = fallback_audit(stats["win_rate"], stats["net_pnl"])

        if stats["win_rate"] > 60 and stats["net_pnl"] > 0:
            assert report.rating == "A"
        elif stats["net_pnl"] < 0:
            assert report.rating == "F"
        else:
            assert report.rating == "C"
        assert report.efficiency_score == int(stats["win_rate"])
        assert report.critique.startswith("[LOCAL AUDIT]")

    def test_open_trades_ignored(self):
        open_trade = closed_trade(5.0).model_copy(update={"status": TradeStatus.OPEN, "pnl": None})
        stats = performance_stats([open_trade, closed_trade(-5.0)])
        assert stats["closed_trades"] == 1
        assert stats["win_rate"] == 0.0
        assert stats["net_pnl"] == -5.0

    def test_no_trades_rates_c(self):
        report = asyncio.run(audit_performance([]))
        assert report.rating == "C"
        assert report.efficiency_score == 0

    def test_external_audit(self):
        advisor = StubAdvisor(audit={
            "rating": "b",
            "efficiencyScore": 64,
            "critique": "Solid but over-trading.",
            "recommendedAdjustment": "Raise the take-profit.",
        })
        report = asyncio.run(audit_performance([closed_trade(10.0)], advisor=advisor, timeout=1.0))
        assert report.provenance is Provenance.EXTERNAL
        assert report.rating == "B"
        assert report.efficiency_score == 64
        assert report.win_rate == 100.0

    def test_slow_audit_falls_back(self):
        advisor = StubAdvisor(audit={}, delay=60.0)
        report = asyncio.run(audit_performance([closed_trade(-10.0)], advisor=advisor, timeout=0.2))
        assert report.provenance is Provenance.FALLBACK
        assert report.rating == "F"


class TestAdvisorAgent:
    """The SDK-backed advisor fails fast without a key and passes prompts through."""

    def test_missing_key_raises(self, monkeypatch):
        from quantpilot.agents.advisor import AdvisorAgent
        from quantpilot.exceptions import AdvisoryError

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(AdvisoryError):
            asyncio.run(AdvisorAgent().request("BTC/USDT", {"current_price": 1.0, "change_24h": 0.0}))

    def test_missing_key_falls_back(self, monkeypatch):
        from quantpilot.agents.advisor import AdvisorAgent

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        insight = asyncio.run(generate_insight("BTC/USDT", 96000.0, 1.2, advisor=AdvisorAgent(), timeout=1.0))
        assert insight.provenance is Provenance.FALLBACK

    def test_structured_output_used(self, monkeypatch):
        from quantpilot.agents import advisor as advisor_module
        from quantpilot.models import AdvisoryResponse

        prompts = []

        async def fake_run(agent, message, context=None):
            prompts.append(message)
            return AdvisoryResponse.model_validate(VALID_RESPONSE)

        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr(advisor_module, "run_agent_async", fake_run)

        insight = asyncio.run(generate_insight(
            "BTC/USDT", 96000.0, 1.2, advisor=advisor_module.AdvisorAgent(model="test-model"), timeout=1.0
        ))

        assert insight.provenance is Provenance.EXTERNAL
        assert "BTC/USDT" in prompts[0]
        assert "96,000.00" in prompts[0]
