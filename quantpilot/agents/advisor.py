"""Advisory agent providing external trade recommendations and audits.

The advisor is the "external" side of the decision pipeline. It is
network-latent and may fail; callers race it against a timeout and
fall back to local analysis.
"""

from typing import Any, Optional, Protocol

from agents import Agent

from quantpilot.agents.base import create_agent, get_api_key, run_agent_async
from quantpilot.exceptions import AdvisoryError
from quantpilot.models import AdvisoryResponse, AuditSummary


ADVISOR_INSTRUCTIONS = """You are a senior crypto quant trader.
Given an asset pair and its market context, produce a strategic insight with:
- confidence: a score from 0 to 100
- action: exactly one of BUY, SELL, HOLD
- keyLevels: numeric support and resistance price levels
- reasoning: concise technical reasoning (two or three sentences)

Echo the pair symbol exactly as given. Never invent market data that was not
provided; when context is missing, assume neutral consolidation.
"""

AUDITOR_INSTRUCTIONS = """You audit the performance of an automated trading bot.
Given its win rate and net realized P&L, return:
- rating: one of S, A, B, C, F
- efficiencyScore: 0 to 100
- critique: one or two sentences on what the numbers say
- recommendedAdjustment: one concrete change to risk or sizing
"""


class AdvisoryService(Protocol):
    """Interface of an external advisory service."""

    async def request(self, pair: str, context: dict[str, Any]) -> Any:
        """Return a recommendation for ``pair`` (AdvisoryResponse-shaped)."""
        ...

    async def summarize(self, stats: dict[str, Any]) -> Any:
        """Return a performance audit (AuditSummary-shaped)."""
        ...


def describe_context(context: dict[str, Any]) -> str:
    """Render market context for the prompt."""
    price = context.get("current_price")
    if price is None:
        return "Market data unavailable, assume neutral consolidation."
    change = context.get("change_24h")
    change_str = f"{change:+.2f}%" if change is not None else "0%"
    return f"Current Price: ${price:,.2f}. 24h Change: {change_str}."


class AdvisorAgent:
    """Advisory service backed by the OpenAI Agents SDK.

    Uses structured outputs so responses arrive as pydantic models.
    """

    def __init__(self, model: Optional[str] = None):
        """Initialize the advisor.

        Args:
            model: Optional model override.
        """
        self.model = model
        self._advisor: Optional[Agent] = None
        self._auditor: Optional[Agent] = None

    def _ensure_key(self) -> None:
        if not get_api_key():
            raise AdvisoryError("OPENAI_API_KEY is not configured")

    def _get_advisor(self) -> Agent:
        if self._advisor is None:
            self._advisor = create_agent(
                name="Market Advisor",
                instructions=ADVISOR_INSTRUCTIONS,
                model=self.model,
                output_type=AdvisoryResponse,
            )
        return self._advisor

    def _get_auditor(self) -> Agent:
        if self._auditor is None:
            self._auditor = create_agent(
                name="Performance Auditor",
                instructions=AUDITOR_INSTRUCTIONS,
                model=self.model,
                output_type=AuditSummary,
            )
        return self._auditor

    async def request(self, pair: str, context: dict[str, Any]) -> Any:
        """Ask the model for a recommendation on ``pair``.

        Args:
            pair: Asset pair.
            context: Market context (current_price, change_24h).

        Returns:
            The agent's structured output.

        Raises:
            AdvisoryError: If no API key is configured.
        """
        self._ensure_key()
        prompt = f"Analyze {pair}. {describe_context(context)}"
        return await run_agent_async(self._get_advisor(), prompt)

    async def summarize(self, stats: dict[str, Any]) -> Any:
        """Ask the model to audit realized performance.

        Args:
            stats: Dictionary with win_rate and net_pnl.

        Returns:
            The agent's structured output.

        Raises:
            AdvisoryError: If no API key is configured.
        """
        self._ensure_key()
        prompt = (
            f"Audit this bot's performance: Win Rate {stats['win_rate']:.1f}%, "
            f"Net PnL ${stats['net_pnl']:.2f} over {stats['closed_trades']} closed trades."
        )
        return await run_agent_async(self._get_auditor(), prompt)
