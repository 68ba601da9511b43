"""AI advisory agents and the decision pipeline for QuantPilot.

- AdvisorAgent: external recommendations and performance audits
- generate_insight / audit_performance: advisory raced against local fallback
"""

from quantpilot.agents.base import create_agent, get_api_key, get_model, run_agent_async
from quantpilot.agents.advisor import AdvisorAgent, AdvisoryService
from quantpilot.agents.pipeline import (
    DEFAULT_TIMEOUT,
    audit_performance,
    fallback_audit,
    fallback_insight,
    generate_insight,
)

__all__ = [
    # Base utilities
    "create_agent",
    "get_api_key",
    "get_model",
    "run_agent_async",
    # Advisory
    "AdvisorAgent",
    "AdvisoryService",
    # Pipeline
    "DEFAULT_TIMEOUT",
    "audit_performance",
    "fallback_audit",
    "fallback_insight",
    "generate_insight",
]
