"""Shared plumbing for the advisory agents.

Wraps the OpenAI Agents SDK: model/key lookup from the environment,
agent construction with structured outputs, and a single async run
helper used by the advisor.
"""

import logging
import os
from typing import Any, Optional

# Telemetry export fails noisily without network access
os.environ.setdefault("OPENAI_AGENTS_DISABLE_TRACING", "1")

from agents import Agent, Runner

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5.2"


def get_model() -> str:
    """Model name from OPENAI_MODEL, or DEFAULT_MODEL."""
    return os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)


def get_api_key() -> Optional[str]:
    """OPENAI_API_KEY, or None when advice must come from the local engine."""
    return os.environ.get("OPENAI_API_KEY") or None


def create_agent(
    name: str,
    instructions: str,
    model: Optional[str] = None,
    output_type: Optional[type] = None,
) -> Agent:
    """Build an agent whose final output is validated against ``output_type``.

    Args:
        name: Name of the agent.
        instructions: System instructions for the agent.
        model: Optional model override. Uses get_model() if not specified.
        output_type: Optional pydantic model the final output must match.

    Returns:
        Configured Agent instance.
    """
    kwargs: dict[str, Any] = {"name": name, "instructions": instructions, "model": model or get_model()}
    if output_type is not None:
        kwargs["output_type"] = output_type
    return Agent(**kwargs)


async def run_agent_async(
    agent: Agent,
    message: str,
    context: Optional[dict[str, Any]] = None,
) -> Any:
    """Run an agent once and return its final output.

    Args:
        agent: The agent to run.
        message: Prompt for this request.
        context: Optional run context passed through to the SDK.

    Returns:
        A string, or an ``output_type`` instance for structured agents.
    """
    logger.debug("Advisory call: %s (model=%s)", agent.name, agent.model)
    result = await Runner.run(agent, message, context=context)
    return result.final_output
