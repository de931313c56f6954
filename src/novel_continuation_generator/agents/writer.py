"""Phase agents and the model stream they back."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable

import autogen

from ..config import build_role_llm_config
from ..models import ProjectConfig

logger = logging.getLogger(__name__)

# (role, prompt) -> stream of text deltas
StreamFn = Callable[[str, str], AsyncIterator[str]]

_BASE_RULES = """\
Follow the user's prompt exactly, including every required section heading
written between 【 and 】. Never wrap the answer in code fences and never add
commentary about the task itself.
"""

SYSTEM_PROMPTS: dict[str, str] = {
    "compressor": (
        "You are a long-form fiction compression editor. You condense novels into "
        "faithful artifacts without inventing facts.\n" + _BASE_RULES
    ),
    "analyst": (
        "You are a senior fiction editor who analyzes manuscripts before they are "
        "continued.\n" + _BASE_RULES
    ),
    "outliner": (
        "You are a story architect who plans continuations that escalate tension "
        "without repeating earlier beats.\n" + _BASE_RULES
    ),
    "writer": (
        "You are a novelist continuing another author's book in their exact voice.\n"
        + _BASE_RULES
    ),
}

_AGENT_NAMES = {
    "compressor": "Compressor",
    "analyst": "Analyst",
    "outliner": "Outliner",
    "writer": "ChapterWriter",
}


def make_phase_agent(role: str, config: ProjectConfig) -> autogen.AssistantAgent:
    """Create the assistant agent for a pipeline *role*."""
    key = "outliner" if role == "breakdown" else role
    if key not in SYSTEM_PROMPTS:
        key = "writer"
    return autogen.AssistantAgent(
        name=_AGENT_NAMES[key],
        system_message=SYSTEM_PROMPTS[key],
        llm_config=build_role_llm_config(role, config),
    )


def _reply_text(reply: Any) -> str:
    if reply is None:
        return ""
    if isinstance(reply, dict):
        return str(reply.get("content") or "")
    return str(reply)


def make_agent_stream(config: ProjectConfig) -> StreamFn:
    """Return a :data:`StreamFn` backed by AG2 assistant agents.

    Agents are created lazily, one per role. The AG2 client returns complete
    replies, so each call yields a single delta.
    """
    if not config.network_enabled:
        raise RuntimeError("Model calls are disabled (network_enabled=false)")

    agents: dict[str, autogen.AssistantAgent] = {}

    async def stream(role: str, prompt: str) -> AsyncIterator[str]:
        agent = agents.get(role)
        if agent is None:
            agent = agents[role] = make_phase_agent(role, config)
        logger.debug("[%s] prompt: %d chars", agent.name, len(prompt))
        reply = await agent.a_generate_reply(messages=[{"role": "user", "content": prompt}])
        text = _reply_text(reply)
        logger.debug("[%s] reply: %d chars", agent.name, len(text))
        yield text

    return stream
