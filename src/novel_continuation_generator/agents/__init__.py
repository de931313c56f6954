"""AG2 agents that back the model stream."""

from .writer import StreamFn, make_agent_stream, make_phase_agent

__all__ = ["StreamFn", "make_agent_stream", "make_phase_agent"]
