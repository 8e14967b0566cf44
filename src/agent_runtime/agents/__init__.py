"""
Agents module - the agent tree and its execution.

Includes:
- BaseAgent: hierarchy plus transfer/escalation routing
- LlmAgent: the model-driven multi-turn tool loop
- SequentialAgent / LoopAgent / ParallelAgent: structural composition
- InvocationContext / RunConfig: per-invocation state and limits
"""

from .context import (
    DEFAULT_MAX_LLM_CALLS,
    InvocationContext,
    LLMCallCounter,
    RunConfig,
    StreamingMode,
    new_invocation_id,
)
from .base import BaseAgent
from .hooks import AgentCallbacks, RequestProcessor
from .instructions import render_instruction
from .llm_agent import LlmAgent
from .workflows import LoopAgent, ParallelAgent, SequentialAgent

__all__ = [
    "DEFAULT_MAX_LLM_CALLS",
    "InvocationContext",
    "LLMCallCounter",
    "RunConfig",
    "StreamingMode",
    "new_invocation_id",
    "BaseAgent",
    "AgentCallbacks",
    "RequestProcessor",
    "render_instruction",
    "LlmAgent",
    "LoopAgent",
    "ParallelAgent",
    "SequentialAgent",
]
