"""
agent-runtime - multi-turn tool-execution runtime for LLM agents.

Includes:
- Agents: LlmAgent turn engine, transfer/escalation routing, workflow agents
- Events: the append-only session event log model
- Sessions: scoped session state and an in-memory session service
- Compaction: sliding-window summarization of the event log
- Runners: invocation entry points tying the above together
"""

__version__ = "0.1.0"
