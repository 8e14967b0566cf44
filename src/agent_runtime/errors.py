"""
Exception hierarchy for agent-runtime.
"""


class AgentRuntimeError(Exception):
    """Base class for all runtime errors."""


class ConfigurationError(AgentRuntimeError, ValueError):
    """Raised when a configuration value is invalid."""


class LLMCallsLimitExceededError(AgentRuntimeError):
    """Raised when an invocation exceeds its model call budget.

    Fatal for the whole invocation and never retried.
    """

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max number of LLM calls limit of {limit} exceeded")


class InvocationCancelled(AgentRuntimeError):
    """Raised at a suspension point once the invocation has been cancelled."""


class AgentTreeError(AgentRuntimeError, ValueError):
    """Raised when composing an invalid agent hierarchy."""


class SessionNotFoundError(AgentRuntimeError, KeyError):
    """Raised when a session does not exist."""


class SessionExistsError(AgentRuntimeError, ValueError):
    """Raised when creating a session whose id is already taken."""
