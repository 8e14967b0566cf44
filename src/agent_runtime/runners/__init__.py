"""
Runners module - invocation entry points.
"""

from .runner import InMemoryRunner, Runner

__all__ = ["InMemoryRunner", "Runner"]
