"""
Compaction module - condenses windows of the event log into summaries.
"""

from .config import DEFAULT_COMPACTION_INTERVAL, DEFAULT_OVERLAP_SIZE, CompactionConfig
from .summarizer import (
    BaseEventSummarizer,
    LLMEventSummarizer,
    extract_key_facts,
    fallback_summary,
    format_transcript,
)
from .service import CompactionService

__all__ = [
    "DEFAULT_COMPACTION_INTERVAL",
    "DEFAULT_OVERLAP_SIZE",
    "CompactionConfig",
    "BaseEventSummarizer",
    "LLMEventSummarizer",
    "extract_key_facts",
    "fallback_summary",
    "format_transcript",
    "CompactionService",
]
