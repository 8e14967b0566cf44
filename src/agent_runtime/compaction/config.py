"""
Configuration for sliding-window event compaction.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import ConfigurationError

if TYPE_CHECKING:
    from .summarizer import BaseEventSummarizer

DEFAULT_COMPACTION_INTERVAL = 10
DEFAULT_OVERLAP_SIZE = 2


@dataclass
class CompactionConfig:
    """Configuration for event compaction.

    Attributes:
        compaction_interval: New invocations needed before a pass runs
        overlap_size: Invocations from before the new window that are
            summarized again, keeping consecutive summaries connected
        enabled: Master switch
        summarizer: Produces the summary text for a window of events
    """

    compaction_interval: int = DEFAULT_COMPACTION_INTERVAL
    overlap_size: int = DEFAULT_OVERLAP_SIZE
    enabled: bool = True
    summarizer: "BaseEventSummarizer | None" = None

    def __post_init__(self):
        if self.compaction_interval < 1:
            raise ConfigurationError(
                f"compaction_interval must be >= 1, got {self.compaction_interval}"
            )
        if not 0 <= self.overlap_size < self.compaction_interval:
            raise ConfigurationError(
                f"overlap_size must be in [0, {self.compaction_interval}), got {self.overlap_size}"
            )
