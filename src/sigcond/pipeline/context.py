"""Pipeline context for state flow between stages.

This module defines the PipelineContext dataclass that carries the running
(signal, time, sample rate) state through the conditioning stages.
"""

import dataclasses
import logging
import time as timer
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from ..config_schema import PipelineSettings
from ..utils.signal_processing import estimate_sample_rate


@dataclass(frozen=True)
class PipelineContext:
    """Immutable state container for pipeline execution.

    Each stage receives a context and returns a new context with updates.
    Stages only replace the signal and time; the sample rate belongs to the
    driver, which re-estimates it with refresh() before every stage.

    Attributes:
        signal: Current sample matrix (samples x channels)
        time: Current timestamp vector
        settings: Driver settings
        logger: Logger instance
        progress: Optional sink for textual progress notices
        sample_rate: Rate estimated from ``time``; None until refreshed
        completed: Kinds of the stages executed so far
    """

    signal: np.ndarray
    time: np.ndarray
    settings: PipelineSettings
    logger: logging.Logger
    progress: Optional[Callable[[str], None]] = None
    sample_rate: Optional[float] = None
    completed: List[str] = field(default_factory=list)

    @property
    def n_samples(self) -> int:
        return self.signal.shape[0]

    @property
    def n_channels(self) -> int:
        return self.signal.shape[1]

    def update(self, **kwargs) -> 'PipelineContext':
        """Create new context with updated fields.

        Replacing ``time`` invalidates the sample rate so a stale estimate
        can never reach the next stage.

        Args:
            **kwargs: Fields to update

        Returns:
            New PipelineContext with updated fields
        """
        for key in kwargs:
            if not hasattr(self, key):
                raise AttributeError(f"PipelineContext has no attribute '{key}'")
        if 'time' in kwargs and 'sample_rate' not in kwargs:
            kwargs['sample_rate'] = None
        return dataclasses.replace(self, **kwargs)

    def refresh(self) -> 'PipelineContext':
        """Re-estimate the sample rate from the current time vector."""
        return self.update(sample_rate=estimate_sample_rate(self.time))

    def mark_completed(self, kind: str) -> 'PipelineContext':
        return self.update(completed=self.completed + [kind])

    def notify(self, message: str) -> None:
        """Emit a progress notice to the logger and the optional sink."""
        self.logger.info(message)
        if self.progress is not None:
            self.progress(message)

    def notify_done(self, description: str, started: float) -> None:
        """Emit a completion notice with the wall time since ``started``."""
        elapsed = timer.perf_counter() - started
        self.notify(f"{description}: done in {elapsed:.2f} seconds")
