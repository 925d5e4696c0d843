"""Pipeline driver orchestrates stage execution.

This module contains the PipelineDriver class that walks a configuration's
stage descriptors in declared order, dispatches each to its stage handler and
re-estimates the sample rate before each stage that uses one.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple, Union

import numpy as np

from ..config_schema import PipelineConfig, PipelineSettings
from ..constants import KNOWN_STAGE_KINDS
from ..exceptions import SigcondError, UnknownStageError, format_error_chain
from ..utils.validation import as_signal_matrix, as_time_vector, validate_dimensions
from .context import PipelineContext
from .stages import build_stage


class PipelineDriver:
    """Orchestrates conditioning stage execution.

    The driver owns the stage ordering: descriptors run strictly in the order
    the configuration lists them. Each stage is a pure transform of the
    running (signal, time) pair; the driver re-estimates the sample rate from
    the time vector before every stage that declares ``needs_rate``.

    Descriptors whose kind has no handler are skipped unless
    ``settings.strict_stage_kinds`` is set.

    Attributes:
        settings: Driver settings
        progress: Optional sink for progress notices
        logger: Logger used for progress and diagnostics
    """

    def __init__(
        self,
        settings: Union[PipelineSettings, dict, None] = None,
        progress: Optional[Callable[[str], None]] = None,
        logger: Optional[logging.Logger] = None
    ):
        if settings is None:
            settings = PipelineSettings()
        elif not isinstance(settings, PipelineSettings):
            settings = PipelineSettings.model_validate(settings)

        if logger is None:
            logger = logging.getLogger(__name__)
            if settings.log_level is not None:
                # Per-level child so the module logger keeps its own level
                logger = logger.getChild(settings.log_level.lower())
        if settings.log_level is not None:
            logger.setLevel(getattr(logging, settings.log_level))

        self.settings = settings
        self.progress = progress
        self.logger = logger

    def build_stages(self, config: PipelineConfig) -> List[Any]:
        """Instantiate one handler per descriptor (None for unrecognized kinds).

        Raises:
            UnknownStageError: In strict mode, for the first unrecognized kind
        """
        stages = []
        for descriptor in config.stages:
            stage = build_stage(descriptor)
            if stage is None and self.settings.strict_stage_kinds:
                raise UnknownStageError(descriptor.kind, list(KNOWN_STAGE_KINDS))
            stages.append(stage)
        return stages

    def run(self, signal, time, configuration) -> Tuple[np.ndarray, np.ndarray]:
        """Run every configured stage over the series.

        Args:
            signal: 2D array (samples x channels) or 1D single channel
            time: Timestamps, one per sample
            configuration: PipelineConfig or an ordered sequence of raw
                stage descriptors

        Returns:
            Tuple of (signal, time) after the last executed stage. A 1D
            input signal is returned 1D.

        Raises:
            DimensionMismatchError: If signal rows and time length differ
            ConfigurationError: If a recognized stage is misconfigured
            SampleRateUndefinedError: If a stage needs a rate and none exists
            FilterDesignError: If a filter-chain entry cannot be designed
        """
        data, was_1d = as_signal_matrix(signal)
        time = as_time_vector(time)
        validate_dimensions(data, time)

        config = PipelineConfig.from_stages(configuration)
        stages = self.build_stages(config)

        ctx = PipelineContext(
            signal=data,
            time=time,
            settings=self.settings,
            logger=self.logger,
            progress=self.progress
        )

        for index, (descriptor, stage) in enumerate(zip(config.stages, stages), start=1):
            if stage is None:
                self.logger.debug(f"Skipping unrecognized stage '{descriptor.kind}' ({index}/{len(stages)})")
                continue

            try:
                if stage.needs_rate:
                    ctx = ctx.refresh()
                self.logger.debug(
                    f"Executing {stage.__class__.__name__} ({index}/{len(stages)}): "
                    f"{ctx.n_samples} samples x {ctx.n_channels} channels"
                )
                ctx = stage.execute(ctx)
            except SigcondError as e:
                self.logger.error(
                    f"Stage '{descriptor.kind}' ({index}/{len(stages)}) failed\n{format_error_chain(e)}"
                )
                raise
            validate_dimensions(ctx.signal, ctx.time)
            ctx = ctx.mark_completed(descriptor.kind)

        if ctx.completed:
            self.logger.debug(f"Pipeline complete: {' -> '.join(ctx.completed)}")

        result = ctx.signal[:, 0] if was_1d else ctx.signal
        return result, ctx.time


def run_pipeline(
    signal,
    time,
    configuration,
    settings: Union[PipelineSettings, dict, None] = None,
    progress: Optional[Callable[[str], None]] = None,
    logger: Optional[logging.Logger] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Condition a multichannel series with the configured stages.

    Args:
        signal: 2D array (samples x channels) or 1D single channel
        time: Timestamps, one per sample
        configuration: Ordered stage descriptors, e.g.
            ``[("downsample", [4]), ("trend-removal", [1])]``
        settings: Optional PipelineSettings (or dict)
        progress: Optional callable receiving progress notices
        logger: Optional logger

    Returns:
        Tuple of (signal, time)
    """
    driver = PipelineDriver(settings=settings, progress=progress, logger=logger)
    return driver.run(signal, time, configuration)
