"""Pipeline stages for signal conditioning.

Each stage wraps one validated settings model and follows the pattern:
receive context -> process -> return updated context. A stage replaces the
signal (and, for downsampling, the time vector) but never the sample rate;
the driver re-estimates the rate before the next stage that sets
``needs_rate``. Trend removal works on sample indices and needs none.
"""

import time as timer
from typing import Dict, Optional, Type

from ..config_schema import (
    DownsampleSettings,
    FilterChainSettings,
    StageDescriptor,
    TrendRemovalSettings,
    UnrecognizedStage,
)
from ..constants import STAGE_DOWNSAMPLE, STAGE_FILTER_CHAIN, STAGE_TREND_REMOVAL
from ..utils.filter_design import design_filter
from ..utils.signal_processing import (
    decimate_columns,
    remove_polynomial_trend,
    resynthesize_time,
)

from .context import PipelineContext


class TrendRemovalStage:
    """Remove a polynomial trend from every channel.

    Responsibility: subtract a (piecewise) polynomial fit per column.
    Shape and time vector are left unchanged.
    """

    kind = STAGE_TREND_REMOVAL
    needs_rate = False

    def __init__(self, settings: TrendRemovalSettings):
        self.settings = settings

    def describe(self) -> str:
        s = self.settings
        text = f"Detrending (degree {s.degree}"
        if s.breakpoints:
            joint = "continuous" if s.continuous else "discontinuous"
            text += f", {len(s.breakpoints)} {joint} breakpoints"
        return text + ")"

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Detrend each channel.

        Args:
            ctx: Pipeline context with the current signal

        Returns:
            Context with the detrended signal
        """
        description = self.describe()
        started = timer.perf_counter()
        ctx.notify(f"{description}...")

        signal = remove_polynomial_trend(
            ctx.signal,
            degree=self.settings.degree,
            breakpoints=self.settings.breakpoints,
            continuous=self.settings.continuous
        )

        ctx.notify_done(description, started)
        return ctx.update(signal=signal)


class DownsampleStage:
    """Reduce the sample count with an anti-aliasing filter.

    Responsibility: resolve the decimation factor from the current rate,
    decimate each channel independently and resynthesize an evenly spaced
    time vector between the original first and last timestamps.
    """

    kind = STAGE_DOWNSAMPLE
    needs_rate = True

    def __init__(self, settings: DownsampleSettings):
        self.settings = settings

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Decimate the signal and rebuild the time vector.

        The rebuilt time vector is nominal: it ignores the decimation
        filter's group delay and any jitter in the original timestamps.

        Args:
            ctx: Pipeline context with a refreshed sample rate

        Returns:
            Context with ceil(n_samples / R) rows and a new time vector
        """
        rate = ctx.sample_rate
        factor = self.settings.resolve_factor(rate)

        description = (
            f"Downsampling from {rate:.0f} Hz to {rate / factor:.0f} Hz "
            f"(decimate, R={factor})"
        )
        started = timer.perf_counter()
        ctx.notify(f"{description}...")

        signal = decimate_columns(
            ctx.signal,
            factor,
            order=self.settings.order,
            ftype=self.settings.ftype,
            max_workers=ctx.settings.max_workers
        )
        time = resynthesize_time(ctx.time, signal.shape[0])

        ctx.notify_done(description, started)
        return ctx.update(signal=signal, time=time)


class FilterChainStage:
    """Apply an ordered chain of zero-phase filters.

    Responsibility: design each named filter at the rate measured on stage
    entry and apply it forward-backward to all channels at once. The rate is
    not re-estimated between filters of the same chain.
    """

    kind = STAGE_FILTER_CHAIN
    needs_rate = True

    def __init__(self, settings: FilterChainSettings):
        self.settings = settings

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Design and apply every filter in declared order.

        Args:
            ctx: Pipeline context with a refreshed sample rate

        Returns:
            Context with the filtered signal (same shape)

        Raises:
            FilterDesignError: If any filter cannot be designed
        """
        rate = ctx.sample_rate
        signal = ctx.signal

        for entry in self.settings.filters:
            description = f"Applying filter '{entry.name}'"
            started = timer.perf_counter()
            ctx.notify(f"{description}...")

            designed = design_filter(entry.name, entry.design, rate)
            signal = designed.apply(signal)

            ctx.notify_done(description, started)

        return ctx.update(signal=signal)


STAGE_HANDLERS: Dict[str, Type] = {
    STAGE_TREND_REMOVAL: TrendRemovalStage,
    STAGE_DOWNSAMPLE: DownsampleStage,
    STAGE_FILTER_CHAIN: FilterChainStage,
}


def build_stage(descriptor: StageDescriptor) -> Optional[object]:
    """Instantiate the handler for a descriptor, or None if its kind has none."""
    handler = STAGE_HANDLERS.get(descriptor.kind)
    if handler is None or isinstance(descriptor, UnrecognizedStage):
        return None
    return handler(descriptor)
