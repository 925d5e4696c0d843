"""Signal processing kernels for the conditioning stages"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import numpy as np
from scipy import signal, stats

from ..exceptions import FilterApplicationError, SampleRateUndefinedError

logger = logging.getLogger(__name__)


def estimate_sample_rate(time: np.ndarray) -> float:
    """
    Estimate the sampling rate from a timestamp vector.

    Uses the statistical mode of the inter-sample intervals rather than their
    mean, so occasional gaps or dropped samples do not skew the estimate.
    Ties resolve to the smallest interval.

    Args:
        time: 1D array of monotonically non-decreasing timestamps

    Returns:
        Sampling rate in samples per time unit

    Raises:
        SampleRateUndefinedError: If fewer than two timestamps are given or
            the modal interval is not strictly positive
    """
    time = np.asarray(time, dtype=float).ravel()
    if time.size < 2:
        raise SampleRateUndefinedError(
            "at least two timestamps are required", n_points=int(time.size)
        )

    intervals = np.diff(time)
    modal_interval = float(stats.mode(intervals, keepdims=False).mode)

    if not np.isfinite(modal_interval) or modal_interval <= 0:
        raise SampleRateUndefinedError(
            f"modal sampling interval is {modal_interval}", n_points=int(time.size)
        )

    return 1.0 / modal_interval


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(np.sign(value) * np.floor(abs(value) + 0.5))


def remove_polynomial_trend(data: np.ndarray,
                            degree: int = 1,
                            breakpoints: Sequence[int] = (),
                            continuous: bool = True) -> np.ndarray:
    """
    Subtract a least-squares polynomial trend from each column.

    With breakpoints the trend is piecewise: a new polynomial piece starts at
    every breakpoint. A continuous trend only adds truncated powers of order
    1..degree at each breakpoint, so the pieces meet; a discontinuous one also
    adds a step and is fitted independently per piece.

    Args:
        data: 1D signal or 2D array (samples x channels)
        degree: Polynomial degree (0 = remove mean, 1 = remove linear trend)
        breakpoints: 0-based sample indices where a new piece starts
        continuous: Force the piecewise trend to be continuous

    Returns:
        Detrended array with the same shape as the input
    """
    data = np.asarray(data, dtype=float)
    n_samples = data.shape[0]
    if n_samples == 0:
        return data.copy()

    columns = data.reshape(n_samples, -1)
    scale = max(n_samples - 1, 1)
    t = np.arange(n_samples) / scale

    basis = [t ** k for k in range(degree + 1)]
    first_power = 1 if continuous else 0
    for bp in sorted(set(int(b) for b in breakpoints)):
        # Breakpoints at the edges would add an all-zero or duplicate column
        if bp <= 0 or bp >= n_samples - 1:
            continue
        offset = t - bp / scale
        active = offset >= 0
        for k in range(first_power, degree + 1):
            basis.append(np.where(active, offset ** k, 0.0))

    design = np.column_stack(basis)
    coefficients, _, _, _ = np.linalg.lstsq(design, columns, rcond=None)
    detrended = columns - design @ coefficients

    return detrended.reshape(data.shape)


def decimate_channel(data: np.ndarray,
                     factor: int,
                     order: Optional[int] = None,
                     ftype: str = "iir") -> np.ndarray:
    """
    Low-pass and subsample a single channel.

    The anti-aliasing filter is applied forward and backward, so the output
    has no group delay. Output length is ceil(len(data) / factor).

    Args:
        data: 1D signal
        factor: Integer decimation factor (>= 1)
        order: Anti-aliasing filter order (scipy default when None)
        ftype: 'iir' (Chebyshev type I) or 'fir' (Hamming window)

    Returns:
        Decimated signal
    """
    data = np.asarray(data, dtype=float)
    if factor == 1:
        return data.copy()

    try:
        return signal.decimate(data, factor, n=order, ftype=ftype, zero_phase=True)
    except ValueError as e:
        raise FilterApplicationError(f"anti-alias ({ftype})", str(e)) from e


def decimate_columns(data: np.ndarray,
                     factor: int,
                     order: Optional[int] = None,
                     ftype: str = "iir",
                     max_workers: int = 1) -> np.ndarray:
    """
    Decimate every column of a 2D array independently.

    Columns share no state, so they may be processed on a thread pool; the
    result is identical to the sequential map.

    Args:
        data: 2D array (samples x channels)
        factor: Integer decimation factor (>= 1)
        order: Anti-aliasing filter order
        ftype: 'iir' or 'fir'
        max_workers: Threads used for the per-column map (1 = sequential)

    Returns:
        2D array with ceil(samples / factor) rows and the same column count
    """
    n_samples, n_channels = data.shape
    n_out = -(-n_samples // factor)

    def _decimate(ch: int) -> np.ndarray:
        return decimate_channel(data[:, ch], factor, order=order, ftype=ftype)

    if max_workers > 1 and n_channels > 1:
        logger.debug(f"Decimating {n_channels} channels on {max_workers} threads")
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            decimated = list(pool.map(_decimate, range(n_channels)))
    else:
        decimated = [_decimate(ch) for ch in range(n_channels)]

    if not decimated:
        return np.empty((n_out, 0))

    return np.column_stack(decimated)


def resynthesize_time(time: np.ndarray, n_samples: int) -> np.ndarray:
    """
    Build an evenly spaced time vector spanning the original first and last
    timestamps.

    Args:
        time: Original timestamps
        n_samples: Number of points in the new vector

    Returns:
        1D array of n_samples timestamps
    """
    time = np.asarray(time, dtype=float)
    if time.size == 0:
        return np.empty(0)
    return np.linspace(time[0], time[-1], n_samples)
