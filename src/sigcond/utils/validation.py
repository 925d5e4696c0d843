"""Validation utilities for pipeline inputs"""
import logging
from typing import Tuple

import numpy as np

from ..exceptions import DimensionMismatchError, SigcondError

logger = logging.getLogger(__name__)


def as_signal_matrix(signal) -> Tuple[np.ndarray, bool]:
    """
    Coerce a signal to a 2D float array (samples x channels).

    Args:
        signal: 1D or 2D array-like

    Returns:
        Tuple of (2D float array, True if the input was 1D)

    Raises:
        SigcondError: If the signal has more than two dimensions
    """
    data = np.array(signal, dtype=float, copy=True)
    if data.ndim == 1:
        return data.reshape(-1, 1), True
    if data.ndim != 2:
        raise SigcondError(
            f"Signal must be 1D or 2D (samples x channels), got {data.ndim}D",
            details={"shape": data.shape}
        )
    return data, False


def as_time_vector(time) -> np.ndarray:
    """
    Coerce timestamps to a 1D float array.

    Raises:
        SigcondError: If the timestamps are not one-dimensional
    """
    data = np.array(time, dtype=float, copy=True)
    if data.ndim == 2 and 1 in data.shape:
        data = data.ravel()
    if data.ndim != 1:
        raise SigcondError(
            f"Time must be a 1D vector, got shape {data.shape}",
            details={"shape": data.shape}
        )
    return data


def validate_dimensions(signal: np.ndarray, time: np.ndarray) -> bool:
    """
    Validate that every sample has a timestamp.

    Args:
        signal: 2D array (samples x channels)
        time: 1D timestamp vector

    Returns:
        True if valid

    Raises:
        DimensionMismatchError: If the row count differs from the time length
    """
    if signal.shape[0] != time.shape[0]:
        raise DimensionMismatchError(signal.shape[0], time.shape[0])

    if time.size > 1 and np.any(np.diff(time) < 0):
        logger.warning("Time vector is not monotonically non-decreasing")

    return True
