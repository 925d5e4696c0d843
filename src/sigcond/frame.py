"""pandas adapter: condition a DataFrame whose index is the time axis"""
import logging
from typing import Callable, Optional

import numpy as np
import pandas as pd

from .pipeline.executor import run_pipeline

logger = logging.getLogger(__name__)


def condition_frame(frame: pd.DataFrame,
                    configuration,
                    settings=None,
                    progress: Optional[Callable[[str], None]] = None) -> pd.DataFrame:
    """
    Run the pipeline over a DataFrame.

    Columns are channels and the index is the time vector. A DatetimeIndex
    is converted to seconds since its first entry and rebuilt from the
    resynthesized offsets afterwards.

    Args:
        frame: DataFrame with a numeric or datetime index
        configuration: Ordered stage descriptors
        settings: Optional PipelineSettings (or dict)
        progress: Optional callable receiving progress notices

    Returns:
        New DataFrame with the same column labels and the conditioned index
    """
    index = frame.index
    is_datetime = isinstance(index, pd.DatetimeIndex)

    if is_datetime:
        origin = index[0] if len(index) else pd.Timestamp(0)
        time = (index - origin).total_seconds().to_numpy(dtype=float)
    else:
        time = index.to_numpy(dtype=float)

    signal, new_time = run_pipeline(
        frame.to_numpy(dtype=float),
        time,
        configuration,
        settings=settings,
        progress=progress
    )

    if is_datetime:
        new_index = (origin + pd.to_timedelta(new_time, unit="s")).rename(index.name)
    else:
        new_index = pd.Index(np.asarray(new_time), name=index.name)

    logger.debug(f"Conditioned frame: {frame.shape} -> {signal.shape}")
    return pd.DataFrame(signal, index=new_index, columns=frame.columns)
