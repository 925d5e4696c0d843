"""sigcond: configurable, ordered signal conditioning for multichannel series.

Example::

    from sigcond import run_pipeline

    signal, time = run_pipeline(signal, time, [
        ("downsample", ["frequency", 250]),
        ("filter-chain", [("lowpass", ["lowpassiir", "FilterOrder", 4,
                                       "HalfPowerFrequency", 40])]),
        ("trend-removal", [1]),
    ])
"""

from .config_schema import (
    PipelineConfig,
    PipelineSettings,
    TrendRemovalSettings,
    DownsampleSettings,
    FilterChainSettings,
    NamedFilter,
    UnrecognizedStage,
)
from .exceptions import (
    SigcondError,
    ConfigurationError,
    ConfigValidationError,
    UnknownStageError,
    DimensionMismatchError,
    SampleRateUndefinedError,
    ProcessingError,
    FilterDesignError,
    FilterApplicationError,
)
from .pipeline import PipelineDriver, run_pipeline
from .utils.signal_processing import estimate_sample_rate
from .frame import condition_frame

__version__ = "1.0.0"

__all__ = [
    'PipelineConfig',
    'PipelineSettings',
    'TrendRemovalSettings',
    'DownsampleSettings',
    'FilterChainSettings',
    'NamedFilter',
    'UnrecognizedStage',
    'SigcondError',
    'ConfigurationError',
    'ConfigValidationError',
    'UnknownStageError',
    'DimensionMismatchError',
    'SampleRateUndefinedError',
    'ProcessingError',
    'FilterDesignError',
    'FilterApplicationError',
    'PipelineDriver',
    'run_pipeline',
    'estimate_sample_rate',
    'condition_frame',
]
