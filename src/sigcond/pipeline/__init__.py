"""Pipeline architecture for signal conditioning.

This package contains the driver and the conditioning stages it dispatches
to. Each stage has a single responsibility and receives and returns a
PipelineContext.
"""

from .executor import PipelineDriver, run_pipeline
from .context import PipelineContext
from .stages import (
    TrendRemovalStage,
    DownsampleStage,
    FilterChainStage,
    STAGE_HANDLERS,
    build_stage
)

__all__ = [
    'PipelineDriver',
    'run_pipeline',
    'PipelineContext',
    'TrendRemovalStage',
    'DownsampleStage',
    'FilterChainStage',
    'STAGE_HANDLERS',
    'build_stage'
]
