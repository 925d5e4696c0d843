"""
Pydantic schema validation for pipeline configurations.

A configuration is an explicit ordered list of stage descriptors; list order
is execution order and the same kind may appear more than once. Each
recognized kind has its own settings model, any other kind is kept as an
UnrecognizedStage so the driver can decide whether to skip it.

Descriptors may be given as ``(kind, params)`` pairs or as mappings::

    PipelineConfig.from_stages([
        ("downsample", [4]),
        ("filter-chain", [("notch", ["bandstopiir", "FilterOrder", 4,
                                     "HalfPowerFrequency1", 59,
                                     "HalfPowerFrequency2", 61])]),
        {"kind": "trend-removal", "params": [1, "Continuous", True]},
    ])
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Type, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .constants import (
    DECIMATE_FTYPE_DEFAULT,
    DOWNSAMPLE_FREQUENCY_TAG,
    MAX_TREND_DEGREE,
    MAX_WORKERS_LIMIT,
    STAGE_DOWNSAMPLE,
    STAGE_FILTER_CHAIN,
    STAGE_TREND_REMOVAL,
    TREND_CONTINUOUS_DEFAULT,
    TREND_DEGREE_NAMES,
)
from .exceptions import ConfigurationError, ConfigValidationError
from .utils.signal_processing import round_half_away


def _plain(value: Any) -> Any:
    """Unwrap numpy scalars and arrays into Python values"""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _validate(model_cls: Type[BaseModel], data: Dict[str, Any], kind: str) -> Any:
    """Validate a settings model, reporting failures as ConfigValidationError"""
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or kind
        raise ConfigValidationError(field, first.get("input"), first["msg"]) from e


def _name_value_pairs(kind: str, options: Sequence[Any]) -> List[Tuple[str, Any]]:
    if len(options) % 2 != 0 or not all(isinstance(k, str) for k in options[::2]):
        raise ConfigValidationError(kind, list(options), "options must be name/value pairs")
    return [(k.lower(), _plain(v)) for k, v in zip(options[::2], options[1::2])]


class TrendRemovalSettings(BaseModel):
    """Polynomial (optionally piecewise) trend removal"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["trend-removal"] = STAGE_TREND_REMOVAL

    degree: int = Field(
        ge=0,
        le=MAX_TREND_DEGREE,
        description="Polynomial degree: 0 removes the mean, 1 a linear trend"
    )

    breakpoints: Tuple[int, ...] = Field(
        default=(),
        description="0-based sample indices where a new trend piece starts"
    )

    continuous: bool = Field(
        default=TREND_CONTINUOUS_DEFAULT,
        description="Force the piecewise trend to be continuous at breakpoints"
    )

    @field_validator("degree", mode="before")
    @classmethod
    def degree_from_name(cls, v: Any) -> Any:
        """Accept 'constant', 'linear' and 'quadratic' as degree names"""
        if isinstance(v, str):
            if v.lower() not in TREND_DEGREE_NAMES:
                raise ValueError(f"unknown trend name '{v}'")
            return TREND_DEGREE_NAMES[v.lower()]
        return v

    @field_validator("breakpoints")
    @classmethod
    def validate_breakpoints(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        """Breakpoints are sample indices, stored sorted"""
        if any(bp < 0 for bp in v):
            raise ValueError(f"breakpoints must be non-negative sample indices, got {list(v)}")
        return tuple(sorted(v))

    @classmethod
    def from_params(cls, params: Any) -> "TrendRemovalSettings":
        """
        Build settings from ``[degree, breakpoints?, "Continuous", bool]``
        or from a mapping of field values.
        """
        if isinstance(params, Mapping):
            return _validate(cls, dict(params), STAGE_TREND_REMOVAL)

        items = [_plain(p) for p in _as_list(params)]
        if not items:
            raise ConfigValidationError("degree", params, "trend removal requires a degree")

        data: Dict[str, Any] = {"degree": items[0]}
        options = items[1:]
        if options and not isinstance(options[0], str):
            bps = options[0]
            data["breakpoints"] = bps if isinstance(bps, (list, tuple)) else [bps]
            options = options[1:]

        for name, value in _name_value_pairs(STAGE_TREND_REMOVAL, options):
            if name != "continuous":
                raise ConfigValidationError(name, value, "unknown trend removal option")
            data["continuous"] = value

        return _validate(cls, data, STAGE_TREND_REMOVAL)


class DownsampleSettings(BaseModel):
    """Anti-aliased downsampling by a factor or to a target frequency"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["downsample"] = STAGE_DOWNSAMPLE

    factor: Optional[int] = Field(
        default=None,
        ge=1,
        description="Integer decimation factor R"
    )

    target_frequency: Optional[float] = Field(
        default=None,
        gt=0,
        description="Target rate (Hz); R = round(rate / target_frequency)"
    )

    order: Optional[int] = Field(
        default=None,
        ge=1,
        description="Anti-aliasing filter order (scipy default when unset)"
    )

    ftype: Literal["iir", "fir"] = Field(
        default=DECIMATE_FTYPE_DEFAULT,
        description="Anti-aliasing filter type"
    )

    @model_validator(mode="after")
    def validate_mode(self):
        """Exactly one of factor and target_frequency selects the mode"""
        if (self.factor is None) == (self.target_frequency is None):
            raise ValueError("downsample requires either a factor or a target frequency")
        return self

    @property
    def mode(self) -> str:
        return "factor" if self.factor is not None else "frequency"

    def resolve_factor(self, sample_rate: float) -> int:
        """
        Decimation factor for the given input rate.

        Raises:
            ConfigValidationError: If the target frequency does not resolve
                to a positive integer factor
        """
        if self.factor is not None:
            return self.factor

        factor = round_half_away(sample_rate / self.target_frequency)
        if factor < 1:
            raise ConfigValidationError(
                "target_frequency",
                self.target_frequency,
                f"resolves to decimation factor {factor} at {sample_rate:g} Hz"
            )
        return factor

    @classmethod
    def from_params(cls, params: Any) -> "DownsampleSettings":
        """
        Build settings from ``[factor, order?, ftype?]``,
        ``["frequency", target_hz]`` or a mapping of field values.
        """
        if isinstance(params, Mapping):
            return _validate(cls, dict(params), STAGE_DOWNSAMPLE)

        items = [_plain(p) for p in _as_list(params)]
        if not items:
            raise ConfigValidationError("factor", params, "downsample requires a factor or a target frequency")

        head = items[0]
        if isinstance(head, str):
            if head.lower() != DOWNSAMPLE_FREQUENCY_TAG:
                raise ConfigValidationError(
                    "factor", head, f"expected a decimation factor or '{DOWNSAMPLE_FREQUENCY_TAG}'"
                )
            if len(items) != 2:
                raise ConfigValidationError(
                    "target_frequency", items, "frequency mode takes exactly one target frequency"
                )
            return _validate(cls, {"target_frequency": items[1]}, STAGE_DOWNSAMPLE)

        data: Dict[str, Any] = {"factor": head}
        for option in items[1:]:
            if isinstance(option, str):
                data["ftype"] = option.lower()
            elif "order" not in data:
                data["order"] = option
            else:
                raise ConfigValidationError("order", option, "anti-aliasing order given more than once")

        return _validate(cls, data, STAGE_DOWNSAMPLE)


class NamedFilter(BaseModel):
    """One entry of a filter chain: a name and its free-form design list"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)

    design: Any = Field(description="Design parameter list, validated when the filter is designed")


class FilterChainSettings(BaseModel):
    """Ordered chain of independently designed zero-phase filters"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["filter-chain"] = STAGE_FILTER_CHAIN

    filters: Tuple[NamedFilter, ...] = Field(
        default=(),
        description="Filters in application order"
    )

    @field_validator("filters")
    @classmethod
    def validate_unique_names(cls, v: Tuple[NamedFilter, ...]) -> Tuple[NamedFilter, ...]:
        names = [f.name for f in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"filter names must be unique, duplicated: {', '.join(duplicates)}")
        return v

    def names(self) -> List[str]:
        return [f.name for f in self.filters]

    @classmethod
    def from_params(cls, params: Any) -> "FilterChainSettings":
        """
        Build settings from a sequence of ``(name, design)`` pairs, a sequence
        of ``{"name": ..., "design": ...}`` mappings, or a mapping of
        name -> design (dict insertion order is application order).
        """
        if isinstance(params, Mapping):
            if set(params) == {"filters"}:
                return cls.from_params(params["filters"])
            entries = list(params.items())
        else:
            entries = _as_list(params)

        filters = []
        for entry in entries:
            if isinstance(entry, NamedFilter):
                filters.append(entry)
            elif isinstance(entry, Mapping):
                filters.append({"name": entry.get("name"), "design": entry.get("design")})
            elif isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[0], str):
                filters.append({"name": entry[0], "design": _plain(entry[1])})
            else:
                raise ConfigValidationError(
                    "filters", entry, "each filter must be a (name, design) pair"
                )

        return _validate(cls, {"filters": filters}, STAGE_FILTER_CHAIN)


class UnrecognizedStage(BaseModel):
    """A descriptor whose kind has no handler; kept verbatim"""

    model_config = ConfigDict(frozen=True)

    kind: str

    params: Any = None


StageDescriptor = Union[TrendRemovalSettings, DownsampleSettings, FilterChainSettings, UnrecognizedStage]

STAGE_SETTINGS = {
    STAGE_TREND_REMOVAL: TrendRemovalSettings,
    STAGE_DOWNSAMPLE: DownsampleSettings,
    STAGE_FILTER_CHAIN: FilterChainSettings,
}


def _as_list(params: Any) -> List[Any]:
    if params is None:
        return []
    if isinstance(params, (str, bytes)):
        return [params]
    if isinstance(params, np.ndarray):
        return params.tolist()
    if isinstance(params, (list, tuple)):
        return list(params)
    return [params]


def parse_stage(entry: Any) -> StageDescriptor:
    """
    Coerce one raw descriptor into its settings model.

    Args:
        entry: A settings model, a ``(kind, params)`` pair, or a mapping with
            a ``kind`` key and either ``params`` or the settings fields

    Returns:
        The kind's settings model, or UnrecognizedStage for unknown kinds

    Raises:
        ConfigurationError: If the descriptor is malformed or a recognized
            kind has invalid parameters
    """
    if isinstance(entry, (TrendRemovalSettings, DownsampleSettings, FilterChainSettings, UnrecognizedStage)):
        return entry

    if isinstance(entry, Mapping):
        if "kind" not in entry:
            raise ConfigValidationError("kind", dict(entry), "stage descriptor has no kind")
        kind = entry["kind"]
        if "params" in entry:
            params = entry["params"]
        else:
            params = {k: v for k, v in entry.items() if k != "kind"}
    elif isinstance(entry, (list, tuple)) and len(entry) == 2:
        kind, params = entry
    else:
        raise ConfigurationError(
            "Stage descriptor must be a (kind, params) pair or a mapping with a 'kind'",
            details={"descriptor": entry}
        )

    if not isinstance(kind, str):
        raise ConfigValidationError("kind", kind, "stage kind must be a string")

    settings_cls = STAGE_SETTINGS.get(kind)
    if settings_cls is None:
        return UnrecognizedStage(kind=kind, params=params)
    return settings_cls.from_params(params)


class PipelineConfig(BaseModel):
    """Complete pipeline configuration: stage descriptors in execution order"""

    model_config = ConfigDict(frozen=True)

    stages: Tuple[StageDescriptor, ...] = Field(default=())

    @classmethod
    def from_stages(cls, stages: Any) -> "PipelineConfig":
        """
        Load and validate a configuration from an ordered sequence of
        descriptors.

        Raises:
            ConfigurationError: If the configuration is not an ordered
                sequence or a descriptor is invalid
        """
        if isinstance(stages, PipelineConfig):
            return stages
        if stages is None:
            return cls()
        if isinstance(stages, (Mapping, str, bytes)):
            raise ConfigurationError(
                "Configuration must be an ordered sequence of stage descriptors",
                details={"type": type(stages).__name__}
            )
        return cls(stages=tuple(parse_stage(entry) for entry in stages))

    def kinds(self) -> List[str]:
        """Stage kinds in execution order"""
        return [stage.kind for stage in self.stages]

    def unrecognized(self) -> List[UnrecognizedStage]:
        return [stage for stage in self.stages if isinstance(stage, UnrecognizedStage)]

    def to_dict(self) -> Dict[str, Any]:
        """Export config to dictionary"""
        return self.model_dump()


class PipelineSettings(BaseModel):
    """Driver behaviour, independent of the stage list"""

    strict_stage_kinds: bool = Field(
        default=False,
        description="Raise UnknownStageError instead of skipping unrecognized kinds"
    )

    max_workers: int = Field(
        default=1,
        ge=1,
        le=MAX_WORKERS_LIMIT,
        description="Threads for per-channel downsampling (1 = sequential)"
    )

    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR"]] = Field(
        default=None,
        description="Level applied to the driver's logger; unset leaves it alone"
    )
