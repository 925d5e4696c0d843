"""
Digital filter design for filter-chain stages.

Turns a free-form design parameter list into a scipy.signal filter. Lists
follow the ``[response, "Name", value, ...]`` convention, e.g.::

    ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 30]
    ["bandstopfir", "FilterOrder", 1000,
     "CutoffFrequency1", 59, "CutoffFrequency2", 61]

Lowpass and highpass responses may instead give ``PassbandFrequency`` and
``StopbandFrequency`` without a ``FilterOrder``; the order is then estimated
(``buttord`` and friends for IIR, ``kaiserord`` for FIR) from the passband
ripple and stopband attenuation. Band responses only take explicit edges.

Parameter names are matched case-insensitively and underscores are ignored,
so a mapping such as ``{"response": "notch", "center_frequency": 60}`` works
too. The sampling rate is never part of the list; it is supplied by the
stage from the time vector.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from scipy import signal

from ..constants import (
    FIR_RESPONSES,
    FIR_WINDOW_DEFAULT,
    IIR_DESIGN_METHOD_DEFAULT,
    IIR_RESPONSES,
    MAX_STABLE_POLE_RADIUS,
    PASSBAND_RIPPLE_DEFAULT_DB,
    QUALITY_FACTOR_DEFAULT,
    RESONATOR_RESPONSES,
    STOPBAND_ATTENUATION_DEFAULT_DB,
)
from ..exceptions import FilterApplicationError, FilterDesignError

logger = logging.getLogger(__name__)

KNOWN_RESPONSES = IIR_RESPONSES + FIR_RESPONSES + RESONATOR_RESPONSES

# Normalized parameter name -> FilterSpec field
PARAMETER_ALIASES = {
    "response": "response",
    "filterorder": "order",
    "order": "order",
    "halfpowerfrequency": "cutoff",
    "cutofffrequency": "cutoff",
    "cutoff": "cutoff",
    "halfpowerfrequency1": "cutoff_low",
    "cutofffrequency1": "cutoff_low",
    "cutofflow": "cutoff_low",
    "halfpowerfrequency2": "cutoff_high",
    "cutofffrequency2": "cutoff_high",
    "cutoffhigh": "cutoff_high",
    "passbandfrequency": "passband_frequency",
    "stopbandfrequency": "stopband_frequency",
    "passbandripple": "passband_ripple",
    "stopbandattenuation": "stopband_attenuation",
    "designmethod": "design_method",
    "window": "window",
    "centerfrequency": "center_frequency",
    "qualityfactor": "quality_factor",
}


class FilterSpec(BaseModel):
    """Validated design parameters for one filter-chain entry"""

    model_config = ConfigDict(extra="forbid")

    response: str = Field(description="Response type, e.g. 'lowpassiir' or 'bandstopfir'")

    order: Optional[int] = Field(default=None, ge=1, description="Filter order")

    cutoff: Optional[float] = Field(
        default=None,
        gt=0,
        description="Cutoff (FIR) or half-power (IIR) frequency for low/highpass"
    )

    cutoff_low: Optional[float] = Field(default=None, gt=0, description="Lower band edge")

    cutoff_high: Optional[float] = Field(default=None, gt=0, description="Upper band edge")

    passband_frequency: Optional[float] = Field(
        default=None,
        gt=0,
        description="Passband edge for low/highpass designs with estimated order"
    )

    stopband_frequency: Optional[float] = Field(
        default=None,
        gt=0,
        description="Stopband edge for low/highpass designs with estimated order"
    )

    passband_ripple: float = Field(
        default=PASSBAND_RIPPLE_DEFAULT_DB,
        gt=0,
        description="Passband ripple (dB) for cheby1/ellip"
    )

    stopband_attenuation: float = Field(
        default=STOPBAND_ATTENUATION_DEFAULT_DB,
        gt=0,
        description="Stopband attenuation (dB) for cheby2/ellip"
    )

    design_method: Literal["butter", "cheby1", "cheby2", "ellip"] = Field(
        default=IIR_DESIGN_METHOD_DEFAULT,
        description="IIR prototype"
    )

    window: str = Field(default=FIR_WINDOW_DEFAULT, description="FIR window name")

    center_frequency: Optional[float] = Field(
        default=None,
        gt=0,
        description="Center frequency for notch/peak resonators"
    )

    quality_factor: float = Field(
        default=QUALITY_FACTOR_DEFAULT,
        gt=0,
        description="Quality factor for notch/peak resonators"
    )

    @field_validator("response", "design_method", "window", mode="before")
    @classmethod
    def lowercase(cls, v: Any) -> Any:
        """Accept any capitalization for the string options"""
        return v.lower() if isinstance(v, str) else v

    @field_validator("response")
    @classmethod
    def validate_response(cls, v: str) -> str:
        if v not in KNOWN_RESPONSES:
            raise ValueError(f"unknown response '{v}' (expected one of: {', '.join(KNOWN_RESPONSES)})")
        return v

    @property
    def band_type(self) -> str:
        """scipy btype name: lowpass, highpass, bandpass or bandstop"""
        return self.response[:-3]

    @property
    def is_band(self) -> bool:
        return self.response.startswith(("bandpass", "bandstop"))

    @property
    def uses_edges(self) -> bool:
        """True when the order is to be estimated from passband/stopband edges"""
        return self.passband_frequency is not None or self.stopband_frequency is not None


@dataclass(frozen=True)
class DesignedFilter:
    """A realized filter, either as second-order sections or as (b, a)"""

    name: str
    response: str
    sample_rate: float
    sos: Optional[np.ndarray] = None
    b: Optional[np.ndarray] = None
    a: Optional[np.ndarray] = None

    def poles(self) -> np.ndarray:
        if self.sos is not None:
            _, p, _ = signal.sos2zpk(self.sos)
            return p
        return np.roots(self.a)

    def is_stable(self) -> bool:
        poles = self.poles()
        return bool(np.all(np.abs(poles) < MAX_STABLE_POLE_RADIUS))

    def apply(self, data: np.ndarray) -> np.ndarray:
        """
        Filter forward and backward along the sample axis.

        Args:
            data: 1D signal or 2D array (samples x channels)

        Returns:
            Zero-phase filtered array, same shape as the input

        Raises:
            FilterApplicationError: If the series is too short for the
                filter's edge padding
        """
        try:
            if self.sos is not None:
                return signal.sosfiltfilt(self.sos, data, axis=0)
            return signal.filtfilt(self.b, self.a, data, axis=0)
        except ValueError as e:
            raise FilterApplicationError(self.name, str(e)) from e


def _normalize_key(key: Any) -> str:
    return str(key).replace("_", "").lower()


def parse_design_params(name: str, params: Any) -> FilterSpec:
    """
    Parse a free-form design parameter list into a FilterSpec.

    Args:
        name: Name of the filter-chain entry (used in error messages)
        params: ``[response, "Name", value, ...]`` list or a mapping

    Returns:
        Validated FilterSpec

    Raises:
        FilterDesignError: If the parameters are malformed
    """
    if isinstance(params, Mapping):
        pairs = list(params.items())
    elif isinstance(params, (list, tuple)):
        if not params or not isinstance(params[0], str):
            raise FilterDesignError(name, "design list must start with a response type")
        rest = list(params[1:])
        if len(rest) % 2 != 0:
            raise FilterDesignError(name, "design options must be name/value pairs")
        pairs = [("response", params[0])] + list(zip(rest[::2], rest[1::2]))
    else:
        raise FilterDesignError(name, f"expected a list or mapping, got {type(params).__name__}")

    fields: Dict[str, Any] = {}
    for key, value in pairs:
        normalized = _normalize_key(key)
        if normalized == "samplerate":
            raise FilterDesignError(name, "SampleRate is derived from the time vector and must not be given")
        field = PARAMETER_ALIASES.get(normalized)
        if field is None:
            raise FilterDesignError(name, f"unknown design parameter '{key}'")
        if field in fields:
            raise FilterDesignError(name, f"design parameter '{key}' given more than once")
        fields[field] = value

    try:
        return FilterSpec(**fields)
    except ValidationError as e:
        raise FilterDesignError(name, _summarize_validation_error(e)) from e


def _summarize_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "response"
        messages.append(f"{location}: {item['msg']}")
    return "; ".join(messages)


def _check_frequency(name: str, label: str, value: Optional[float], nyquist: float) -> float:
    if value is None:
        raise FilterDesignError(name, f"{label} is required")
    if not 0 < value < nyquist:
        raise FilterDesignError(
            name, f"{label} {value} Hz must lie between 0 and the Nyquist frequency {nyquist:g} Hz"
        )
    return value


def _band_edges(name: str, spec: FilterSpec, nyquist: float) -> Any:
    if not spec.is_band:
        return _check_frequency(name, "cutoff frequency", spec.cutoff, nyquist)

    low = _check_frequency(name, "lower band edge", spec.cutoff_low, nyquist)
    high = _check_frequency(name, "upper band edge", spec.cutoff_high, nyquist)
    if low >= high:
        raise FilterDesignError(name, f"lower band edge {low} Hz must be below upper band edge {high} Hz")
    return [low, high]


IIR_ORDER_ESTIMATORS = {
    "butter": signal.buttord,
    "cheby1": signal.cheb1ord,
    "cheby2": signal.cheb2ord,
    "ellip": signal.ellipord,
}


def _transition_edges(name: str, spec: FilterSpec, nyquist: float) -> Tuple[float, float]:
    """Validated (passband, stopband) edges for an order-estimating design"""
    if spec.is_band:
        raise FilterDesignError(
            name, "PassbandFrequency/StopbandFrequency are only supported for lowpass and highpass"
        )
    if spec.order is not None or spec.cutoff is not None:
        raise FilterDesignError(
            name, "give either FilterOrder with a cutoff or PassbandFrequency with StopbandFrequency"
        )

    passband = _check_frequency(name, "passband frequency", spec.passband_frequency, nyquist)
    stopband = _check_frequency(name, "stopband frequency", spec.stopband_frequency, nyquist)
    if spec.band_type == "lowpass" and passband >= stopband:
        raise FilterDesignError(name, f"lowpass passband {passband} Hz must be below stopband {stopband} Hz")
    if spec.band_type == "highpass" and passband <= stopband:
        raise FilterDesignError(name, f"highpass passband {passband} Hz must be above stopband {stopband} Hz")
    return passband, stopband


def _design_iir_from_edges(name: str, spec: FilterSpec, sample_rate: float) -> np.ndarray:
    passband, stopband = _transition_edges(name, spec, sample_rate / 2)
    estimate = IIR_ORDER_ESTIMATORS[spec.design_method]
    order, wn = estimate(
        passband,
        stopband,
        gpass=spec.passband_ripple,
        gstop=spec.stopband_attenuation,
        fs=sample_rate,
    )
    logger.debug(f"Estimated {spec.design_method} order {order} for '{name}'")
    return signal.iirfilter(
        order,
        wn,
        rp=spec.passband_ripple,
        rs=spec.stopband_attenuation,
        btype=spec.band_type,
        ftype=spec.design_method,
        output="sos",
        fs=sample_rate,
    )


def _design_fir_from_edges(name: str, spec: FilterSpec, sample_rate: float) -> Tuple[np.ndarray, np.ndarray]:
    nyquist = sample_rate / 2
    passband, stopband = _transition_edges(name, spec, nyquist)
    numtaps, beta = signal.kaiserord(spec.stopband_attenuation, abs(stopband - passband) / nyquist)
    if spec.band_type == "highpass" and numtaps % 2 == 0:
        # Highpass FIR needs a type I (odd length) design
        numtaps += 1

    logger.debug(f"Estimated {numtaps} taps (Kaiser beta {beta:.2f}) for '{name}'")
    b = signal.firwin(
        numtaps,
        (passband + stopband) / 2,
        window=("kaiser", beta),
        pass_zero=spec.band_type,
        fs=sample_rate,
    )
    return b, np.array([1.0])


def _design_iir(name: str, spec: FilterSpec, sample_rate: float) -> np.ndarray:
    if spec.uses_edges:
        return _design_iir_from_edges(name, spec, sample_rate)
    if spec.order is None:
        raise FilterDesignError(name, "FilterOrder is required")

    order = spec.order
    if spec.is_band:
        # Band designs double the prototype order
        if order % 2 != 0:
            raise FilterDesignError(name, f"band filter order must be even, got {order}")
        order //= 2

    wn = _band_edges(name, spec, sample_rate / 2)
    return signal.iirfilter(
        order,
        wn,
        rp=spec.passband_ripple,
        rs=spec.stopband_attenuation,
        btype=spec.band_type,
        ftype=spec.design_method,
        output="sos",
        fs=sample_rate,
    )


def _design_fir(name: str, spec: FilterSpec, sample_rate: float) -> Tuple[np.ndarray, np.ndarray]:
    if spec.uses_edges:
        return _design_fir_from_edges(name, spec, sample_rate)
    if spec.order is None:
        raise FilterDesignError(name, "FilterOrder is required")

    cutoff = _band_edges(name, spec, sample_rate / 2)
    b = signal.firwin(
        spec.order + 1,
        cutoff,
        window=spec.window,
        pass_zero=spec.band_type,
        fs=sample_rate,
    )
    return b, np.array([1.0])


def _design_resonator(name: str, spec: FilterSpec, sample_rate: float) -> Tuple[np.ndarray, np.ndarray]:
    center = spec.center_frequency if spec.center_frequency is not None else spec.cutoff
    center = _check_frequency(name, "center frequency", center, sample_rate / 2)
    design = signal.iirnotch if spec.response == "notch" else signal.iirpeak
    return design(center, spec.quality_factor, fs=sample_rate)


def design_filter(name: str, params: Any, sample_rate: float) -> DesignedFilter:
    """
    Design a digital filter from a free-form parameter list.

    Args:
        name: Name of the filter-chain entry
        params: Design parameter list or mapping
        sample_rate: Sampling rate of the signal the filter will be applied to

    Returns:
        DesignedFilter ready to apply

    Raises:
        FilterDesignError: If the parameters are invalid or the resulting
            filter is unstable
    """
    spec = parse_design_params(name, params)

    try:
        if spec.response in IIR_RESPONSES:
            designed = DesignedFilter(name, spec.response, sample_rate,
                                      sos=_design_iir(name, spec, sample_rate))
        elif spec.response in FIR_RESPONSES:
            b, a = _design_fir(name, spec, sample_rate)
            designed = DesignedFilter(name, spec.response, sample_rate, b=b, a=a)
        else:
            b, a = _design_resonator(name, spec, sample_rate)
            designed = DesignedFilter(name, spec.response, sample_rate, b=b, a=a)
    except ValueError as e:
        raise FilterDesignError(name, str(e)) from e

    if not designed.is_stable():
        raise FilterDesignError(name, "designed filter has poles on or outside the unit circle")

    logger.debug(f"Designed '{name}': {spec.response} at {sample_rate:g} Hz")
    return designed
