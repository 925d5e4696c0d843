"""
Unit tests for filter design from free-form parameter lists.

Tests parameter parsing, IIR/FIR/resonator design, validation failures and
zero-phase application.
"""

import pytest
import numpy as np
from scipy import signal

from sigcond.exceptions import FilterApplicationError, FilterDesignError
from sigcond.utils.filter_design import (
    DesignedFilter,
    FilterSpec,
    design_filter,
    parse_design_params
)


FS = 1000.0


class TestParseDesignParams:
    """Test parsing of [response, Name, value, ...] lists"""

    def test_names_are_case_insensitive(self):
        spec = parse_design_params("lp", ["LowpassFIR", "FilterOrder", 2, "CutOffFrequency", 120])

        assert spec.response == "lowpassfir"
        assert spec.order == 2
        assert spec.cutoff == 120

    def test_band_edges(self):
        spec = parse_design_params(
            "notch", ["bandstopiir", "FilterOrder", 4,
                      "HalfPowerFrequency1", 59, "HalfPowerFrequency2", 61]
        )

        assert (spec.cutoff_low, spec.cutoff_high) == (59, 61)
        assert spec.band_type == "bandstop"
        assert spec.is_band

    def test_mapping_form(self):
        spec = parse_design_params("hum", {"response": "notch", "center_frequency": 60})

        assert isinstance(spec, FilterSpec)
        assert spec.center_frequency == 60

    def test_defaults(self):
        spec = parse_design_params("lp", ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 30])

        assert spec.design_method == "butter"
        assert spec.window == "hamming"

    @pytest.mark.parametrize("params", [
        [],
        [4, "FilterOrder", 2],
        ["lowpassiir", "FilterOrder"],
        ["lowpassiir", "Bogus", 1],
        ["lowpassiir", "FilterOrder", 2, "filter_order", 3],
        ["allpass", "FilterOrder", 2],
        ["lowpassiir", "FilterOrder", 0, "HalfPowerFrequency", 30],
        ["lowpassiir", "DesignMethod", "bessel", "FilterOrder", 2, "HalfPowerFrequency", 30],
        "lowpassiir",
    ])
    def test_malformed_params(self, params):
        with pytest.raises(FilterDesignError):
            parse_design_params("bad", params)

    def test_sample_rate_is_rejected(self):
        """The rate always comes from the time vector"""
        with pytest.raises(FilterDesignError, match="SampleRate"):
            parse_design_params("lp", ["lowpassiir", "FilterOrder", 2,
                                       "HalfPowerFrequency", 30, "SampleRate", 500])


class TestDesignFilter:
    """Test filter realization"""

    def test_lowpass_iir_is_sos(self):
        designed = design_filter("lp", ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 50], FS)

        assert isinstance(designed, DesignedFilter)
        assert designed.sos.shape == (2, 6)
        assert designed.is_stable()

    def test_band_order_is_total_order(self):
        """Band IIR FilterOrder counts both edges"""
        designed = design_filter(
            "bp", ["bandpassiir", "FilterOrder", 4,
                   "HalfPowerFrequency1", 8, "HalfPowerFrequency2", 12], FS
        )

        assert designed.sos.shape == (2, 6)

    def test_band_order_must_be_even(self):
        with pytest.raises(FilterDesignError, match="even"):
            design_filter("bp", ["bandpassiir", "FilterOrder", 3,
                                 "HalfPowerFrequency1", 8, "HalfPowerFrequency2", 12], FS)

    @pytest.mark.parametrize("method,extra", [
        ("cheby1", ["PassbandRipple", 0.5]),
        ("cheby2", ["StopbandAttenuation", 40]),
        ("ellip", ["PassbandRipple", 0.5, "StopbandAttenuation", 40]),
    ])
    def test_design_methods(self, method, extra):
        designed = design_filter(
            "hp", ["highpassiir", "FilterOrder", 4, "HalfPowerFrequency", 20,
                   "DesignMethod", method] + extra, FS
        )

        assert designed.is_stable()

    def test_lowpass_fir(self):
        designed = design_filter("lp", ["lowpassfir", "FilterOrder", 40, "CutoffFrequency", 50], FS)

        assert len(designed.b) == 41
        np.testing.assert_array_equal(designed.a, [1.0])
        assert designed.is_stable()

    def test_highpass_fir_needs_even_order(self):
        """Odd order means an even tap count, which cannot pass Nyquist"""
        with pytest.raises(FilterDesignError):
            design_filter("hp", ["highpassfir", "FilterOrder", 41, "CutoffFrequency", 50], FS)

    def test_notch(self):
        designed = design_filter("hum", ["notch", "CenterFrequency", 60, "QualityFactor", 30], FS)

        assert designed.response == "notch"
        assert designed.is_stable()

    @pytest.mark.parametrize("params", [
        ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 500],
        ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 900],
        ["lowpassiir", "FilterOrder", 4],
        ["lowpassiir", "HalfPowerFrequency", 30],
        ["bandpassiir", "FilterOrder", 4, "HalfPowerFrequency1", 40, "HalfPowerFrequency2", 20],
        ["bandpassfir", "FilterOrder", 40, "CutoffFrequency1", 10],
        ["notch"],
    ])
    def test_unrealizable_designs(self, params):
        with pytest.raises(FilterDesignError):
            design_filter("bad", params, FS)

    def test_error_carries_filter_name(self):
        with pytest.raises(FilterDesignError) as exc_info:
            design_filter("mains", ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 900], FS)

        assert exc_info.value.details["filter_name"] == "mains"


class TestOrderEstimation:
    """Passband/stopband edge designs pick their own order"""

    def test_lowpass_iir_uses_estimated_order(self):
        order, _ = signal.buttord(40, 80, gpass=1.0, gstop=60.0, fs=FS)

        designed = design_filter("lp", ["lowpassiir", "PassbandFrequency", 40, "StopbandFrequency", 80], FS)

        assert designed.sos.shape == (-(-order // 2), 6)
        assert designed.is_stable()

    def test_parsed_as_edges(self):
        spec = parse_design_params("hp", ["highpassiir", "passband_frequency", 20, "StopBandFrequency", 5])

        assert (spec.passband_frequency, spec.stopband_frequency) == (20, 5)
        assert spec.uses_edges
        assert spec.order is None

    def test_highpass_fir_has_odd_length(self):
        designed = design_filter("hp", ["highpassfir", "PassbandFrequency", 50, "StopbandFrequency", 30], FS)

        assert len(designed.b) % 2 == 1

    def test_lowpass_fir_attenuates_stopband(self, time_1khz):
        low = np.sin(2 * np.pi * 5 * time_1khz)
        data = low + np.sin(2 * np.pi * 200 * time_1khz)
        designed = design_filter("lp", ["lowpassfir", "PassbandFrequency", 40, "StopbandFrequency", 80], FS)

        filtered = designed.apply(data)

        middle = slice(300, 700)
        np.testing.assert_allclose(filtered[middle], low[middle], atol=0.01)

    @pytest.mark.parametrize("params", [
        ["lowpassiir", "PassbandFrequency", 80, "StopbandFrequency", 40],
        ["highpassfir", "PassbandFrequency", 30, "StopbandFrequency", 50],
        ["lowpassiir", "PassbandFrequency", 40],
        ["lowpassiir", "FilterOrder", 4, "PassbandFrequency", 40, "StopbandFrequency", 80],
        ["bandpassiir", "PassbandFrequency", 40, "StopbandFrequency", 80],
    ])
    def test_invalid_edges(self, params):
        with pytest.raises(FilterDesignError):
            design_filter("bad", params, FS)


class TestZeroPhaseApplication:
    """Test forward-backward filtering"""

    def test_zero_input_stays_zero(self):
        designed = design_filter("lp", ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 50], FS)
        data = np.zeros((500, 3))

        filtered = designed.apply(data)

        assert filtered.shape == (500, 3)
        assert not np.any(filtered)

    def test_lowpass_removes_high_frequency(self, time_1khz):
        low = np.sin(2 * np.pi * 5 * time_1khz)
        data = np.column_stack([low + np.sin(2 * np.pi * 200 * time_1khz), low])
        designed = design_filter("lp", ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 50], FS)

        filtered = designed.apply(data)

        middle = slice(100, 900)
        np.testing.assert_allclose(filtered[middle, 0], low[middle], atol=0.01)
        np.testing.assert_allclose(filtered[middle, 1], low[middle], atol=0.01)

    def test_no_phase_shift(self, time_1khz):
        """Peaks of a passband sine stay where they were"""
        data = np.sin(2 * np.pi * 5 * time_1khz)
        designed = design_filter("lp", ["lowpassfir", "FilterOrder", 60, "CutoffFrequency", 50], FS)

        filtered = designed.apply(data)

        assert np.argmax(filtered[:200]) == np.argmax(data[:200])

    def test_notch_removes_mains(self):
        time = np.arange(2000) / FS
        data = np.sin(2 * np.pi * 60 * time)
        designed = design_filter("hum", ["notch", "CenterFrequency", 60], FS)

        filtered = designed.apply(data)

        assert np.max(np.abs(filtered[800:1200])) < 0.05

    def test_too_short_for_padding(self):
        designed = design_filter("lp", ["lowpassfir", "FilterOrder", 100, "CutoffFrequency", 50], FS)

        with pytest.raises(FilterApplicationError):
            designed.apply(np.zeros(50))
