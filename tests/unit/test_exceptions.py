"""
Unit tests for the exception hierarchy and error formatting.
"""

import pytest

from sigcond.exceptions import (
    SigcondError,
    ConfigurationError,
    ConfigValidationError,
    UnknownStageError,
    DimensionMismatchError,
    SampleRateUndefinedError,
    ProcessingError,
    FilterDesignError,
    FilterApplicationError,
    format_error_chain
)


class TestHierarchy:
    """Every error can be caught as SigcondError"""

    @pytest.mark.parametrize("error", [
        ConfigValidationError("degree", None, "required"),
        UnknownStageError("resample", ["downsample"]),
        DimensionMismatchError(10, 9),
        SampleRateUndefinedError("too short", n_points=1),
        FilterDesignError("lp", "bad cutoff"),
        FilterApplicationError("lp", "too short"),
    ])
    def test_base_class(self, error):
        assert isinstance(error, SigcondError)

    def test_configuration_family(self):
        assert issubclass(ConfigValidationError, ConfigurationError)
        assert issubclass(UnknownStageError, ConfigurationError)

    def test_processing_family(self):
        assert issubclass(FilterDesignError, ProcessingError)
        assert issubclass(FilterApplicationError, ProcessingError)
        assert not issubclass(FilterDesignError, ConfigurationError)


class TestFormatting:
    """Test messages and details"""

    def test_str_includes_details(self):
        error = DimensionMismatchError(10, 9)

        assert str(error) == (
            "Signal has 10 samples but time vector has 9 points "
            "[signal_rows=10, time_length=9]"
        )

    def test_str_without_details(self):
        assert str(SigcondError("plain")) == "plain"

    def test_unknown_stage_lists_known_kinds(self):
        error = UnknownStageError("resample", ["trend-removal", "downsample"])

        assert "trend-removal, downsample" in error.message
        assert error.details == {"kind": "resample"}

    def test_error_chain(self):
        try:
            try:
                raise ValueError("Wn out of range")
            except ValueError as e:
                raise FilterDesignError("lp", str(e)) from e
        except FilterDesignError as chained:
            text = format_error_chain(chained)

        assert "FilterDesignError" in text
        assert "filter_name: lp" in text
        assert "Caused by:" in text
        assert "ValueError: Wn out of range" in text
