"""
Pytest configuration and shared fixtures for sigcond tests.

Provides synthetic multichannel series and stage configurations used across
unit and integration tests.
"""

import pytest
import numpy as np


# ============================================================================
# Time Base Fixtures
# ============================================================================

@pytest.fixture
def time_1khz():
    """1 second at 1000 Hz (1000 points, 0.000 .. 0.999 s)"""
    return np.arange(1000) / 1000.0


@pytest.fixture
def time_100hz():
    """1 second at 100 Hz (100 points)"""
    return np.arange(100) / 100.0


# ============================================================================
# Signal Fixtures
# ============================================================================

@pytest.fixture
def sine_1khz(time_1khz):
    """Single-channel 5 Hz sinusoid sampled at 1000 Hz"""
    return np.sin(2 * np.pi * 5 * time_1khz).reshape(-1, 1)


@pytest.fixture
def multichannel_1khz(time_1khz):
    """Three channels: slow sine, drifting sine with 200 Hz hum, noise"""
    np.random.seed(42)
    t = time_1khz
    return np.column_stack([
        np.sin(2 * np.pi * 5 * t),
        2.0 + 3.0 * t + 0.5 * np.sin(2 * np.pi * 200 * t),
        np.random.normal(0, 1, t.size),
    ])


@pytest.fixture
def zeros_100hz():
    """100 x 2 all-zero matrix"""
    return np.zeros((100, 2))


@pytest.fixture
def v_shape_1khz():
    """Piecewise linear V with its kink at sample 500"""
    return np.abs(np.arange(1000) - 500.0).reshape(-1, 1)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def lowpass_design():
    """Butterworth lowpass design list"""
    return ["lowpassiir", "FilterOrder", 4, "HalfPowerFrequency", 10]


@pytest.fixture
def notch_lowpass_chain():
    """Notch at 60 Hz followed by a 120 Hz FIR lowpass"""
    return [
        ("notch", ["bandstopiir", "FilterOrder", 4,
                   "HalfPowerFrequency1", 59, "HalfPowerFrequency2", 61]),
        ("lowpass", ["lowpassfir", "FilterOrder", 20, "CutOffFrequency", 120]),
    ]


# ============================================================================
# Utility Functions
# ============================================================================

def assert_array_shape(array, expected_shape):
    """Assert numpy array has expected shape"""
    assert array.shape == expected_shape, (
        f"Expected shape {expected_shape}, got {array.shape}"
    )


def assert_close(actual, expected, rtol=1e-5, atol=1e-8):
    """Assert arrays/values are approximately equal"""
    np.testing.assert_allclose(actual, expected, rtol=rtol, atol=atol)
