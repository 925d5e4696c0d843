"""
Centralized constants for the sigcond conditioning pipeline.

Stage tags form the public configuration surface; the remaining values are
defaults handed to scipy.signal when a descriptor leaves them unset.
"""

# ============================================================================
# Stage Kind Tags
# ============================================================================

STAGE_TREND_REMOVAL = "trend-removal"
STAGE_DOWNSAMPLE = "downsample"
STAGE_FILTER_CHAIN = "filter-chain"

KNOWN_STAGE_KINDS = (STAGE_TREND_REMOVAL, STAGE_DOWNSAMPLE, STAGE_FILTER_CHAIN)

# ============================================================================
# Trend Removal
# ============================================================================

TREND_DEGREE_NAMES = {
    "constant": 0,
    "linear": 1,
    "quadratic": 2,
}
MAX_TREND_DEGREE = 10  # Beyond this the normal equations are meaningless
TREND_CONTINUOUS_DEFAULT = True

# ============================================================================
# Downsampling
# ============================================================================

DOWNSAMPLE_FREQUENCY_TAG = "frequency"
DECIMATE_FTYPE_DEFAULT = "iir"

# ============================================================================
# Filter Design
# ============================================================================

IIR_RESPONSES = ("lowpassiir", "highpassiir", "bandpassiir", "bandstopiir")
FIR_RESPONSES = ("lowpassfir", "highpassfir", "bandpassfir", "bandstopfir")
RESONATOR_RESPONSES = ("notch", "peak")

IIR_DESIGN_METHOD_DEFAULT = "butter"
FIR_WINDOW_DEFAULT = "hamming"

PASSBAND_RIPPLE_DEFAULT_DB = 1.0
STOPBAND_ATTENUATION_DEFAULT_DB = 60.0
QUALITY_FACTOR_DEFAULT = 30.0

# Poles on or outside this radius are rejected as unstable
MAX_STABLE_POLE_RADIUS = 1.0 - 1e-12

# ============================================================================
# Driver
# ============================================================================

MAX_WORKERS_LIMIT = 64
