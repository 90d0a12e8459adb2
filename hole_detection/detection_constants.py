"""
Constants for the hole detection pipeline.

This module contains the fixed thresholds and geometry factors used by the
preprocessing, region analysis, signal generation, feature extraction and
overlap stages. Tunable per-run values live in config.py instead.
"""

# =============================================================================
# Preprocessing Constants
# =============================================================================

# Longest side after downscaling (pixels)
MAX_IMAGE_DIMENSION = 1000

# Floor applied to each side after scaling (pixels)
MIN_IMAGE_DIMENSION = 100

# Sobel magnitude is divided by this before clipping to 0-255
SOBEL_MAGNITUDE_DIVISOR = 4.0


# =============================================================================
# Hole Size Constants
# =============================================================================

# Lower bounds on derived hole radii (pixels)
MIN_EXPECTED_RADIUS_PX = 6
MIN_RADIUS_FLOOR_PX = 3


# =============================================================================
# Region Analysis Constants
# =============================================================================

# Row stride for the column-mean profile and grid stride for region stats
COLUMN_PROFILE_ROW_STEP = 4
REGION_STATS_STEP = 4

# Sliding window for the transition search: min(MAX, width // DIVISOR)
TRANSITION_WINDOW_MAX = 15
TRANSITION_WINDOW_DIVISOR = 20

# Below this left/right window difference there is no usable boundary
MIN_TRANSITION_GRADIENT = 30.0

# Region statistics guards
MIN_REGION_STD = 1.0
DEFAULT_REGION_MEAN = 128.0
DEFAULT_REGION_STD = 30.0

# Contrast uses the spread between these intensity percentiles
CONTRAST_LOW_PERCENTILE = 5
CONTRAST_HIGH_PERCENTILE = 95

# Laplacian sharpness is sampled on this grid, starting at the offset
SHARPNESS_STEP = 4
SHARPNESS_OFFSET = 2

# Region analysis validity
REGION_VALID_MEAN_DIFFERENCE = 50.0
REGION_VALID_MIN_CONTRAST = 0.3


# =============================================================================
# Signal Generation Constants
# =============================================================================

# Grid step floors: max(FLOOR, expected_radius // 2)
BLOB_GRID_STEP_MIN = 3
EDGE_GRID_STEP_MIN = 4

# Extra margin from the image border beyond the max radius (A, B) or the
# expected radius (C)
BLOB_BORDER_PADDING = 5
EDGE_RING_BORDER_PADDING = 10

# Background annulus around a grid point, as multiples of the expected radius
BACKGROUND_RING_INNER_FACTOR = 1.2
BACKGROUND_RING_OUTER_FACTOR = 2.0

# Lattice stride used when sampling an annulus
RING_SAMPLE_STRIDE = 2

# Accepted blob area relative to disks of the min/max radius
MIN_BLOB_AREA_FACTOR = 0.3
MAX_BLOB_AREA_FACTOR = 2.0

# Raw score normalizers
DARK_ANOMALY_SCORE_NORMALIZER = 50.0
LIGHT_ANOMALY_SCORE_NORMALIZER = 40.0
EDGE_RING_SCORE_NORMALIZER = 0.3

# Angular sampling of an edge ring: max(MIN, PER_PX * radius)
MIN_EDGE_RING_SAMPLES = 16
EDGE_RING_SAMPLES_PER_PX = 4

# Fallback background when an annulus has no in-bounds samples
DEFAULT_RING_MEAN = 128.0
DEFAULT_RING_STD = 30.0


# =============================================================================
# Feature Extraction Constants
# =============================================================================

# Candidates closer than radius + this to the border get empty features
FEATURE_BORDER_PADDING = 5

# Local background annulus: [radius + GAP, radius + GAP + WIDTH]
FEATURE_BACKGROUND_GAP = 2
FEATURE_BACKGROUND_WIDTH = 8

# Edge magnitude (0-255) counted as "strong" for edge closure
STRONG_EDGE_THRESHOLD = 30

# Blob re-extraction search radius, as a multiple of the candidate radius
BLOB_SEARCH_RADIUS_FACTOR = 2

# Size conformance sigma = expected_radius / DIVISOR
SIZE_CONFORMANCE_SIGMA_DIVISOR = 3.0

# Isolation cap (in units of 2 * expected radius)
MAX_ISOLATION = 2.0

# Smallest eigenvalue used for the blob aspect ratio
MIN_MOMENT_EIGENVALUE = 0.001


# =============================================================================
# Overlap Constants
# =============================================================================

OVERLAP_MAX_ASPECT_RATIO = 1.5
OVERLAP_MIN_COMPACTNESS = 0.6
OVERLAP_MAX_RADIUS_FACTOR = 1.5


# =============================================================================
# Quality Warning Constants
# =============================================================================

BLUR_SHARPNESS_THRESHOLD = 100.0
LOW_CONTRAST_THRESHOLD = 0.4

# Pre-detection acceptability
ACCEPTABLE_MIN_SHARPNESS = 50.0
ACCEPTABLE_MIN_CONTRAST = 0.3
