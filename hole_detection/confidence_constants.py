"""
Constants for candidate confidence scoring.

This module contains the feature weights, penalty multipliers and reporting
thresholds used by confidence.py.
"""

# =============================================================================
# Feature Weights
# =============================================================================

# White-region weights (sum to 1.0)
WHITE_REGION_WEIGHTS = {
    "intensity_delta": 0.15,
    "contrast_ratio": 0.15,
    "edge_closure": 0.12,
    "edge_strength": 0.08,
    "compactness": 0.08,
    "size_conformance": 0.12,
    "signal_count": 0.15,
    "isolation": 0.05,
    "ring_proximity": 0.05,
    "region_bonus": 0.05,
}

# Black-region overrides (light-on-black marks rely more on contrast and
# signal agreement than on shape)
BLACK_REGION_WEIGHT_OVERRIDES = {
    "contrast_ratio": 0.20,
    "signal_count": 0.20,
    "compactness": 0.05,
}


# =============================================================================
# Feature Transforms
# =============================================================================

# Slope applied to the signed intensity delta before the sigmoid
INTENSITY_SIGMOID_SLOPE = 8.0

# Contrast ratio at which the contrast sigmoid crosses 0.5
CONTRAST_RATIO_MIDPOINT = 1.5

# Signal count that earns the full signal score
MAX_SIGNAL_COUNT = 3

# Ring proximity bonus: full credit inside this many target radii
RING_PROXIMITY_LIMIT = 0.8
RING_PROXIMITY_INSIDE_SCORE = 1.0
RING_PROXIMITY_OUTSIDE_SCORE = 0.5


# =============================================================================
# Penalties
# =============================================================================

# Elongated blobs (likely two touching holes)
SEVERE_ASPECT_RATIO = 2.0
SEVERE_ASPECT_PENALTY = 0.75
MODERATE_ASPECT_RATIO = 1.5
MODERATE_ASPECT_PENALTY = 0.90

# Only one signal fired
SINGLE_SIGNAL_PENALTY = 0.85

# Ragged outline
IRREGULAR_COMPACTNESS = 0.4
IRREGULAR_SHAPE_PENALTY = 0.80

# Crowded by another candidate
CROWDED_ISOLATION = 0.3
CROWDED_PENALTY = 0.85


# =============================================================================
# Reporting Levels
# =============================================================================

CONFIDENCE_LEVEL_HIGH_THRESHOLD = 0.85    # > 0.85 = high
CONFIDENCE_LEVEL_MEDIUM_THRESHOLD = 0.50  # >= 0.50 = medium
