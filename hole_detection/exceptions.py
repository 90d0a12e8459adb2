"""
Exception types raised by the hole detection pipeline.

Only hard failures raise. Soft degradations (blur, low contrast, unclear
target regions) are reported as warnings on the result instead.
"""


class HoleDetectionError(Exception):
    """Base class for all hole detection errors."""


class InvalidImageError(HoleDetectionError):
    """The input could not be turned into a usable grayscale pixel buffer."""


class ConfigurationError(HoleDetectionError, ValueError):
    """A detection configuration value or file is invalid."""


class DetectionCancelledError(HoleDetectionError):
    """The caller cancelled a detection run before it completed."""
