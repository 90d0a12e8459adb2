"""
Neighbourhood sampling helpers shared by the signal generators and the
feature extractor.

This module handles:
- Precomputed offset lattices for annuli, disks and angular edge rings
- Vectorized sampling of many grid points at once via numpy fancy indexing
- Single-point convenience wrappers

Offsets are (dy, dx) integer arrays. Samples falling outside the image are
ignored rather than clamped.
"""

import math
from functools import lru_cache
from typing import Tuple

import numpy as np

from .detection_constants import (
    DEFAULT_RING_MEAN,
    DEFAULT_RING_STD,
    EDGE_RING_SAMPLES_PER_PX,
    MIN_EDGE_RING_SAMPLES,
    MIN_REGION_STD,
    RING_SAMPLE_STRIDE,
    STRONG_EDGE_THRESHOLD,
)

Offsets = Tuple[np.ndarray, np.ndarray]


def _frozen(*arrays: np.ndarray) -> Tuple[np.ndarray, ...]:
    # Cached lattices are shared between callers
    for array in arrays:
        array.setflags(write=False)
    return arrays


@lru_cache(maxsize=64)
def ring_offsets(inner: int, outer: int, stride: int = RING_SAMPLE_STRIDE) -> Offsets:
    """
    Offsets of an annulus sampled on a square lattice.

    A lattice point belongs to the annulus when inner <= int(dist) <= outer.

    Args:
        inner: Inner radius in pixels
        outer: Outer radius in pixels
        stride: Lattice spacing in pixels

    Returns:
        Tuple of (dy, dx) offset arrays
    """
    steps = np.arange(-outer, outer + 1, stride)
    dy, dx = np.meshgrid(steps, steps, indexing="ij")
    dist = np.sqrt(dx ** 2 + dy ** 2).astype(np.int64)
    mask = (dist >= inner) & (dist <= outer)
    return _frozen(dy[mask].copy(), dx[mask].copy())


@lru_cache(maxsize=64)
def disk_offsets(radius: int) -> Offsets:
    """Offsets of every pixel with dx^2 + dy^2 <= radius^2."""
    radius = max(0, radius)
    steps = np.arange(-radius, radius + 1)
    dy, dx = np.meshgrid(steps, steps, indexing="ij")
    mask = dx ** 2 + dy ** 2 <= radius ** 2
    return _frozen(dy[mask].copy(), dx[mask].copy())


def edge_ring_sample_count(radius: int) -> int:
    return max(MIN_EDGE_RING_SAMPLES, EDGE_RING_SAMPLES_PER_PX * radius)


@lru_cache(maxsize=64)
def edge_ring_offsets(radius: int) -> Offsets:
    """
    Offsets of evenly spaced angular samples on a circle.

    Offsets are truncated toward zero, so samples sit on or just inside the
    nominal radius.
    """
    n = edge_ring_sample_count(radius)
    angles = np.arange(n) * (2.0 * math.pi / n)
    dx = np.trunc(radius * np.cos(angles)).astype(np.int64)
    dy = np.trunc(radius * np.sin(angles)).astype(np.int64)
    return _frozen(dy, dx)


def gather(matrix: np.ndarray, ys: np.ndarray, xs: np.ndarray, offsets: Offsets) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sample a matrix around many points at once.

    Args:
        matrix: 2D array to sample
        ys: Row coordinates of the points, shape (N,)
        xs: Column coordinates of the points, shape (N,)
        offsets: (dy, dx) lattice

    Returns:
        Tuple of (values, valid), both shaped (N, K). values is float64;
        entries where valid is False are out of bounds and must be ignored.
    """
    height, width = matrix.shape[:2]
    dy, dx = offsets
    py = np.asarray(ys, dtype=np.int64)[:, None] + dy[None, :]
    px = np.asarray(xs, dtype=np.int64)[:, None] + dx[None, :]
    valid = (py >= 0) & (py < height) & (px >= 0) & (px < width)
    values = matrix[np.clip(py, 0, height - 1), np.clip(px, 0, width - 1)].astype(np.float64)
    return values, valid


def ring_statistics(
    gray: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
    inner: int,
    outer: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Background mean and std of an annulus around each point.

    Points with no in-bounds samples get DEFAULT_RING_MEAN/DEFAULT_RING_STD;
    std is floored at MIN_REGION_STD.

    Returns:
        Tuple of (means, stds), each shaped (N,)
    """
    values, valid = gather(gray, ys, xs, ring_offsets(inner, outer))
    counts = valid.sum(axis=1)
    safe_counts = np.maximum(counts, 1)

    means = np.where(valid, values, 0.0).sum(axis=1) / safe_counts
    deviations = np.where(valid, values - means[:, None], 0.0)
    stds = np.sqrt((deviations ** 2).sum(axis=1) / safe_counts)
    stds = np.maximum(stds, MIN_REGION_STD)

    empty = counts == 0
    means[empty] = DEFAULT_RING_MEAN
    stds[empty] = DEFAULT_RING_STD
    return means, stds


def edge_ring_strengths(edges: np.ndarray, ys: np.ndarray, xs: np.ndarray, radius: int) -> np.ndarray:
    """Mean normalized edge magnitude on a circle around each point."""
    values, valid = gather(edges, ys, xs, edge_ring_offsets(radius))
    counts = valid.sum(axis=1)
    totals = np.where(valid, values, 0.0).sum(axis=1)
    return np.where(counts > 0, totals / np.maximum(counts, 1) / 255.0, 0.0)


def sample_ring(gray: np.ndarray, x: int, y: int, inner: int, outer: int) -> Tuple[float, float]:
    """Mean and std of the annulus around a single point."""
    means, stds = ring_statistics(gray, np.array([y]), np.array([x]), inner, outer)
    return float(means[0]), float(stds[0])


def sample_disk(gray: np.ndarray, x: int, y: int, radius: int) -> float:
    """Mean intensity of the disk around a point (DEFAULT_RING_MEAN if empty)."""
    values, valid = gather(gray, np.array([y]), np.array([x]), disk_offsets(radius))
    if not valid.any():
        return DEFAULT_RING_MEAN
    return float(values[valid].mean())


def sample_edge_ring(edges: np.ndarray, x: int, y: int, radius: int) -> float:
    """Mean normalized edge magnitude on a circle around a single point."""
    return float(edge_ring_strengths(edges, np.array([y]), np.array([x]), radius)[0])


def edge_ring_profile(edges: np.ndarray, x: int, y: int, radius: int) -> Tuple[float, float]:
    """
    Edge closure and mean strength on a circle around a point.

    Both figures are taken over the full sample count, so out-of-bounds
    samples count as missing edge.

    Args:
        edges: Edge magnitude matrix (0-255)
        x: Center column
        y: Center row
        radius: Circle radius in pixels

    Returns:
        Tuple of (closure, strength), each in [0, 1]. closure is the fraction
        of samples above STRONG_EDGE_THRESHOLD.
    """
    n = edge_ring_sample_count(radius)
    values, valid = gather(edges, np.array([y]), np.array([x]), edge_ring_offsets(radius))
    values = np.where(valid, values, 0.0)[0]
    closure = float(np.count_nonzero(values > STRONG_EDGE_THRESHOLD)) / n
    strength = float(values.sum()) / n / 255.0
    return closure, strength
