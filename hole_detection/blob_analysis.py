"""
Connected blob extraction and shape measurement.

A blob is the 8-connected component of pixels on one side of an intensity
threshold, limited to a disk around a seed point. Shape is described by
contour compactness and the second-moment aspect ratio.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from .detection_constants import MIN_MOMENT_EIGENVALUE
from .models import Point


@dataclass(frozen=True)
class Blob:
    """A connected group of pixels found around a seed."""
    area: int
    centroid: Point
    compactness: float              # 4*pi*area / perimeter^2, [0, 1]
    aspect_ratio: float             # sqrt(lambda1 / lambda2), >= 1
    bounding_box: Tuple[int, int, int, int]  # (x, y, w, h)

    @property
    def radius(self) -> float:
        """Radius of a disk with the same area."""
        return math.sqrt(self.area / math.pi)

    @classmethod
    def single_pixel(cls, x: int, y: int) -> "Blob":
        return cls(
            area=1,
            centroid=(float(x), float(y)),
            compactness=0.0,
            aspect_ratio=1.0,
            bounding_box=(x, y, 1, 1),
        )


def compute_compactness(mask: np.ndarray) -> float:
    """
    Isoperimetric compactness of the outer contour of a binary mask.

    Args:
        mask: uint8 mask (non-zero = blob)

    Returns:
        4*pi*area / perimeter^2 clipped to [0, 1]; 0 for degenerate shapes
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
    if not contours:
        return 0.0

    contour = max(contours, key=cv2.contourArea)
    area = cv2.contourArea(contour)
    perimeter = cv2.arcLength(contour, True)
    if perimeter <= 0:
        return 0.0

    return float(np.clip(4.0 * math.pi * area / (perimeter ** 2), 0.0, 1.0))


def compute_aspect_ratio(mask: np.ndarray) -> float:
    """
    Major/minor axis ratio from central second moments.

    Returns:
        sqrt(lambda1 / lambda2) with lambda2 floored at MIN_MOMENT_EIGENVALUE;
        1.0 for blobs of two pixels or fewer
    """
    moments = cv2.moments(mask, binaryImage=True)
    n = moments["m00"]
    if n <= 2:
        return 1.0

    cxx = moments["mu20"] / n
    cyy = moments["mu02"] / n
    cxy = moments["mu11"] / n

    trace = cxx + cyy
    det = cxx * cyy - cxy * cxy
    discriminant = math.sqrt(max(0.0, trace * trace / 4.0 - det))
    lambda1 = trace / 2.0 + discriminant
    lambda2 = max(MIN_MOMENT_EIGENVALUE, trace / 2.0 - discriminant)

    return max(1.0, math.sqrt(lambda1 / lambda2))


def extract_blob(
    gray: np.ndarray,
    seed_x: int,
    seed_y: int,
    threshold: int,
    search_radius: int,
    light: bool = False,
) -> Blob:
    """
    Extract the blob around a seed point.

    Pixels darker than the threshold (lighter when light=True) inside a disk
    of search_radius around the seed are grouped into 8-connected components.
    The component containing the seed is returned; if the seed itself is not
    on the blob side of the threshold, the largest component is used instead.

    Args:
        gray: Grayscale matrix
        seed_x: Seed column
        seed_y: Seed row
        threshold: Intensity threshold (exclusive)
        search_radius: Radius of the search disk in pixels
        light: Look for pixels above the threshold instead of below

    Returns:
        Blob in image coordinates; a single-pixel blob at the seed when no
        pixel qualifies
    """
    height, width = gray.shape[:2]
    seed_x = int(seed_x)
    seed_y = int(seed_y)
    search_radius = max(1, int(search_radius))

    x0 = max(0, seed_x - search_radius)
    x1 = min(width - 1, seed_x + search_radius)
    y0 = max(0, seed_y - search_radius)
    y1 = min(height - 1, seed_y + search_radius)
    if x1 < x0 or y1 < y0:
        return Blob.single_pixel(seed_x, seed_y)

    patch = gray[y0:y1 + 1, x0:x1 + 1]
    yy, xx = np.ogrid[y0:y1 + 1, x0:x1 + 1]
    in_disk = (xx - seed_x) ** 2 + (yy - seed_y) ** 2 <= search_radius ** 2
    on_side = patch > threshold if light else patch < threshold
    mask = (in_disk & on_side).astype(np.uint8)

    if not mask.any():
        return Blob.single_pixel(seed_x, seed_y)

    num_labels, labels, stats, centroids = cv2.connectedComponentsWithStats(mask, connectivity=8)

    local_x = seed_x - x0
    local_y = seed_y - y0
    label = 0
    if 0 <= local_y < labels.shape[0] and 0 <= local_x < labels.shape[1]:
        label = int(labels[local_y, local_x])
    if label == 0:
        # Seed is background; fall back to the largest component
        label = 1 + int(np.argmax(stats[1:num_labels, cv2.CC_STAT_AREA]))

    component = (labels == label).astype(np.uint8)
    cx, cy = centroids[label]

    return Blob(
        area=int(stats[label, cv2.CC_STAT_AREA]),
        centroid=(float(cx) + x0, float(cy) + y0),
        compactness=compute_compactness(component),
        aspect_ratio=compute_aspect_ratio(component),
        bounding_box=(
            int(stats[label, cv2.CC_STAT_LEFT]) + x0,
            int(stats[label, cv2.CC_STAT_TOP]) + y0,
            int(stats[label, cv2.CC_STAT_WIDTH]),
            int(stats[label, cv2.CC_STAT_HEIGHT]),
        ),
    )
