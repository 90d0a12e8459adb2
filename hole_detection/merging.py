"""
Candidate merging.

Detections of the same physical mark from one or more signals are folded
into a single candidate carrying the union of their signals.
"""

import copy
import logging
from typing import List

from .models import DetectionCandidate

logger = logging.getLogger(__name__)


def _merge_pass(candidates: List[DetectionCandidate], merge_radius: float) -> List[DetectionCandidate]:
    # Stable sort keeps A, B, C concatenation order among equal scores
    ordered = sorted(candidates, key=lambda c: c.best_raw_score, reverse=True)
    used = [False] * len(ordered)
    merged = []

    for i, seed in enumerate(ordered):
        if used[i]:
            continue
        used[i] = True
        current = copy.deepcopy(seed)

        for j in range(len(ordered)):
            if used[j]:
                continue
            # Compare against the already-updated center of the seed
            if current.distance_to(ordered[j]) < merge_radius:
                current.merge(ordered[j])
                used[j] = True

        merged.append(current)

    return merged


def merge_candidates(candidates: List[DetectionCandidate], merge_radius: float) -> List[DetectionCandidate]:
    """
    Fold nearby candidates into one candidate per mark.

    Candidates are visited by descending best raw score; each unvisited
    candidate becomes a seed that absorbs every other unvisited candidate
    closer than merge_radius. Passes repeat until one makes no merge, so
    merging an already merged list returns it unchanged.

    Args:
        candidates: Raw signal candidates (not modified)
        merge_radius: Merge distance in pixels

    Returns:
        New list of merged candidates
    """
    if not candidates:
        return []

    current = list(candidates)
    passes = 0
    while True:
        merged = _merge_pass(current, merge_radius)
        passes += 1
        if len(merged) == len(current):
            break
        current = merged

    logger.debug(
        f"Merged {len(candidates)} candidates into {len(merged)} "
        f"(radius={merge_radius:.1f}px, {passes} passes)"
    )
    return merged
