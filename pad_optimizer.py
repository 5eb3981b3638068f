# Pad records and the dispensing route optimizer.
#
# The dispenser head visits every SMD pad once. File order makes it zig-zag
# across the board, so the pads are reordered with a nearest-neighbor sweep
# starting at the first pad. Not an optimal TSP tour, but short and fast.
#
# Requires 'numpy' and 'shapely'.

from dataclasses import dataclass
from typing import List

import numpy as np
from shapely.geometry import LineString


@dataclass(eq=False)
class Pad:
    x: float = 0.0
    y: float = 0.0
    drill: float = 0.0
    area: float = 0.0


def _nearest(coords_array: np.ndarray, candidates: np.ndarray, current: np.ndarray) -> int:
    """Index of the candidate closest to current, the earliest one on a tie."""
    pool = candidates
    while True:
        delta = coords_array[pool] - current
        finite = np.abs(delta[np.isfinite(delta)])
        largest = finite.max() if finite.size else 0.0
        if largest > 0:
            # Power-of-two scale: squares can't overflow and equal distances stay equal.
            delta = np.ldexp(delta, -np.frexp(largest)[1])

        distances = delta[:, 0] ** 2 + delta[:, 1] ** 2
        distances[np.isnan(distances)] = np.inf

        best = distances.min()
        closest = pool[distances == best]
        if best > 0 or len(closest) == len(pool):
            return int(closest[0])
        # Squares of the nearest offsets underflowed to 0, compare those on their own scale.
        pool = closest


def optimize_pads(pads: List[Pad]) -> None:
    """
    Reorders pads in place along a greedy nearest-neighbor route.

    The first pad stays first. From there the closest pad not yet visited is
    picked; on equal distance the one earlier in the input wins.
    """
    if not pads:
        raise ValueError("No pads to optimize.")

    coords_array = np.array([(pad.x, pad.y) for pad in pads], dtype=float)
    visited = np.zeros(len(pads), dtype=bool)

    order = [0]
    visited[0] = True
    current = coords_array[0]

    for _ in range(len(pads) - 1):
        # Ascending, so the first of equally close candidates is the earliest input index.
        candidates = np.flatnonzero(~visited)
        nearest = _nearest(coords_array, candidates, current)
        order.append(nearest)
        visited[nearest] = True
        current = coords_array[nearest]

    pads[:] = [pads[i] for i in order]


def route_length(pads: List[Pad]) -> float:
    """Travel distance (mm) when visiting pads in list order."""
    if len(pads) < 2:
        return 0.0
    return LineString([(pad.x, pad.y) for pad in pads]).length
