import logging
import math

from .models import RankedAssignment

logger = logging.getLogger(__name__)

TOP_K = 3


def _access_index(access_points) -> dict:
    return {a.id: a for a in access_points}


# Purpose: Expand every sampled point into one (point, access point, distance) candidate per access id on its segment.
# Inputs:
# - points (iterable[SampledPoint]): Sampled points in insertion order.
# - access_points (iterable[AccessPoint]): Access locations, joined by id.
# Outputs:
# - list[tuple[SampledPoint, AccessPoint, float]]: In point order, then segment access-id order.
def assign_candidates(points, access_points) -> list:
    by_id = _access_index(access_points)
    candidates = []
    for pt in points:
        for access_id in pt.segment.access_ids:
            access = by_id.get(access_id)
            if access is None:
                raise KeyError(f"Segment {pt.segment.segment_id} references unknown access point {access_id!r}")
            dist = math.hypot(pt.x - access.x, pt.y - access.y)
            candidates.append((pt, access, dist))
    return candidates


# Purpose: Keep the k closest sampled points for each access point.
# Inputs:
# - points (iterable[SampledPoint]): Sampled points, each tagged through its segment.
# - access_points (sequence[AccessPoint]): Access locations; their order fixes the output order.
# - k (int): Number of points to keep per access point.
# Outputs:
# - tuple[RankedAssignment, ...]: Grouped by access point, ascending distance, rank 1..k.
#   Equal distances keep sampled-point insertion order.
def rank_assignments(points, access_points, k: int = TOP_K) -> tuple:
    if k <= 0:
        raise ValueError(f"k must be positive, got {k!r}")
    access_points = list(access_points)
    groups = {a.id: [] for a in access_points}
    for pt, access, dist in assign_candidates(points, access_points):
        groups[access.id].append((pt, access, dist))

    out = []
    empty = 0
    for a in access_points:
        # sorted() is stable, candidates are already in point insertion order
        ranked = sorted(groups[a.id], key=lambda c: c[2])[:k]
        if not ranked:
            empty += 1
        for rank, (pt, access, dist) in enumerate(ranked, start=1):
            out.append(RankedAssignment(point=pt, access=access, distance=dist, rank=rank))
    if empty:
        logger.info(f"{empty} access points have no sampled points nearby.")
    logger.info(f"Ranking: {len(out)} assignments for {len(access_points) - empty} access points (k={k})")
    return tuple(out)
