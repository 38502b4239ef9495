import logging
import math

from .models import SampledPoint

logger = logging.getLogger(__name__)

SPACING_M = 10.0
REASSOCIATION_TOLERANCE_M = 1.0

# relative guard so 30 / 10 doesn't floor to 2 through float error
_FLOOR_EPS = 1e-9


def sample_count(length: float, spacing: float = SPACING_M) -> int:
    """Number of regular samples on a line: floor(length / spacing) + 1, start included."""
    if spacing <= 0:
        raise ValueError(f"spacing must be positive, got {spacing!r}")
    if length <= 0:
        return 1
    return math.floor(length / spacing * (1 + _FLOOR_EPS)) + 1


def sample_offsets(length: float, spacing: float = SPACING_M) -> list:
    return [min(k * spacing, length) for k in range(sample_count(length, spacing))]


# Purpose: Discretize one corridor segment into points every `spacing` meters from its start.
# Inputs:
# - segment (CorridorSegment): Segment to sample.
# - spacing (float): Linear spacing in meters.
# - start_index (int): Global insertion index of the first point.
# Outputs:
# - list[SampledPoint]: Points at offsets 0, spacing, 2*spacing, ... <= length, each owning `segment`.
def sample_segment(segment, spacing: float = SPACING_M, start_index: int = 0) -> list:
    line = segment.geometry
    points = []
    for k, d in enumerate(sample_offsets(segment.length, spacing)):
        p = line.interpolate(d)
        points.append(SampledPoint(x=p.x, y=p.y, segment=segment, offset=d, index=start_index + k))
    return points


# Purpose: Sample every corridor segment and verify each point still sits on the segment it came from.
# Inputs:
# - segments (iterable[CorridorSegment]): Corridor segments in a stable order.
# - spacing (float): Linear spacing in meters.
# - tolerance (float): Max distance between a point and its owning segment before it is dropped.
# Outputs:
# - tuple[SampledPoint, ...]: Points in segment order with consecutive indices. Dropped points are logged.
def sample_corridor(segments, spacing: float = SPACING_M, tolerance: float = REASSOCIATION_TOLERANCE_M) -> tuple:
    if tolerance <= 0:
        raise ValueError(f"tolerance must be positive, got {tolerance!r}")
    out = []
    dropped = 0
    n_segments = 0
    for seg in segments:
        n_segments += 1
        for pt in sample_segment(seg, spacing, start_index=len(out)):
            if seg.geometry.distance(pt.point) > tolerance:
                dropped += 1
                continue
            # re-index so indices stay consecutive after drops
            out.append(SampledPoint(pt.x, pt.y, pt.segment, pt.offset, len(out)))
    if dropped:
        logger.warning(f"Dropped {dropped} sampled points that no longer touch their segment.")
    logger.info(f"Sampling: {n_segments} segments → {len(out)} points every {spacing:g} m")
    return tuple(out)
