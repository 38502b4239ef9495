import logging

import numpy as np
from shapely.strtree import STRtree

from .models import CorridorSegment, StreetGraph

logger = logging.getLogger(__name__)

BUFFER_M = 20.0


# Purpose: Keep the street edges that come within `buffer` meters of at least one access point.
# Inputs:
# - graph (StreetGraph): Cleaned street graph in the projected CRS.
# - access_points (sequence[AccessPoint]): Access locations in the same CRS.
# - buffer (float): Disc radius in meters around every access point.
# Outputs:
# - tuple[CorridorSegment, ...]: Edges in graph order, each tagged with every access id whose disc it touches,
#   listed in access point order. Geometry and length are the edge's own.
def select_corridor_segments(graph: StreetGraph, access_points, buffer: float = BUFFER_M) -> tuple:
    if buffer <= 0:
        raise ValueError(f"buffer must be positive, got {buffer!r}")
    access_points = list(access_points)
    if not graph.edges or not access_points:
        logger.info("Corridor selection: nothing to select (empty graph or no access points).")
        return ()

    # exact disc test around each point
    tree = STRtree([a.point for a in access_points])
    edge_geoms = np.array([e.geometry for e in graph.edges], dtype=object)
    edge_idx, access_idx = tree.query(edge_geoms, predicate="dwithin", distance=float(buffer))

    matches = {}
    for ei, ai in sorted(zip(edge_idx.tolist(), access_idx.tolist())):
        matches.setdefault(ei, []).append(access_points[ai].id)

    segments = tuple(
        CorridorSegment(edge=graph.edges[ei], access_ids=tuple(ids))
        for ei, ids in sorted(matches.items())
    )
    shared = sum(1 for s in segments if len(s.access_ids) > 1)
    logger.info(
        f"Corridor selection: {len(graph)} edges → {len(segments)} segments "
        f"within {buffer:g} m ({shared} shared by several access points)"
    )
    return segments
