import logging

import pandas as pd

from .geometry import WGS84, azimuth_between, format_coordinate
from .models import ImagingNode

logger = logging.getLogger(__name__)

NODE_COLUMNS = ["node_id", "osm_id", "OBJECTID", "coords", "heading", "path"]
LOOKUP_COLUMNS = ["node_id", "OBJECTID", "path"]


def image_path(image_dir, node_id: int, coords: str, heading: float) -> str:
    """Deterministic image filename: same node, coordinate and heading give the same path."""
    name = f"{node_id}_{coords}_{heading:.1f}.jpg"
    return f"{str(image_dir).rstrip('/')}/{name}" if image_dir else name


# Purpose: Turn ranked assignments into imaging nodes ready for the imagery request builder.
# Inputs:
# - assignments (iterable[RankedAssignment]): Output of rank_assignments, in its order.
# - source_crs (str): Projected CRS of the sampled points.
# - geographic_crs (str): CRS used for the "lat,lon" coordinate string.
# - image_dir (str): Directory prefix for the derived image path.
# Outputs:
# - tuple[ImagingNode, ...]: node_id 1..N in assignment order, heading rounded to 1 decimal.
def build_imaging_nodes(assignments, source_crs: str, geographic_crs: str = WGS84, image_dir: str = "") -> tuple:
    nodes = []
    for node_id, ra in enumerate(assignments, start=1):
        coords = format_coordinate(ra.point.x, ra.point.y, source_crs, geographic_crs)
        heading = round(azimuth_between(ra.point, ra.access), 1) + 0.0
        if heading == -180.0:
            heading = 180.0
        nodes.append(
            ImagingNode(
                node_id=node_id,
                segment_id=ra.point.segment.segment_id,
                access_id=ra.access.id,
                coords=coords,
                heading=heading,
                path=image_path(image_dir, node_id, coords, heading),
            )
        )
    logger.info(f"Imaging nodes: {len(nodes)}")
    return tuple(nodes)


def nodes_table(nodes) -> pd.DataFrame:
    rows = [
        (n.node_id, n.segment_id, n.access_id, n.coords, n.heading, n.path)
        for n in nodes
    ]
    return pd.DataFrame(rows, columns=NODE_COLUMNS)


# Purpose: Node → access point lookup used to join classification results back to access geometry.
# Inputs:
# - nodes (iterable[ImagingNode]): Imaging nodes.
# Outputs:
# - DataFrame: ['node_id','OBJECTID','path'], one row per distinct path (first node kept).
def lookup_table(nodes) -> pd.DataFrame:
    table = nodes_table(nodes)[LOOKUP_COLUMNS]
    return table.drop_duplicates(subset="path", keep="first").reset_index(drop=True)
