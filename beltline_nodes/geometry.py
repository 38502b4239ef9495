import math
from functools import lru_cache

from pyproj import Transformer
from shapely.geometry import (
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPolygon,
    Polygon,
)
from shapely.validation import make_valid

WGS84 = "EPSG:4326"


# -------------------- Validity --------------------
def _fix_geom(g):
    if g is None or g.is_empty:
        return g
    return make_valid(g) if not g.is_valid else g


# -------------------- Line decomposition --------------------
# Purpose: Break any street geometry into simple LineString parts.
# Inputs:
# - geom (shapely geometry): LineString, MultiLineString, Polygon, MultiPolygon or a collection of those.
# Outputs:
# - iterator[LineString]: Non-empty parts with at least two coordinates. Points are skipped.
def decompose_lines(geom):
    """
    Yield LineString parts for line and polygon geometries.
    Polygons contribute their exterior ring and every interior ring as closed lines.
    """
    if geom is None or geom.is_empty:
        return
    if isinstance(geom, LineString):
        if len(geom.coords) >= 2:
            yield geom
    elif isinstance(geom, Polygon):
        yield LineString(geom.exterior.coords)
        for ring in geom.interiors:
            yield LineString(ring.coords)
    elif isinstance(geom, (MultiLineString, MultiPolygon, GeometryCollection)):
        for part in geom.geoms:
            yield from decompose_lines(part)


# -------------------- Azimuth --------------------
# Purpose: Heading of the vector from an origin (access point) to a point, in degrees.
# Inputs:
# - point: Anything with .x/.y, the sampled location.
# - origin: Anything with .x/.y, the access point.
# Outputs:
# - float: atan2(dy, dx) in degrees, counter-clockwise from +x, in (-180, 180].
def azimuth_between(point, origin) -> float:
    dy = point.y - origin.y
    dx = point.x - origin.x
    ang = math.atan2(dy, dx) * 180 / math.pi
    # atan2(-0.0, negative) gives -180; keep the half-open range
    return 180.0 if ang == -180.0 else ang


def azimuth(point, access_id, access_points) -> float:
    """Azimuth from the access point with ``access_id`` to ``point``.

    ``access_points`` is either a mapping keyed by id or an iterable of AccessPoint.
    """
    if not hasattr(access_points, "keys"):
        access_points = {a.id: a for a in access_points}
    return azimuth_between(point, access_points[access_id])


# -------------------- Reprojection --------------------
@lru_cache(maxsize=16)
def get_transformer(source_crs: str, target_crs: str) -> Transformer:
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def to_geographic(x: float, y: float, source_crs: str, target_crs: str = WGS84):
    """Return (lon, lat) of a projected coordinate."""
    lon, lat = get_transformer(source_crs, target_crs).transform(x, y)
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise ValueError(f"Could not reproject ({x}, {y}) from {source_crs} to {target_crs}")
    return lon, lat


def _round_coord(value: float, ndigits: int = 4) -> float:
    # + 0.0 turns -0.0 into 0.0 so "-0.0000" never reaches a filename
    return round(value, ndigits) + 0.0


# Purpose: Reproject a projected point to lon/lat and format it for request URLs and filenames.
# Inputs:
# - x, y (float): Coordinate in source_crs.
# - source_crs (str): Projected CRS of the input.
# - target_crs (str): Geographic CRS, EPSG:4326 by default.
# Outputs:
# - str: "{lat},{lon}" each rounded half-to-even to 4 decimals.
def format_coordinate(x: float, y: float, source_crs: str, target_crs: str = WGS84) -> str:
    lon, lat = to_geographic(x, y, source_crs, target_crs)
    return f"{_round_coord(lat):.4f},{_round_coord(lon):.4f}"

