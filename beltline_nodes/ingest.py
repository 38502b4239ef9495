import logging
import math
from collections import Counter
from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd

from .geometry import WGS84, _fix_geom
from .logging_utils import log_step
from .models import AccessId, AccessPoint, SegmentId, StreetRecord

logger = logging.getLogger(__name__)


# -------------------- I/O helper --------------------
# Purpose: Read a geospatial file and refuse layers without CRS metadata.
# Inputs:
# - path (Path): File path to load (GeoPackage, GeoJSON, Shapefile, etc.).
# Outputs:
# - GeoDataFrame: Loaded layer. Missing files return an empty GeoDataFrame in WGS84.
def safe_read(path: Path) -> gpd.GeoDataFrame:
    path = Path(path)
    if not path.exists():
        logger.warning(f"File {path} does not exist. Returning empty GeoDataFrame.")
        return gpd.GeoDataFrame(geometry=[], crs=WGS84)
    with log_step(f"Read {path.name}"):
        gdf = gpd.read_file(path)
    if gdf.crs is None:
        raise ValueError(f"{path} has no CRS; cannot project street geometry.")
    logger.info(f"Loaded {path} with {len(gdf)} features.")
    return gdf


def read_access_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Access point table {path} does not exist.")
    df = pd.read_csv(path)
    logger.info(f"Loaded {path} with {len(df)} access points.")
    return df


# -------------------- Access points --------------------
def _parse_coordinate(value, name: str, row_id) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Access point {row_id!r}: unparseable {name} {value!r}") from None
    if not math.isfinite(v):
        raise ValueError(f"Access point {row_id!r}: non-finite {name} {value!r}")
    return v


# Purpose: Turn the (id, longitude, latitude) access table into projected AccessPoint objects.
# Inputs:
# - table (DataFrame): One row per access location in geographic coordinates.
# - projected_crs (str): Target metric CRS for all distance work.
# - id_col, lon_col, lat_col (str): Column names.
# - source_crs (str): CRS of the longitude/latitude columns.
# Outputs:
# - tuple[AccessPoint, ...]: In table order. Raises ValueError on malformed rows or duplicate ids.
def load_access_points(
    table: pd.DataFrame,
    projected_crs: str,
    *,
    id_col: str = "OBJECTID",
    lon_col: str = "longitude",
    lat_col: str = "latitude",
    source_crs: str = WGS84,
) -> tuple:
    missing = [c for c in (id_col, lon_col, lat_col) if c not in table.columns]
    if missing:
        raise ValueError(f"Access point table is missing columns: {missing}")
    if not projected_crs:
        raise ValueError("A projected CRS is required for access points.")
    if table.empty:
        logger.warning("Access point table is empty.")
        return ()

    ids, lons, lats = [], [], []
    for row in table[[id_col, lon_col, lat_col]].itertuples(index=False):
        row_id, lon, lat = row
        if pd.isna(row_id) or str(row_id).strip() == "":
            raise ValueError("Access point row without an identifier.")
        lon = _parse_coordinate(lon, "longitude", row_id)
        lat = _parse_coordinate(lat, "latitude", row_id)
        if not (-180.0 <= lon <= 180.0) or not (-90.0 <= lat <= 90.0):
            raise ValueError(f"Access point {row_id!r}: ({lon}, {lat}) is not a lon/lat pair")
        ids.append(_normalize_id(row_id))
        lons.append(lon)
        lats.append(lat)

    dupes = pd.Series(ids)[pd.Series(ids).duplicated()].unique().tolist()
    if dupes:
        raise ValueError(f"Duplicate access point ids: {dupes}")

    pts = gpd.GeoDataFrame(
        {"id": ids}, geometry=gpd.points_from_xy(lons, lats), crs=source_crs
    ).to_crs(projected_crs)
    xs, ys = pts.geometry.x.to_numpy(), pts.geometry.y.to_numpy()
    if not (np.isfinite(xs).all() and np.isfinite(ys).all()):
        raise ValueError(f"Access points could not be projected to {projected_crs}")

    out = tuple(
        AccessPoint(id=AccessId(i), x=float(x), y=float(y))
        for i, x, y in zip(ids, xs, ys)
    )
    logger.info(f"Access points: {len(out)} projected to {projected_crs}")
    return out


def _missing_id(value) -> bool:
    if value is None:
        return True
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return True
    return str(value).strip() == ""


def _normalize_id(value) -> str:
    # 1234.0 from a float column should read as "1234"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()


# -------------------- Streets --------------------
def _normalize_highway(hw):
    """osmnx leaves merged ways with list-valued tags; keep the list."""
    if hw is None:
        return None
    if isinstance(hw, (list, tuple, np.ndarray)):
        return [str(h).lower() for h in hw]
    if isinstance(hw, float) and math.isnan(hw):
        return None
    return str(hw).lower()


def is_allowed_highway(hw, allow_list) -> bool:
    hw = _normalize_highway(hw)
    if hw is None:
        return False
    allowed = {a.lower() for a in allow_list}
    if isinstance(hw, list):
        return any(h in allowed for h in hw)
    return hw in allowed


def primary_highway(hw, allow_list=None):
    hw = _normalize_highway(hw)
    if not isinstance(hw, list):
        return hw
    if allow_list is not None:
        allowed = {a.lower() for a in allow_list}
        return next((h for h in hw if h in allowed), hw[0] if hw else None)
    return hw[0] if hw else None


# Purpose: Project the street collection and turn every usable row into a StreetRecord.
# Inputs:
# - streets (GeoDataFrame): Street polylines/polygons with an id and a road-classification column.
# - projected_crs (str): Metric CRS used for every length and buffer computation.
# - allow_list (iterable[str] | None): Road classes to keep. None disables the filter.
# Outputs:
# - tuple[StreetRecord, ...]: Rows without an id are dropped silently (DEBUG). Raises ValueError without CRS.
def load_street_records(
    streets: gpd.GeoDataFrame,
    projected_crs: str,
    *,
    id_col: str = "osm_id",
    highway_col: str = "highway",
    allow_list=None,
) -> tuple:
    if streets is None or len(streets) == 0:
        logger.info("Street collection is empty.")
        return ()
    if streets.crs is None:
        raise ValueError("Street collection has no CRS.")
    if id_col not in streets.columns:
        raise ValueError(f"Street collection is missing the id column {id_col!r}")

    local = streets.to_crs(projected_crs)
    has_hw = highway_col in local.columns
    if allow_list is not None and not has_hw:
        raise ValueError(f"Street collection is missing the classification column {highway_col!r}")

    records = []
    no_id = not_allowed = no_geom = 0
    for row_id, geom, hw in zip(
        local[id_col],
        local.geometry,
        local[highway_col] if has_hw else [None] * len(local),
    ):
        if _missing_id(row_id):
            no_id += 1
            continue
        if allow_list is not None and not is_allowed_highway(hw, allow_list):
            not_allowed += 1
            continue
        if geom is None or geom.is_empty:
            no_geom += 1
            continue
        records.append(
            StreetRecord(
                segment_id=SegmentId(_normalize_id(row_id)),
                geometry=_fix_geom(geom),
                highway=primary_highway(hw, allow_list),
            )
        )
    logger.debug(f"Dropped {no_id} street rows without an id, {no_geom} without geometry.")
    by_class = Counter(r.highway for r in records)
    logger.debug(f"Street records per class: {dict(by_class)}")
    logger.info(
        f"Streets: input {len(streets)} → {len(records)} records "
        f"(outside allow-list {not_allowed})"
    )
    return tuple(records)
