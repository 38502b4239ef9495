import logging
from pathlib import Path

import geopandas as gpd
import osmnx as ox

from .config import load_config
from .ingest import is_allowed_highway, primary_highway
from .logging_utils import configure_logging, log_step

logger = logging.getLogger(__name__)

STREET_COLUMNS = ["osm_id", "highway", "geometry"]


# Purpose: Reduce an osmnx edge GeoDataFrame to the street collection consumed by the pipeline.
# Inputs:
# - edges (GeoDataFrame): Output of ox.graph_to_gdfs(..., nodes=False), indexed by (u, v, key).
# - allow_list (iterable[str]): Road classes to keep.
# Outputs:
# - GeoDataFrame: ['osm_id','highway','geometry'] in the edges' CRS. List-valued osmid keeps its first way id.
def edges_to_streets(edges: gpd.GeoDataFrame, allow_list) -> gpd.GeoDataFrame:
    if edges is None or edges.empty:
        return gpd.GeoDataFrame({"osm_id": [], "highway": []}, geometry=[], crs=getattr(edges, "crs", None))
    out = edges.reset_index(drop=True).copy()
    out["osm_id"] = out["osmid"].apply(lambda v: v[0] if isinstance(v, list) else v)
    out["highway"] = out["highway"].apply(lambda hw: primary_highway(hw, allow_list))
    keep = out["highway"].apply(lambda hw: is_allowed_highway(hw, allow_list))
    # two-way streets come back once per direction; the graph builder drops the multi-edge
    return out.loc[keep, STREET_COLUMNS].reset_index(drop=True)


def fetch_streets(place_name: str, allow_list) -> gpd.GeoDataFrame:
    with log_step(f"Fetch drive network for {place_name}"):
        G = ox.graph_from_place(place_name, network_type="drive", simplify=False)
        edges = ox.graph_to_gdfs(G, nodes=False, edges=True)
    streets = edges_to_streets(edges, allow_list)
    logger.info(f"Fetched {len(edges)} edges → {len(streets)} allow-listed streets")
    return streets


def main(config_path=None):
    configure_logging()
    config = load_config(config_path)
    out_path = Path(config["inputs"]["streets"])
    out_path.parent.mkdir(parents=True, exist_ok=True)
    streets = fetch_streets(config["area"]["place_name"], config["highway_allow_list"])
    streets.to_file(out_path, driver="GeoJSON")
    logger.info(f"Saved {len(streets)} streets to {out_path}")


if __name__ == "__main__":
    main()
