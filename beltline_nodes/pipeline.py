import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from .config import load_config
from .corridor import select_corridor_segments
from .imagery import fetch_images, resolve_api_key
from .ingest import load_access_points, load_street_records, read_access_table, safe_read
from .logging_utils import configure_logging, log_step
from .models import StreetGraph
from .network import clean_street_graph
from .nodes import build_imaging_nodes, lookup_table, nodes_table
from .ranking import rank_assignments
from .sampling import sample_corridor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    access_points: tuple
    graph: StreetGraph
    segments: tuple
    points: tuple
    assignments: tuple
    nodes: tuple

    @property
    def nodes_table(self) -> pd.DataFrame:
        return nodes_table(self.nodes)

    @property
    def lookup_table(self) -> pd.DataFrame:
        return lookup_table(self.nodes)


# Purpose: Run every geometric stage from raw inputs to imaging nodes.
# Inputs:
# - streets (GeoDataFrame): Street collection with CRS, id and classification columns.
# - access_table (DataFrame): Access points as (id, longitude, latitude) rows.
# - config (dict): Merged configuration (see config.load_config).
# Outputs:
# - PipelineResult: Every intermediate collection, all immutable.
def run_pipeline(streets, access_table: pd.DataFrame, config: dict) -> PipelineResult:
    inputs = config["inputs"]
    crs = config["projected_crs"]

    with log_step("Load access points"):
        access_points = load_access_points(
            access_table,
            crs,
            id_col=inputs["access_id_column"],
            lon_col=inputs["longitude_column"],
            lat_col=inputs["latitude_column"],
            source_crs=config["geographic_crs"],
        )

    with log_step("Load street records"):
        records = load_street_records(
            streets,
            crs,
            id_col=inputs["segment_id_column"],
            highway_col=inputs["highway_column"],
            allow_list=config["highway_allow_list"],
        )

    graph = clean_street_graph(records, precision=int(config["node_precision"]))

    with log_step("Select access corridor"):
        segments = select_corridor_segments(graph, access_points, buffer=float(config["buffer_m"]))

    with log_step("Sample corridor segments"):
        points = sample_corridor(
            segments,
            spacing=float(config["sample_spacing_m"]),
            tolerance=float(config["reassociation_tolerance_m"]),
        )

    with log_step("Rank sampled points per access point"):
        assignments = rank_assignments(points, access_points, k=int(config["top_k"]))

    with log_step("Build imaging nodes"):
        nodes = build_imaging_nodes(
            assignments,
            source_crs=crs,
            geographic_crs=config["geographic_crs"],
            image_dir=config["imagery"]["image_dir"],
        )

    return PipelineResult(access_points, graph, segments, points, assignments, nodes)


def write_outputs(result: PipelineResult, config: dict) -> tuple:
    out_dir = Path(config["outputs"]["directory"])
    out_dir.mkdir(parents=True, exist_ok=True)
    nodes_path = out_dir / config["outputs"]["nodes_file"]
    lookup_path = out_dir / config["outputs"]["lookup_file"]
    with log_step(f"Write {nodes_path.name}"):
        result.nodes_table.to_csv(nodes_path, index=False)
    with log_step(f"Write {lookup_path.name}"):
        result.lookup_table.to_csv(lookup_path, index=False)
    return nodes_path, lookup_path


def main(config_path=None, fetch: bool = False):
    configure_logging()
    logger.info("Starting imaging node pipeline…")
    config = load_config(config_path)

    streets = safe_read(Path(config["inputs"]["streets"]))
    access_table = read_access_table(Path(config["inputs"]["access_points"]))

    result = run_pipeline(streets, access_table, config)
    write_outputs(result, config)

    if fetch or config["imagery"].get("fetch", False):
        imagery = config["imagery"]
        with log_step("Fetch street-level imagery"):
            fetch_images(
                result.nodes,
                resolve_api_key(imagery),
                base_url=imagery["base_url"],
                size=imagery["size"],
                fov=imagery["fov"],
                pitch=imagery["pitch"],
                timeout=float(imagery["timeout_s"]),
            )
    logger.info("Imaging node pipeline complete.")
    return result


if __name__ == "__main__":
    main()
