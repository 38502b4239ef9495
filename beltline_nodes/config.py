import copy
import logging
import os
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BELTLINE_NODES_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

WGS84 = "EPSG:4326"

# Defaults
DEFAULTS = {
    "projected_crs": "EPSG:26967",  # NAD83 / Georgia West, meters
    "geographic_crs": WGS84,
    "buffer_m": 20.0,
    "sample_spacing_m": 10.0,
    "top_k": 3,
    "reassociation_tolerance_m": 1.0,
    "node_precision": 6,
    "highway_allow_list": [
        "motorway", "trunk", "primary", "secondary",
        "tertiary", "unclassified", "residential",
    ],
    "area": {
        "place_name": "Atlanta, Georgia, USA",
    },
    "inputs": {
        "streets": "data/streets.geojson",
        "access_points": "data/access_points.csv",
        "segment_id_column": "osm_id",
        "highway_column": "highway",
        "access_id_column": "OBJECTID",
        "longitude_column": "longitude",
        "latitude_column": "latitude",
    },
    "outputs": {
        "directory": "outputs",
        "nodes_file": "imaging_nodes.csv",
        "lookup_file": "node_access_lookup.csv",
    },
    "imagery": {
        "base_url": "https://maps.googleapis.com/maps/api/streetview",
        "api_key_env": "GOOGLE_MAPS_API_KEY",
        "image_dir": "outputs/images",
        "size": "640x640",
        "fov": 90,
        "pitch": 0,
        "timeout_s": 30,
        "fetch": False,
    },
}

_NESTED = ("area", "inputs", "outputs", "imagery")


# Purpose: Read config.yaml and merge it over DEFAULTS, one level deep for the nested sections.
# Inputs:
# - path (str | Path | None): Explicit config path. Falls back to $BELTLINE_NODES_CONFIG, then the repo config.yaml.
# Outputs:
# - dict: Complete configuration with every key of DEFAULTS present.
def load_config(path=None) -> dict:
    path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    if path.exists():
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        logger.info(f"Loaded config from {path}")
    else:
        logger.warning(f"Config file {path} does not exist. Using defaults.")
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")
    return merge_config(raw)


def merge_config(raw: dict) -> dict:
    config = copy.deepcopy(DEFAULTS)
    for key, value in raw.items():
        if key in _NESTED:
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"Config section {key!r} must be a mapping, got {type(value).__name__}")
            config[key] = {**DEFAULTS[key], **(value or {})}
        else:
            config[key] = value
    validate_config(config)
    return config


def validate_config(config: dict):
    for key in ("buffer_m", "sample_spacing_m"):
        if float(config[key]) <= 0:
            raise ValueError(f"{key} must be positive, got {config[key]!r}")
    if int(config["top_k"]) <= 0:
        raise ValueError(f"top_k must be positive, got {config['top_k']!r}")
    if float(config["reassociation_tolerance_m"]) <= 0:
        raise ValueError(f"reassociation_tolerance_m must be positive, got {config['reassociation_tolerance_m']!r}")
    if not config["projected_crs"]:
        raise ValueError("projected_crs is required")
