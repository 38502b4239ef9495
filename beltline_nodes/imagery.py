import logging
import os
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

STREETVIEW_URL = "https://maps.googleapis.com/maps/api/streetview"


def request_params(node, api_key: str, size: str = "640x640", fov=90, pitch=0) -> dict:
    """Query parameters of one street-level image request."""
    return {
        "size": size,
        "location": node.coords,
        "heading": f"{node.heading:.1f}",
        "fov": fov,
        "pitch": pitch,
        "key": api_key,
    }


def build_request_url(node, api_key: str, base_url: str = STREETVIEW_URL, **kwargs) -> str:
    req = requests.Request("GET", base_url, params=request_params(node, api_key, **kwargs))
    return req.prepare().url


def resolve_api_key(imagery_cfg: dict) -> str:
    env_var = imagery_cfg.get("api_key_env", "GOOGLE_MAPS_API_KEY")
    key = os.getenv(env_var)
    if not key:
        raise ValueError(f"{env_var} not set. Export it or add it to the environment.")
    return key


# Purpose: Download one image per imaging node, skipping files that already exist.
# Inputs:
# - nodes (iterable[ImagingNode]): Nodes with a deterministic `path`.
# - api_key (str): Imagery API key.
# - session (requests.Session | None): Reused HTTP session; a new one is created if None.
# - timeout (float): Per-request timeout in seconds.
# - overwrite (bool): Re-download even when the output file exists.
# Outputs:
# - dict: Counts {'downloaded': int, 'skipped': int}. HTTP errors propagate after logging.
def fetch_images(
    nodes,
    api_key: str,
    *,
    session=None,
    base_url: str = STREETVIEW_URL,
    size: str = "640x640",
    fov=90,
    pitch=0,
    timeout: float = 30,
    overwrite: bool = False,
) -> dict:
    if not api_key:
        raise ValueError("An imagery API key is required.")
    session = session or requests.Session()
    counts = {"downloaded": 0, "skipped": 0}
    for node in nodes:
        out_path = Path(node.path)
        # Cache behaviour: if file exists, reuse it
        if not overwrite and out_path.exists():
            counts["skipped"] += 1
            continue
        params = request_params(node, api_key, size=size, fov=fov, pitch=pitch)
        try:
            r = session.get(base_url, params=params, timeout=timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Image request failed for node {node.node_id} ({node.coords}): {e}")
            raise
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(r.content)
        counts["downloaded"] += 1
    logger.info(f"Imagery: downloaded {counts['downloaded']}, skipped {counts['skipped']} existing")
    return counts
