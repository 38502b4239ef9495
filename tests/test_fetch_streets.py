import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString

from beltline_nodes import fetch_streets as fs

ALLOW = ["primary", "residential", "tertiary"]


def osmnx_edges():
    index = pd.MultiIndex.from_tuples([(1, 2, 0), (2, 1, 0), (2, 3, 0), (3, 4, 0)], names=["u", "v", "key"])
    return gpd.GeoDataFrame(
        {
            "osmid": [100, 100, [200, 201], 300],
            "highway": ["residential", "residential", ["service", "tertiary"], "footway"],
        },
        geometry=[
            LineString([(0, 0), (1, 0)]),
            LineString([(1, 0), (0, 0)]),
            LineString([(1, 0), (2, 0)]),
            LineString([(2, 0), (3, 0)]),
        ],
        index=index,
        crs="EPSG:4326",
    )


def test_edges_to_streets():
    streets = fs.edges_to_streets(osmnx_edges(), ALLOW)
    assert list(streets.columns) == fs.STREET_COLUMNS
    assert streets["osm_id"].tolist() == [100, 100, 200]
    assert streets["highway"].tolist() == ["residential", "residential", "tertiary"]
    assert streets.crs == "EPSG:4326"


def test_edges_to_streets_empty():
    empty = gpd.GeoDataFrame({"osmid": [], "highway": []}, geometry=[], crs="EPSG:4326")
    assert fs.edges_to_streets(empty, ALLOW).empty


def test_fetch_streets_uses_osmnx(monkeypatch):
    calls = {}

    def fake_graph_from_place(place, network_type, simplify):
        calls["place"] = (place, network_type, simplify)
        return "G"

    def fake_graph_to_gdfs(G, nodes, edges):
        assert G == "G" and not nodes and edges
        return osmnx_edges()

    monkeypatch.setattr(fs.ox, "graph_from_place", fake_graph_from_place)
    monkeypatch.setattr(fs.ox, "graph_to_gdfs", fake_graph_to_gdfs)
    streets = fs.fetch_streets("Atlanta, Georgia, USA", ALLOW)
    assert calls["place"] == ("Atlanta, Georgia, USA", "drive", False)
    assert len(streets) == 3
